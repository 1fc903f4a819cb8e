"""
Population Manager Module

This module implements the Neat class, the generational evolutionary loop
that drives a population of Network genomes: fitness evaluation, parent
selection, crossover, elitism, provenance and mutation.

The fitness function is injected. It is either called once per genome,
serially or fanned out to worker processes with joblib, or once per
population; in both cases it may be a coroutine function, whose awaitables
are driven to completion before the population is sorted. The loop itself is
strictly generational: 'evolve' only returns once the whole population has
been replaced and scored.

Classes:
    GenerationSummary: Statistics of one generation
    Neat:              The population manager

Functions:
    default_fitness:   Minus the mean cost over a dataset, with a size penalty
"""

import asyncio
import functools
import inspect
import math
import numbers
import random
import warnings
import numpy as np
from dataclasses import dataclass
from joblib      import Parallel, delayed
from statistics  import mean

from neatflow.errors            import ConfigurationError, InfeasibleMutationWarning, InvalidCallback
from neatflow.genotype          import Network
from neatflow.methods.mutation  import Mutation, MutationType
from neatflow.methods.selection import FitnessProportionate, Power, Tournament
from neatflow.run.config        import Config

@dataclass
class GenerationSummary:
    """Statistics of a generation, recorded by 'Neat.evolve'."""
    generation      : int
    best_score      : float
    average_score   : float
    best_nodes      : int
    best_connections: int
    best_gates      : int

    def __str__(self):
        return (f"generation {self.generation:>4} | best {self.best_score:+.6f} | "
                f"average {self.average_score:+.6f} | nodes {self.best_nodes} | "
                f"connections {self.best_connections} | gates {self.best_gates}")

def default_fitness(dataset, genome: Network, cost="MSE", growth: float = 0.0001, amount: int = 1) -> float:
    """
    Score a genome by its error on a dataset (higher is better).

    Parameters:
        dataset: Sequence of (input, target) pairs
        genome:  The network to score
        cost:    Cost function, by name or as a callable
        growth:  Penalty per hidden node, connection and gate
        amount:  Number of times the dataset is evaluated

    Returns:
        -(sum of the mean costs + growth * size) / amount, or -inf if that is NaN
    """
    score = 0.0
    for _ in range(amount):
        score -= genome.test(dataset, cost)["error"]
    score -= genome.complexity() * growth
    if math.isnan(score):
        return -math.inf
    return score / amount

async def _resolve(results: list) -> list:
    """Await every awaitable in 'results' concurrently, keeping plain values as they are."""
    pending = [result for result in results if inspect.isawaitable(result)]
    done    = iter(await asyncio.gather(*pending))
    return [next(done) if inspect.isawaitable(result) else result for result in results]

def _await_all(results: list) -> list:
    """
    Drive the awaitables in 'results' to completion on a fresh event loop.
    Raises ConfigurationError when called from a running event loop, where
    the generational loop cannot block on them.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(_resolve(results))

    for result in results:
        if inspect.iscoroutine(result):
            result.close()
    raise ConfigurationError("Asynchronous fitness functions can't be awaited while an event loop is running; "
                             "call 'evolve' from synchronous code (e.g. via 'loop.run_in_executor')")

class Neat:
    """
    A population of Network genomes evolving generation by generation.

    Public Attributes:
        population: The genomes of the current generation
        template:   Genome used to seed the population and for provenance
        generation: Number of generations evolved so far
        history:    GenerationSummary of every generation evolved so far
        dataset:    Dataset handed to the fitness function
        fitness:    The fitness function
        popsize, elitism, provenance, equal, mutation_rate, mutation_amount,
        mutation, selection, efficient_mutation, max_nodes, max_conns, max_gates,
        clear, fitness_population, num_jobs: Settings, initialized from the Config

    Public Methods:
        evolve():                 Evolve the population by one generation
        evaluate():               Score every genome
        get_parent():             Select a parent
        get_offspring():          Create an offspring by crossover of two parents
        mutate():                 Mutate the population
        select_mutation_method(): Draw a mutation operator for a genome
        sort(), get_fittest(), get_average(): Population statistics
        to_json(), from_json():   Structural form of the population
    """

    def __init__(self,
                 input_size        : int,
                 output_size       : int,
                 dataset                                = None,
                 config            : Config        | None = None,
                 fitness                                = None,
                 template          : Network       | None = None,
                 rng               : random.Random | None = None,
                 fitness_population: bool          | None = None):
        """
        Create the population.

        Parameters:
            input_size:         Number of network inputs
            output_size:        Number of network outputs
            dataset:            Sequence of (input, target) pairs handed to the fitness function
            config:             Configuration (defaults are used if None)
            fitness:            Fitness function. Per genome: (dataset, genome) -> score.
                                Per population: (dataset, population) -> None, assigning
                                each genome's 'score'. May be a coroutine function.
                                Defaults to 'default_fitness' with the configured cost,
                                growth and amount.
            template:           Genome the population is cloned from. If None, the
                                population is made of fresh randomly initialized networks
            rng:                Random source for every stochastic operation of the evolution
            fitness_population: Whether 'fitness' scores the whole population at once
                                (defaults to the configuration's 'fitness_population')
        """
        self._config: Config        = config if config is not None else Config()
        self._rng   : random.Random = rng    if rng    is not None else random.Random()

        self.input_size : int = input_size
        self.output_size: int = output_size
        self.dataset          = dataset

        self.popsize           : int            = self._config.population_size
        self.elitism           : int            = self._config.elitism
        self.provenance        : int            = self._config.provenance
        self.equal             : bool           = self._config.equal
        self.mutation_rate     : float          = self._config.mutation_rate
        self.mutation_amount   : int            = self._config.mutation_amount
        self.mutation          : list[Mutation] = list(self._config.mutation_options)
        self.selection                          = self._config.selection
        self.efficient_mutation: bool           = self._config.efficient_mutation
        self.max_nodes         : float          = self._config.max_nodes
        self.max_conns         : float          = self._config.max_conns
        self.max_gates         : float          = self._config.max_gates
        self.clear             : bool           = self._config.clear
        self.num_jobs          : int            = self._config.num_jobs
        self.fitness_population: bool           = self._config.fitness_population if fitness_population is None \
                                                  else fitness_population

        self._check_settings()
        if dataset is not None:
            self._check_dataset(dataset)
        if template is not None and (template.input_size != input_size or template.output_size != output_size):
            raise ConfigurationError("Template network doesn't have the population's input/output size")

        if fitness is None:
            if self.fitness_population:
                raise ConfigurationError("A population-level fitness function must be provided")
            fitness = functools.partial(default_fitness,
                                        cost   = self._config.cost,
                                        growth = self._config.growth,
                                        amount = self._config.amount)
        self.fitness = fitness

        self.generation: int                     = 0
        self.history   : list[GenerationSummary] = []

        self.population: list[Network] = []
        for _ in range(self.popsize):
            if template is not None:
                self.population.append(self._copy(template))
            else:
                self.population.append(Network(input_size, output_size, self._config, self._rng))

        self.template: Network = template if template is not None else \
                                 Network(input_size, output_size, self._config, self._rng)

    def _copy(self, genome: Network) -> Network:
        return Network.from_json(genome.to_json(), self._config, self._rng)

    def _check_settings(self):
        if self.elitism + self.provenance > self.popsize:
            raise ConfigurationError("Can't evolve! Elitism + provenance exceeds population size")
        if isinstance(self.selection, Tournament) and self.selection.size > self.popsize:
            raise ConfigurationError("Tournament size should be lower than the population size")

    def _check_dataset(self, dataset):
        for sample_input, sample_target in dataset:
            if len(sample_input) != self.input_size or len(sample_target) != self.output_size:
                raise ConfigurationError("Dataset input/output size should be same as network input/output size")

    def _warn(self, message: str):
        if self._config.warnings:
            warnings.warn(message, InfeasibleMutationWarning, stacklevel=3)

    def evolve(self, dataset=None, pick_genome=None, adjust_genome=None) -> Network:
        """
        Evolve the population by one generation.

        Steps:
        1. score the population (if not scored yet) and sort it
        2. replace the genomes picked by 'pick_genome' (optional)
        3. keep the 'elitism' best genomes
        4. add 'provenance' copies of the template
        5. fill the rest of the population with offspring of selected parents
        6. mutate the new genomes (not the elites)
        7. add back the elites, score and sort the new population

        Parameters:
            dataset:       Dataset for the fitness function (defaults to the one given at construction)
            pick_genome:   Predicate (genome) -> bool selecting genomes to replace
            adjust_genome: Function (genome) -> Network producing the replacement
                           (defaults to a copy of the template)

        Returns:
            A copy of the fittest genome of the new generation, with its score
        """
        self._check_settings()
        if dataset is not None:
            self._check_dataset(dataset)
            self.dataset = dataset

        if self.population[-1].score is None:
            self.evaluate()
        if pick_genome is not None:
            self._filter_genomes(pick_genome, adjust_genome)
        self.sort()

        elitists = self.population[:self.elitism]

        new_population = [self._copy(self.template) for _ in range(self.provenance)]
        for _ in range(self.popsize - self.elitism - self.provenance):
            new_population.append(self.get_offspring())

        self.population = new_population
        self.mutate()
        self.population.extend(elitists)

        self.evaluate()
        if pick_genome is not None:
            self._filter_genomes(pick_genome, adjust_genome)
        self.sort()

        best    = self.population[0]
        fittest = best.clone()
        fittest.score = best.score
        average = mean(genome.score for genome in self.population)

        for genome in self.population:
            genome.score = None
        self.generation += 1

        self.history.append(GenerationSummary(generation       = self.generation,
                                              best_score       = best.score,
                                              average_score    = average,
                                              best_nodes       = len(best.nodes),
                                              best_connections = len(best.connections),
                                              best_gates       = len(best.gates)))
        return fittest

    def _filter_genomes(self, pick_genome, adjust_genome):
        replaced = False
        for i, genome in enumerate(self.population):
            picked = pick_genome(genome)
            if not isinstance(picked, (bool, np.bool_)):
                raise InvalidCallback(f"pick_genome must return a boolean, got {type(picked).__name__}")
            if not picked:
                continue

            if adjust_genome is not None:
                replacement = adjust_genome(genome)
                if not isinstance(replacement, Network):
                    raise InvalidCallback(f"adjust_genome must return a Network, got {type(replacement).__name__}")
            else:
                replacement = self._copy(self.template)

            self.population[i] = replacement
            replaced = replaced or replacement.score is None

        if replaced:
            self.evaluate()

    def evaluate(self, dataset=None):
        """
        Score every genome of the population with the fitness function.
        A NaN score becomes -inf.

        Coroutine fitness functions are awaited on a fresh event loop, so they
        cannot be used while an event loop is already running in this thread
        (ConfigurationError).
        """
        dataset = dataset if dataset is not None else self.dataset

        if self.clear:
            for genome in self.population:
                genome.clear()

        if self.fitness_population:
            result = self.fitness(dataset, self.population)
            if inspect.isawaitable(result):
                _await_all([result])
        else:
            parallelize = self.num_jobs != 1 and not inspect.iscoroutinefunction(self.fitness)
            if parallelize:
                scores = Parallel(self.num_jobs)(delayed(self.fitness)(dataset, genome) for genome in self.population)
            else:
                scores = [self.fitness(dataset, genome) for genome in self.population]
                if any(inspect.isawaitable(score) for score in scores):
                    scores = _await_all(scores)
            for genome, score in zip(self.population, scores):
                genome.score = score

        for genome in self.population:
            if not isinstance(genome.score, numbers.Real):
                raise InvalidCallback(f"The fitness function must give every genome a real score, got {genome.score!r}")
            genome.score = -math.inf if math.isnan(genome.score) else float(genome.score)

    def _ensure_evaluated(self):
        if self.population[-1].score is None:
            self.evaluate()

    def sort(self):
        """Sort the population by descending score."""
        self.population.sort(key=lambda genome: genome.score, reverse=True)

    def get_fittest(self) -> Network:
        self._ensure_evaluated()
        self.sort()
        return self.population[0]

    def get_average(self) -> float:
        self._ensure_evaluated()
        return mean(genome.score for genome in self.population)

    def get_parent(self) -> Network:
        """
        Select a parent from the population, according to the selection strategy.

        Returns:
            A member of the current population
        """
        self._ensure_evaluated()
        population = self.population
        selection  = self.selection

        if isinstance(selection, Power):
            if len(population) > 1 and population[0].score < population[1].score:
                self.sort()
            index = math.floor(self._rng.random() ** selection.power * len(population))
            return population[min(index, len(population) - 1)]

        if isinstance(selection, FitnessProportionate):
            # Shift the scores so that the lowest one becomes zero
            finite  = [genome.score for genome in population if math.isfinite(genome.score)]
            minimal = min(min(finite, default=0.0), 0.0)
            weights = [genome.score - minimal if math.isfinite(genome.score) else 0.0 for genome in population]
            total   = sum(weights)

            draw  = self._rng.random() * total
            value = 0.0
            for genome, weight in zip(population, weights):
                value += weight
                if draw < value:
                    return genome
            return self._rng.choice(population)

        if isinstance(selection, Tournament):
            if selection.size > len(population):
                raise ConfigurationError("Tournament size should be lower than the population size")

            entrants = [self._rng.choice(population) for _ in range(selection.size)]
            entrants.sort(key=lambda genome: genome.score, reverse=True)
            for i, genome in enumerate(entrants):
                if self._rng.random() < selection.probability or i == len(entrants) - 1:
                    return genome

        raise ConfigurationError(f"Unknown selection strategy {selection!r}")

    def get_offspring(self) -> Network:
        parent1 = self.get_parent()
        parent2 = self.get_parent()
        return Network.cross_over(parent1, parent2, self.equal, self._rng)

    def _exceeds_cap(self, genome: Network, method: Mutation) -> bool:
        if method.type == MutationType.ADD_NODE and len(genome.nodes) >= self.max_nodes:
            self._warn("maxNodes exceeded")
            return True
        if method.type in (MutationType.ADD_CONN, MutationType.ADD_BACK_CONN) and \
           len(genome.connections) >= self.max_conns:
            self._warn("maxConns exceeded")
            return True
        if method.type == MutationType.ADD_GATE and len(genome.gates) >= self.max_gates:
            self._warn("maxGates exceeded")
            return True
        return False

    def select_mutation_method(self, genome: Network) -> Mutation | None:
        """
        Draw a mutation operator for a genome.

        Returns:
            The operator, or None if it would exceed one of the size caps
        """
        method = self._rng.choice(self.mutation)
        if self._exceeds_cap(genome, method):
            return None
        return method

    def _mutate_efficiently(self, genome: Network) -> bool:
        """Draw untried operators until one of them can be applied."""
        untried = list(self.mutation)
        while untried:
            method = untried.pop(self._rng.randrange(len(untried)))
            if self._exceeds_cap(genome, method) or genome.possible(method) is None:
                continue
            return genome.mutate(method)
        self._warn("No mutation operator can be applied to this genome")
        return False

    def mutate(self):
        """
        Mutate the population: each genome is mutated with probability
        'mutation_rate', by 'mutation_amount' operators.
        """
        for genome in self.population:
            if self._rng.random() < self.mutation_rate:
                for _ in range(self.mutation_amount):
                    if self.efficient_mutation:
                        self._mutate_efficiently(genome)
                    else:
                        method = self.select_mutation_method(genome)
                        if method is not None:
                            genome.mutate(method)

    def to_json(self) -> list[dict]:
        return [genome.to_json() for genome in self.population]

    def from_json(self, data: list[dict]):
        """Replace the population by genomes in structural form."""
        self.population = [Network.from_json(genome_data, self._config, self._rng) for genome_data in data]
        self.popsize    = len(self.population)

    def __str__(self):
        s  = f"Neat: generation {self.generation}, {self.popsize} genomes, "
        s += f"elitism {self.elitism}, provenance {self.provenance}\n"
        if self.history:
            s += str(self.history[-1])
        return s
