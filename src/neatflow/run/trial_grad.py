"""
Trial with Gradient Descent Module

This module defines an abstract base class for trials that combine
evolutionary topology search with gradient-based parameter optimization.

TrialGrad extends the base Trial class to add optional gradient descent
training phases: evolution searches the topology, while the local gradient
rule of Network.train fine-tunes the weights and biases of selected genomes.

Classes:
    TrialGrad: Abstract base class combining evolution with gradient descent
"""

import numpy as np
from joblib import Parallel, delayed

from neatflow.genotype   import Network
from neatflow.pool       import Neat
from neatflow.run.trial  import Trial
from neatflow.run.config import Config

class TrialGrad(Trial):
    """
    Abstract base class for trials with gradient descent support.

    Gradient Training Configuration (via Config.GRADIENT_DESCENT section):
        enable_gradient:      Whether to use gradient descent (default: False)
        gradient_steps:       Number of passes over the dataset per application (default: 10)
        learning_rate:        Learning rate of the weight updates (default: 0.3)
        momentum:             Momentum of the weight updates (default: 0.0)
        gradient_frequency:   Apply gradients every N generations (default: 1)
        gradient_selection:   Which genomes to train ('all', 'top_k', 'top_percent')
        gradient_top_k:       Number of top genomes to train (default: 5)
        gradient_top_percent: Fraction of top genomes to train (default: 0.1)
        lamarckian_evolution: Keep trained parameters in the genome for inheritance (default: True)

    Public Methods (inherited from Trial):
        run(): Execute a complete trial with optional gradient descent
    """

    def __init__(self, config: Config, suppress_output: bool = False, rng=None):
        super().__init__(config, suppress_output, rng)

        # Gradient descent data per genome index, reset every time gradients are applied
        self._gradient_data = {}

    def _reset(self):
        """Reset trial state."""
        super()._reset()
        self._gradient_data = {}

    def _create_neat(self, dataset) -> Neat:
        return Neat(self._config.num_inputs,
                    self._config.num_outputs,
                    dataset            = dataset,
                    config             = self._neat_config(),
                    fitness            = self._evaluate_fitness_all,
                    template           = self._template(),
                    rng                = self._rng,
                    fitness_population = True)

    def _evaluate_fitness_all(self, dataset, population: list[Network]):
        """
        Evaluate fitness for all genomes with optional gradient descent.

        Uses a two-pass approach:
        1. First pass:  Standard fitness evaluation for all genomes
        2. Second pass: Train selected genomes with the local gradient
                        rule and score them again

        The key distinction between modes:
        - Baldwin effect: a copy of the genome is trained; the genome benefits
                          from the improved fitness during selection, but its
                          offspring inherit the untrained parameters
        - Lamarckian:     the genome itself is trained, so the trained
                          parameters are passed on to offspring

        Parameters:
            dataset:    The trial's dataset
            population: The genomes to score
        """
        num_jobs = self._num_jobs

        # Pass #1: Compute standard fitness for all genomes
        if num_jobs == 1:
            scores = [self._evaluate_fitness(dataset, genome) for genome in population]
        else:
            scores = Parallel(num_jobs)(delayed(self._evaluate_fitness)(dataset, genome) for genome in population)
        for genome, score in zip(population, scores):
            genome.score = score

        # Pass #2: Fine-tune selected genomes via gradient descent
        do_gradient_descent = (self._config.enable_gradient and
                               self.generation % self._config.gradient_frequency == 0)
        selected = self._select_GD_genomes(population) if do_gradient_descent else []
        if not selected:
            return

        # Forget previous generation data
        self._gradient_data = {}

        for genome in selected:
            fitness_before = genome.score

            trained = genome if self._config.lamarckian_evolution else genome.clone()
            result  = trained.train(dataset,
                                    iterations = self._config.gradient_steps,
                                    error      = None,
                                    cost       = self._config.cost,
                                    rate       = self._config.learning_rate,
                                    momentum   = self._config.momentum)
            genome.score = self._evaluate_fitness(dataset, trained)

            self._gradient_data[population.index(genome)] = {
                'fitness_before_gd'  : fitness_before,
                'fitness_after_gd'   : genome.score,
                'fitness_improvement': genome.score - fitness_before,
                'loss_after_gd'      : result['error'],
                'generation'         : self.generation
            }

    def _select_GD_genomes(self, population: list[Network]) -> list[Network]:
        """
        Select which genomes should receive gradient descent training.

        Returns:
            List of genomes to train with gradient descent
        """
        if self._config.gradient_selection == 'all':
            return list(population)

        ranked = sorted(population, key=lambda genome: genome.score, reverse=True)

        if self._config.gradient_selection == 'top_k':
            return ranked[:self._config.gradient_top_k]

        elif self._config.gradient_selection == 'top_percent':
            num_to_select = max(1, int(len(population) * self._config.gradient_top_percent))
            return ranked[:num_to_select]

        else:
            raise ValueError(f"Unknown gradient_selection: {self._config.gradient_selection}")

    def _report_GD_statistics(self) -> str:
        """
        Report statistics about gradient descent performance.

        This method can be called from '_report_progress()'
        to display gradient training statistics.
        """
        if self._gradient_data:
            fitness_improvements = [data['fitness_improvement'] for data in self._gradient_data.values()]
            avg_fitness_improvement = np.mean(fitness_improvements)
            return f"Avg fitness improvement due to gradient descent: {avg_fitness_improvement:.6f}\n"
        return ""
