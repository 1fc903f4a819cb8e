"""
NEAT Trial Module

This module defines the abstract base class for trials, with built-in
support for CPU-based parallelization of fitness evaluation using joblib.

A trial represents one independent run of the evolutionary algorithm,
evolving a population through generations until a solution is found or the
maximum number of generations is reached.
"""

import copy
import random
from abc import ABC, abstractmethod

from neatflow.genotype   import Network
from neatflow.pool       import Neat
from neatflow.run.config import Config

class Trial(ABC):
    """
    Abstract base class for implementing a trial.

    Subclasses must implement:
    - _get_dataset(): Provide the (input, target) pairs handed to the fitness function
    - _evaluate_fitness(dataset, genome): Evaluate the fitness of a single genome
    - _report_progress(): Display progress after each generation
    - _final_report(): Display final results

    Subclasses can override:
    - _reset(): Reset trial-specific state (call super()._reset())
    - _terminate(): Custom termination logic (default: max generations + fitness threshold)

    Public Attributes:
        failed: True unless the fitness threshold was reached

    Public Methods:
        run(): Execute a complete trial

    Parallelization of fitness evaluation:
        num_jobs=1:  Serial evaluation (no parallelization)
        num_jobs>1:  Use specified number of parallel processes
        num_jobs=-1: Use all available CPU cores
    """

    def __init__(self,
                 config         : Config,
                 suppress_output: bool                 = False,
                 rng            : random.Random | None = None):
        """
        Initialize the trial.

        Parameters:
            config:          Configuration parameters
            suppress_output: If True, suppress progress and final reports
                             (useful when running many trials in a row)
            rng:             Random source of the evolution (for reproducible runs)
        """
        self._config         : Config        = config
        self._neat           : Neat          = None
        self._suppress_output: bool          = suppress_output
        self._rng            : random.Random = rng if rng is not None else random.Random()
        self._num_jobs       : int           = config.num_jobs
        self.failed          : bool          = True

    def run(self, num_jobs: int = 1):
        """
        Run the trial.

        Resets the trial state and runs the evolutionary
        algorithm until the terminate condition is met.

        Parameters:
            num_jobs: Number of parallel processes for fitness evaluation
                      1 = serial (no parallelization)
                     -1 = use all available CPU cores
                     >1 = use specified number of processes
        """
        # Reset the trial state before starting a new run
        self._reset()

        # Create the initial population
        self._num_jobs = num_jobs
        self._neat = self._create_neat(self._get_dataset())

        # Evolution loop
        while not self._terminate():
            self._neat.evolve()

            # Display progress after each generation
            if not self._suppress_output:
                self._report_progress()

        # Produce final report
        if not self._suppress_output:
            self._final_report()

    def _create_neat(self, dataset) -> Neat:
        return Neat(self._config.num_inputs,
                    self._config.num_outputs,
                    dataset  = dataset,
                    config   = self._neat_config(),
                    fitness  = self._evaluate_fitness,
                    template = self._template(),
                    rng      = self._rng)

    def _neat_config(self) -> Config:
        """Copy of the configuration with this run's number of jobs (the caller's Config is left untouched)."""
        config = copy.copy(self._config)
        config.num_jobs = self._num_jobs
        return config

    def _template(self) -> Network | None:
        """
        Genome the population is seeded with.
        None (the default) seeds the population with fresh random networks.
        """
        return None

    @property
    def generation(self) -> int:
        return self._neat.generation if self._neat is not None else 0

    def _reset(self):
        """
        Reset the trial state before starting a new run.

        Subclasses overriding this should call super()._reset().
        """
        self._neat  = None
        self.failed = True

    @abstractmethod
    def _get_dataset(self):
        """
        Provide the dataset handed to the fitness function.

        Returns:
            Sequence of (input, target) pairs
        """
        pass

    @abstractmethod
    def _evaluate_fitness(self, dataset, genome: Network) -> float:
        """
        Evaluate and return the fitness of a genome.

        This method should test the genome on the problem domain and compute
        a fitness score. Higher fitness values indicate better performance
        and a higher probability of procreating.

        Parameters:
            dataset: The trial's dataset
            genome:  The network to evaluate

        Returns:
            float: Fitness score of the genome
        """
        pass

    @abstractmethod
    def _report_progress(self):
        """
        Report trial progress after each generation.

        This method is suppressed by setting 'self._suppress_output' to 'True'.
        """
        pass

    @abstractmethod
    def _final_report(self):
        """
        Produce final report at the end of the trial.

        This method is suppressed by setting 'self._suppress_output' to 'True'.
        """
        pass

    def _terminate(self) -> bool:
        """
        Determine whether the trial should terminate.

        This default implementation stops the trial after a maximum number
        of generations and (optionally) also stops it if a given measure of
        population fitness has reached a given threshold.

        Returns:
            bool: True if the trial should stop, False otherwise
        """
        # Has this trial run for too long?
        terminate = self.generation >= self._config.max_number_generations

        # Check whether the fitness has reached a target threshold
        if self._config.fitness_termination_check and self._neat.history:
            summary = self._neat.history[-1]

            if self._config.fitness_criterion == "max":
                overall_fitness = summary.best_score
            elif self._config.fitness_criterion == "mean":
                overall_fitness = summary.average_score
            else:
                raise RuntimeError("bad 'fitness_criterion' in configuration file")

            # Compare a measure of population fitness (max, mean) against a threshold
            success = overall_fitness >= self._config.fitness_threshold
            terminate = terminate or success

            if terminate:
                self.failed = not success

        return terminate
