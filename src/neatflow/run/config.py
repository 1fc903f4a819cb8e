import configparser
import os
from neatflow.activations       import activations
from neatflow.methods.mutation  import parse_mutations
from neatflow.methods.selection import parse_selection

class Config:

    @staticmethod
    def _parse_activation_options(raw_options):
        """
        Parse activation_options from string to list.

        Parameters:
            raw_options: Either "all", a comma-separated list, or already a list

        Returns:
            List of activation function names
        """
        # If already a list, return as-is
        if isinstance(raw_options, list):
            return raw_options

        if raw_options.strip() == 'all':
            return list(activations.keys())

        # Parse comma-separated list
        parsed = [opt.strip() for opt in raw_options.split(',')]
        for opt in parsed:
            if opt not in activations:
                raise ValueError(f"Invalid activation function '{opt}' in activation_options")
        return parsed

    def __init__(self, config_file: str | None = None):
        """
        Initialize Config by parsing an INI file, or create a default Config.

        Parameters:
            config_file: Path to the INI configuration file.
                         If None, creates a Config holding the defaults,
                         meant for manual attribute setting.
        """
        parser = configparser.ConfigParser()
        if config_file is not None:
            if not os.path.exists(config_file):
                raise FileNotFoundError(f"Configuration file '{config_file}' not found")
            parser.read(config_file)

        # Helper function to safely parse values
        def get_value(section, key, value_type, default):
            try:
                raw_value = parser.get(section, key)
            except (configparser.NoSectionError, configparser.NoOptionError):
                return default
            if raw_value.lower() == 'none':
                return None
            if value_type == int:
                return parser.getint(section, key)
            elif value_type == float:
                return parser.getfloat(section, key)
            elif value_type == bool:
                return parser.getboolean(section, key)
            return raw_value

        # [POPULATION_INIT]

        # The number of genomes in each generation.
        self.population_size = get_value('POPULATION_INIT', 'population_size', int, 50)

        # The number of input nodes, through which the network receives inputs.
        self.num_inputs = get_value('POPULATION_INIT', 'num_inputs', int, None)

        # The number of output nodes, to which the network delivers outputs.
        self.num_outputs = get_value('POPULATION_INIT', 'num_outputs', int, None)

        # [NETWORK]

        # Whether infeasible mutations, exceeded size caps and attempts
        # to gate an already gated connection are reported as warnings.
        self.warnings = get_value('NETWORK', 'warnings', bool, False)

        # Dropout rate of hidden nodes while training.
        self.dropout = get_value('NETWORK', 'dropout', float, 0.0)

        # Squash of newly created hidden and output nodes
        # (see 'basic_activations.py' for the options).
        self.activation_initial = get_value('NETWORK', 'activation_initial', str, 'logistic')

        # Which squash functions MOD_ACTIVATION and ADD_NODE may choose from.
        # Options: "all" or a comma-separated list of names.
        self.activation_options = get_value('NETWORK', 'activation_options', str, 'all')

        # [REPRODUCTION]

        # The number of most-fit genomes preserved as-is from one generation to the next.
        self.elitism = get_value('REPRODUCTION', 'elitism', int, 1)

        # The number of fresh copies of the template genome injected each generation.
        self.provenance = get_value('REPRODUCTION', 'provenance', int, 0)

        # If True, crossover treats both parents as equally fit
        # (offspring size is random and disjoint genes come from both).
        self.equal = get_value('REPRODUCTION', 'equal', bool, True)

        # The probability that an offspring gets mutated.
        self.mutation_rate = get_value('REPRODUCTION', 'mutation_rate', float, 0.4)

        # The number of mutation operators applied to an offspring that gets mutated.
        self.mutation_amount = get_value('REPRODUCTION', 'mutation_amount', int, 1)

        # The mutation operators evolution may use.
        # Options: "FFW" (keeps networks feed-forward), "ALL", or a comma-separated list of operators.
        self.mutation_options = get_value('REPRODUCTION', 'mutation_options', str, 'FFW')

        # If True, a genome keeps drawing untried operators until one of them succeeds.
        self.efficient_mutation = get_value('REPRODUCTION', 'efficient_mutation', bool, False)

        # Caps on genome size. Operators that would exceed them are skipped.
        self.max_nodes = get_value('REPRODUCTION', 'max_nodes', float, float('inf'))
        self.max_conns = get_value('REPRODUCTION', 'max_conns', float, float('inf'))
        self.max_gates = get_value('REPRODUCTION', 'max_gates', float, float('inf'))

        # [SELECTION]

        # Exponent of the POWER strategy (higher values favour the front of the population).
        self.selection_power = get_value('SELECTION', 'selection_power', float, 4.0)

        # Number of entrants, and probability of accepting the best remaining one, of a tournament.
        self.tournament_size        = get_value('SELECTION', 'tournament_size',        int,   5)
        self.tournament_probability = get_value('SELECTION', 'tournament_probability', float, 0.5)

        # Parent selection strategy.
        # Allowed values: "POWER", "FITNESS_PROPORTIONATE", "TOURNAMENT"
        self.selection = get_value('SELECTION', 'selection', str, 'POWER')

        # [FITNESS]

        # Cost function used by the default fitness function (see 'cost.py').
        self.cost = get_value('FITNESS', 'cost', str, 'MSE')

        # Penalty per hidden node, connection and gate.
        # Encourages smaller networks. Set to 0.0 to disable.
        self.growth = get_value('FITNESS', 'growth', float, 0.0001)

        # Number of times the dataset is evaluated per genome (useful for noisy genomes).
        self.amount = get_value('FITNESS', 'amount', int, 1)

        # Whether to reset the recurrent state of each genome before evaluating it.
        self.clear = get_value('FITNESS', 'clear', bool, False)

        # If True, the fitness function scores the whole population at once.
        self.fitness_population = get_value('FITNESS', 'fitness_population', bool, False)

        # Number of parallel processes for per-genome fitness evaluation
        # (1 = serial, -1 = all CPU cores).
        self.num_jobs = get_value('FITNESS', 'num_jobs', int, 1)

        # [TERMINATION]

        # Whether to use the fitness of the most recent
        # generation as a criterion for stopping the run.
        self.fitness_termination_check = get_value('TERMINATION', 'fitness_termination_check', bool, False)

        # The function used to compute the termination criterion.
        # Allowed values:
        #   "mean" mean fitness across the entire population
        #   "max"  fitness of the fittest genome in the population
        self.fitness_criterion = get_value('TERMINATION', 'fitness_criterion', str, 'max')

        # The fitness value which when met or exceeded causes the run to end.
        self.fitness_threshold = get_value('TERMINATION', 'fitness_threshold', float, None)

        # The number of generations after which to stop the run.
        self.max_number_generations = get_value('TERMINATION', 'max_number_generations', int, 100)

        # [GRADIENT_DESCENT] (optional section)

        # Whether to fine-tune genomes with the local gradient rule during evolution.
        self.enable_gradient = get_value('GRADIENT_DESCENT', 'enable_gradient', bool, False)

        # Number of training iterations (passes over the dataset) per application.
        self.gradient_steps = get_value('GRADIENT_DESCENT', 'gradient_steps', int, 10)

        # Learning rate and momentum of the weight updates.
        self.learning_rate = get_value('GRADIENT_DESCENT', 'learning_rate', float, 0.3)
        self.momentum      = get_value('GRADIENT_DESCENT', 'momentum',      float, 0.0)

        # Apply gradients every N generations (1 = every generation).
        self.gradient_frequency = get_value('GRADIENT_DESCENT', 'gradient_frequency', int, 1)

        # Which genomes to train.
        # Allowed values: 'all', 'top_k', 'top_percent'
        self.gradient_selection   = get_value('GRADIENT_DESCENT', 'gradient_selection',   str,   'top_k')
        self.gradient_top_k       = get_value('GRADIENT_DESCENT', 'gradient_top_k',       int,   5)
        self.gradient_top_percent = get_value('GRADIENT_DESCENT', 'gradient_top_percent', float, 0.1)

        # Whether trained weights stay in the genome and get inherited (Lamarckian evolution).
        # If False, training only affects the fitness used for selection (Baldwin effect).
        self.lamarckian_evolution = get_value('GRADIENT_DESCENT', 'lamarckian_evolution', bool, True)

    def __setattr__(self, name, value):
        """
        Override 'setattr' to automatically parse textual options when set.
        This allows users to write config.mutation_options = "ALL" and have it
        automatically converted to the list of mutation operators.
        """
        if name == 'activation_options':
            value = self._parse_activation_options(value)
        elif name == 'mutation_options':
            value = parse_mutations(value)
        elif name == 'selection' and isinstance(value, str):
            value = parse_selection(value,
                                    power       = self.selection_power,
                                    size        = self.tournament_size,
                                    probability = self.tournament_probability)
        super().__setattr__(name, value)

    def __str__(self):
        mutations = ', '.join(str(m) for m in self.mutation_options)
        s  = f"population_size={self.population_size}, elitism={self.elitism}, provenance={self.provenance}\n"
        s += f"mutation_rate={self.mutation_rate}, mutation_amount={self.mutation_amount}\n"
        s += f"mutation_options=[{mutations}]\n"
        s += f"selection={self.selection}, cost={self.cost}, growth={self.growth}"
        return s
