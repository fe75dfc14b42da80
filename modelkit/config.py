"""Consolidated configuration for the modeling workflow.

This module provides a type-safe, validated configuration structure using
dataclasses. Every knob of the workflow lives here:
- Data simulation and partitioning
- Resampling plan and scoring metric
- Preprocessing steps and the model-family registry
- Ensemble and feature-selection searches
- Worker pool and logging

The configuration is organized hierarchically:
    WorkflowConfig (root)
    ├── SimulationConfig
    ├── PartitionConfig
    ├── ResamplingConfig
    ├── PreprocessConfig
    ├── ModelingConfig
    │   └── ModelConfig (per model family)
    ├── EnsembleConfig
    ├── FeatureSelectionConfig
    │   ├── RFEConfig
    │   ├── AnnealingConfig
    │   └── GeneticConfig
    ├── ParallelConfig
    └── TrackingConfig

Usage:
    >>> from modelkit.config import WorkflowConfig
    >>> config = WorkflowConfig()  # Use defaults
    >>> config.validate()  # Check configuration validity

    >>> # Or customize
    >>> config = WorkflowConfig(
    ...     resampling=ResamplingConfig(method='cv', number=5),
    ...     feature_selection=FeatureSelectionConfig(
    ...         genetic=GeneticConfig(enabled=False)
    ...     )
    ... )
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Callable, Any

import numpy as np
from sklearn.discriminant_analysis import LinearDiscriminantAnalysis
from sklearn.ensemble import (
    RandomForestClassifier, RandomForestRegressor,
    GradientBoostingClassifier, GradientBoostingRegressor
)
from sklearn.linear_model import (
    LogisticRegression, LinearRegression, SGDClassifier, ElasticNet
)
from sklearn.neighbors import KNeighborsClassifier, KNeighborsRegressor


TASKS = ['classification', 'regression']
RESAMPLING_METHODS = ['cv', 'repeatedcv', 'boot', 'LGOCV', 'none']
PREPROCESS_STEPS = ['nzv', 'center', 'scale']
CLASSIFICATION_METRICS = ['ROC', 'Accuracy', 'Kappa']
REGRESSION_METRICS = ['RMSE', 'Rsquared', 'MAE']


# ==============================================================================
# DATA SIMULATION CONFIGURATION
# ==============================================================================

@dataclass
class SimulationConfig:
    """Synthetic dataset parameters.

    The default mix yields 14 predictors for the two-class simulator:
    2 interacting factors, 2 linear, 3 nonlinear, 4 noise, 3 correlated noise.

    Attributes:
        n_samples: Number of rows to simulate
        intercept: Intercept of the two-class linear predictor (controls balance)
        linear_vars: Number of informative linear predictors
        noise_vars: Number of independent uninformative predictors
        corr_vars: Number of correlated uninformative predictors
        corr_type: 'AR1' or 'exch' correlation structure for corr_vars
        corr_value: Correlation parameter for corr_vars
        mislabel: Fraction of rows whose class probability is flipped
    """
    n_samples: int = 1000
    intercept: float = -5.0
    linear_vars: int = 2
    noise_vars: int = 4
    corr_vars: int = 3
    corr_type: str = 'AR1'
    corr_value: float = 0.6
    mislabel: float = 0.05

    def validate(self):
        """Validate simulation configuration."""
        assert self.n_samples > 0, "n_samples must be positive"
        assert self.linear_vars >= 0, "linear_vars must be non-negative"
        assert self.noise_vars >= 0, "noise_vars must be non-negative"
        assert self.corr_vars >= 0, "corr_vars must be non-negative"
        assert self.corr_type in ['AR1', 'exch'], "corr_type must be 'AR1' or 'exch'"
        assert -1 < self.corr_value < 1, "corr_value must be in (-1, 1)"
        assert 0 <= self.mislabel <= 1, "mislabel must be in [0, 1]"


# ==============================================================================
# PARTITION CONFIGURATION
# ==============================================================================

@dataclass
class PartitionConfig:
    """Train/holdout split parameters.

    Attributes:
        train_fraction: Fraction of rows assigned to the training subset
        stratification_tolerance: Allowed drift of class proportions per subset
    """
    train_fraction: float = 0.75
    stratification_tolerance: float = 0.02

    def validate(self):
        """Validate partition configuration."""
        assert 0 < self.train_fraction < 1, "train_fraction must be in (0, 1)"
        assert 0 < self.stratification_tolerance < 1, \
            "stratification_tolerance must be in (0, 1)"


# ==============================================================================
# RESAMPLING CONFIGURATION
# ==============================================================================

@dataclass
class ResamplingConfig:
    """Resampling plan used to estimate out-of-sample performance.

    Attributes:
        method: 'cv', 'repeatedcv', 'boot', 'LGOCV' or 'none'
        number: Folds (cv/repeatedcv) or resamples (boot/LGOCV)
        repeats: Repeats of the whole fold set (repeatedcv only)
        p: Training fraction of each resample (LGOCV only)
        metric: Scoring metric used to pick tuning parameters
    """
    method: str = 'repeatedcv'
    number: int = 10
    repeats: int = 3
    p: float = 0.75
    metric: str = 'ROC'

    def validate(self):
        """Validate resampling configuration."""
        assert self.method in RESAMPLING_METHODS, \
            f"method must be one of {RESAMPLING_METHODS}"
        assert self.number > 0, "number must be positive"
        if self.method in ['cv', 'repeatedcv']:
            assert self.number >= 2, "cross-validation needs at least 2 folds"
        assert self.repeats > 0, "repeats must be positive"
        assert 0 < self.p < 1, "p must be in (0, 1)"
        assert self.metric in CLASSIFICATION_METRICS + REGRESSION_METRICS, \
            f"metric must be one of {CLASSIFICATION_METRICS + REGRESSION_METRICS}"


# ==============================================================================
# PREPROCESSING CONFIGURATION
# ==============================================================================

@dataclass
class PreprocessConfig:
    """Preprocessing steps applied inside every training pipeline.

    Attributes:
        steps: Ordered subset of 'nzv', 'center', 'scale'
        freq_cut: Most/second-most frequent value ratio flagging near-zero variance
        unique_cut: Percent of distinct values below which a column may be flagged
    """
    steps: List[str] = field(default_factory=lambda: ['nzv', 'center', 'scale'])
    freq_cut: float = 95 / 5
    unique_cut: float = 10.0

    def validate(self):
        """Validate preprocessing configuration."""
        for step in self.steps:
            assert step in PREPROCESS_STEPS, f"unknown preprocessing step '{step}'"
        assert len(set(self.steps)) == len(self.steps), "preprocessing steps must be unique"
        assert self.freq_cut > 1, "freq_cut must be > 1"
        assert 0 < self.unique_cut <= 100, "unique_cut must be in (0, 100]"


# ==============================================================================
# MODEL REGISTRY CONFIGURATION
# ==============================================================================

@dataclass
class ModelConfig:
    """Configuration for a single model family.

    Attributes:
        classifier_class: Estimator class for classification (None if unsupported)
        regressor_class: Estimator class for regression (None if unsupported)
        classifier_params: Fixed parameters for the classifier
        regressor_params: Fixed parameters for the regressor
        grid: Function (tune_length, n_features) -> dict of parameter candidates
        enabled: Whether this family is available
    """
    classifier_class: Optional[type]
    regressor_class: Optional[type]
    classifier_params: Dict[str, Any] = field(default_factory=dict)
    regressor_params: Dict[str, Any] = field(default_factory=dict)
    grid: Callable[[int, int], Dict[str, list]] = lambda tune_length, n_features: {}
    enabled: bool = True


@dataclass
class ModelingConfig:
    """Model families trained by the workflow.

    Attributes:
        task: 'classification' or 'regression'
        methods: Model families fitted and compared individually
        tune_length: Candidate values per tuning parameter
        models: Dict mapping family names to their configs
    """
    task: str = 'classification'
    methods: List[str] = field(default_factory=lambda: ['glmnet', 'rf'])
    tune_length: int = 3
    models: Dict[str, ModelConfig] = field(default_factory=dict)

    def __post_init__(self):
        """Initialize default model configs if not provided."""
        if not self.models:
            self.models = get_default_model_configs()

    def validate(self):
        """Validate modeling configuration."""
        assert self.task in TASKS, f"task must be one of {TASKS}"
        assert len(self.methods) > 0, "must have at least one method"
        assert self.tune_length > 0, "tune_length must be positive"
        for name in self.methods:
            assert name in self.models, f"Method '{name}' not in model configs"
            assert self.models[name].enabled, f"Method '{name}' is not enabled"


# ==============================================================================
# ENSEMBLE CONFIGURATION
# ==============================================================================

@dataclass
class EnsembleConfig:
    """Ensemble of several model families sharing one resampling plan.

    Attributes:
        enabled: Whether the ensemble stage runs
        methods: Member model families
        combiner: Family of the secondary model ('glm' is a linear blend)
    """
    enabled: bool = True
    methods: List[str] = field(default_factory=lambda: ['glm', 'glmnet', 'rf'])
    combiner: str = 'glm'

    def validate(self):
        """Validate ensemble configuration."""
        if self.enabled:
            assert len(self.methods) >= 2, "ensemble needs at least two members"
            assert len(set(self.methods)) == len(self.methods), "members must be unique"


# ==============================================================================
# FEATURE SELECTION CONFIGURATION
# ==============================================================================

@dataclass
class RFEConfig:
    """Exhaustive-by-size (recursive elimination) search.

    Attributes:
        enabled: Whether the search runs
    """
    enabled: bool = True

    def validate(self):
        """Validate RFE configuration."""
        pass


@dataclass
class AnnealingConfig:
    """Simulated annealing subset search.

    Attributes:
        enabled: Whether the search runs
        iterations: Number of perturbation steps
        improve: Restart from the best subset after this many steps without a new best
        initial_prob: Inclusion probability of each variable in the initial subset
        perturb_fraction: Fraction of variables flipped per perturbation (min 1)
    """
    enabled: bool = True
    iterations: int = 10
    improve: int = 5
    initial_prob: float = 0.2
    perturb_fraction: float = 0.01

    def validate(self):
        """Validate annealing configuration."""
        assert self.iterations > 0, "iterations must be positive"
        assert self.improve > 0, "improve must be positive"
        assert 0 < self.initial_prob <= 1, "initial_prob must be in (0, 1]"
        assert 0 < self.perturb_fraction <= 1, "perturb_fraction must be in (0, 1]"


@dataclass
class GeneticConfig:
    """Genetic algorithm subset search.

    Attributes:
        enabled: Whether the search runs
        generations: Number of generations
        population_size: Chromosomes per generation
        crossover_prob: Probability a selected pair is recombined
        mutation_prob: Probability a child is mutated
        elite: Best chromosomes copied unchanged (None = 5% of population, min 1)
    """
    enabled: bool = True
    generations: int = 5
    population_size: int = 10
    crossover_prob: float = 0.8
    mutation_prob: float = 0.1
    elite: Optional[int] = None

    def validate(self):
        """Validate genetic configuration."""
        assert self.generations > 0, "generations must be positive"
        assert self.population_size >= 2, "population_size must be at least 2"
        assert 0 <= self.crossover_prob <= 1, "crossover_prob must be in [0, 1]"
        assert 0 <= self.mutation_prob <= 1, "mutation_prob must be in [0, 1]"
        if self.elite is not None:
            assert 0 <= self.elite < self.population_size, \
                "elite must be in [0, population_size)"

    def resolve_elite(self) -> int:
        """Number of elite chromosomes per generation."""
        if self.elite is not None:
            return self.elite
        return max(1, int(round(self.population_size * 0.05)))


@dataclass
class FeatureSelectionConfig:
    """Wrapper feature-selection searches.

    Attributes:
        enabled: Whether the feature-selection stage runs
        model: Model family scored on each candidate subset
        model_params: Fixed parameters overriding the family defaults
        resampling: Resampling plan used to score candidate subsets
        rfe: Exhaustive-by-size search config
        annealing: Simulated annealing search config
        genetic: Genetic algorithm search config
    """
    enabled: bool = True
    model: str = 'rf'
    model_params: Dict[str, Any] = field(default_factory=lambda: {'n_estimators': 100})
    resampling: ResamplingConfig = field(
        default_factory=lambda: ResamplingConfig(method='cv', number=5)
    )
    rfe: RFEConfig = field(default_factory=RFEConfig)
    annealing: AnnealingConfig = field(default_factory=AnnealingConfig)
    genetic: GeneticConfig = field(default_factory=GeneticConfig)

    def validate(self):
        """Validate feature-selection configuration."""
        self.resampling.validate()
        assert self.resampling.method != 'none', "subset scoring needs resampling"
        self.rfe.validate()
        self.annealing.validate()
        self.genetic.validate()


# ==============================================================================
# PARALLEL EXECUTION CONFIGURATION
# ==============================================================================

@dataclass
class ParallelConfig:
    """Worker pool for fold-level fan-out.

    Attributes:
        enabled: Whether resampling folds are spread over worker processes
        n_workers: Worker processes (None = physical core count)
        backend: joblib backend name
    """
    enabled: bool = False
    n_workers: Optional[int] = None
    backend: str = 'loky'

    def validate(self):
        """Validate parallel configuration."""
        if self.n_workers is not None:
            assert self.n_workers > 0, "n_workers must be positive"
        assert self.backend in ['loky', 'multiprocessing', 'threading'], \
            "backend must be loky, multiprocessing or threading"


# ==============================================================================
# TRACKING CONFIGURATION
# ==============================================================================

@dataclass
class TrackingConfig:
    """Logging configuration.

    Attributes:
        log_level: Logging level ('DEBUG', 'INFO', 'WARNING', 'ERROR')
        log_to_file: Whether to log to file in addition to stdout
        log_directory: Directory for log files
    """
    log_level: str = 'INFO'
    log_to_file: bool = False
    log_directory: str = 'logs'

    def validate(self):
        """Validate tracking configuration."""
        assert self.log_level in ['DEBUG', 'INFO', 'WARNING', 'ERROR'], \
            "log_level must be DEBUG, INFO, WARNING, or ERROR"


# ==============================================================================
# ROOT CONFIGURATION
# ==============================================================================

@dataclass
class WorkflowConfig:
    """Complete workflow configuration.

    This is the root configuration object. Create an instance and call
    validate() before use.

    Attributes:
        random_state: Random seed for reproducibility
        label: Outcome column name
        simulation: Synthetic data parameters
        partition: Train/holdout split parameters
        resampling: Resampling plan for model training
        preprocess: Preprocessing steps
        modeling: Model families and tuning
        ensemble: Ensemble stage configuration
        feature_selection: Feature-selection stage configuration
        parallel: Worker pool configuration
        tracking: Logging configuration

    Example:
        >>> config = WorkflowConfig()
        >>> config.validate()
        >>> print(f"Training {len(config.modeling.methods)} model families")
    """
    random_state: int = 42
    label: str = 'Class'
    simulation: SimulationConfig = field(default_factory=SimulationConfig)
    partition: PartitionConfig = field(default_factory=PartitionConfig)
    resampling: ResamplingConfig = field(default_factory=ResamplingConfig)
    preprocess: PreprocessConfig = field(default_factory=PreprocessConfig)
    modeling: ModelingConfig = field(default_factory=ModelingConfig)
    ensemble: EnsembleConfig = field(default_factory=EnsembleConfig)
    feature_selection: FeatureSelectionConfig = field(default_factory=FeatureSelectionConfig)
    parallel: ParallelConfig = field(default_factory=ParallelConfig)
    tracking: TrackingConfig = field(default_factory=TrackingConfig)

    def validate(self):
        """Validate entire configuration hierarchy.

        Raises:
            AssertionError: If any configuration parameter is invalid
        """
        self.simulation.validate()
        self.partition.validate()
        self.resampling.validate()
        self.preprocess.validate()
        self.modeling.validate()
        self.ensemble.validate()
        self.feature_selection.validate()
        self.parallel.validate()
        self.tracking.validate()

        metrics = (CLASSIFICATION_METRICS if self.modeling.task == 'classification'
                   else REGRESSION_METRICS)
        assert self.resampling.metric in metrics, \
            f"metric '{self.resampling.metric}' does not fit task '{self.modeling.task}'"
        assert self.feature_selection.resampling.metric in metrics, \
            f"feature-selection metric does not fit task '{self.modeling.task}'"

        for name in self.ensemble.methods + [self.ensemble.combiner, self.feature_selection.model]:
            assert name in self.modeling.models, f"Method '{name}' not in model configs"

    def summary(self) -> str:
        """Generate a human-readable configuration summary.

        Returns:
            Multi-line string describing key configuration parameters
        """
        fs = self.feature_selection
        lines = [
            "Workflow Configuration Summary",
            "=" * 50,
            f"Random State: {self.random_state}",
            f"Task: {self.modeling.task}",
            "",
            "Simulation:",
            f"  Rows: {self.simulation.n_samples}",
            f"  Linear / noise / correlated: {self.simulation.linear_vars} / "
            f"{self.simulation.noise_vars} / {self.simulation.corr_vars}",
            f"  Mislabel fraction: {self.simulation.mislabel}",
            "",
            "Resampling:",
            f"  Method: {self.resampling.method} "
            f"(number={self.resampling.number}, repeats={self.resampling.repeats})",
            f"  Metric: {self.resampling.metric}",
            f"  Preprocessing: {', '.join(self.preprocess.steps) or 'none'}",
            "",
            "Models:",
            f"  Methods: {', '.join(self.modeling.methods)}",
            f"  Tune length: {self.modeling.tune_length}",
            f"  Ensemble: {', '.join(self.ensemble.methods)} -> {self.ensemble.combiner}"
            if self.ensemble.enabled else "  Ensemble: disabled",
            "",
            "Feature Selection:",
            f"  Model: {fs.model}",
            f"  RFE enabled: {fs.rfe.enabled}",
            f"  Annealing: {fs.annealing.iterations} iterations (enabled={fs.annealing.enabled})",
            f"  Genetic: {fs.genetic.generations} generations x {fs.genetic.population_size} "
            f"(enabled={fs.genetic.enabled})",
            "",
            f"Parallel workers: {self.parallel.n_workers if self.parallel.enabled else 'sequential'}",
            ""
        ]
        return "\n".join(lines)


# ==============================================================================
# DEFAULT MODEL REGISTRY
# ==============================================================================

def _mtry_grid(tune_length: int, n_features: int) -> List[int]:
    """Evenly spaced candidate counts of variables tried per split."""
    if n_features <= 2:
        return list(range(1, n_features + 1))
    values = np.floor(np.linspace(2, n_features, tune_length)).astype(int)
    return sorted(set(int(v) for v in values))


def get_default_model_configs() -> Dict[str, ModelConfig]:
    """Get default model family configurations.

    Returns:
        Dict mapping family names to ModelConfig objects
    """
    return {
        'glm': ModelConfig(
            classifier_class=LogisticRegression,
            regressor_class=LinearRegression,
            classifier_params={'C': 1e6, 'max_iter': 1000}
        ),
        'glmnet': ModelConfig(
            classifier_class=SGDClassifier,
            regressor_class=ElasticNet,
            classifier_params={
                'loss': 'log_loss',
                'penalty': 'elasticnet',
                'max_iter': 1000,
                'tol': 1e-3
            },
            regressor_params={'max_iter': 5000},
            grid=lambda tune_length, n_features: {
                'l1_ratio': [float(v) for v in np.linspace(0.1, 1.0, tune_length)],
                'alpha': [float(v) for v in 10 ** np.linspace(-4, -1, tune_length)]
            }
        ),
        'rf': ModelConfig(
            classifier_class=RandomForestClassifier,
            regressor_class=RandomForestRegressor,
            classifier_params={'n_estimators': 200},
            regressor_params={'n_estimators': 200},
            grid=lambda tune_length, n_features: {
                'max_features': _mtry_grid(tune_length, n_features)
            }
        ),
        'gbm': ModelConfig(
            classifier_class=GradientBoostingClassifier,
            regressor_class=GradientBoostingRegressor,
            classifier_params={'learning_rate': 0.1},
            regressor_params={'learning_rate': 0.1},
            grid=lambda tune_length, n_features: {
                'n_estimators': [50 * (i + 1) for i in range(tune_length)],
                'max_depth': list(range(1, tune_length + 1))
            }
        ),
        'knn': ModelConfig(
            classifier_class=KNeighborsClassifier,
            regressor_class=KNeighborsRegressor,
            grid=lambda tune_length, n_features: {
                'n_neighbors': [5 + 2 * i for i in range(tune_length)]
            }
        ),
        'lda': ModelConfig(
            classifier_class=LinearDiscriminantAnalysis,
            regressor_class=None,
            classifier_params={'solver': 'svd'}
        )
    }
