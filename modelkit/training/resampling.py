"""Resampling plans and scoring metrics.

A ResamplingPlan precomputes its (train, validation) index pairs once, so
every model family and every feature-selection search scored against the
same plan sees identical folds.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import pandas as pd
from sklearn.metrics import cohen_kappa_score, get_scorer, make_scorer
from sklearn.model_selection import (
    StratifiedKFold, RepeatedStratifiedKFold, StratifiedShuffleSplit
)

from modelkit.config import ResamplingConfig
from modelkit.data.splits import stratification_groups


# ==============================================================================
# METRICS
# ==============================================================================

@dataclass(frozen=True)
class Metric:
    """A scoring metric.

    Scores are handled internally on sklearn's "higher is better" scale;
    natural() converts back to the metric's own scale for reporting.

    Attributes:
        name: Display name ('ROC', 'RMSE', ...)
        scoring: sklearn scorer name or scorer object
        greater_is_better: Direction of the metric on its natural scale
        task: 'classification' or 'regression'
    """
    name: str
    scoring: Any
    greater_is_better: bool
    task: str

    @property
    def scorer(self):
        """Callable scorer(estimator, X, y)."""
        if isinstance(self.scoring, str):
            return get_scorer(self.scoring)
        return self.scoring

    def natural(self, score: float) -> float:
        """Convert an internal score to the metric's natural scale."""
        return float(score) if self.greater_is_better else -float(score)


METRICS: Dict[str, Metric] = {
    'ROC': Metric('ROC', 'roc_auc', True, 'classification'),
    'Accuracy': Metric('Accuracy', 'accuracy', True, 'classification'),
    'Kappa': Metric('Kappa', make_scorer(cohen_kappa_score), True, 'classification'),
    'RMSE': Metric('RMSE', 'neg_root_mean_squared_error', False, 'regression'),
    'Rsquared': Metric('Rsquared', 'r2', True, 'regression'),
    'MAE': Metric('MAE', 'neg_mean_absolute_error', False, 'regression')
}


def get_metric(name: str) -> Metric:
    """Look up a metric by name.

    Raises:
        KeyError: If the metric is unknown
    """
    if name not in METRICS:
        raise KeyError(f"Metric '{name}' not found; choose from {sorted(METRICS)}")
    return METRICS[name]


# ==============================================================================
# SPLITTERS
# ==============================================================================

class Bootstrap:
    """Bootstrap resampling splitter.

    Each resample trains on n rows drawn with replacement and validates on
    the rows left out of the draw. Follows the sklearn CV-splitter protocol.
    """

    def __init__(self, n_resamples: int = 25, random_state: Optional[int] = None):
        self.n_resamples = n_resamples
        self.random_state = random_state

    def split(self, X, y=None, groups=None):
        rng = np.random.RandomState(self.random_state)
        n = len(X)
        positions = np.arange(n)
        for _ in range(self.n_resamples):
            train = rng.randint(0, n, size=n)
            validation = np.setdiff1d(positions, train)
            yield train, validation

    def get_n_splits(self, X=None, y=None, groups=None):
        return self.n_resamples


# ==============================================================================
# RESAMPLING PLAN
# ==============================================================================

@dataclass
class ResamplingPlan:
    """Precomputed resampling folds.

    Attributes:
        method: Resampling method name
        number: Folds or resamples
        repeats: Repeats (repeatedcv only, else 1)
        metric: Scoring metric
        folds: List of (train_idx, validation_idx) positional index pairs
        fold_names: One label per fold, e.g. 'Fold03.Rep2'
        n_samples: Rows the plan was built for
    """
    method: str
    number: int
    repeats: int
    metric: Metric
    folds: List[Tuple[np.ndarray, np.ndarray]] = field(default_factory=list)
    fold_names: List[str] = field(default_factory=list)
    n_samples: int = 0

    @property
    def n_folds(self) -> int:
        return len(self.folds)

    @property
    def partitions_rows(self) -> bool:
        """Whether each repeat's validation folds partition the rows."""
        return self.method in ['cv', 'repeatedcv']

    def split(self, X=None, y=None, groups=None):
        """Yield the precomputed folds (sklearn CV-splitter protocol)."""
        for train_idx, validation_idx in self.folds:
            yield train_idx, validation_idx

    def get_n_splits(self, X=None, y=None, groups=None):
        return self.n_folds

    def validation_counts(self) -> pd.DataFrame:
        """Times each row appears in a validation fold, per repeat.

        Returns:
            DataFrame of shape (n_samples, repeats)
        """
        n_repeats = self.repeats if self.method == 'repeatedcv' else 1
        per_repeat = self.n_folds // n_repeats
        counts = np.zeros((self.n_samples, n_repeats), dtype=int)

        for i, (_, validation_idx) in enumerate(self.folds):
            repeat = min(i // per_repeat, n_repeats - 1)
            np.add.at(counts[:, repeat], validation_idx, 1)

        return pd.DataFrame(
            counts, columns=[f"Rep{r + 1}" for r in range(n_repeats)]
        )

    def summary(self) -> str:
        """Human-readable description of the plan."""
        if self.method == 'repeatedcv':
            desc = f"{self.number}-fold cross-validation, repeated {self.repeats} times"
        elif self.method == 'cv':
            desc = f"{self.number}-fold cross-validation"
        elif self.method == 'boot':
            desc = f"bootstrap ({self.number} resamples)"
        elif self.method == 'LGOCV':
            desc = f"leave-group-out cross-validation ({self.number} resamples)"
        else:
            desc = "no resampling"
        return f"Resampling: {desc}; metric {self.metric.name}; {self.n_folds} folds"


def _fold_names(method: str, number: int, repeats: int) -> List[str]:
    width = max(2, len(str(number)))
    if method == 'repeatedcv':
        return [
            f"Fold{str(f + 1).zfill(width)}.Rep{r + 1}"
            for r in range(repeats) for f in range(number)
        ]
    if method == 'cv':
        return [f"Fold{str(f + 1).zfill(width)}" for f in range(number)]
    return [f"Resample{str(f + 1).zfill(width)}" for f in range(number)]


def build_resampling_plan(
    config: ResamplingConfig,
    y: pd.Series,
    random_state: Optional[int] = None
) -> ResamplingPlan:
    """Build a resampling plan for an outcome vector.

    Cross-validation folds are stratified on the outcome (quantile groups
    for numeric outcomes).

    Parameters
    ----------
    config : ResamplingConfig
        Method, fold/repeat counts and metric.
    y : pd.Series
        Training outcome.
    random_state : int, optional
        Random state for reproducible folds.

    Returns
    -------
    plan : ResamplingPlan
        Plan with precomputed folds.

    Raises
    ------
    ValueError
        If the resampling method is unknown.
    """
    metric = get_metric(config.metric)
    groups = stratification_groups(y).to_numpy()
    n = len(groups)
    X_dummy = np.zeros((n, 1))

    if config.method == 'cv':
        splitter = StratifiedKFold(
            n_splits=config.number, shuffle=True, random_state=random_state
        )
    elif config.method == 'repeatedcv':
        splitter = RepeatedStratifiedKFold(
            n_splits=config.number, n_repeats=config.repeats, random_state=random_state
        )
    elif config.method == 'LGOCV':
        splitter = StratifiedShuffleSplit(
            n_splits=config.number, train_size=config.p, random_state=random_state
        )
    elif config.method == 'boot':
        splitter = Bootstrap(n_resamples=config.number, random_state=random_state)
    elif config.method == 'none':
        return ResamplingPlan(
            method='none', number=1, repeats=1, metric=metric,
            folds=[], fold_names=[], n_samples=n
        )
    else:
        raise ValueError(f"Unknown resampling method '{config.method}'")

    folds = [
        (np.asarray(train_idx), np.asarray(validation_idx))
        for train_idx, validation_idx in splitter.split(X_dummy, groups)
    ]

    return ResamplingPlan(
        method=config.method,
        number=config.number,
        repeats=config.repeats if config.method == 'repeatedcv' else 1,
        metric=metric,
        folds=folds,
        fold_names=_fold_names(config.method, config.number, config.repeats),
        n_samples=n
    )
