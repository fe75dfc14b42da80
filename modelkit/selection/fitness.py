"""Scoring predictor subsets.

SubsetEvaluator scores a boolean mask over the predictors by the
cross-validated metric of one model family, resampled over a fixed plan.
Scores are cached per subset so searches that revisit a subset pay once.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd
from sklearn.model_selection import cross_val_score

from modelkit.config import PreprocessConfig
from modelkit.training.models import ModelRegistry
from modelkit.training.resampling import ResamplingPlan
from modelkit.training.trainer import FittedModel, build_pipeline, train


logger = logging.getLogger(__name__)


@dataclass
class SelectionResult:
    """Outcome of a feature-selection search.

    Attributes:
        method: 'rfe', 'annealing' or 'genetic'
        metric: Metric name the subsets were scored on
        selected_variables: Predictors in the chosen subset
        score: Resampled score of the chosen subset (natural scale)
        history: Per-size, per-iteration or per-generation record
        model: Model refitted on the chosen subset
        n_evaluations: Distinct subsets scored
    """
    method: str
    metric: str
    selected_variables: List[str]
    score: float
    history: pd.DataFrame
    model: Optional[FittedModel] = None
    n_evaluations: int = 0

    @property
    def selected_size(self) -> int:
        return len(self.selected_variables)

    def summary(self) -> str:
        lines = [
            f"Feature selection ({self.method})",
            f"  Selected {self.selected_size} variables: {', '.join(self.selected_variables)}",
            f"  {self.metric}: {self.score:.4f}",
            f"  Subsets evaluated: {self.n_evaluations}"
        ]
        return "\n".join(lines)


class SubsetEvaluator:
    """Cached cross-validated scoring of predictor subsets.

    Parameters
    ----------
    X : pd.DataFrame
        Training predictors.
    y : pd.Series
        Training outcome.
    method : str
        Model family scored on each subset.
    plan : ResamplingPlan
        Folds every subset is scored over.
    model_params : dict, optional
        Fixed parameters of the model family.
    preprocess : PreprocessConfig, optional
        Preprocessing inside the scoring pipeline.
    random_state : int, optional
        Seed for stochastic estimators.
    registry : ModelRegistry, optional
        Registry to build from.

    Example:
        >>> evaluator = SubsetEvaluator(X, y, 'rf', plan)
        >>> evaluator.evaluate(np.array([True, False, True]))
    """

    def __init__(
        self,
        X: pd.DataFrame,
        y: pd.Series,
        method: str,
        plan: ResamplingPlan,
        model_params: Optional[Dict[str, Any]] = None,
        preprocess: Optional[PreprocessConfig] = None,
        random_state: Optional[int] = None,
        registry: Optional[ModelRegistry] = None
    ):
        if plan.method == 'none':
            raise ValueError("Subset scoring needs a resampling plan with folds")

        self.X = X
        self.y = y
        self.method = method
        self.plan = plan
        self.model_params = model_params
        self.preprocess = preprocess
        self.random_state = random_state
        self.registry = registry if registry is not None else ModelRegistry()
        self.feature_names = list(X.columns)
        self._cache: Dict[tuple, float] = {}

    @property
    def n_features(self) -> int:
        return len(self.feature_names)

    @property
    def n_evaluations(self) -> int:
        return len(self._cache)

    def variables(self, mask: np.ndarray) -> List[str]:
        return [name for name, keep in zip(self.feature_names, mask) if keep]

    def evaluate(self, mask: np.ndarray) -> float:
        """Mean resampled score of a subset on the internal (higher is better) scale.

        Raises:
            ValueError: If the mask is empty or has the wrong length
        """
        mask = np.asarray(mask, dtype=bool)
        if mask.shape != (self.n_features,):
            raise ValueError(f"Mask must have {self.n_features} entries, got {mask.shape}")
        if not mask.any():
            raise ValueError("Cannot score an empty subset")

        key = tuple(mask.tolist())
        if key not in self._cache:
            pipeline = build_pipeline(
                self.method, self.plan.metric.task, self.preprocess,
                self.model_params, self.random_state, self.registry
            )
            scores = cross_val_score(
                pipeline, self.X.loc[:, mask], self.y,
                scoring=self.plan.metric.scoring,
                cv=self.plan.folds,
                error_score='raise'
            )
            self._cache[key] = float(np.mean(scores))
            logger.debug(f"Scored {int(mask.sum())} variables: {self._cache[key]:.4f}")

        return self._cache[key]

    def natural(self, score: float) -> float:
        return self.plan.metric.natural(score)

    def refit(self, mask: np.ndarray) -> FittedModel:
        """Fit the model family on a subset with its fixed parameters."""
        return train(
            self.X.loc[:, np.asarray(mask, dtype=bool)], self.y, self.method, self.plan,
            preprocess=self.preprocess,
            tune_grid={},
            model_params=self.model_params,
            random_state=self.random_state,
            save_predictions=False,
            registry=self.registry
        )

    def result(
        self,
        search: str,
        mask: np.ndarray,
        history: pd.DataFrame,
        refit: bool = True
    ) -> SelectionResult:
        """Package the chosen subset of a search."""
        return SelectionResult(
            method=search,
            metric=self.plan.metric.name,
            selected_variables=self.variables(mask),
            score=self.natural(self.evaluate(mask)),
            history=history,
            model=self.refit(mask) if refit else None,
            n_evaluations=self.n_evaluations
        )
