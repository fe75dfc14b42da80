"""Several model families trained over one resampling plan.

Members of a ModelList share the exact same folds, so their per-resample
scores line up and their out-of-fold predictions can feed a combiner.
"""

import logging
from typing import Any, Dict, Iterator, List, Optional

import pandas as pd

from modelkit.config import PreprocessConfig
from modelkit.training.models import ModelRegistry
from modelkit.training.resampling import ResamplingPlan
from modelkit.training.trainer import FittedModel, resamples, train


logger = logging.getLogger(__name__)


class ModelList:
    """Named collection of FittedModels sharing a resampling plan.

    Example:
        >>> models = train_model_list(X_train, y_train, ['glm', 'rf'], plan)
        >>> models.scores()
        >>> models['rf'].summary()
    """

    def __init__(self, models: Dict[str, FittedModel], plan: ResamplingPlan):
        if len(models) == 0:
            raise ValueError("ModelList needs at least one model")
        self.models = dict(models)
        self.plan = plan

    def __getitem__(self, name: str) -> FittedModel:
        return self.models[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self.models)

    def __len__(self) -> int:
        return len(self.models)

    @property
    def names(self) -> List[str]:
        return list(self.models)

    @property
    def task(self) -> str:
        return self.plan.metric.task

    def scores(self) -> pd.Series:
        """Mean resampled score of each member, on the metric's natural scale."""
        return pd.Series(
            {name: model.score for name, model in self.models.items()},
            name=self.plan.metric.name
        )

    def resamples(self) -> pd.DataFrame:
        """Per-resample scores, one column per member."""
        return resamples(self.models)

    def oof_matrix(self) -> pd.DataFrame:
        """Out-of-fold predictions, one column per member.

        Raises:
            ValueError: If a member was trained without saved predictions
        """
        missing = [name for name, m in self.models.items() if m.oof_predictions is None]
        if missing:
            raise ValueError(f"Members trained without out-of-fold predictions: {missing}")
        return pd.DataFrame({
            name: model.oof_predictions for name, model in self.models.items()
        })

    def predict_matrix(self, X: pd.DataFrame) -> pd.DataFrame:
        """Member predictions on new rows (positive-class probability for classification)."""
        return pd.DataFrame({
            name: model.predict_score(X) for name, model in self.models.items()
        }, index=X.index)


def train_model_list(
    X: pd.DataFrame,
    y: pd.Series,
    methods: List[str],
    plan: ResamplingPlan,
    preprocess: Optional[PreprocessConfig] = None,
    tune_length: int = 3,
    tune_grids: Optional[Dict[str, Dict[str, Any]]] = None,
    model_params: Optional[Dict[str, Dict[str, Any]]] = None,
    random_state: Optional[int] = None,
    registry: Optional[ModelRegistry] = None,
    fitted: Optional[Dict[str, FittedModel]] = None
) -> ModelList:
    """Train several model families on identical folds.

    Parameters
    ----------
    X : pd.DataFrame
        Training predictors.
    y : pd.Series
        Training outcome.
    methods : list of str
        Model family names; must be unique.
    plan : ResamplingPlan
        Plan shared by every member.
    preprocess : PreprocessConfig, optional
        Preprocessing inside each member pipeline.
    tune_length : int, default=3
        Default grid size per tuning parameter.
    tune_grids : dict, optional
        Explicit grid per method name.
    model_params : dict, optional
        Fixed parameter overrides per method name.
    random_state : int, optional
        Seed for stochastic estimators.
    registry : ModelRegistry, optional
        Registry to build from.
    fitted : dict, optional
        Models already trained on this plan, keyed by method name. Members
        found here with out-of-fold predictions are reused, not retrained.

    Returns
    -------
    models : ModelList
        Members keyed by method name, all with out-of-fold predictions.
    """
    if len(set(methods)) != len(methods):
        raise ValueError(f"Duplicate methods in {methods}")
    if plan.method == 'none':
        raise ValueError("A model list needs a resampling plan with folds")

    tune_grids = tune_grids or {}
    model_params = model_params or {}
    fitted = fitted or {}

    models = {}
    for method in methods:
        if method in fitted and fitted[method].oof_predictions is not None:
            models[method] = fitted[method]
            logger.info(f"Reusing fitted {method}")
            continue
        models[method] = train(
            X, y, method, plan,
            preprocess=preprocess,
            tune_length=tune_length,
            tune_grid=tune_grids.get(method),
            model_params=model_params.get(method),
            random_state=random_state,
            save_predictions=True,
            registry=registry
        )

    logger.info(f"Trained {len(models)} members: {', '.join(models)}")

    return ModelList(models, plan)
