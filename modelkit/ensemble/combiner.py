"""Ensemble combiner.

A ModelEnsemble trains a secondary model on the members' out-of-fold
predictions. With the default 'glm' combiner this is a linear blend whose
coefficients are the member weights; any other registered family gives a
general stack.
"""

import logging
from typing import Any, Dict, Optional

import numpy as np
import pandas as pd

from modelkit.config import ResamplingConfig
from modelkit.ensemble.model_list import ModelList
from modelkit.training.models import ModelRegistry
from modelkit.training.resampling import build_resampling_plan
from modelkit.training.trainer import FittedModel, train


logger = logging.getLogger(__name__)


class ModelEnsemble:
    """Combines several fitted models into one predictor.

    Parameters
    ----------
    method : str, default='glm'
        Family of the combining model.
    tune_length : int, default=3
        Grid size for combiners that have tuning parameters.
    model_params : dict, optional
        Fixed parameters of the combining model.
    random_state : int, optional
        Seed for the combiner and any fallback resampling plan.
    registry : ModelRegistry, optional
        Registry to build the combiner from.

    Examples
    --------
    >>> members = train_model_list(X_train, y_train, ['glm', 'glmnet', 'rf'], plan)
    >>> ensemble = ModelEnsemble().fit(members, y_train)
    >>> ensemble.compare_to_members()
    >>> probs = ensemble.predict_proba(X_holdout)
    """

    def __init__(
        self,
        method: str = 'glm',
        tune_length: int = 3,
        model_params: Optional[Dict[str, Any]] = None,
        random_state: Optional[int] = None,
        registry: Optional[ModelRegistry] = None
    ):
        self.method = method
        self.tune_length = tune_length
        self.model_params = model_params
        self.random_state = random_state
        self.registry = registry

    def fit(self, members: ModelList, y: pd.Series) -> 'ModelEnsemble':
        """Train the combiner on the members' out-of-fold predictions.

        Rows that were never held out (possible with bootstrap plans) are
        dropped. The combiner is resampled over the members' plan when every
        row is kept, otherwise over 25 bootstrap resamples of the kept rows.

        Parameters
        ----------
        members : ModelList
            Members trained over a shared plan.
        y : pd.Series
            Training outcome aligned with the members' training rows.

        Returns
        -------
        self : ModelEnsemble
        """
        if len(members) < 2:
            raise ValueError("An ensemble needs at least two members")

        oof = members.oof_matrix()
        keep = oof.notna().all(axis=1).to_numpy()
        X_meta = oof.loc[keep]
        y_meta = y.loc[keep] if hasattr(y, 'loc') else np.asarray(y)[keep]

        if keep.all():
            plan = members.plan
        else:
            logger.warning(
                f"{int((~keep).sum())} rows have no out-of-fold prediction; "
                f"resampling the combiner with 25 bootstrap samples"
            )
            plan = build_resampling_plan(
                ResamplingConfig(method='boot', number=25, metric=members.plan.metric.name),
                y_meta,
                random_state=self.random_state
            )

        self.members_ = members
        self.combiner_ = train(
            X_meta, y_meta, self.method, plan,
            tune_length=self.tune_length,
            model_params=self.model_params,
            random_state=self.random_state,
            save_predictions=False,
            registry=self.registry
        )

        logger.info(
            f"Ensemble ({self.method} over {', '.join(members.names)}): "
            f"{self.metric.name} {self.score:.4f}"
        )

        return self

    @property
    def task(self) -> str:
        return self.combiner_.task

    @property
    def metric(self):
        return self.combiner_.metric

    @property
    def classes(self):
        return self.combiner_.classes

    @property
    def combiner(self) -> FittedModel:
        return self.combiner_

    @property
    def score(self) -> float:
        """Resampled score of the ensemble, on the metric's natural scale."""
        return self.combiner_.score

    @property
    def weights(self) -> Optional[pd.Series]:
        """Combiner coefficients per member (None for non-linear combiners)."""
        estimator = self.combiner_.pipeline.named_steps['model']
        if not hasattr(estimator, 'coef_'):
            return None
        coef = np.atleast_2d(estimator.coef_)[0]
        return pd.Series(coef, index=self.members_.names, name='weight')

    def _member_matrix(self, X: pd.DataFrame) -> pd.DataFrame:
        return self.members_.predict_matrix(X)

    def predict(self, X: pd.DataFrame) -> np.ndarray:
        return self.combiner_.predict(self._member_matrix(X))

    def predict_proba(self, X: pd.DataFrame) -> pd.DataFrame:
        return self.combiner_.predict_proba(self._member_matrix(X))

    def predict_score(self, X: pd.DataFrame) -> np.ndarray:
        return self.combiner_.predict_score(self._member_matrix(X))

    def compare_to_members(self) -> pd.DataFrame:
        """Resampled score of the ensemble next to every member's.

        Returns
        -------
        table : pd.DataFrame
            Indexed by 'ensemble' then member names, with the metric's mean
            and sd, sorted best first.
        """
        rows = {'ensemble': self.combiner_.resample_scores}
        rows.update({name: self.members_[name].resample_scores for name in self.members_})

        metric = self.metric
        table = pd.DataFrame({
            metric.name: {name: scores.mean() for name, scores in rows.items()},
            f"{metric.name}SD": {name: scores.std() for name, scores in rows.items()}
        })
        return table.sort_values(metric.name, ascending=not metric.greater_is_better)

    @property
    def beats_all_members(self) -> bool:
        """Whether the ensemble's resampled score is better than every member's."""
        member_scores = self.members_.scores()
        if self.metric.greater_is_better:
            return bool(self.score > member_scores.max())
        return bool(self.score < member_scores.min())

    def summary(self) -> str:
        """Human-readable summary of the ensemble."""
        lines = [
            f"Ensemble of {len(self.members_)} models ({self.method} combiner)",
            "=" * 50
        ]
        for name, row in self.compare_to_members().iterrows():
            lines.append(f"  {name:<12} {self.metric.name} {row.iloc[0]:.4f}")
        weights = self.weights
        if weights is not None:
            lines.append("")
            lines.append("Weights:")
            for name, value in weights.items():
                lines.append(f"  {name:<12} {value:+.4f}")
        lines.append("")
        lines.append(f"Beats every member: {self.beats_all_members}")
        return "\n".join(lines)
