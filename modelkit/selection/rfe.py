"""Exhaustive-by-size search via recursive feature elimination.

Every subset size from 1 to the full predictor count is scored over the
same resampling plan; the size with the best mean score wins.
"""

import logging
from typing import Any, Dict, Optional

import numpy as np
import pandas as pd
from sklearn.feature_selection import RFECV

from modelkit.training.models import ModelRegistry
from modelkit.training.resampling import ResamplingPlan
from modelkit.selection.fitness import SelectionResult, SubsetEvaluator


logger = logging.getLogger(__name__)


def recursive_feature_elimination(
    X: pd.DataFrame,
    y: pd.Series,
    method: str,
    plan: ResamplingPlan,
    model_params: Optional[Dict[str, Any]] = None,
    random_state: Optional[int] = None,
    registry: Optional[ModelRegistry] = None,
    refit: bool = True
) -> SelectionResult:
    """Score every subset size and keep the best one.

    Within each fold the least important predictor is dropped one at a
    time, so sizes p, p-1, ..., 1 are all scored. The winning size is then
    eliminated to on the full training set to name its variables. The
    reported score is the resampled estimate for that size.

    Parameters
    ----------
    X : pd.DataFrame
        Training predictors.
    y : pd.Series
        Training outcome.
    method : str
        Model family; it must expose feature_importances_ or coef_.
    plan : ResamplingPlan
        Folds every size is scored over.
    model_params : dict, optional
        Fixed parameters of the model family.
    random_state : int, optional
        Seed for stochastic estimators.
    registry : ModelRegistry, optional
        Registry to build from.
    refit : bool, default=True
        Fit the family on the selected variables.

    Returns
    -------
    result : SelectionResult
        History has one row per size with the metric mean and sd.
    """
    registry = registry if registry is not None else ModelRegistry()
    metric = plan.metric
    estimator = registry.build_estimator(method, metric.task, model_params, random_state)

    selector = RFECV(
        estimator,
        step=1,
        min_features_to_select=1,
        cv=plan.folds,
        scoring=metric.scoring
    )
    selector.fit(X, y)

    n_features = X.shape[1]
    sizes = np.arange(1, n_features + 1)
    means = selector.cv_results_['mean_test_score']
    history = pd.DataFrame({
        'size': sizes,
        metric.name: [metric.natural(s) for s in means],
        f"{metric.name}SD": selector.cv_results_['std_test_score'],
    })
    history['selected'] = history['size'] == selector.n_features_
    score = metric.natural(means[selector.n_features_ - 1])

    logger.info(
        f"RFE ({method}): best size {selector.n_features_} of {n_features}, "
        f"{metric.name} {score:.4f}"
    )

    selected = [name for name, keep in zip(X.columns, selector.support_) if keep]
    model = None
    if refit:
        evaluator = SubsetEvaluator(
            X, y, method, plan,
            model_params=model_params,
            random_state=random_state,
            registry=registry
        )
        model = evaluator.refit(selector.support_)

    return SelectionResult(
        method='rfe',
        metric=metric.name,
        selected_variables=selected,
        score=score,
        history=history,
        model=model,
        n_evaluations=n_features
    )
