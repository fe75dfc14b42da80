"""Uniform training interface.

This module provides train(), which fits any registered model family through
a preprocessing + model pipeline, tunes it over a resampling plan and
records per-resample performance and out-of-fold predictions, and
resamples(), which lines up several fitted models for comparison.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

import numpy as np
import pandas as pd
from sklearn.base import clone
from sklearn.model_selection import GridSearchCV
from sklearn.pipeline import Pipeline

from modelkit.config import PreprocessConfig
from modelkit.data.preprocessing import create_preprocessing_steps
from modelkit.training.models import ModelRegistry
from modelkit.training.resampling import Metric, ResamplingPlan


logger = logging.getLogger(__name__)


@dataclass
class FittedModel:
    """A tuned, refitted pipeline plus its resampling record.

    Attributes:
        method: Model family name
        task: 'classification' or 'regression'
        metric: Metric used for tuning
        pipeline: Pipeline refitted on the whole training set
        best_params: Chosen tuning parameters (without pipeline prefix)
        results: One row per candidate: parameters, mean and sd of the metric
        resample_scores: Metric of the chosen candidate on each fold
        oof_predictions: Out-of-fold predictions of the chosen candidate,
            indexed like the training rows (positive-class probability for
            classification). Rows never held out are NaN.
        feature_names: Predictors the model was trained on
        classes: Class labels (classification only)
        training_time_sec: Wall time of tuning plus refit
    """
    method: str
    task: str
    metric: Metric
    pipeline: Pipeline
    best_params: Dict[str, Any]
    results: pd.DataFrame
    resample_scores: pd.Series
    oof_predictions: Optional[pd.Series] = None
    feature_names: List[str] = field(default_factory=list)
    classes: Optional[np.ndarray] = None
    training_time_sec: float = 0.0

    @property
    def score(self) -> float:
        """Mean resampled metric of the chosen candidate, on its natural scale."""
        if self.resample_scores.empty:
            return float('nan')
        return float(self.resample_scores.mean())

    @property
    def positive_class(self):
        """Class whose probability oof_predictions hold."""
        return None if self.classes is None else self.classes[1]

    def predict(self, X: pd.DataFrame) -> np.ndarray:
        return self.pipeline.predict(X[self.feature_names])

    def predict_proba(self, X: pd.DataFrame) -> pd.DataFrame:
        """Class probabilities, one column per class.

        Raises:
            AttributeError: For regression models
        """
        if self.task != 'classification':
            raise AttributeError("predict_proba is only available for classification models")
        probs = self.pipeline.predict_proba(X[self.feature_names])
        return pd.DataFrame(probs, columns=self.classes, index=X.index)

    def predict_score(self, X: pd.DataFrame) -> np.ndarray:
        """Positive-class probability (classification) or prediction (regression)."""
        if self.task == 'classification':
            return self.pipeline.predict_proba(X[self.feature_names])[:, 1]
        return self.pipeline.predict(X[self.feature_names])

    def summary(self) -> str:
        """Human-readable summary of the fit."""
        params = ', '.join(f"{k}={v}" for k, v in self.best_params.items()) or 'none'
        lines = [
            f"Model: {self.method} ({self.task})",
            f"  Predictors: {len(self.feature_names)}",
            f"  Resamples: {len(self.resample_scores)}",
            f"  Best parameters: {params}",
            f"  {self.metric.name}: {self.score:.4f}"
            + (f" (sd {self.resample_scores.std():.4f})" if len(self.resample_scores) > 1 else ""),
            f"  Training time: {self.training_time_sec:.1f}s"
        ]
        return "\n".join(lines)


def _as_candidate_lists(grid: Dict[str, Any]) -> Dict[str, list]:
    return {
        name: list(values) if isinstance(values, (list, tuple, np.ndarray)) else [values]
        for name, values in grid.items()
    }


def build_pipeline(
    method: str,
    task: str,
    preprocess: Optional[PreprocessConfig] = None,
    model_params: Optional[Dict[str, Any]] = None,
    random_state: Optional[int] = None,
    registry: Optional[ModelRegistry] = None
) -> Pipeline:
    """Build an unfitted preprocessing + model pipeline.

    Parameters
    ----------
    method : str
        Model family name.
    task : str
        'classification' or 'regression'.
    preprocess : PreprocessConfig, optional
        Preprocessing steps; none when omitted.
    model_params : dict, optional
        Parameters overriding the family defaults.
    random_state : int, optional
        Seed for stochastic estimators.
    registry : ModelRegistry, optional
        Registry to build from (defaults if None).

    Returns
    -------
    pipeline : Pipeline
        Steps ending with ('model', estimator).
    """
    registry = registry if registry is not None else ModelRegistry()

    steps = []
    if preprocess is not None:
        steps = create_preprocessing_steps(
            preprocess.steps,
            freq_cut=preprocess.freq_cut,
            unique_cut=preprocess.unique_cut
        )

    estimator = registry.build_estimator(method, task, model_params, random_state)
    return Pipeline(steps + [('model', estimator)])


def out_of_fold_predictions(
    pipeline: Pipeline,
    X: pd.DataFrame,
    y: pd.Series,
    plan: ResamplingPlan
) -> pd.Series:
    """Average held-out predictions of a pipeline over a plan's folds.

    Each fold refits a clone of the pipeline on its training rows and
    predicts its validation rows. Rows held out more than once (repeats,
    bootstrap) get the mean of their predictions.

    Parameters
    ----------
    pipeline : Pipeline
        Unfitted or fitted pipeline; clones are fitted per fold.
    X : pd.DataFrame
        Training predictors.
    y : pd.Series
        Training outcome.
    plan : ResamplingPlan
        Folds to predict over.

    Returns
    -------
    predictions : pd.Series
        Positive-class probability (classification) or prediction
        (regression), indexed like X.
    """
    totals = np.zeros(len(X))
    counts = np.zeros(len(X))
    classification = plan.metric.task == 'classification'

    for train_idx, validation_idx in plan.folds:
        fold_model = clone(pipeline)
        fold_model.fit(X.iloc[train_idx], y.iloc[train_idx])
        X_val = X.iloc[validation_idx]

        if classification:
            preds = fold_model.predict_proba(X_val)[:, 1]
        else:
            preds = fold_model.predict(X_val)

        np.add.at(totals, validation_idx, preds)
        np.add.at(counts, validation_idx, 1)

    with np.errstate(invalid='ignore', divide='ignore'):
        averaged = np.where(counts > 0, totals / np.maximum(counts, 1), np.nan)

    return pd.Series(averaged, index=X.index, name='oof')


def train(
    X: pd.DataFrame,
    y: pd.Series,
    method: str,
    plan: ResamplingPlan,
    preprocess: Optional[PreprocessConfig] = None,
    tune_length: int = 3,
    tune_grid: Optional[Dict[str, Any]] = None,
    model_params: Optional[Dict[str, Any]] = None,
    random_state: Optional[int] = None,
    save_predictions: bool = True,
    registry: Optional[ModelRegistry] = None
) -> FittedModel:
    """Tune and fit one model family over a resampling plan.

    The tuning grid (tune_grid, or the family default of size tune_length)
    is searched with GridSearchCV over the plan's precomputed folds; the best
    candidate is refitted on all of X.

    Parameters
    ----------
    X : pd.DataFrame
        Training predictors.
    y : pd.Series
        Training outcome.
    method : str
        Model family name.
    plan : ResamplingPlan
        Resampling plan; its metric decides the task and the tuning score.
    preprocess : PreprocessConfig, optional
        Preprocessing steps inside the pipeline.
    tune_length : int, default=3
        Candidate values per tuning parameter for the default grid.
    tune_grid : dict, optional
        Explicit grid overriding the default.
    model_params : dict, optional
        Fixed parameters overriding the family defaults.
    random_state : int, optional
        Seed for stochastic estimators.
    save_predictions : bool, default=True
        Whether to compute out-of-fold predictions for the chosen candidate.
    registry : ModelRegistry, optional
        Registry to build from.

    Returns
    -------
    model : FittedModel
        Fitted model with its resampling record.
    """
    registry = registry if registry is not None else ModelRegistry()
    task = plan.metric.task
    start_time = time.time()

    pipeline = build_pipeline(method, task, preprocess, model_params, random_state, registry)

    grid = tune_grid if tune_grid is not None else registry.tuning_grid(
        method, tune_length, X.shape[1]
    )
    grid = _as_candidate_lists(grid)
    param_grid = {f"model__{name}": values for name, values in grid.items()}

    logger.info(
        f"Training {method} on {X.shape[0]} rows x {X.shape[1]} predictors "
        f"({registry.grid_size(grid)} candidates, {plan.n_folds} resamples)"
    )

    if plan.method == 'none':
        best_params = {name: values[0] for name, values in grid.items()}
        pipeline.set_params(**{f"model__{k}": v for k, v in best_params.items()})
        pipeline.fit(X, y)
        results = pd.DataFrame([best_params])
        resample_scores = pd.Series(dtype=float, name=plan.metric.name)
        oof = None
    else:
        search = GridSearchCV(
            pipeline,
            param_grid=param_grid,
            scoring=plan.metric.scoring,
            cv=plan.folds,
            refit=True,
            error_score='raise'
        )
        search.fit(X, y)
        pipeline = search.best_estimator_

        best_params = {
            name.replace('model__', '', 1): value
            for name, value in search.best_params_.items()
        }
        results = _tuning_results(search.cv_results_, plan.metric)

        best = search.best_index_
        resample_scores = pd.Series(
            [plan.metric.natural(search.cv_results_[f"split{i}_test_score"][best])
             for i in range(plan.n_folds)],
            index=plan.fold_names[:plan.n_folds],
            name=plan.metric.name
        )

        oof = out_of_fold_predictions(pipeline, X, y, plan) if save_predictions else None

    model_step = pipeline.named_steps['model']
    fitted = FittedModel(
        method=method,
        task=task,
        metric=plan.metric,
        pipeline=pipeline,
        best_params=best_params,
        results=results,
        resample_scores=resample_scores,
        oof_predictions=oof,
        feature_names=list(X.columns),
        classes=getattr(model_step, 'classes_', None),
        training_time_sec=time.time() - start_time
    )

    logger.info(
        f"{method}: {plan.metric.name} {fitted.score:.4f} with "
        f"{best_params or 'default parameters'} ({fitted.training_time_sec:.1f}s)"
    )

    return fitted


def _tuning_results(cv_results: Dict[str, Any], metric: Metric) -> pd.DataFrame:
    """Tabulate GridSearchCV results on the metric's natural scale."""
    params = pd.DataFrame(list(cv_results['params']))
    params.columns = [c.replace('model__', '', 1) for c in params.columns]

    results = params.assign(**{
        metric.name: [metric.natural(s) for s in cv_results['mean_test_score']],
        f"{metric.name}SD": cv_results['std_test_score'],
        'rank': cv_results['rank_test_score']
    })
    return results


def resamples(
    models: Union[Dict[str, FittedModel], List[FittedModel]]
) -> pd.DataFrame:
    """Line up per-resample scores of models fitted on the same plan.

    Parameters
    ----------
    models : dict or list of FittedModel
        Models to compare; dict keys (or method names) label the columns.

    Returns
    -------
    table : pd.DataFrame
        One row per resample, one column per model.

    Raises
    ------
    ValueError
        If the models were scored with different metrics or fold counts.
    """
    if isinstance(models, dict):
        named = dict(models)
    else:
        named = {m.method: m for m in models}

    if len(named) == 0:
        raise ValueError("Need at least one model to compare")

    metrics = {m.metric.name for m in named.values()}
    if len(metrics) > 1:
        raise ValueError(f"Models were tuned on different metrics: {sorted(metrics)}")

    n_folds = {len(m.resample_scores) for m in named.values()}
    if len(n_folds) > 1:
        raise ValueError("Models were resampled over different fold counts")

    return pd.DataFrame({
        name: model.resample_scores.to_numpy() for name, model in named.items()
    }, index=next(iter(named.values())).resample_scores.index)


def summarize_resamples(table: pd.DataFrame) -> pd.DataFrame:
    """Summary statistics of a resamples() table.

    Returns:
        One row per model with min, median, mean, max and sd
    """
    return pd.DataFrame({
        'min': table.min(),
        'median': table.median(),
        'mean': table.mean(),
        'max': table.max(),
        'sd': table.std()
    })
