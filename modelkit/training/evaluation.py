"""Holdout evaluation and variable importance.

Provides functions for scoring a fitted model (or ensemble) on the untouched
holdout rows and for ranking predictors by importance.
"""

from typing import Any, Dict, Optional

import numpy as np
import pandas as pd
from sklearn.inspection import permutation_importance
from sklearn.metrics import (
    accuracy_score, cohen_kappa_score, confusion_matrix, mean_absolute_error,
    mean_squared_error, roc_auc_score
)

from modelkit.data.preprocessing import selected_feature_names


def evaluate_holdout(
    model,
    X: pd.DataFrame,
    y: pd.Series,
    positive_class: Optional[Any] = None
) -> Dict[str, Any]:
    """Evaluate a fitted model on holdout data.

    Parameters
    ----------
    model : FittedModel or ModelEnsemble
        Anything with task, classes, predict() and predict_score().
    X : pd.DataFrame
        Holdout predictors.
    y : pd.Series
        Holdout outcome.
    positive_class : optional
        Event class for sensitivity/specificity. Defaults to the first class.

    Returns
    -------
    metrics : dict
        Classification: Accuracy, Kappa, Sensitivity, Specificity, ROC and
        confusion_matrix (DataFrame, rows = predicted, columns = observed).
        Regression: RMSE, Rsquared, MAE.
    """
    y_true = np.asarray(y)
    y_pred = model.predict(X)

    if model.task == 'regression':
        y_true = y_true.astype(float)
        rsquared = np.corrcoef(y_true, y_pred)[0, 1] ** 2 if len(y_true) > 1 else float('nan')
        return {
            'RMSE': float(np.sqrt(mean_squared_error(y_true, y_pred))),
            'Rsquared': float(rsquared),
            'MAE': float(mean_absolute_error(y_true, y_pred))
        }

    classes = list(model.classes)
    if positive_class is None:
        positive_class = classes[0]
    if positive_class not in classes:
        raise ValueError(f"positive_class {positive_class!r} not in {classes}")
    negative_class = [c for c in classes if c != positive_class][0]

    # Rows = predicted, columns = observed
    cm = confusion_matrix(y_true, y_pred, labels=classes).T
    cm_frame = pd.DataFrame(cm, index=classes, columns=classes)
    cm_frame.index.name = 'Prediction'
    cm_frame.columns.name = 'Reference'

    tp = cm_frame.loc[positive_class, positive_class]
    fn = cm_frame.loc[negative_class, positive_class]
    tn = cm_frame.loc[negative_class, negative_class]
    fp = cm_frame.loc[positive_class, negative_class]

    scores = model.predict_score(X)
    roc = roc_auc_score(y_true == classes[1], scores) if len(set(y_true)) == 2 else float('nan')

    return {
        'Accuracy': float(accuracy_score(y_true, y_pred)),
        'Kappa': float(cohen_kappa_score(y_true, y_pred)),
        'Sensitivity': float(tp / (tp + fn)) if (tp + fn) > 0 else float('nan'),
        'Specificity': float(tn / (tn + fp)) if (tn + fp) > 0 else float('nan'),
        'ROC': float(roc),
        'confusion_matrix': cm_frame
    }


def variable_importance(
    model,
    X: Optional[pd.DataFrame] = None,
    y: Optional[pd.Series] = None,
    scale: bool = True,
    random_state: Optional[int] = None
) -> pd.Series:
    """Rank the predictors of a fitted model.

    Tree ensembles report impurity importances and linear models the
    absolute value of their coefficients. Other families need X and y and
    fall back to permutation importance on the tuning metric.

    Parameters
    ----------
    model : FittedModel
        Fitted model.
    X, y : optional
        Data for permutation importance.
    scale : bool, default=True
        Rescale importances to 0-100.
    random_state : int, optional
        Seed for permutation importance.

    Returns
    -------
    importance : pd.Series
        Indexed by predictor, sorted descending.

    Raises
    ------
    ValueError
        If the model has no intrinsic importance and no data was given.
    """
    pipeline = model.pipeline
    estimator = pipeline.named_steps['model']

    if hasattr(estimator, 'feature_importances_'):
        values = np.asarray(estimator.feature_importances_, dtype=float)
        names = selected_feature_names(pipeline.steps[:-1], model.feature_names)
    elif hasattr(estimator, 'coef_'):
        values = np.abs(np.atleast_2d(estimator.coef_)).sum(axis=0)
        names = selected_feature_names(pipeline.steps[:-1], model.feature_names)
    elif X is not None and y is not None:
        result = permutation_importance(
            pipeline, X[model.feature_names], y,
            scoring=model.metric.scoring,
            n_repeats=5,
            random_state=random_state
        )
        values = result.importances_mean
        names = np.asarray(model.feature_names, dtype=object)
    else:
        raise ValueError(
            f"Model '{model.method}' has no intrinsic importance; pass X and y"
        )

    importance = pd.Series(values, index=list(names), name='Overall')

    if scale:
        span = importance.max() - importance.min()
        if span > 0:
            importance = (importance - importance.min()) / span * 100
        else:
            importance = importance * 0 + 100.0

    return importance.sort_values(ascending=False)
