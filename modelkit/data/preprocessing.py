"""Preprocessing steps shared by every training pipeline.

This module provides the near-zero-variance filter and the builder that
turns a list of step names ('nzv', 'center', 'scale') into leading
pipeline steps.
"""

from typing import List, Optional, Tuple

import numpy as np
import pandas as pd
from sklearn.base import BaseEstimator, TransformerMixin
from sklearn.preprocessing import StandardScaler


class NearZeroVarianceFilter(BaseEstimator, TransformerMixin):
    """Drop predictors with zero or near-zero variance.

    A column is dropped when it has a single distinct value, or when the
    ratio of its most common to second most common value exceeds
    ``freq_cut`` while its share of distinct values is at most
    ``unique_cut`` percent.
    """

    def __init__(self, freq_cut: float = 95 / 5, unique_cut: float = 10.0):
        self.freq_cut = freq_cut
        self.unique_cut = unique_cut

    @staticmethod
    def column_stats(column: np.ndarray) -> Tuple[float, float, int]:
        """Frequency ratio, percent unique and distinct count of one column."""
        _, counts = np.unique(column, return_counts=True)
        n_unique = len(counts)
        percent_unique = 100.0 * n_unique / len(column)

        if n_unique == 1:
            return np.inf, percent_unique, n_unique

        top_two = np.sort(counts)[-2:]
        return top_two[1] / top_two[0], percent_unique, n_unique

    def fit(self, X, y=None):
        if hasattr(X, 'columns'):
            self.feature_names_in_ = np.asarray(X.columns, dtype=object)
        X_array = np.asarray(X)
        self.n_features_in_ = X_array.shape[1]

        freq_ratio = np.empty(self.n_features_in_)
        percent_unique = np.empty(self.n_features_in_)
        zero_var = np.zeros(self.n_features_in_, dtype=bool)

        for i in range(self.n_features_in_):
            freq_ratio[i], percent_unique[i], n_unique = self.column_stats(X_array[:, i])
            zero_var[i] = n_unique == 1

        near_zero = (freq_ratio > self.freq_cut) & (percent_unique <= self.unique_cut)
        self.support_ = ~(zero_var | near_zero)
        self.freq_ratio_ = freq_ratio
        self.percent_unique_ = percent_unique

        if not self.support_.any():
            raise ValueError("All predictors have zero or near-zero variance")

        return self

    def transform(self, X):
        if hasattr(X, 'iloc'):
            return X.iloc[:, self.support_]
        return np.asarray(X)[:, self.support_]

    def get_feature_names_out(self, input_features=None):
        if input_features is None:
            input_features = getattr(
                self, 'feature_names_in_',
                np.array([f"x{i}" for i in range(self.n_features_in_)], dtype=object)
            )
        return np.asarray(input_features, dtype=object)[self.support_]


def create_preprocessing_steps(
    steps: List[str],
    freq_cut: float = 95 / 5,
    unique_cut: float = 10.0
) -> List[Tuple[str, BaseEstimator]]:
    """Create the leading pipeline steps for a list of step names.

    Parameters
    ----------
    steps : list of str
        Any of 'nzv', 'center', 'scale'. 'center' and 'scale' share one
        StandardScaler.
    freq_cut : float, default=19.0
        Frequency-ratio cutoff of the near-zero-variance filter.
    unique_cut : float, default=10.0
        Percent-unique cutoff of the near-zero-variance filter.

    Returns
    -------
    pipeline_steps : list of (name, transformer)
        Steps ready to prepend to a model in an sklearn Pipeline.

    Raises
    ------
    ValueError
        If a step name is unknown.
    """
    unknown = set(steps) - {'nzv', 'center', 'scale'}
    if unknown:
        raise ValueError(f"Unknown preprocessing steps: {sorted(unknown)}")

    pipeline_steps = []

    if 'nzv' in steps:
        pipeline_steps.append(
            ('nzv', NearZeroVarianceFilter(freq_cut=freq_cut, unique_cut=unique_cut))
        )

    if 'center' in steps or 'scale' in steps:
        pipeline_steps.append(
            ('scaler', StandardScaler(with_mean='center' in steps, with_std='scale' in steps))
        )

    return pipeline_steps


def near_zero_variance_report(
    X: pd.DataFrame,
    freq_cut: float = 95 / 5,
    unique_cut: float = 10.0
) -> pd.DataFrame:
    """Get per-column near-zero-variance statistics.

    Parameters
    ----------
    X : pd.DataFrame
        Predictors.
    freq_cut, unique_cut : float
        Cutoffs as in NearZeroVarianceFilter.

    Returns
    -------
    report : pd.DataFrame
        Indexed by column with freq_ratio, percent_unique, zero_var and nzv.
    """
    rows = []
    for column in X.columns:
        freq_ratio, percent_unique, n_unique = NearZeroVarianceFilter.column_stats(
            X[column].to_numpy()
        )
        zero_var = n_unique == 1
        rows.append({
            'feature': column,
            'freq_ratio': freq_ratio,
            'percent_unique': percent_unique,
            'zero_var': zero_var,
            'nzv': zero_var or (freq_ratio > freq_cut and percent_unique <= unique_cut)
        })
    return pd.DataFrame(rows).set_index('feature')


def get_preprocessing_info(pipeline_steps: List[Tuple[str, BaseEstimator]]) -> dict:
    """Get information about configured preprocessing steps.

    Parameters
    ----------
    pipeline_steps : list of (name, transformer)
        Output of create_preprocessing_steps.

    Returns
    -------
    info : dict
        Dictionary with step names and transformer types.
    """
    return {
        'n_steps': len(pipeline_steps),
        'steps': [
            {'name': name, 'type': type(transformer).__name__}
            for name, transformer in pipeline_steps
        ]
    }


def selected_feature_names(
    pipeline_steps: List[Tuple[str, BaseEstimator]],
    input_features: Optional[List[str]] = None
) -> np.ndarray:
    """Feature names surviving fitted preprocessing steps.

    Parameters
    ----------
    pipeline_steps : list of (name, transformer)
        Fitted preprocessing steps.
    input_features : list of str, optional
        Names of the raw predictors.

    Returns
    -------
    names : np.ndarray
        Names reaching the model.
    """
    names = None if input_features is None else np.asarray(input_features, dtype=object)
    for _, transformer in pipeline_steps:
        if isinstance(transformer, NearZeroVarianceFilter):
            names = transformer.get_feature_names_out(names)
    return names
