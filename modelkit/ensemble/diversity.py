"""Correlation between ensemble members.

Members whose predictions (or per-resample scores) are highly correlated
add little to an ensemble. Lower correlation means more diversity.
"""

from typing import List

import numpy as np
import pandas as pd

from modelkit.ensemble.model_list import ModelList


class DiversityScorer:
    """Calculates diversity metrics for ensemble members.

    Diversity is measured as the mean pairwise correlation between member
    predictions. Lower correlation indicates higher diversity.

    Example:
        >>> scorer = DiversityScorer()
        >>> predictions = [model.predict_score(X) for model in models]
        >>> diversity = scorer.score(predictions)
        >>> print(f"Mean correlation: {diversity:.3f}")
    """

    @staticmethod
    def _check(predictions: List[np.ndarray]) -> np.ndarray:
        if len(predictions) < 2:
            raise ValueError("Need at least 2 predictions to calculate diversity")

        first_shape = np.shape(predictions[0])
        for i, pred in enumerate(predictions[1:], 1):
            if np.shape(pred) != first_shape:
                raise ValueError(
                    f"Prediction {i} has shape {np.shape(pred)}, "
                    f"expected {first_shape}"
                )

        return np.vstack(predictions)

    def correlation_matrix(self, predictions: List[np.ndarray]) -> np.ndarray:
        """Get full correlation matrix between predictions.

        Args:
            predictions: List of 1D prediction arrays for the same samples

        Returns:
            Correlation matrix (n_models x n_models)
        """
        return np.corrcoef(self._check(predictions))

    def score(self, predictions: List[np.ndarray]) -> float:
        """Calculate mean pairwise correlation between predictions.

        Args:
            predictions: List of 1D prediction arrays for the same samples

        Returns:
            Mean pairwise correlation. Lower is more diverse.

        Raises:
            ValueError: If fewer than 2 prediction sets provided
            ValueError: If prediction arrays have different shapes
        """
        corr = self.correlation_matrix(predictions)
        upper = corr[np.triu_indices(len(corr), k=1)]
        return float(np.mean(upper))

    def detailed_diversity(self, predictions: List[np.ndarray]) -> dict:
        """Get detailed diversity statistics.

        Returns:
            Dict with mean/min/max/std of pairwise correlations,
            n_pairs and n_models
        """
        corr = self.correlation_matrix(predictions)
        n = len(corr)
        upper = corr[np.triu_indices(n, k=1)]

        return {
            'mean_correlation': float(np.mean(upper)),
            'min_correlation': float(np.min(upper)),
            'max_correlation': float(np.max(upper)),
            'std_correlation': float(np.std(upper)),
            'n_pairs': len(upper),
            'n_models': n
        }

    @staticmethod
    def is_diverse(mean_correlation: float, threshold: float = 0.7) -> bool:
        """Rule of thumb: mean correlation below the threshold is diverse enough."""
        return mean_correlation < threshold


def model_correlation(members: ModelList, source: str = 'predictions') -> pd.DataFrame:
    """Correlation between ensemble members.

    Parameters
    ----------
    members : ModelList
        Members trained over a shared plan.
    source : {'predictions', 'resamples'}, default='predictions'
        Correlate out-of-fold predictions or per-resample scores.

    Returns
    -------
    correlation : pd.DataFrame
        Members x members correlation matrix.
    """
    if source == 'resamples':
        table = members.resamples()
    elif source == 'predictions':
        table = members.oof_matrix().dropna()
    else:
        raise ValueError(f"source must be 'resamples' or 'predictions', got {source!r}")

    corr = DiversityScorer().correlation_matrix([table[c].to_numpy() for c in table.columns])
    return pd.DataFrame(corr, index=table.columns, columns=table.columns)
