"""Data partitioning utilities.

This module provides the stratified train/holdout split used by the
workflow. Class balance (or, for numeric outcomes, the distribution across
quantile groups) is preserved on both sides.
"""

from typing import Optional, Tuple

import numpy as np
import pandas as pd
from pandas.api.types import is_numeric_dtype
from sklearn.model_selection import train_test_split


def stratification_groups(y: pd.Series, max_groups: int = 5) -> pd.Series:
    """Get the grouping variable used to stratify a split.

    Categorical outcomes stratify on their levels. Numeric outcomes are cut
    into up to ``max_groups`` quantile groups.

    Parameters
    ----------
    y : pd.Series
        Outcome values.
    max_groups : int, default=5
        Maximum number of quantile groups for numeric outcomes.

    Returns
    -------
    groups : pd.Series
        One group label per row.
    """
    y = pd.Series(y).reset_index(drop=True)

    if is_numeric_dtype(y) and y.nunique() > max_groups:
        n_groups = min(max_groups, len(y))
        return pd.Series(pd.qcut(y, q=n_groups, labels=False, duplicates='drop'))

    return y.astype(str)


def create_data_partition(
    y: pd.Series,
    p: float = 0.75,
    random_state: Optional[int] = None
) -> Tuple[np.ndarray, np.ndarray]:
    """Create a stratified train/holdout split of row positions.

    Parameters
    ----------
    y : pd.Series
        Outcome values.
    p : float, default=0.75
        Fraction of rows in the training subset, in (0, 1).
    random_state : int, optional
        Random state for reproducible splits.

    Returns
    -------
    train_idx : np.ndarray
        Sorted positional indices of training rows.
    holdout_idx : np.ndarray
        Sorted positional indices of holdout rows.

    Raises
    ------
    ValueError
        If p is not in (0, 1).
    """
    if not 0 < p < 1:
        raise ValueError(f"p must be in (0, 1), got {p}")

    positions = np.arange(len(y))
    groups = stratification_groups(y)

    train_idx, holdout_idx = train_test_split(
        positions,
        train_size=p,
        random_state=random_state,
        stratify=groups
    )

    return np.sort(train_idx), np.sort(holdout_idx)


class DataPartition:
    """Manages the stratified train/holdout split.

    The data is split into:
    - Training subset (p): For resampling, tuning and feature selection
    - Holdout subset (1 - p): For the final, untouched performance check

    Both subsets keep approximately the class proportions of the full data.
    """

    def __init__(
        self,
        data: pd.DataFrame,
        label_column: str,
        p: float = 0.75,
        random_state: Optional[int] = None
    ):
        """Initialize data partition.

        Parameters
        ----------
        data : pd.DataFrame
            Full dataset with labels.
        label_column : str
            Name of the label column.
        p : float, default=0.75
            Fraction of rows for the training subset.
        random_state : int, optional
            Random state for reproducible splits.
        """
        self.label_column = label_column
        self.p = p
        self.random_state = random_state

        X_full = data.drop(columns=[label_column])
        y_full = data[label_column]

        self.train_idx, self.holdout_idx = create_data_partition(
            y_full, p=p, random_state=random_state
        )

        self.X_train = X_full.iloc[self.train_idx]
        self.y_train = y_full.iloc[self.train_idx]
        self.X_holdout = X_full.iloc[self.holdout_idx]
        self.y_holdout = y_full.iloc[self.holdout_idx]

        self._sizes = {
            'train': len(self.train_idx),
            'holdout': len(self.holdout_idx),
            'total': len(X_full)
        }

        # Numeric outcomes are grouped once on the full data so both subsets
        # are measured against the same quantile cut points.
        groups = stratification_groups(y_full)
        self._class_distributions = {
            'full': self._proportions(groups),
            'train': self._proportions(groups.iloc[self.train_idx]),
            'holdout': self._proportions(groups.iloc[self.holdout_idx])
        }

    @staticmethod
    def _proportions(groups: pd.Series) -> pd.Series:
        """Proportion of rows in each class (or quantile group)."""
        return groups.value_counts(normalize=True).sort_index()

    def get_train(self) -> Tuple[pd.DataFrame, pd.Series]:
        """Get training data.

        Returns
        -------
        X_train : pd.DataFrame
            Training features.
        y_train : pd.Series
            Training labels.
        """
        return self.X_train, self.y_train

    def get_holdout(self) -> Tuple[pd.DataFrame, pd.Series]:
        """Get holdout data.

        Returns
        -------
        X_holdout : pd.DataFrame
            Holdout features.
        y_holdout : pd.Series
            Holdout labels.
        """
        return self.X_holdout, self.y_holdout

    def class_proportions(self) -> pd.DataFrame:
        """Class proportions of the full data and both subsets.

        Returns
        -------
        proportions : pd.DataFrame
            One row per class, columns full/train/holdout.
        """
        return pd.DataFrame(self._class_distributions).fillna(0.0)

    def max_proportion_drift(self) -> float:
        """Largest absolute gap between a subset's and the full data's class proportion."""
        props = self.class_proportions()
        drift = (props[['train', 'holdout']].sub(props['full'], axis=0)).abs()
        return float(drift.to_numpy().max())

    def summary(self) -> str:
        """Get summary of the partition.

        Returns
        -------
        summary : str
            Human-readable summary of the split.
        """
        props = self.class_proportions()
        lines = [
            "Data Partition Summary",
            "=" * 60,
            f"Total samples: {self._sizes['total']:,}",
            "",
            "Split sizes:",
            f"  Training:  {self._sizes['train']:,} "
            f"({self._sizes['train']/self._sizes['total']*100:.1f}%)",
            f"  Holdout:   {self._sizes['holdout']:,} "
            f"({self._sizes['holdout']/self._sizes['total']*100:.1f}%)",
            "",
            "Class proportions (full / train / holdout):"
        ]
        for level, row in props.iterrows():
            lines.append(
                f"  {level}: {row['full']:.3f} / {row['train']:.3f} / {row['holdout']:.3f}"
            )
        lines.append("=" * 60)
        return "\n".join(lines)
