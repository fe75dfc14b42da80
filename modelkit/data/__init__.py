"""Data simulation, partitioning and preprocessing.

This subpackage handles:
- Synthetic two-class and regression datasets
- Stratified train/holdout partitioning
- Near-zero-variance filtering, centering and scaling
"""

from modelkit.data.simulation import two_class_sim, regression_sim
from modelkit.data.splits import DataPartition, create_data_partition, stratification_groups
from modelkit.data.preprocessing import (
    NearZeroVarianceFilter,
    create_preprocessing_steps,
    near_zero_variance_report
)

__all__ = [
    'two_class_sim',
    'regression_sim',
    'DataPartition',
    'create_data_partition',
    'stratification_groups',
    'NearZeroVarianceFilter',
    'create_preprocessing_steps',
    'near_zero_variance_report'
]
