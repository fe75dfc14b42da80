"""Resampling, model training and evaluation.

This subpackage provides the uniform training interface: a resampling plan
shared by every model family, a registry of families with default tuning
grids, the train() driver, and holdout evaluation.
"""

from modelkit.training.resampling import (
    Metric,
    METRICS,
    get_metric,
    Bootstrap,
    ResamplingPlan,
    build_resampling_plan
)
from modelkit.training.models import ModelRegistry
from modelkit.training.trainer import (
    FittedModel,
    build_pipeline,
    train,
    resamples,
    summarize_resamples
)
from modelkit.training.evaluation import evaluate_holdout, variable_importance

__all__ = [
    'Metric',
    'METRICS',
    'get_metric',
    'Bootstrap',
    'ResamplingPlan',
    'build_resampling_plan',
    'ModelRegistry',
    'FittedModel',
    'build_pipeline',
    'train',
    'resamples',
    'summarize_resamples',
    'evaluate_holdout',
    'variable_importance'
]
