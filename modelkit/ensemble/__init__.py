"""Model ensembles.

This subpackage trains several model families over one resampling plan and
combines their out-of-fold predictions with a secondary model.
"""

from modelkit.ensemble.model_list import ModelList, train_model_list
from modelkit.ensemble.combiner import ModelEnsemble
from modelkit.ensemble.diversity import DiversityScorer, model_correlation

__all__ = [
    'ModelList',
    'train_model_list',
    'ModelEnsemble',
    'DiversityScorer',
    'model_correlation'
]
