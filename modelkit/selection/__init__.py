"""Wrapper feature selection.

This subpackage provides three searches over predictor subsets, all scored
by the cross-validated metric of one model family:
- Exhaustive-by-size search (recursive feature elimination)
- Simulated annealing
- Genetic algorithm
"""

from modelkit.selection.fitness import SelectionResult, SubsetEvaluator
from modelkit.selection.acceptance import AcceptanceCriterion
from modelkit.selection.rfe import recursive_feature_elimination
from modelkit.selection.annealing import simulated_annealing_selection
from modelkit.selection.genetic import genetic_algorithm_selection

__all__ = [
    'SelectionResult',
    'SubsetEvaluator',
    'AcceptanceCriterion',
    'recursive_feature_elimination',
    'simulated_annealing_selection',
    'genetic_algorithm_selection'
]
