"""Simulated-data predictive modeling workflow.

A small toolkit featuring:
- Two-class and regression data simulators with known structure
- Stratified partitioning and shared resampling plans
- One training interface over several scikit-learn model families
- Linear and stacked ensembles of out-of-fold predictions
- Wrapper feature selection: recursive elimination, simulated annealing,
  genetic algorithm

The statistical work is done by scikit-learn; this package supplies the
configuration, orchestration and reporting around it.
"""

__version__ = "1.0.0"

from modelkit.config import WorkflowConfig
from modelkit.workflow import WorkflowResult, run_workflow

__all__ = ['WorkflowConfig', 'WorkflowResult', 'run_workflow']
