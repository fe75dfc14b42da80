"""Model-family registry with default tuning grids.

Provides a uniform interface for building any configured model family for
either task and for generating its tuning grid.
"""

import itertools
from typing import Any, Dict, List, Optional

from sklearn.base import BaseEstimator

from modelkit.config import ModelConfig, ModelingConfig


class ModelRegistry:
    """Looks up model families and builds their estimators and grids.

    Attributes:
        config: ModelingConfig with the family configurations

    Example:
        >>> from modelkit.config import WorkflowConfig
        >>> config = WorkflowConfig()
        >>> registry = ModelRegistry(config.modeling)
        >>>
        >>> estimator = registry.build_estimator('rf', 'classification', random_state=42)
        >>> grid = registry.tuning_grid('rf', tune_length=3, n_features=14)
    """

    def __init__(self, config: Optional[ModelingConfig] = None):
        """Initialize the registry.

        Args:
            config: ModelingConfig with family configurations (defaults if None)
        """
        self.config = config if config is not None else ModelingConfig()

    def available_methods(self, task: Optional[str] = None) -> List[str]:
        """Get enabled family names, optionally only those supporting a task."""
        names = []
        for name, model_config in self.config.models.items():
            if not model_config.enabled:
                continue
            if task is not None and self._estimator_class(model_config, task) is None:
                continue
            names.append(name)
        return names

    def get_config(self, method: str) -> ModelConfig:
        """Get configuration for a model family.

        Raises:
            KeyError: If the family is not registered
        """
        if method not in self.config.models:
            raise KeyError(f"Method '{method}' not found in model registry")
        return self.config.models[method]

    @staticmethod
    def _estimator_class(model_config: ModelConfig, task: str) -> Optional[type]:
        if task == 'classification':
            return model_config.classifier_class
        if task == 'regression':
            return model_config.regressor_class
        raise ValueError(f"task must be 'classification' or 'regression', got {task!r}")

    def build_estimator(
        self,
        method: str,
        task: str,
        params: Optional[Dict[str, Any]] = None,
        random_state: Optional[int] = None
    ) -> BaseEstimator:
        """Build an unfitted estimator for a family and task.

        Args:
            method: Family name
            task: 'classification' or 'regression'
            params: Parameters overriding the family's fixed parameters
            random_state: Seed, applied when the estimator accepts one

        Returns:
            Instantiated sklearn estimator

        Raises:
            KeyError: If the family is not registered
            ValueError: If the family does not support the task
        """
        model_config = self.get_config(method)
        estimator_class = self._estimator_class(model_config, task)
        if estimator_class is None:
            raise ValueError(f"Method '{method}' does not support {task}")

        fixed = (model_config.classifier_params if task == 'classification'
                 else model_config.regressor_params)
        all_params = {**fixed, **(params or {})}

        estimator = estimator_class(**all_params)
        if random_state is not None and 'random_state' in estimator.get_params():
            estimator.set_params(random_state=random_state)

        return estimator

    def tuning_grid(self, method: str, tune_length: int, n_features: int) -> Dict[str, list]:
        """Get the default tuning grid of a family.

        Args:
            method: Family name
            tune_length: Candidate values per tuning parameter
            n_features: Predictor count (some grids scale with it)

        Returns:
            Dict of parameter names to candidate lists (empty = no tuning)
        """
        return self.get_config(method).grid(tune_length, n_features)

    @staticmethod
    def grid_size(grid: Dict[str, list]) -> int:
        """Number of candidate combinations in a grid."""
        return len(list(itertools.product(*grid.values()))) if grid else 1

    def get_registry_summary(self) -> str:
        """Generate human-readable summary of the registry."""
        lines = [
            "Model Registry Summary",
            "=" * 50,
            f"Registered families: {len(self.config.models)}",
            ""
        ]
        for name, model_config in self.config.models.items():
            clf = model_config.classifier_class.__name__ if model_config.classifier_class else '-'
            reg = model_config.regressor_class.__name__ if model_config.regressor_class else '-'
            state = '' if model_config.enabled else ' (disabled)'
            lines.append(f"  - {name}: classification={clf}, regression={reg}{state}")
        return "\n".join(lines)
