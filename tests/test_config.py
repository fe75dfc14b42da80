"""Unit tests for the workflow configuration system.

This test suite validates default values, validation rules and the
default model-family registry.
"""

import unittest
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from modelkit.config import (
    WorkflowConfig, SimulationConfig, ResamplingConfig, ModelingConfig,
    EnsembleConfig, FeatureSelectionConfig, GeneticConfig, AnnealingConfig,
    PreprocessConfig, ParallelConfig, get_default_model_configs, _mtry_grid
)


class TestBasicInstantiation(unittest.TestCase):
    """Test basic configuration instantiation."""

    def test_default_instantiation(self):
        """Test that config can be instantiated with defaults."""
        config = WorkflowConfig()
        config.validate()
        self.assertIsNotNone(config)

    def test_random_state(self):
        """Test default random state."""
        config = WorkflowConfig()
        self.assertEqual(config.random_state, 42)

    def test_summary(self):
        """Test summary mentions the key settings."""
        summary = WorkflowConfig().summary()
        self.assertIn("Workflow Configuration Summary", summary)
        self.assertIn("repeatedcv", summary)
        self.assertIn("ROC", summary)


class TestConfigurationValues(unittest.TestCase):
    """Test default configuration values."""

    def setUp(self):
        """Set up test config."""
        self.config = WorkflowConfig()

    def test_simulation_config(self):
        """Test default simulation gives 14 predictors."""
        sim = self.config.simulation
        n_predictors = 2 + sim.linear_vars + 3 + sim.noise_vars + sim.corr_vars
        self.assertEqual(n_predictors, 14)

    def test_resampling_config(self):
        """Test default resampling plan."""
        self.assertEqual(self.config.resampling.method, 'repeatedcv')
        self.assertEqual(self.config.resampling.number, 10)
        self.assertEqual(self.config.resampling.repeats, 3)

    def test_genetic_elite(self):
        """Test elite defaults to 5% of the population, at least one."""
        self.assertEqual(GeneticConfig(population_size=10).resolve_elite(), 1)
        self.assertEqual(GeneticConfig(population_size=100).resolve_elite(), 5)
        self.assertEqual(GeneticConfig(population_size=10, elite=0).resolve_elite(), 0)

    def test_default_models(self):
        """Test the default model families."""
        models = get_default_model_configs()
        for name in ['glm', 'glmnet', 'rf', 'gbm', 'knn', 'lda']:
            self.assertIn(name, models)
        self.assertIsNone(models['lda'].regressor_class)

    def test_glmnet_grid(self):
        """Test glmnet grid has tune_length values per parameter."""
        grid = get_default_model_configs()['glmnet'].grid(4, 10)
        self.assertEqual(len(grid['alpha']), 4)
        self.assertEqual(len(grid['l1_ratio']), 4)

    def test_mtry_grid(self):
        """Test mtry candidates stay within the predictor count."""
        grid = _mtry_grid(3, 14)
        self.assertEqual(grid, [2, 8, 14])
        self.assertEqual(_mtry_grid(3, 2), [1, 2])


class TestValidation(unittest.TestCase):
    """Test configuration validation rules."""

    def test_invalid_mislabel(self):
        config = WorkflowConfig(simulation=SimulationConfig(mislabel=1.5))
        with self.assertRaises(AssertionError):
            config.validate()

    def test_invalid_resampling_method(self):
        config = WorkflowConfig(resampling=ResamplingConfig(method='jackknife'))
        with self.assertRaises(AssertionError):
            config.validate()

    def test_metric_must_fit_task(self):
        """Test a regression task rejects a classification metric."""
        config = WorkflowConfig(modeling=ModelingConfig(task='regression'))
        with self.assertRaises(AssertionError):
            config.validate()

    def test_regression_config(self):
        """Test a consistent regression configuration validates."""
        config = WorkflowConfig(
            label='y',
            modeling=ModelingConfig(task='regression'),
            resampling=ResamplingConfig(metric='RMSE'),
            feature_selection=FeatureSelectionConfig(
                resampling=ResamplingConfig(method='cv', number=5, metric='RMSE')
            )
        )
        config.validate()

    def test_unknown_ensemble_member(self):
        config = WorkflowConfig(ensemble=EnsembleConfig(methods=['glm', 'svm']))
        with self.assertRaises(AssertionError):
            config.validate()

    def test_duplicate_ensemble_members(self):
        config = WorkflowConfig(ensemble=EnsembleConfig(methods=['rf', 'rf']))
        with self.assertRaises(AssertionError):
            config.validate()

    def test_feature_selection_needs_resampling(self):
        config = WorkflowConfig(
            feature_selection=FeatureSelectionConfig(
                resampling=ResamplingConfig(method='none')
            )
        )
        with self.assertRaises(AssertionError):
            config.validate()

    def test_invalid_annealing(self):
        config = WorkflowConfig(
            feature_selection=FeatureSelectionConfig(
                annealing=AnnealingConfig(iterations=0)
            )
        )
        with self.assertRaises(AssertionError):
            config.validate()

    def test_unknown_preprocess_step(self):
        config = WorkflowConfig(preprocess=PreprocessConfig(steps=['pca']))
        with self.assertRaises(AssertionError):
            config.validate()

    def test_invalid_workers(self):
        config = WorkflowConfig(parallel=ParallelConfig(enabled=True, n_workers=0))
        with self.assertRaises(AssertionError):
            config.validate()


if __name__ == '__main__':
    unittest.main(verbosity=2)
