"""Unit tests for resampling, the model registry, training and evaluation.

This test suite validates resampling plans, the uniform train() driver,
resample comparison, holdout evaluation and variable importance.
"""

import unittest
import sys
from pathlib import Path
import numpy as np
import pandas as pd
from sklearn.ensemble import RandomForestClassifier
from sklearn.linear_model import SGDClassifier

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from modelkit.config import ResamplingConfig, PreprocessConfig
from modelkit.data import two_class_sim, regression_sim, DataPartition
from modelkit.training import (
    Bootstrap, build_resampling_plan, get_metric, ModelRegistry, FittedModel,
    train, resamples, summarize_resamples, evaluate_holdout, variable_importance
)


def make_partition(n=300, random_state=42):
    data = two_class_sim(n=n, linear_vars=2, noise_vars=4, corr_vars=3,
                         random_state=random_state)
    return DataPartition(data, 'Class', p=0.75, random_state=random_state)


class TestMetrics(unittest.TestCase):
    """Test metric definitions."""

    def test_natural_scale(self):
        """Test error metrics are negated back to their natural scale."""
        self.assertEqual(get_metric('RMSE').natural(-2.5), 2.5)
        self.assertEqual(get_metric('ROC').natural(0.8), 0.8)
        self.assertFalse(get_metric('MAE').greater_is_better)

    def test_unknown_metric(self):
        with self.assertRaises(KeyError):
            get_metric('F1')


class TestResamplingPlan(unittest.TestCase):
    """Test resampling plans."""

    def setUp(self):
        self.y = make_partition().y_train

    def test_repeatedcv_covers_each_row_once_per_repeat(self):
        """Test every row is in exactly one validation fold per repeat."""
        plan = build_resampling_plan(
            ResamplingConfig(method='repeatedcv', number=5, repeats=3), self.y, random_state=1
        )
        self.assertEqual(plan.n_folds, 15)
        self.assertEqual(plan.fold_names[0], 'Fold01.Rep1')
        self.assertEqual(plan.fold_names[-1], 'Fold05.Rep3')

        counts = plan.validation_counts()
        self.assertEqual(list(counts.columns), ['Rep1', 'Rep2', 'Rep3'])
        self.assertTrue((counts.to_numpy() == 1).all())
        self.assertTrue(plan.partitions_rows)

    def test_cv(self):
        plan = build_resampling_plan(ResamplingConfig(method='cv', number=4), self.y,
                                     random_state=1)
        self.assertEqual(plan.n_folds, 4)
        self.assertTrue((plan.validation_counts()['Rep1'] == 1).all())
        self.assertEqual(plan.get_n_splits(), 4)

    def test_folds_are_stratified(self):
        plan = build_resampling_plan(ResamplingConfig(method='cv', number=5), self.y,
                                     random_state=1)
        overall = (self.y == 'Class1').mean()
        for _, validation_idx in plan.folds:
            fold_rate = (self.y.iloc[validation_idx] == 'Class1').mean()
            self.assertAlmostEqual(fold_rate, overall, delta=0.05)

    def test_reproducible(self):
        config = ResamplingConfig(method='cv', number=5)
        a = build_resampling_plan(config, self.y, random_state=3)
        b = build_resampling_plan(config, self.y, random_state=3)
        for (_, va), (_, vb) in zip(a.folds, b.folds):
            np.testing.assert_array_equal(va, vb)

    def test_boot(self):
        """Test bootstrap validation rows are those left out of the draw."""
        plan = build_resampling_plan(ResamplingConfig(method='boot', number=5), self.y,
                                     random_state=1)
        self.assertEqual(plan.n_folds, 5)
        self.assertEqual(plan.fold_names[0], 'Resample01')
        for train_idx, validation_idx in plan.folds:
            self.assertEqual(len(train_idx), len(self.y))
            self.assertEqual(len(set(train_idx) & set(validation_idx)), 0)

    def test_lgocv(self):
        plan = build_resampling_plan(
            ResamplingConfig(method='LGOCV', number=3, p=0.8), self.y, random_state=1
        )
        train_idx, validation_idx = plan.folds[0]
        self.assertAlmostEqual(len(train_idx) / len(self.y), 0.8, delta=0.01)
        self.assertFalse(plan.partitions_rows)

    def test_none(self):
        plan = build_resampling_plan(ResamplingConfig(method='none'), self.y)
        self.assertEqual(plan.n_folds, 0)

    def test_unknown_method(self):
        with self.assertRaises(ValueError):
            build_resampling_plan(ResamplingConfig(method='jackknife'), self.y)

    def test_bootstrap_splitter(self):
        splits = list(Bootstrap(n_resamples=3, random_state=0).split(np.zeros((20, 1))))
        self.assertEqual(len(splits), 3)


class TestModelRegistry(unittest.TestCase):
    """Test the model-family registry."""

    def setUp(self):
        self.registry = ModelRegistry()

    def test_build_estimator(self):
        estimator = self.registry.build_estimator('rf', 'classification', random_state=5)
        self.assertIsInstance(estimator, RandomForestClassifier)
        self.assertEqual(estimator.random_state, 5)
        self.assertEqual(estimator.n_estimators, 200)

    def test_param_override(self):
        estimator = self.registry.build_estimator('rf', 'classification', {'n_estimators': 7})
        self.assertEqual(estimator.n_estimators, 7)

    def test_glmnet_is_elastic_net(self):
        estimator = self.registry.build_estimator('glmnet', 'classification')
        self.assertIsInstance(estimator, SGDClassifier)
        self.assertEqual(estimator.penalty, 'elasticnet')

    def test_unsupported_task(self):
        with self.assertRaises(ValueError):
            self.registry.build_estimator('lda', 'regression')
        self.assertNotIn('lda', self.registry.available_methods('regression'))

    def test_unknown_method(self):
        with self.assertRaises(KeyError):
            self.registry.get_config('svm')

    def test_grid_size(self):
        grid = self.registry.tuning_grid('gbm', tune_length=3, n_features=10)
        self.assertEqual(ModelRegistry.grid_size(grid), 9)
        self.assertEqual(ModelRegistry.grid_size({}), 1)

    def test_summary(self):
        self.assertIn("Model Registry Summary", self.registry.get_registry_summary())


class TestTrain(unittest.TestCase):
    """Test the uniform training interface."""

    @classmethod
    def setUpClass(cls):
        partition = make_partition()
        cls.partition = partition
        cls.plan = build_resampling_plan(
            ResamplingConfig(method='cv', number=3), partition.y_train, random_state=1
        )
        cls.rf = train(
            partition.X_train, partition.y_train, 'rf', cls.plan,
            tune_length=2, model_params={'n_estimators': 20}, random_state=1
        )
        cls.glm = train(
            partition.X_train, partition.y_train, 'glm', cls.plan,
            preprocess=PreprocessConfig(), random_state=1
        )

    def test_fitted_model(self):
        """Test the fitted model records its tuning and resampling."""
        self.assertIsInstance(self.rf, FittedModel)
        self.assertEqual(self.rf.task, 'classification')
        self.assertIn('max_features', self.rf.best_params)
        self.assertEqual(len(self.rf.results), 2)
        self.assertEqual(list(self.rf.resample_scores.index), ['Fold01', 'Fold02', 'Fold03'])
        self.assertTrue(0 <= self.rf.score <= 1)
        self.assertEqual(list(self.rf.classes), ['Class1', 'Class2'])

    def test_out_of_fold_predictions(self):
        """Test every training row gets one held-out probability."""
        oof = self.rf.oof_predictions
        self.assertEqual(len(oof), len(self.partition.X_train))
        self.assertTrue(oof.index.equals(self.partition.X_train.index))
        self.assertFalse(oof.isna().any())
        self.assertTrue(((oof >= 0) & (oof <= 1)).all())

    def test_predict(self):
        X_holdout = self.partition.X_holdout
        preds = self.rf.predict(X_holdout)
        self.assertEqual(len(preds), len(X_holdout))

        probs = self.rf.predict_proba(X_holdout)
        self.assertEqual(list(probs.columns), ['Class1', 'Class2'])
        np.testing.assert_allclose(probs.sum(axis=1), 1.0)

    def test_untuned_model(self):
        """Test a family without tuning parameters has one candidate."""
        self.assertEqual(self.glm.best_params, {})
        self.assertEqual(len(self.glm.results), 1)
        self.assertIn("Model: glm", self.glm.summary())

    def test_explicit_grid(self):
        model = train(
            self.partition.X_train, self.partition.y_train, 'knn', self.plan,
            tune_grid={'n_neighbors': [3, 9]}, save_predictions=False
        )
        self.assertIn(model.best_params['n_neighbors'], [3, 9])
        self.assertIsNone(model.oof_predictions)

    def test_no_resampling(self):
        plan = build_resampling_plan(ResamplingConfig(method='none'), self.partition.y_train)
        model = train(self.partition.X_train, self.partition.y_train, 'knn', plan,
                      tune_length=2)
        self.assertEqual(model.best_params, {'n_neighbors': 5})
        self.assertTrue(np.isnan(model.score))

    def test_resamples(self):
        """Test resample table lines up models fold by fold."""
        table = resamples({'rf': self.rf, 'glm': self.glm})
        self.assertEqual(list(table.columns), ['rf', 'glm'])
        self.assertEqual(len(table), 3)

        summary = summarize_resamples(table)
        self.assertEqual(list(summary.columns), ['min', 'median', 'mean', 'max', 'sd'])
        self.assertAlmostEqual(summary.loc['rf', 'mean'], self.rf.score)

    def test_resamples_different_folds(self):
        plan = build_resampling_plan(
            ResamplingConfig(method='cv', number=4), self.partition.y_train, random_state=1
        )
        other = train(self.partition.X_train, self.partition.y_train, 'glm', plan,
                      save_predictions=False)
        with self.assertRaises(ValueError):
            resamples([self.rf, other])


class TestEvaluation(unittest.TestCase):
    """Test holdout evaluation and variable importance."""

    @classmethod
    def setUpClass(cls):
        partition = make_partition()
        cls.partition = partition
        plan = build_resampling_plan(
            ResamplingConfig(method='cv', number=3), partition.y_train, random_state=1
        )
        cls.plan = plan
        cls.rf = train(partition.X_train, partition.y_train, 'rf', plan,
                       tune_grid={'max_features': [3]},
                       model_params={'n_estimators': 30}, random_state=1,
                       save_predictions=False)

    def test_classification_metrics(self):
        metrics = evaluate_holdout(self.rf, self.partition.X_holdout, self.partition.y_holdout)

        for name in ['Accuracy', 'Kappa', 'Sensitivity', 'Specificity', 'ROC']:
            self.assertIn(name, metrics)
        self.assertTrue(0 <= metrics['Accuracy'] <= 1)
        self.assertTrue(0 <= metrics['ROC'] <= 1)

        cm = metrics['confusion_matrix']
        self.assertEqual(cm.to_numpy().sum(), len(self.partition.y_holdout))
        self.assertEqual(cm.index.name, 'Prediction')

    def test_invalid_positive_class(self):
        with self.assertRaises(ValueError):
            evaluate_holdout(self.rf, self.partition.X_holdout, self.partition.y_holdout,
                             positive_class='Class3')

    def test_regression_metrics(self):
        data = regression_sim(n=150, random_state=1)
        partition = DataPartition(data, 'y', random_state=1)
        plan = build_resampling_plan(
            ResamplingConfig(method='cv', number=3, metric='RMSE'), partition.y_train,
            random_state=1
        )
        model = train(partition.X_train, partition.y_train, 'glm', plan)
        self.assertEqual(model.task, 'regression')
        self.assertGreater(model.score, 0)

        metrics = evaluate_holdout(model, partition.X_holdout, partition.y_holdout)
        self.assertEqual(set(metrics), {'RMSE', 'Rsquared', 'MAE'})
        self.assertTrue(0 <= metrics['Rsquared'] <= 1)

        with self.assertRaises(AttributeError):
            model.predict_proba(partition.X_holdout)

    def test_importance_tree(self):
        """Test importances are scaled to 0-100 and sorted."""
        importance = variable_importance(self.rf)
        self.assertEqual(len(importance), 14)
        self.assertAlmostEqual(importance.iloc[0], 100.0)
        self.assertAlmostEqual(importance.iloc[-1], 0.0)
        self.assertTrue(importance.is_monotonic_decreasing)

    def test_importance_permutation(self):
        knn = train(self.partition.X_train, self.partition.y_train, 'knn', self.plan,
                    tune_grid={'n_neighbors': [7]}, save_predictions=False)
        with self.assertRaises(ValueError):
            variable_importance(knn)

        importance = variable_importance(knn, self.partition.X_train,
                                         self.partition.y_train, random_state=0)
        self.assertEqual(len(importance), 14)


if __name__ == '__main__':
    unittest.main(verbosity=2)
