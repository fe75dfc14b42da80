"""Unit tests for wrapper feature selection.

This test suite validates subset scoring, the acceptance rule and the
recursive-elimination, simulated-annealing and genetic searches.
"""

import unittest
import sys
from pathlib import Path
import numpy as np

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from modelkit.config import ResamplingConfig, AnnealingConfig, GeneticConfig
from modelkit.data import two_class_sim, DataPartition
from modelkit.selection import (
    SelectionResult, SubsetEvaluator, AcceptanceCriterion,
    recursive_feature_elimination, simulated_annealing_selection,
    genetic_algorithm_selection
)
from modelkit.selection.annealing import initial_subset, perturb
from modelkit.selection.genetic import (
    initial_population, rank_probabilities, crossover, mutate
)
from modelkit.training import build_resampling_plan


RF_PARAMS = {'n_estimators': 10}


def make_data(random_state=11):
    data = two_class_sim(n=200, linear_vars=2, noise_vars=4, corr_vars=3,
                         random_state=random_state)
    partition = DataPartition(data, 'Class', random_state=random_state)
    plan = build_resampling_plan(
        ResamplingConfig(method='cv', number=3), partition.y_train, random_state=random_state
    )
    return partition.X_train, partition.y_train, plan


class TestSubsetEvaluator(unittest.TestCase):
    """Test cached subset scoring."""

    @classmethod
    def setUpClass(cls):
        cls.X, cls.y, cls.plan = make_data()

    def setUp(self):
        self.evaluator = SubsetEvaluator(self.X, self.y, 'glm', self.plan)

    def test_cached(self):
        """Test a subset is only scored once."""
        mask = np.zeros(14, dtype=bool)
        mask[:3] = True
        first = self.evaluator.evaluate(mask)
        second = self.evaluator.evaluate(mask.copy())

        self.assertEqual(first, second)
        self.assertEqual(self.evaluator.n_evaluations, 1)

    def test_empty_subset(self):
        with self.assertRaises(ValueError):
            self.evaluator.evaluate(np.zeros(14, dtype=bool))

    def test_wrong_length(self):
        with self.assertRaises(ValueError):
            self.evaluator.evaluate(np.ones(5, dtype=bool))

    def test_variables(self):
        mask = np.zeros(14, dtype=bool)
        mask[[0, 1]] = True
        self.assertEqual(self.evaluator.variables(mask), ['TwoFactor1', 'TwoFactor2'])

    def test_needs_folds(self):
        plan = build_resampling_plan(ResamplingConfig(method='none'), self.y)
        with self.assertRaises(ValueError):
            SubsetEvaluator(self.X, self.y, 'glm', plan)


class TestAcceptanceCriterion(unittest.TestCase):
    """Test AcceptanceCriterion functionality."""

    def setUp(self):
        self.criterion = AcceptanceCriterion(random_state=42)

    def test_accept_improvement(self):
        accept, reason = self.criterion.should_accept(0.80, 0.85, iteration=1)
        self.assertTrue(accept)
        self.assertIn("Improvement", reason)

    def test_accept_equal(self):
        accept, _ = self.criterion.should_accept(0.80, 0.80, iteration=5)
        self.assertTrue(accept)

    def test_probability(self):
        """Test the acceptance probability shrinks with the iteration."""
        p1 = AcceptanceCriterion.acceptance_probability(0.80, 0.76, 1)
        p5 = AcceptanceCriterion.acceptance_probability(0.80, 0.76, 5)

        self.assertAlmostEqual(p1, np.exp(-0.05))
        self.assertAlmostEqual(p5, np.exp(-0.25))
        self.assertLess(p5, p1)
        self.assertEqual(AcceptanceCriterion.acceptance_probability(0.8, 0.9, 3), 1.0)

    def test_negative_scores(self):
        """Test error metrics (negated) use the absolute current score."""
        p = AcceptanceCriterion.acceptance_probability(-2.0, -2.2, 1)
        self.assertAlmostEqual(p, np.exp(-0.1))

    def test_invalid_iteration(self):
        with self.assertRaises(ValueError):
            AcceptanceCriterion.acceptance_probability(0.8, 0.7, 0)

    def test_large_loss_rejected(self):
        accept, reason = self.criterion.should_accept(0.90, 0.10, iteration=50)
        self.assertFalse(accept)
        self.assertIn("Rejected", reason)


class TestSearchOperators(unittest.TestCase):
    """Test perturbation and genetic operators."""

    def setUp(self):
        self.rng = np.random.RandomState(0)

    def test_initial_subset_never_empty(self):
        for _ in range(20):
            self.assertTrue(initial_subset(5, 0.01, self.rng).any())

    def test_perturb_flips(self):
        mask = np.array([True, False, True, False, True, False])
        candidate = perturb(mask, 2, self.rng)
        self.assertEqual(int((candidate != mask).sum()), 2)

    def test_perturb_never_empty(self):
        mask = np.array([True, False, False])
        for _ in range(20):
            self.assertTrue(perturb(mask, 1, self.rng).any())

    def test_initial_population(self):
        population = initial_population(8, 6, self.rng)
        self.assertEqual(len(population), 6)
        self.assertTrue(all(c.any() for c in population))

    def test_rank_probabilities(self):
        probs = rank_probabilities(np.array([0.5, 0.9, 0.7]))
        np.testing.assert_allclose(probs, [1 / 6, 3 / 6, 2 / 6])

    def test_crossover(self):
        a = np.ones(6, dtype=bool)
        b = np.zeros(6, dtype=bool)
        child_a, child_b = crossover(a, b, self.rng)
        self.assertEqual(int(child_a.sum() + child_b.sum()), 6)
        self.assertTrue(child_a[0])
        self.assertFalse(child_a[-1])

    def test_mutate(self):
        chromosome = np.zeros(6, dtype=bool)
        self.assertEqual(int(mutate(chromosome, self.rng).sum()), 1)
        self.assertFalse(chromosome.any())


class TestRecursiveFeatureElimination(unittest.TestCase):
    """Test the exhaustive-by-size search."""

    @classmethod
    def setUpClass(cls):
        cls.X, cls.y, cls.plan = make_data()
        cls.result = recursive_feature_elimination(
            cls.X, cls.y, 'rf', cls.plan, model_params=RF_PARAMS, random_state=1
        )

    def test_every_size_scored(self):
        """Test sizes 1..14 are all evaluated."""
        history = self.result.history
        self.assertEqual(list(history['size']), list(range(1, 15)))
        self.assertFalse(history['ROC'].isna().any())

    def test_one_size_selected(self):
        """Test a single size is chosen along with its variables."""
        self.assertIsInstance(self.result, SelectionResult)
        self.assertEqual(int(self.result.history['selected'].sum()), 1)
        chosen = int(self.result.history.loc[self.result.history['selected'], 'size'].iloc[0])
        self.assertEqual(self.result.selected_size, chosen)
        self.assertTrue(set(self.result.selected_variables) <= set(self.X.columns))

    def test_refit(self):
        self.assertEqual(self.result.model.feature_names, self.result.selected_variables)
        self.assertIn("rfe", self.result.summary())

    def test_score_matches_selected_size(self):
        """Test the reported score is the resampled estimate of the chosen size."""
        history = self.result.history
        selected_score = float(history.loc[history['selected'], 'ROC'].iloc[0])
        self.assertAlmostEqual(self.result.score, selected_score)
        self.assertAlmostEqual(self.result.score, history['ROC'].max())
        self.assertEqual(self.result.n_evaluations, 14)


class TestStochasticSearches(unittest.TestCase):
    """Test the annealing and genetic searches."""

    @classmethod
    def setUpClass(cls):
        cls.X, cls.y, cls.plan = make_data()

    def test_annealing(self):
        config = AnnealingConfig(iterations=6, improve=3)
        result = simulated_annealing_selection(
            self.X, self.y, 'glm', self.plan, config=config, random_state=5, refit=False
        )
        self.assertEqual(len(result.history), 6)
        self.assertGreater(result.selected_size, 0)
        self.assertAlmostEqual(result.score, result.history['best'].max())
        self.assertIsNone(result.model)

    def test_annealing_reproducible(self):
        """Test equal seeds and limits select identical subsets."""
        config = AnnealingConfig(iterations=5, improve=2)
        a = simulated_annealing_selection(self.X, self.y, 'glm', self.plan, config=config,
                                          random_state=9, refit=False)
        b = simulated_annealing_selection(self.X, self.y, 'glm', self.plan, config=config,
                                          random_state=9, refit=False)
        self.assertEqual(a.selected_variables, b.selected_variables)
        self.assertTrue(a.history.equals(b.history))

    def test_genetic(self):
        config = GeneticConfig(generations=3, population_size=6)
        result = genetic_algorithm_selection(
            self.X, self.y, 'glm', self.plan, config=config, random_state=5
        )
        self.assertEqual(list(result.history['generation']), [1, 2, 3])
        self.assertGreater(result.selected_size, 0)
        self.assertAlmostEqual(result.score, result.history['overall_best'].iloc[-1])
        self.assertEqual(result.model.feature_names, result.selected_variables)

    def test_genetic_elitism(self):
        """Test the best score never drops between generations."""
        config = GeneticConfig(generations=4, population_size=6, elite=1)
        result = genetic_algorithm_selection(self.X, self.y, 'glm', self.plan,
                                             config=config, random_state=2, refit=False)
        best = result.history['best'].to_numpy()
        self.assertTrue(np.all(np.diff(best) >= -1e-12))

    def test_genetic_reproducible(self):
        """Test equal seeds and limits select identical subsets."""
        config = GeneticConfig(generations=3, population_size=6)
        a = genetic_algorithm_selection(self.X, self.y, 'rf', self.plan, config=config,
                                        model_params=RF_PARAMS, random_state=4, refit=False)
        b = genetic_algorithm_selection(self.X, self.y, 'rf', self.plan, config=config,
                                        model_params=RF_PARAMS, random_state=4, refit=False)
        self.assertEqual(a.selected_variables, b.selected_variables)

    def test_invalid_config(self):
        """Test searches reject configs that cannot run."""
        with self.assertRaises(AssertionError):
            genetic_algorithm_selection(self.X, self.y, 'glm', self.plan,
                                        config=GeneticConfig(generations=0, population_size=4),
                                        refit=False)
        with self.assertRaises(AssertionError):
            simulated_annealing_selection(self.X, self.y, 'glm', self.plan,
                                          config=AnnealingConfig(iterations=0), refit=False)

    def test_shared_evaluator(self):
        """Test searches sharing an evaluator reuse cached scores."""
        evaluator = SubsetEvaluator(self.X, self.y, 'glm', self.plan)
        simulated_annealing_selection(self.X, self.y, 'glm', self.plan,
                                      config=AnnealingConfig(iterations=3),
                                      random_state=1, refit=False, evaluator=evaluator)
        seen = evaluator.n_evaluations
        result = simulated_annealing_selection(self.X, self.y, 'glm', self.plan,
                                               config=AnnealingConfig(iterations=3),
                                               random_state=1, refit=False,
                                               evaluator=evaluator)
        self.assertEqual(evaluator.n_evaluations, seen)
        self.assertEqual(result.n_evaluations, seen)


if __name__ == '__main__':
    unittest.main(verbosity=2)
