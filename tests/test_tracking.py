"""Unit tests for logging utilities and the worker pool."""

import unittest
import sys
import logging
import tempfile
from pathlib import Path

import pandas as pd
from joblib import Parallel, delayed

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from modelkit.tracking import (
    setup_logger, log_phase_start, log_phase_end, log_search_iteration,
    log_performance_metrics, log_warning, log_success
)
from modelkit.parallel import resolve_worker_count, worker_pool


class TestLogger(unittest.TestCase):
    """Test logger setup and utilities."""

    def test_logger_setup(self):
        """Test logger can be set up."""
        logger = setup_logger(name='test_logger', level=logging.INFO)

        self.assertIsInstance(logger, logging.Logger)
        self.assertGreater(len(logger.handlers), 0)

    def test_no_duplicate_handlers(self):
        """Test that multiple setups don't create duplicate handlers."""
        logger1 = setup_logger(name='test_logger2', level=logging.INFO)
        initial_handlers = len(logger1.handlers)

        logger2 = setup_logger(name='test_logger2', level=logging.INFO)
        final_handlers = len(logger2.handlers)

        self.assertEqual(initial_handlers, final_handlers)

    def test_string_level(self):
        logger = setup_logger(name='test_logger3', level='DEBUG')
        self.assertEqual(logger.level, logging.DEBUG)

    def test_log_file(self):
        """Test messages reach the log file."""
        log_file = Path(tempfile.mkdtemp()) / 'nested' / 'run.log'
        logger = setup_logger(name='test_file_logger', level=logging.DEBUG, log_file=log_file)

        log_phase_start(logger, "Training models", "glm, rf")
        log_performance_metrics(logger, {
            'ROC': 0.91234567,
            'n': 10,
            'confusion_matrix': pd.DataFrame([[5, 1], [2, 4]])
        }, prefix="rf holdout")
        log_search_iteration(logger, 'annealing', 3, 'improved', 'Improvement: 0.9 > 0.8')
        log_warning(logger, "drift")
        log_success(logger, "done")
        log_phase_end(logger, "Training models", 1.5)

        for handler in logger.handlers:
            handler.flush()
        text = log_file.read_text()

        self.assertIn("TRAINING MODELS", text)
        self.assertIn("ROC: 0.912346", text)
        self.assertIn("annealing 3: IMPROVED", text)
        self.assertIn("WARNING", text)
        self.assertIn("TRAINING MODELS COMPLETE (1.5s)", text)

        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)


class TestWorkerPool(unittest.TestCase):
    """Test worker pool configuration."""

    def test_resolve_explicit(self):
        self.assertEqual(resolve_worker_count(3), 3)

    def test_resolve_default(self):
        self.assertGreaterEqual(resolve_worker_count(), 1)

    def test_resolve_invalid(self):
        with self.assertRaises(ValueError):
            resolve_worker_count(0)

    def test_pool_sets_default_jobs(self):
        """Test joblib runs inside the pool."""
        with worker_pool(2, backend='threading') as n_jobs:
            self.assertEqual(n_jobs, 2)
            results = Parallel()(delayed(abs)(-i) for i in range(4))
        self.assertEqual(results, [0, 1, 2, 3])

    def test_disabled_pool(self):
        with worker_pool(4, enabled=False) as n_jobs:
            self.assertEqual(n_jobs, 1)


if __name__ == '__main__':
    unittest.main(verbosity=2)
