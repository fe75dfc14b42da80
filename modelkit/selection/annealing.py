"""Simulated annealing search over predictor subsets.

The search keeps one current subset. Each iteration flips a few variables
in or out, scores the candidate, and moves to it when the acceptance
criterion agrees. After `improve` iterations without a new best subset the
search restarts from the best subset found so far.
"""

import logging
from typing import Any, Dict, Optional

import numpy as np
import pandas as pd

from modelkit.config import AnnealingConfig
from modelkit.training.models import ModelRegistry
from modelkit.training.resampling import ResamplingPlan
from modelkit.selection.acceptance import AcceptanceCriterion
from modelkit.selection.fitness import SelectionResult, SubsetEvaluator
from modelkit.tracking.logger import log_search_iteration


logger = logging.getLogger(__name__)


def initial_subset(n_features: int, prob: float, rng: np.random.RandomState) -> np.ndarray:
    """Random subset including each variable with probability `prob` (never empty)."""
    mask = rng.random_sample(n_features) < prob
    if not mask.any():
        mask[rng.randint(n_features)] = True
    return mask


def perturb(mask: np.ndarray, n_flips: int, rng: np.random.RandomState) -> np.ndarray:
    """Flip `n_flips` distinct variables of a subset (never returns an empty one)."""
    candidate = mask.copy()
    flips = rng.choice(len(mask), size=min(n_flips, len(mask)), replace=False)
    candidate[flips] = ~candidate[flips]
    if not candidate.any():
        candidate[rng.randint(len(mask))] = True
    return candidate


def simulated_annealing_selection(
    X: pd.DataFrame,
    y: pd.Series,
    method: str,
    plan: ResamplingPlan,
    config: Optional[AnnealingConfig] = None,
    model_params: Optional[Dict[str, Any]] = None,
    random_state: Optional[int] = None,
    registry: Optional[ModelRegistry] = None,
    refit: bool = True,
    evaluator: Optional[SubsetEvaluator] = None
) -> SelectionResult:
    """Search predictor subsets by simulated annealing.

    Parameters
    ----------
    X : pd.DataFrame
        Training predictors.
    y : pd.Series
        Training outcome.
    method : str
        Model family scored on each subset.
    plan : ResamplingPlan
        Folds every subset is scored over.
    config : AnnealingConfig, optional
        Iterations, restart patience, initial inclusion probability and
        perturbation size.
    model_params : dict, optional
        Fixed parameters of the model family.
    random_state : int, optional
        Seed for the search and the model. Equal seeds and limits give
        identical selections.
    registry : ModelRegistry, optional
        Registry to build from.
    refit : bool, default=True
        Fit the family on the selected variables.
    evaluator : SubsetEvaluator, optional
        Evaluator to share a score cache with other searches.

    Returns
    -------
    result : SelectionResult
        History has one row per iteration.

    Raises
    ------
    AssertionError
        If the config is invalid.
    """
    config = config if config is not None else AnnealingConfig()
    config.validate()
    if evaluator is None:
        evaluator = SubsetEvaluator(
            X, y, method, plan,
            model_params=model_params,
            random_state=random_state,
            registry=registry
        )

    rng = np.random.RandomState(random_state)
    criterion = AcceptanceCriterion(random_state=rng.randint(2**31 - 1))
    n_features = evaluator.n_features
    n_flips = max(1, int(np.floor(n_features * config.perturb_fraction)))

    current = initial_subset(n_features, config.initial_prob, rng)
    current_score = evaluator.evaluate(current)
    best, best_score = current.copy(), current_score
    last_best = 0

    records = []
    for iteration in range(1, config.iterations + 1):
        candidate = perturb(current, n_flips, rng)
        candidate_score = evaluator.evaluate(candidate)

        accepted, reason = criterion.should_accept(current_score, candidate_score, iteration)
        if candidate_score > best_score:
            status = 'improved'
        elif accepted:
            status = 'accepted'
        else:
            status = 'discarded'

        records.append({
            'iteration': iteration,
            'size': int(candidate.sum()),
            'score': evaluator.natural(candidate_score),
            'current': evaluator.natural(current_score),
            'best': evaluator.natural(max(best_score, candidate_score)),
            'probability': criterion.acceptance_probability(
                current_score, candidate_score, iteration
            ),
            'status': status
        })
        log_search_iteration(logger, 'annealing', iteration, status, reason)

        if accepted:
            current, current_score = candidate, candidate_score
        if candidate_score > best_score:
            best, best_score = candidate.copy(), candidate_score
            last_best = iteration

        if iteration - last_best >= config.improve:
            current, current_score = best.copy(), best_score
            last_best = iteration
            records[-1]['status'] = 'restart'
            logger.debug(f"Restarting from best subset at iteration {iteration}")

    history = pd.DataFrame(records)
    logger.info(
        f"Annealing ({method}): {int(best.sum())} of {n_features} variables, "
        f"{plan.metric.name} {evaluator.natural(best_score):.4f}"
    )
    return evaluator.result('annealing', best, history, refit=refit)
