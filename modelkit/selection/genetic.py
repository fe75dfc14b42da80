"""Genetic algorithm search over predictor subsets.

Each chromosome is a boolean mask over the predictors. A generation is
scored, its best chromosomes pass on unchanged, and the rest of the next
generation is bred by linear-rank selection, single-point crossover and
bit-flip mutation.
"""

import logging
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd

from modelkit.config import GeneticConfig
from modelkit.training.models import ModelRegistry
from modelkit.training.resampling import ResamplingPlan
from modelkit.selection.fitness import SelectionResult, SubsetEvaluator
from modelkit.tracking.logger import log_search_iteration


logger = logging.getLogger(__name__)


def _repair(chromosome: np.ndarray, rng: np.random.RandomState) -> np.ndarray:
    if not chromosome.any():
        chromosome[rng.randint(len(chromosome))] = True
    return chromosome


def initial_population(
    n_features: int,
    population_size: int,
    rng: np.random.RandomState
) -> List[np.ndarray]:
    """Random chromosomes with subset sizes drawn uniformly from 1..n_features."""
    population = []
    for _ in range(population_size):
        size = rng.randint(1, n_features + 1)
        chromosome = np.zeros(n_features, dtype=bool)
        chromosome[rng.choice(n_features, size=size, replace=False)] = True
        population.append(chromosome)
    return population


def rank_probabilities(fitness: np.ndarray) -> np.ndarray:
    """Linear-rank selection probabilities (the worst chromosome has rank 1)."""
    ranks = np.empty(len(fitness))
    ranks[np.argsort(fitness, kind='stable')] = np.arange(1, len(fitness) + 1)
    return ranks / ranks.sum()


def crossover(
    parent_a: np.ndarray,
    parent_b: np.ndarray,
    rng: np.random.RandomState
) -> List[np.ndarray]:
    """Single-point crossover; chromosomes of one gene are copied."""
    if len(parent_a) < 2:
        return [parent_a.copy(), parent_b.copy()]
    point = rng.randint(1, len(parent_a))
    return [
        np.concatenate([parent_a[:point], parent_b[point:]]),
        np.concatenate([parent_b[:point], parent_a[point:]])
    ]


def mutate(chromosome: np.ndarray, rng: np.random.RandomState) -> np.ndarray:
    """Flip one random gene."""
    mutant = chromosome.copy()
    gene = rng.randint(len(mutant))
    mutant[gene] = not mutant[gene]
    return mutant


def genetic_algorithm_selection(
    X: pd.DataFrame,
    y: pd.Series,
    method: str,
    plan: ResamplingPlan,
    config: Optional[GeneticConfig] = None,
    model_params: Optional[Dict[str, Any]] = None,
    random_state: Optional[int] = None,
    registry: Optional[ModelRegistry] = None,
    refit: bool = True,
    evaluator: Optional[SubsetEvaluator] = None
) -> SelectionResult:
    """Search predictor subsets with a genetic algorithm.

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
    config : GeneticConfig, optional
        Generations, population size, crossover and mutation probabilities,
        elite count.
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
        History has one row per generation.

    Raises
    ------
    AssertionError
        If the config is invalid.
    """
    config = config if config is not None else GeneticConfig()
    config.validate()
    if evaluator is None:
        evaluator = SubsetEvaluator(
            X, y, method, plan,
            model_params=model_params,
            random_state=random_state,
            registry=registry
        )

    rng = np.random.RandomState(random_state)
    n_features = evaluator.n_features
    pop_size = config.population_size
    n_elite = config.resolve_elite()

    population = initial_population(n_features, pop_size, rng)
    best, best_score = None, -np.inf

    records = []
    for generation in range(1, config.generations + 1):
        fitness = np.array([evaluator.evaluate(c) for c in population])
        order = np.argsort(-fitness, kind='stable')

        if fitness[order[0]] > best_score:
            best, best_score = population[order[0]].copy(), fitness[order[0]]
            status = 'improved'
        else:
            status = 'no change'

        records.append({
            'generation': generation,
            'best': evaluator.natural(fitness[order[0]]),
            'mean': float(np.mean([evaluator.natural(f) for f in fitness])),
            'size': int(population[order[0]].sum()),
            'mean_size': float(np.mean([c.sum() for c in population])),
            'overall_best': evaluator.natural(best_score),
            'status': status
        })
        log_search_iteration(
            logger, 'genetic', generation, status,
            f"best {plan.metric.name} {evaluator.natural(fitness[order[0]]):.4f}"
        )

        if generation == config.generations:
            break

        next_population = [population[i].copy() for i in order[:n_elite]]
        probs = rank_probabilities(fitness)
        while len(next_population) < pop_size:
            a, b = rng.choice(pop_size, size=2, replace=True, p=probs)
            if rng.random_sample() < config.crossover_prob:
                children = crossover(population[a], population[b], rng)
            else:
                children = [population[a].copy(), population[b].copy()]
            for child in children:
                if rng.random_sample() < config.mutation_prob:
                    child = mutate(child, rng)
                next_population.append(_repair(child, rng))
        population = next_population[:pop_size]

    history = pd.DataFrame(records)
    logger.info(
        f"Genetic algorithm ({method}): {int(best.sum())} of {n_features} variables, "
        f"{plan.metric.name} {evaluator.natural(best_score):.4f}"
    )
    return evaluator.result('genetic', best, history, refit=refit)
