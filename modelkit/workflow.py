"""End-to-end modeling workflow.

Runs the six stages in order: simulate data, partition it, build the
resampling plan, train and evaluate the configured model families, combine
several of them into an ensemble, and search predictor subsets.
"""

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

import pandas as pd

from modelkit.config import WorkflowConfig
from modelkit.data.simulation import regression_sim, two_class_sim
from modelkit.data.splits import DataPartition
from modelkit.ensemble.combiner import ModelEnsemble
from modelkit.ensemble.diversity import model_correlation
from modelkit.ensemble.model_list import ModelList, train_model_list
from modelkit.parallel import worker_pool
from modelkit.selection.annealing import simulated_annealing_selection
from modelkit.selection.fitness import SelectionResult, SubsetEvaluator
from modelkit.selection.genetic import genetic_algorithm_selection
from modelkit.selection.rfe import recursive_feature_elimination
from modelkit.tracking.logger import (
    log_performance_metrics, log_phase_end, log_phase_start, log_success,
    log_warning, setup_logger
)
from modelkit.training.evaluation import evaluate_holdout, variable_importance
from modelkit.training.models import ModelRegistry
from modelkit.training.resampling import ResamplingPlan, build_resampling_plan
from modelkit.training.trainer import FittedModel, resamples, train


@dataclass
class WorkflowResult:
    """Everything the workflow produced.

    Attributes:
        data: Simulated dataset
        partition: Train/holdout split
        plan: Resampling plan shared by every model
        models: Individually trained model families
        holdout_metrics: Holdout evaluation per model (and 'ensemble')
        importance: Scaled variable importance per model
        resample_table: Per-resample scores of the individual models
        ensemble: Fitted ensemble (None if disabled)
        selection: Feature-selection results keyed by search name
    """
    data: pd.DataFrame
    partition: DataPartition
    plan: ResamplingPlan
    models: Dict[str, FittedModel] = field(default_factory=dict)
    holdout_metrics: Dict[str, dict] = field(default_factory=dict)
    importance: Dict[str, pd.Series] = field(default_factory=dict)
    resample_table: Optional[pd.DataFrame] = None
    ensemble: Optional[ModelEnsemble] = None
    selection: Dict[str, SelectionResult] = field(default_factory=dict)


def simulate(config: WorkflowConfig) -> pd.DataFrame:
    """Simulate the dataset the workflow models."""
    sim = config.simulation
    if config.modeling.task == 'classification':
        return two_class_sim(
            n=sim.n_samples,
            intercept=sim.intercept,
            linear_vars=sim.linear_vars,
            noise_vars=sim.noise_vars,
            corr_vars=sim.corr_vars,
            corr_type=sim.corr_type,
            corr_value=sim.corr_value,
            mislabel=sim.mislabel,
            random_state=config.random_state,
            label=config.label
        )
    return regression_sim(
        n=sim.n_samples,
        noise_vars=sim.noise_vars,
        corr_vars=sim.corr_vars,
        corr_type=sim.corr_type,
        corr_value=sim.corr_value,
        random_state=config.random_state,
        label=config.label
    )


def run_workflow(
    config: Optional[WorkflowConfig] = None,
    logger: Optional[logging.Logger] = None
) -> WorkflowResult:
    """Run every enabled stage of the workflow.

    Parameters
    ----------
    config : WorkflowConfig, optional
        Workflow configuration (defaults if None). Validated before use.
    logger : logging.Logger, optional
        Logger for stage reports. Configured from config.tracking if None.

    Returns
    -------
    result : WorkflowResult
    """
    config = config if config is not None else WorkflowConfig()
    config.validate()

    if logger is None:
        tracking = config.tracking
        log_file = None
        if tracking.log_to_file:
            log_file = Path(tracking.log_directory) / 'workflow.log'
        logger = setup_logger('modelkit', level=tracking.log_level, log_file=log_file)

    logger.info(config.summary())
    registry = ModelRegistry(config.modeling)
    seed = config.random_state

    with worker_pool(
        config.parallel.n_workers,
        backend=config.parallel.backend,
        enabled=config.parallel.enabled
    ):
        # Stage 1: simulate
        log_phase_start(logger, "Simulating data")
        data = simulate(config)
        logger.info(f"Simulated {data.shape[0]} rows x {data.shape[1] - 1} predictors")

        # Stage 2: partition
        log_phase_start(logger, "Partitioning data")
        partition = DataPartition(data, config.label, p=config.partition.train_fraction,
                                  random_state=seed)
        logger.info(partition.summary())
        drift = partition.max_proportion_drift()
        if drift > config.partition.stratification_tolerance:
            log_warning(logger, f"Class proportions drift by {drift:.3f} between subsets")

        X_train, y_train = partition.X_train, partition.y_train
        X_holdout, y_holdout = partition.X_holdout, partition.y_holdout

        # Stage 3: resampling plan
        log_phase_start(logger, "Resampling plan")
        plan = build_resampling_plan(config.resampling, y_train, random_state=seed)
        logger.info(plan.summary())

        result = WorkflowResult(data=data, partition=partition, plan=plan)

        # Stage 4: individual models
        start = time.time()
        log_phase_start(logger, "Training models", ', '.join(config.modeling.methods))
        for method in config.modeling.methods:
            model = train(
                X_train, y_train, method, plan,
                preprocess=config.preprocess,
                tune_length=config.modeling.tune_length,
                random_state=seed,
                registry=registry
            )
            result.models[method] = model
            logger.info(model.summary())

            metrics = evaluate_holdout(model, X_holdout, y_holdout)
            result.holdout_metrics[method] = metrics
            log_performance_metrics(logger, metrics, prefix=f"{method} holdout")

            result.importance[method] = variable_importance(
                model, X_train, y_train, random_state=seed
            )

        if plan.method != 'none' and len(result.models) > 1:
            result.resample_table = resamples(result.models)
        log_phase_end(logger, "Training models", time.time() - start)

        # Stage 5: ensemble
        if config.ensemble.enabled:
            start = time.time()
            log_phase_start(logger, "Ensemble", ', '.join(config.ensemble.methods))
            result.ensemble = _run_ensemble(
                config, plan, partition, registry, logger, fitted=result.models
            )
            result.holdout_metrics['ensemble'] = evaluate_holdout(
                result.ensemble, X_holdout, y_holdout
            )
            log_performance_metrics(
                logger, result.holdout_metrics['ensemble'], prefix="ensemble holdout"
            )
            log_phase_end(logger, "Ensemble", time.time() - start)

        # Stage 6: feature selection
        if config.feature_selection.enabled:
            start = time.time()
            log_phase_start(logger, "Feature selection", config.feature_selection.model)
            result.selection = _run_selection(config, X_train, y_train, registry, logger)
            log_phase_end(logger, "Feature selection", time.time() - start)

    log_success(logger, "Workflow complete")
    return result


def _run_ensemble(
    config: WorkflowConfig,
    plan: ResamplingPlan,
    partition: DataPartition,
    registry: ModelRegistry,
    logger: logging.Logger,
    fitted: Optional[Dict[str, FittedModel]] = None
) -> ModelEnsemble:
    if plan.method == 'none':
        raise ValueError("The ensemble stage needs a resampling plan with folds")

    members: ModelList = train_model_list(
        partition.X_train, partition.y_train, config.ensemble.methods, plan,
        preprocess=config.preprocess,
        tune_length=config.modeling.tune_length,
        random_state=config.random_state,
        registry=registry,
        fitted=fitted
    )
    logger.info("Member correlation (out-of-fold predictions):")
    for line in model_correlation(members).round(3).to_string().splitlines():
        logger.info(f"  {line}")

    ensemble = ModelEnsemble(
        method=config.ensemble.combiner,
        tune_length=config.modeling.tune_length,
        random_state=config.random_state,
        registry=registry
    ).fit(members, partition.y_train)
    logger.info(ensemble.summary())

    if not ensemble.beats_all_members:
        log_warning(logger, "Ensemble does not beat every member on resampled score")
    return ensemble


def _run_selection(
    config: WorkflowConfig,
    X: pd.DataFrame,
    y: pd.Series,
    registry: ModelRegistry,
    logger: logging.Logger
) -> Dict[str, SelectionResult]:
    fs = config.feature_selection
    seed = config.random_state
    plan = build_resampling_plan(fs.resampling, y, random_state=seed)
    evaluator = SubsetEvaluator(
        X, y, fs.model, plan,
        model_params=fs.model_params,
        random_state=seed,
        registry=registry
    )

    results = {}
    if fs.rfe.enabled:
        results['rfe'] = recursive_feature_elimination(
            X, y, fs.model, plan,
            model_params=fs.model_params,
            random_state=seed,
            registry=registry
        )
    if fs.annealing.enabled:
        results['annealing'] = simulated_annealing_selection(
            X, y, fs.model, plan,
            config=fs.annealing,
            random_state=seed,
            evaluator=evaluator
        )
    if fs.genetic.enabled:
        results['genetic'] = genetic_algorithm_selection(
            X, y, fs.model, plan,
            config=fs.genetic,
            random_state=seed,
            evaluator=evaluator
        )

    for result in results.values():
        logger.info(result.summary())
    return results
