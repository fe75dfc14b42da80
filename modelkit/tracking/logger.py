"""Structured logging utilities for the modeling workflow.

This module provides the logger setup and the helpers the workflow uses to
report phases, metrics and search progress.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union


def setup_logger(
    name: str = 'modelkit',
    level: Union[int, str] = logging.INFO,
    log_file: Optional[Path] = None
) -> logging.Logger:
    """Setup a logger with consistent formatting.

    Parameters
    ----------
    name : str, default='modelkit'
        Logger name. Module loggers under this name propagate to it.
    level : int or str, default=logging.INFO
        Logging level.
    log_file : Path, optional
        Path to log file. If provided, logs will be written to both console and file.
        File will be overwritten (mode='w') to start fresh each run.

    Returns
    -------
    logger : logging.Logger
        Configured logger instance.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Clear any existing handlers to start fresh
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    # Format: [2025-12-10 10:30:45] INFO: Message
    formatter = logging.Formatter(
        '[%(asctime)s] %(levelname)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode='w')
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def log_phase_start(logger: logging.Logger, phase_name: str, details: str = "") -> None:
    """Log the start of a workflow stage.

    Parameters
    ----------
    logger : logging.Logger
        Logger instance.
    phase_name : str
        Name of the stage.
    details : str, optional
        Additional details.
    """
    separator = "=" * 80
    logger.info(separator)
    logger.info(f"{phase_name.upper()}")
    if details:
        logger.info(details)
    logger.info(separator)


def log_phase_end(logger: logging.Logger, phase_name: str, elapsed_time: float = None) -> None:
    """Log the end of a workflow stage, with its wall time if given."""
    separator = "=" * 80
    logger.info(separator)
    msg = f"{phase_name.upper()} COMPLETE"
    if elapsed_time is not None:
        msg += f" ({elapsed_time:.1f}s)"
    logger.info(msg)
    logger.info(separator)


def log_search_iteration(
    logger: logging.Logger,
    search: str,
    iteration: int,
    status: str,
    reason: str = ""
) -> None:
    """Log one iteration (or generation) of a feature-selection search.

    Parameters
    ----------
    logger : logging.Logger
        Logger instance.
    search : str
        Search name ('annealing', 'genetic').
    iteration : int
        Iteration or generation number.
    status : str
        Outcome of the iteration ('improved', 'accepted', ...).
    reason : str, optional
        Acceptance/rejection reason or score.
    """
    msg = f"{search} {iteration}: {status.upper()}"
    if reason:
        msg += f" - {reason}"
    logger.debug(msg)


def log_performance_metrics(
    logger: logging.Logger,
    metrics: Dict[str, Any],
    prefix: str = ""
) -> None:
    """Log performance metrics in a structured way.

    Non-scalar values (confusion matrices, tables) are logged line by line.

    Parameters
    ----------
    logger : logging.Logger
        Logger instance.
    metrics : dict
        Dictionary of metric name to value.
    prefix : str, optional
        Prefix for log messages.
    """
    if prefix:
        logger.info(f"{prefix}:")

    for name, value in metrics.items():
        if isinstance(value, float):
            logger.info(f"  {name}: {value:.6f}")
        elif hasattr(value, 'to_string'):
            logger.info(f"  {name}:")
            for line in value.to_string().splitlines():
                logger.info(f"    {line}")
        else:
            logger.info(f"  {name}: {value}")


def log_warning(logger: logging.Logger, message: str) -> None:
    """Log a warning message."""
    logger.warning(f"⚠️  {message}")


def log_success(logger: logging.Logger, message: str) -> None:
    """Log a success message."""
    logger.info(f"✓ {message}")
