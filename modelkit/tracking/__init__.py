"""Tracking and monitoring utilities.

This subpackage handles structured logging of workflow stages, metrics and
feature-selection progress.
"""

from .logger import (
    setup_logger,
    log_phase_start,
    log_phase_end,
    log_search_iteration,
    log_performance_metrics,
    log_warning,
    log_success
)

__all__ = [
    'setup_logger',
    'log_phase_start',
    'log_phase_end',
    'log_search_iteration',
    'log_performance_metrics',
    'log_warning',
    'log_success'
]
