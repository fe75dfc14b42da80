"""Worker pool for fold-level parallelism.

scikit-learn fans resampling folds out through joblib. worker_pool() sets
joblib's default worker count for everything run inside it, so GridSearchCV,
cross_val_score and RFECV spread their folds without per-call n_jobs.
"""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

import psutil
from joblib import parallel_config


logger = logging.getLogger(__name__)


def resolve_worker_count(n_workers: Optional[int] = None) -> int:
    """Number of worker processes to use.

    Parameters
    ----------
    n_workers : int, optional
        Requested workers. None means one per physical core.

    Returns
    -------
    n_workers : int
        At least 1.

    Raises
    ------
    ValueError
        If n_workers is given and not positive.
    """
    if n_workers is not None:
        if n_workers < 1:
            raise ValueError(f"n_workers must be positive, got {n_workers}")
        return n_workers

    cores = psutil.cpu_count(logical=False) or psutil.cpu_count(logical=True) or 1
    return max(1, cores)


@contextmanager
def worker_pool(
    n_workers: Optional[int] = None,
    backend: str = 'loky',
    enabled: bool = True
) -> Iterator[int]:
    """Run the enclosed block with a joblib worker pool.

    Yields:
        The worker count in effect (1 when disabled)

    Example:
        >>> with worker_pool(4) as n_jobs:
        ...     model = train(X, y, 'rf', plan)
    """
    if not enabled:
        yield 1
        return

    n_jobs = resolve_worker_count(n_workers)
    logger.info(f"Using {n_jobs} {backend} workers")
    with parallel_config(backend=backend, n_jobs=n_jobs):
        yield n_jobs
