"""Synthetic dataset generators.

Both simulators produce a DataFrame with informative predictors, optional
uninformative noise columns, optional correlated-noise columns and one
outcome column. A fixed random_state reproduces the table exactly.
"""

import logging
from typing import Optional

import numpy as np
import pandas as pd
from scipy.special import expit


logger = logging.getLogger(__name__)


def _column_names(prefix: str, count: int) -> list:
    """Zero-padded column names, e.g. Noise01 .. Noise12."""
    width = max(2, len(str(count)))
    return [f"{prefix}{str(i).zfill(width)}" for i in range(1, count + 1)]


def _correlation_matrix(n_vars: int, corr_type: str, corr_value: float) -> np.ndarray:
    """Build an AR1 or exchangeable correlation matrix."""
    if corr_type == 'AR1':
        lags = np.abs(np.subtract.outer(np.arange(n_vars), np.arange(n_vars)))
        return corr_value ** lags
    if corr_type == 'exch':
        matrix = np.full((n_vars, n_vars), corr_value, dtype=float)
        np.fill_diagonal(matrix, 1.0)
        return matrix
    raise ValueError(f"corr_type must be 'AR1' or 'exch', got {corr_type!r}")


def _validate_counts(n: int, noise_vars: int, corr_vars: int, corr_value: float) -> None:
    if n < 1:
        raise ValueError(f"n must be positive, got {n}")
    if noise_vars < 0 or corr_vars < 0:
        raise ValueError("noise_vars and corr_vars must be non-negative")
    if not -1 < corr_value < 1:
        raise ValueError(f"corr_value must be in (-1, 1), got {corr_value}")


def _add_uninformative(
    data: pd.DataFrame,
    rng: np.random.RandomState,
    noise_vars: int,
    corr_vars: int,
    corr_type: str,
    corr_value: float
) -> pd.DataFrame:
    """Append independent and correlated noise columns."""
    n = len(data)

    if noise_vars > 0:
        noise = rng.normal(size=(n, noise_vars))
        data = pd.concat(
            [data, pd.DataFrame(noise, columns=_column_names('Noise', noise_vars))],
            axis=1
        )

    if corr_vars > 0:
        cov = _correlation_matrix(corr_vars, corr_type, corr_value)
        corr = rng.multivariate_normal(np.zeros(corr_vars), cov, size=n)
        data = pd.concat(
            [data, pd.DataFrame(corr, columns=_column_names('Corr', corr_vars))],
            axis=1
        )

    return data


def two_class_sim(
    n: int = 100,
    intercept: float = -5.0,
    linear_vars: int = 10,
    noise_vars: int = 0,
    corr_vars: int = 0,
    corr_type: str = 'AR1',
    corr_value: float = 0.0,
    mislabel: float = 0.0,
    random_state: Optional[int] = None,
    label: str = 'Class'
) -> pd.DataFrame:
    """Simulate a two-class dataset with known informative structure.

    The class probability comes from a logistic model over two interacting
    factors, a set of linear terms with decreasing, alternating-sign
    coefficients and three nonlinear terms. Noise and correlated columns are
    unrelated to the outcome.

    Parameters
    ----------
    n : int, default=100
        Number of rows.
    intercept : float, default=-5.0
        Intercept of the linear predictor. Lower values make Class2 rarer.
    linear_vars : int, default=10
        Number of informative linear predictors.
    noise_vars : int, default=0
        Number of independent standard normal noise predictors.
    corr_vars : int, default=0
        Number of correlated noise predictors.
    corr_type : {'AR1', 'exch'}, default='AR1'
        Correlation structure of the correlated predictors.
    corr_value : float, default=0.0
        Correlation parameter in (-1, 1).
    mislabel : float, default=0.0
        Fraction of rows in [0, 1] whose class probability is flipped.
    random_state : int, optional
        Seed for reproducible tables.
    label : str, default='Class'
        Name of the outcome column.

    Returns
    -------
    data : pd.DataFrame
        Predictors followed by a categorical outcome with levels Class1/Class2.
    """
    _validate_counts(n, noise_vars, corr_vars, corr_value)
    if linear_vars < 0:
        raise ValueError(f"linear_vars must be non-negative, got {linear_vars}")
    if not 0 <= mislabel <= 1:
        raise ValueError(f"mislabel must be in [0, 1], got {mislabel}")
    if corr_type not in ['AR1', 'exch']:
        raise ValueError(f"corr_type must be 'AR1' or 'exch', got {corr_type!r}")

    rng = np.random.RandomState(random_state)

    sigma = np.array([[2.0, 1.3], [1.3, 2.0]])
    factors = rng.multivariate_normal([0.0, 0.0], sigma, size=n)
    data = pd.DataFrame(factors, columns=['TwoFactor1', 'TwoFactor2'])

    linear_names = _column_names('Linear', linear_vars)
    if linear_vars > 0:
        linear = rng.normal(size=(n, linear_vars))
        data = pd.concat([data, pd.DataFrame(linear, columns=linear_names)], axis=1)

    data['Nonlinear1'] = rng.uniform(-1, 1, size=n)
    data['Nonlinear2'] = rng.uniform(0, 1, size=n)
    data['Nonlinear3'] = rng.uniform(0, 1, size=n)

    lp = (
        intercept
        - 4 * data['TwoFactor1']
        + 4 * data['TwoFactor2']
        + 2 * data['TwoFactor1'] * data['TwoFactor2']
        + data['Nonlinear1'] ** 3
        + 2 * np.exp(-6 * (data['Nonlinear1'] - 0.3) ** 2)
        + 2 * np.sin(np.pi * data['Nonlinear2'] * data['Nonlinear3'])
    )

    if linear_vars > 0:
        coefs = np.linspace(10, 1, linear_vars) / 4
        signs = np.resize([-1, 1], linear_vars)
        lp = lp + data[linear_names].to_numpy() @ (coefs * signs)

    data = _add_uninformative(data, rng, noise_vars, corr_vars, corr_type, corr_value)

    prob = expit(lp.to_numpy())

    n_flip = int(np.floor(n * mislabel))
    if n_flip > 0:
        flipped = rng.choice(n, size=n_flip, replace=False)
        prob[flipped] = 1 - prob[flipped]

    outcome = np.where(prob <= rng.uniform(size=n), 'Class1', 'Class2')
    data[label] = pd.Categorical(outcome, categories=['Class1', 'Class2'])

    logger.debug(
        f"Simulated {n} rows, {data.shape[1] - 1} predictors, "
        f"{n_flip} mislabeled, Class1 rate {np.mean(outcome == 'Class1'):.3f}"
    )

    return data


def regression_sim(
    n: int = 100,
    noise_vars: int = 0,
    corr_vars: int = 0,
    corr_type: str = 'AR1',
    corr_value: float = 0.0,
    random_state: Optional[int] = None,
    label: str = 'y'
) -> pd.DataFrame:
    """Simulate a regression dataset with 20 informative predictors.

    Predictors Var01..Var20 are N(0, 9). The response mixes linear,
    polynomial, trigonometric, interaction and step terms of those
    predictors, plus N(0, 9) error.

    Parameters
    ----------
    n : int, default=100
        Number of rows.
    noise_vars, corr_vars, corr_type, corr_value
        Uninformative columns, as in two_class_sim.
    random_state : int, optional
        Seed for reproducible tables.
    label : str, default='y'
        Name of the outcome column.

    Returns
    -------
    data : pd.DataFrame
        Predictors followed by the numeric outcome.
    """
    _validate_counts(n, noise_vars, corr_vars, corr_value)
    if corr_type not in ['AR1', 'exch']:
        raise ValueError(f"corr_type must be 'AR1' or 'exch', got {corr_type!r}")

    rng = np.random.RandomState(random_state)

    x = rng.normal(scale=3, size=(n, 20))
    data = pd.DataFrame(x, columns=_column_names('Var', 20))

    # x[:, k] is Var(k+1)
    signal = (
        x[:, 0]
        + np.sin(x[:, 1])
        + np.log(np.abs(x[:, 2]))
        + x[:, 3] ** 2
        + x[:, 4] * x[:, 5]
        + (x[:, 6] * x[:, 7] * x[:, 8] < 0)
        + (x[:, 9] > 0)
        + x[:, 10] * (x[:, 10] > 0)
        + np.sqrt(np.abs(x[:, 11]))
        + np.cos(x[:, 12])
        + 2 * x[:, 13]
        + np.abs(x[:, 14])
        + (x[:, 15] < -1)
        + x[:, 16] * (x[:, 16] < -1)
        - 2 * x[:, 17]
        - x[:, 18] * x[:, 19]
    )

    data = _add_uninformative(data, rng, noise_vars, corr_vars, corr_type, corr_value)
    data[label] = signal + rng.normal(scale=3, size=n)

    return data
