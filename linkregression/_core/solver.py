"""
Coefficient solver.

Gradient descent on the squared error of the response scale. The link
supplies the gradient; the solver only schedules steps and decides when
to stop.
"""

import logging
import warnings
import numpy as np
from typing import Optional
from dataclasses import dataclass

from .._utils import check_vector, frozen_copy
from ..exceptions import (
    ConvergenceError,
    DimensionError,
    NonConvergenceWarning,
    ValidationError,
)
from .links import LinkFunction
from .observations import Observations


logger = logging.getLogger(__name__)


@dataclass
class SolverConfig:
    """
    Gradient descent settings.

    Attributes
    ----------
    learning_rate : float
        Step size applied to the aggregated gradient
    tolerance : float
        Converged once the gradient's Euclidean norm drops below this
    max_iterations : int
        Hard cap on iterations
    loss_epsilon : float or None
        Also converged when successive losses differ by less than this
    aggregate : str
        'mean' or 'sum' of per-row gradient terms
    batch_size : int or None
        None for batch descent, otherwise rows sampled per iteration
        (1 is stochastic descent)
    schedule : str
        'fixed' or 'adagrad'
    seed : int
        Seed for mini-batch sampling
    raise_on_nonconvergence : bool
        Raise ConvergenceError at the cap instead of warning
    verbose : bool
        Emit per-iteration debug records
    """
    learning_rate: float = 0.01
    tolerance: float = 1e-6
    max_iterations: int = 10000
    loss_epsilon: Optional[float] = None
    aggregate: str = 'mean'
    batch_size: Optional[int] = None
    schedule: str = 'fixed'
    seed: int = 0
    raise_on_nonconvergence: bool = False
    verbose: bool = False

    def __post_init__(self):
        if not self.learning_rate > 0:
            raise ValidationError(f"learning_rate must be positive, got {self.learning_rate}")
        if not self.tolerance >= 0:
            raise ValidationError(f"tolerance must be non-negative, got {self.tolerance}")
        if self.max_iterations < 1:
            raise ValidationError(f"max_iterations must be >= 1, got {self.max_iterations}")
        if self.loss_epsilon is not None and not self.loss_epsilon >= 0:
            raise ValidationError(f"loss_epsilon must be non-negative, got {self.loss_epsilon}")
        if self.aggregate not in ('mean', 'sum'):
            raise ValidationError(f"aggregate must be 'mean' or 'sum', got {self.aggregate!r}")
        if self.batch_size is not None and self.batch_size < 1:
            raise ValidationError(f"batch_size must be >= 1, got {self.batch_size}")
        if self.schedule not in _SCHEDULES:
            valid = ', '.join(sorted(_SCHEDULES))
            raise ValidationError(f"Unknown schedule: {self.schedule!r}. Valid schedules: {valid}")


@dataclass
class SolverResult:
    """Results from coefficient fitting."""
    coefficients: np.ndarray  # Final coefficients (read-only)
    converged: bool           # Tolerance met?
    iterations: int           # Iterations performed
    gradient_norm: float      # Norm of the full-data gradient
    loss: float               # Total squared error at the final coefficients


class FixedSchedule:
    """Constant learning rate."""

    def __init__(self, learning_rate: float):
        self.learning_rate = learning_rate

    def step(self, gradient: np.ndarray) -> np.ndarray:
        return self.learning_rate * gradient


class AdagradSchedule:
    """Per-coefficient rate scaled by accumulated squared gradients."""

    EPS = 1e-8

    def __init__(self, learning_rate: float):
        self.learning_rate = learning_rate
        self._history = None

    def step(self, gradient: np.ndarray) -> np.ndarray:
        if self._history is None:
            self._history = np.zeros_like(gradient)
        self._history += gradient ** 2
        return self.learning_rate * gradient / np.sqrt(self.EPS + self._history)


_SCHEDULES = {
    'fixed': FixedSchedule,
    'adagrad': AdagradSchedule,
}


class CoefficientSolver:
    """
    Fit coefficients by gradient descent.

    Parameters
    ----------
    link : LinkFunction
        Response-scale transform; supplies the loss gradient
    config : SolverConfig, optional
        Descent settings (defaults to ``SolverConfig()``)

    Examples
    --------
    >>> solver = CoefficientSolver(Identity(), SolverConfig(learning_rate=0.1))
    >>> result = solver.fit(observations)
    >>> result.coefficients
    """

    def __init__(self, link: LinkFunction, config: Optional[SolverConfig] = None):
        self.link = link
        self.config = config if config is not None else SolverConfig()

    def fit(self, observations: Observations, initial=None) -> SolverResult:
        """
        Run gradient descent from ``initial`` (zeros by default).

        Returns
        -------
        SolverResult
            ``converged`` is False when the iteration cap was reached
            (a NonConvergenceWarning is issued), unless the config asks
            for ConvergenceError instead.

        Raises
        ------
        ConvergenceError
            On a non-finite gradient or loss (learning rate too large), or
            at the cap when ``raise_on_nonconvergence`` is set
        """
        cfg = self.config
        X = observations.get_independents()
        y = observations.get_dependents()
        n, k = X.shape

        if initial is None:
            coef = np.zeros(k, dtype=np.float64)
        else:
            coef = check_vector(initial, name='initial').copy()
            if coef.size != k:
                raise DimensionError(
                    f"initial has {coef.size} coefficients, expected {k}"
                )

        schedule = _SCHEDULES[cfg.schedule](cfg.learning_rate)
        rng = np.random.default_rng(cfg.seed) if cfg.batch_size is not None else None
        batch_size = min(cfg.batch_size, n) if cfg.batch_size is not None else n

        converged = False
        gradient_norm = np.inf
        previous_loss = self.link.loss(coef, X, y) if cfg.loss_epsilon is not None else None
        iteration = 0

        while iteration < cfg.max_iterations:
            if rng is None:
                X_batch, y_batch = X, y
            else:
                rows = rng.choice(n, size=batch_size, replace=False)
                X_batch, y_batch = X[rows], y[rows]

            gradient = self.link.loss_gradient(coef, X_batch, y_batch, aggregate=cfg.aggregate)
            gradient_norm = float(np.linalg.norm(gradient))

            if not np.isfinite(gradient_norm):
                raise ConvergenceError(
                    f"Gradient became non-finite at iteration {iteration}; "
                    f"learning_rate={cfg.learning_rate} is likely too large for the data scale",
                    iterations=iteration,
                    final_change=gradient_norm,
                    reason='diverging',
                    threshold=cfg.tolerance,
                )

            if gradient_norm < cfg.tolerance:
                if rng is not None:
                    # Convergence is judged on every row, not the sampled batch
                    gradient_norm = self._full_gradient_norm(coef, X, y)
                if gradient_norm < cfg.tolerance:
                    converged = True
                    break

            coef -= schedule.step(gradient)
            iteration += 1

            if cfg.verbose:
                logger.debug(
                    "iteration %d: gradient norm %.6g, coefficients %s",
                    iteration, gradient_norm, coef
                )

            if previous_loss is not None:
                current_loss = self.link.loss(coef, X, y)
                if not np.isfinite(current_loss):
                    raise ConvergenceError(
                        f"Loss became non-finite at iteration {iteration}",
                        iterations=iteration,
                        final_change=gradient_norm,
                        reason='diverging',
                        threshold=cfg.tolerance,
                    )
                if abs(previous_loss - current_loss) < cfg.loss_epsilon:
                    converged = True
                    break
                previous_loss = current_loss

        loss = self.link.loss(coef, X, y)
        if rng is not None:
            gradient_norm = self._full_gradient_norm(coef, X, y)

        if not converged:
            message = (
                f"Gradient descent did not converge in {cfg.max_iterations} iterations "
                f"(gradient norm {gradient_norm:.3g} > tolerance {cfg.tolerance:.3g})"
            )
            if cfg.raise_on_nonconvergence:
                raise ConvergenceError(
                    message,
                    iterations=iteration,
                    final_change=gradient_norm,
                    reason='max_iterations',
                    threshold=cfg.tolerance,
                )
            warnings.warn(message, NonConvergenceWarning, stacklevel=2)

        if cfg.verbose:
            logger.debug(
                "finished after %d iterations (converged=%s, loss=%.6g)",
                iteration, converged, loss
            )

        return SolverResult(
            coefficients=frozen_copy(coef),
            converged=converged,
            iterations=iteration,
            gradient_norm=gradient_norm,
            loss=loss,
        )

    def _full_gradient_norm(self, coef, X, y) -> float:
        gradient = self.link.loss_gradient(coef, X, y, aggregate=self.config.aggregate)
        return float(np.linalg.norm(gradient))


def fit_coefficients(
    observations: Observations,
    link: LinkFunction,
    initial=None,
    config: Optional[SolverConfig] = None,
) -> SolverResult:
    """
    Fit coefficients for ``observations`` under ``link``.

    Thin wrapper around ``CoefficientSolver``.
    """
    return CoefficientSolver(link, config).fit(observations, initial=initial)


__all__ = [
    "SolverConfig",
    "SolverResult",
    "CoefficientSolver",
    "fit_coefficients",
]
