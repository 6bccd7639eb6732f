"""
Post-fit statistics.

Every derived quantity is computed on first access and cached for the
lifetime of the gatherer. A cache slot is assigned only after its
computation succeeds, so a failed access leaves nothing half-populated.
Concurrent first access may compute a value twice; both writes store the
same result.

Reference for the decomposition: SST = SSE + SSM, with n - 1 = (n - k) + (k - 1)
degrees of freedom.
"""

import numpy as np
from typing import Optional
from scipy import stats

from .._backends import BackendBase, get_backend
from .._utils import frozen_copy
from ..exceptions import DegenerateArithmeticError, DimensionError
from .observations import Observations
from .predictor import Predictor


class StatisticsGatherer:
    """
    Diagnostics for one fitted regression.

    Bound to a single (observations, coefficients, predictor) triple; it
    has no setters and never recomputes a cached value.

    Parameters
    ----------
    observations : Observations
        Data the coefficients were fitted on
    coefficients : array-like, shape (k,)
        Fitted coefficients, intercept first
    predictor : Predictor
        Turns a full design row into a predicted outcome
    backend : str or BackendBase, default='cpu'
        Linear-algebra backend used for (XᵗX)⁻¹

    Examples
    --------
    >>> gatherer = StatisticsGatherer(obs, coef, Predictor(coef, Identity()))
    >>> gatherer.r_squared
    >>> gatherer.t_statistics
    """

    def __init__(
        self,
        observations: Observations,
        coefficients,
        predictor: Predictor,
        backend='cpu'
    ):
        self.observations = observations
        self.coefficients = frozen_copy(np.ravel(coefficients))
        self.predictor = predictor
        self._backend = backend

        if self.coefficients.size != observations.n_features:
            raise DimensionError(
                f"{self.coefficients.size} coefficients given for "
                f"{observations.n_features} design columns"
            )

        self._predicted_outcomes: Optional[np.ndarray] = None
        self._sum_squared_error: Optional[float] = None
        self._sum_squared_model: Optional[float] = None
        self._sum_squared_total: Optional[float] = None
        self._standard_error_coefficients: Optional[np.ndarray] = None
        self._t_statistics: Optional[np.ndarray] = None

    @property
    def backend(self) -> BackendBase:
        if not isinstance(self._backend, BackendBase):
            self._backend = get_backend(self._backend)
        return self._backend

    # ------------------------------------------------------------------
    # Predictions and sums of squares
    # ------------------------------------------------------------------

    @property
    def predicted_outcomes(self) -> np.ndarray:
        """ŷ for every observation row (intercept column included)."""
        if self._predicted_outcomes is None:
            predicted = np.array([
                self.predictor.predict(row)
                for row in self.observations.get_independents()
            ], dtype=np.float64)
            self._predicted_outcomes = frozen_copy(predicted)
        return self._predicted_outcomes

    @property
    def residuals(self) -> np.ndarray:
        """Observed minus predicted, on the response scale."""
        return self.observations.get_dependents() - self.predicted_outcomes

    @property
    def sum_squared_error(self) -> float:
        """Σ(ŷ - y)², the raw error of the fit."""
        if self._sum_squared_error is None:
            diff = self.predicted_outcomes - self.observations.get_dependents()
            self._sum_squared_error = float(np.sum(diff ** 2))
        return self._sum_squared_error

    @property
    def sum_squared_model(self) -> float:
        """Σ(ŷ - ȳ)², the variation the model explains."""
        if self._sum_squared_model is None:
            average = _average(self.observations.get_dependents())
            self._sum_squared_model = _sum_squared_difference(self.predicted_outcomes, average)
        return self._sum_squared_model

    @property
    def sum_squared_total(self) -> float:
        """Σ(y - ȳ)²."""
        if self._sum_squared_total is None:
            y = self.observations.get_dependents()
            self._sum_squared_total = _sum_squared_difference(y, _average(y))
        return self._sum_squared_total

    # ------------------------------------------------------------------
    # Degrees of freedom
    # ------------------------------------------------------------------

    @property
    def degrees_of_freedom_error(self) -> int:
        # Observations minus explanatory variables
        return self.observations.n_observations - self.observations.n_features

    @property
    def degrees_of_freedom_model(self) -> int:
        # One less than the number of explanatory variables
        return self.observations.n_features - 1

    @property
    def degrees_of_freedom_total(self) -> int:
        return self.observations.n_observations - 1

    # ------------------------------------------------------------------
    # Mean squares and overall fit
    # ------------------------------------------------------------------

    @property
    def mean_squared_error(self) -> float:
        """
        SSE / (n - k).

        Raises
        ------
        DegenerateArithmeticError
            If n <= k (no error degrees of freedom)
        """
        df = self.degrees_of_freedom_error
        if df <= 0:
            raise DegenerateArithmeticError(
                f"Mean squared error undefined: {self.observations.n_observations} "
                f"observations leave {df} error degrees of freedom for "
                f"{self.observations.n_features} coefficients",
                quantity='mean_squared_error'
            )
        return self.sum_squared_error / df

    @property
    def mean_squared_model(self) -> float:
        """
        SSM / (k - 1).

        Raises
        ------
        DegenerateArithmeticError
            If k == 1 (intercept-only model)
        """
        df = self.degrees_of_freedom_model
        if df == 0:
            raise DegenerateArithmeticError(
                "Mean squared model undefined: intercept-only model has "
                "0 model degrees of freedom",
                quantity='mean_squared_model'
            )
        return self.sum_squared_model / df

    @property
    def f_statistic(self) -> float:
        """
        MSM / MSE.

        A perfect fit (MSE == 0) raises DegenerateArithmeticError rather
        than returning infinity.
        """
        mse = self.mean_squared_error
        msm = self.mean_squared_model
        if mse == 0.0:
            raise DegenerateArithmeticError(
                "F-statistic undefined: mean squared error is zero (perfect fit)",
                quantity='f_statistic'
            )
        return msm / mse

    @property
    def f_p_value(self) -> float:
        """Upper-tail probability of the F-statistic."""
        return float(stats.f.sf(
            self.f_statistic,
            self.degrees_of_freedom_model,
            self.degrees_of_freedom_error
        ))

    @property
    def r_squared(self) -> float:
        """Coefficient of determination; 0.0 when all outcomes are equal."""
        sst = self.sum_squared_total
        if sst == 0.0:
            return 0.0
        return 1.0 - self.sum_squared_error / sst

    @property
    def adjusted_r_squared(self) -> float:
        df = self.degrees_of_freedom_error
        if df <= 0:
            raise DegenerateArithmeticError(
                f"Adjusted R-squared undefined with {df} error degrees of freedom",
                quantity='adjusted_r_squared'
            )
        return 1.0 - (1.0 - self.r_squared) * self.degrees_of_freedom_total / df

    @property
    def standard_error(self) -> float:
        """Residual standard error, sqrt(MSE)."""
        return float(np.sqrt(self.mean_squared_error))

    # ------------------------------------------------------------------
    # Coefficient inference
    # ------------------------------------------------------------------

    @property
    def standard_error_coefficients(self) -> np.ndarray:
        """
        sqrt(diag((XᵗX)⁻¹) · MSE), one entry per coefficient.

        Raises
        ------
        SingularMatrixError
            If XᵗX is not invertible (collinear columns, or more columns
            than independent rows). No regularization is applied.
        DegenerateArithmeticError
            If there are no error degrees of freedom
        """
        if self._standard_error_coefficients is None:
            XtX_inv = self.backend.gram_inverse(self.observations.get_independents())
            mse = self.mean_squared_error
            se = np.sqrt(np.diag(XtX_inv) * mse)
            self._standard_error_coefficients = frozen_copy(se)
        return self._standard_error_coefficients

    @property
    def t_statistics(self) -> np.ndarray:
        """
        β_j / SE(β_j).

        Raises
        ------
        DegenerateArithmeticError
            If any standard error is exactly zero (e.g. a perfect fit)
        """
        if self._t_statistics is None:
            se = self.standard_error_coefficients
            zero = np.flatnonzero(se == 0.0)
            if zero.size:
                raise DegenerateArithmeticError(
                    f"t-statistic undefined: zero standard error for "
                    f"coefficient(s) {zero.tolist()}",
                    quantity='t_statistics'
                )
            self._t_statistics = frozen_copy(self.coefficients / se)
        return self._t_statistics

    @property
    def p_values(self) -> np.ndarray:
        """Two-sided p-values of the t-statistics."""
        t = self.t_statistics
        return 2 * stats.t.sf(np.abs(t), self.degrees_of_freedom_error)

    def conf_int(self, alpha: float = 0.05) -> np.ndarray:
        """
        Confidence intervals for the coefficients.

        Parameters
        ----------
        alpha : float
            Significance level (default: 0.05 for 95% CI)

        Returns
        -------
        ndarray, shape (k, 2)
            Lower and upper bounds
        """
        if not 0 < alpha < 1:
            raise ValueError(f"alpha must lie in (0, 1), got {alpha}")
        se = self.standard_error_coefficients
        t_crit = stats.t.ppf(1 - alpha / 2, self.degrees_of_freedom_error)
        return np.column_stack([
            self.coefficients - t_crit * se,
            self.coefficients + t_crit * se,
        ])


def _average(values: np.ndarray) -> float:
    # Constant outcomes average to themselves exactly; np.mean can miss by an ulp
    if np.all(values == values[0]):
        return float(values[0])
    return float(np.mean(values))


def _sum_squared_difference(series: np.ndarray, baseline: float) -> float:
    return float(np.sum((series - baseline) ** 2))


__all__ = ["StatisticsGatherer"]
