"""
Regression with an R-style interface and output.

This is the user-facing API.
"""

import numpy as np
import pandas as pd
from typing import Optional, Union, List

from ._core.links import LinkFunction, resolve_link
from ._core.observations import Observations
from ._core.predictor import Predictor
from ._core.solver import CoefficientSolver, SolverConfig
from ._core.statistics import StatisticsGatherer
from .exceptions import DegenerateArithmeticError, SingularMatrixError


class Regression:
    """
    Fit a regression under a link function by gradient descent.

    Examples
    --------
    >>> import pandas as pd
    >>> from linkregression import regress
    >>>
    >>> data = pd.read_csv('trial_data.csv')
    >>> model = regress(y='responded', X=['dose', 'age'], data=data,
    ...                 link='logistic', learning_rate=0.5)
    >>>
    >>> model.summary()      # Prints table like R
    >>> model.coef           # Named coefficients
    >>> model.pvalues        # P-values for each coefficient
    >>> model.predict(new_data)
    """

    def __init__(
        self,
        y: Union[str, np.ndarray],
        X: Union[List[str], np.ndarray],
        data: Optional[pd.DataFrame] = None,
        link: Union[str, LinkFunction] = 'identity',
        base: Optional[float] = None,
        initial: Optional[np.ndarray] = None,
        config: Optional[SolverConfig] = None,
        backend: str = 'cpu',
        **solver_options
    ):
        """
        Fit the model.

        Parameters
        ----------
        y : str or array
            Response variable (outcome)
            - If string: column name in data
            - If array: numeric values
        X : list of str or array
            Explanatory variables, WITHOUT intercept (added here)
            - If list of strings: column names in data
            - If array: numeric matrix (n × p)
        data : DataFrame, optional
            Dataset containing y and X variables
        link : str or LinkFunction
            'identity', 'logistic' or 'log'
        base : float, optional
            Logarithm base for ``link='log'`` (default e)
        initial : array, optional
            Starting coefficients, intercept first (default zeros)
        config : SolverConfig, optional
            Descent settings; mutually exclusive with ``solver_options``
        backend : str
            Linear-algebra backend for the statistics: 'auto', 'cpu', 'pytorch'
        **solver_options
            Fields of SolverConfig, e.g. ``learning_rate=0.1``
        """
        if isinstance(y, str):
            if data is None:
                raise ValueError("Must provide data when y is a string")
            self.y_values = data[y].values
            self.y_name = y
        else:
            self.y_values = np.asarray(y)
            self.y_name = 'y'

        if isinstance(X, list) and all(isinstance(x, str) for x in X):
            if data is None:
                raise ValueError("Must provide data when X is list of strings")
            self.X_values = data[X].values
            self.X_names = X
        else:
            self.X_values = np.asarray(X)
            if self.X_values.ndim == 1:
                self.X_values = self.X_values[:, np.newaxis]
            self.X_names = [f'x{i}' for i in range(self.X_values.shape[1])]

        if config is not None and solver_options:
            raise ValueError("Pass either config or solver options, not both")
        if config is None:
            config = SolverConfig(**solver_options)

        self.link = resolve_link(link, base)
        self.config = config
        self.observations = Observations.from_features(self.X_values, self.y_values)
        self.n_obs = self.observations.n_observations
        self.n_coef = self.observations.n_features
        self.var_names = ['Intercept'] + list(self.X_names)

        self._solver_result = CoefficientSolver(self.link, config).fit(
            self.observations, initial=initial
        )
        self.coefficients = self._solver_result.coefficients
        self.converged = self._solver_result.converged
        self.iterations = self._solver_result.iterations

        self.predictor = Predictor(self.coefficients, self.link)
        self.statistics = StatisticsGatherer(
            self.observations, self.coefficients, self.predictor, backend=backend
        )

    @property
    def coef(self) -> pd.Series:
        """Named coefficients (pandas Series)."""
        return pd.Series(self.coefficients, index=self.var_names)

    @property
    def fitted_values(self) -> np.ndarray:
        return self.statistics.predicted_outcomes

    @property
    def residuals(self) -> np.ndarray:
        return self.statistics.residuals

    @property
    def std_errors(self) -> np.ndarray:
        return self.statistics.standard_error_coefficients

    @property
    def t_values(self) -> np.ndarray:
        return self.statistics.t_statistics

    @property
    def pvalues(self) -> np.ndarray:
        return self.statistics.p_values

    @property
    def r_squared(self) -> float:
        return self.statistics.r_squared

    @property
    def adj_r_squared(self) -> float:
        return self.statistics.adjusted_r_squared

    @property
    def f_statistic(self) -> float:
        return self.statistics.f_statistic

    @property
    def sigma(self) -> float:
        """Residual standard error."""
        return self.statistics.standard_error

    @property
    def df_residual(self) -> int:
        return self.statistics.degrees_of_freedom_error

    def conf_int(self, alpha: float = 0.05) -> pd.DataFrame:
        """
        Confidence intervals for coefficients.

        Parameters
        ----------
        alpha : float
            Significance level (default: 0.05 for 95% CI)

        Returns
        -------
        DataFrame
            Confidence intervals with columns 'lower' and 'upper'
        """
        bounds = self.statistics.conf_int(alpha)
        return pd.DataFrame({
            'lower': bounds[:, 0],
            'upper': bounds[:, 1]
        }, index=self.var_names)

    def summary(self):
        """
        Print summary of regression results (like R's summary.lm).

        Statistics that are undefined for this fit print as NA.
        """
        stats = self.statistics

        print()
        print("="*80)
        print(f"REGRESSION RESULTS ({self.link.name} link)")
        print("="*80)
        print()

        print(f"Dependent variable: {self.y_name}")
        print(f"Number of observations: {self.n_obs}")
        print(f"Degrees of freedom: {stats.degrees_of_freedom_error} (residual), "
              f"{stats.degrees_of_freedom_model} (model)")
        status = "converged" if self.converged else "NOT converged"
        print(f"Gradient descent: {status} after {self.iterations} iterations")
        print()

        print("Residuals:")
        quartiles = pd.Series(stats.residuals).describe()
        for label, key in _RESIDUAL_QUARTILES:
            print(f"  {label + ':':<8}{quartiles[key]:>10.4f}")
        print()

        se = _or_none(lambda: stats.standard_error_coefficients)
        t = _or_none(lambda: stats.t_statistics)
        p = _or_none(lambda: stats.p_values)

        print("Coefficients:")
        print("-"*80)
        print(f"{'Variable':<20} {'Estimate':>12} {'Std. Error':>12} {'t value':>10} {'Pr(>|t|)':>12}")
        print("-"*80)

        for i, name in enumerate(self.var_names):
            se_str = f"{se[i]:.4f}" if se is not None else 'NA'
            t_str = f"{t[i]:.3f}" if t is not None else 'NA'
            if p is None:
                p_str, sig = 'NA', ''
            else:
                p_str = f"{p[i]:.4f}" if p[i] >= 0.0001 else "<.0001"
                sig = _significance_stars(p[i])

            print(f"{name:<20} {self.coefficients[i]:>12.4f} {se_str:>12} "
                  f"{t_str:>10} {p_str:>12}{sig}")

        print("-"*80)
        print("Signif. codes:  0 '***' 0.001 '**' 0.01 '*' 0.05 '.' 0.1 ' ' 1")
        print()

        sigma = _or_none(lambda: stats.standard_error)
        adj = _or_none(lambda: stats.adjusted_r_squared)
        f = _or_none(lambda: stats.f_statistic)

        sigma_str = f"{sigma:.4f}" if sigma is not None else 'NA'
        adj_str = f"{adj:.4f}" if adj is not None else 'NA'
        print(f"Residual standard error: {sigma_str} on {stats.degrees_of_freedom_error} degrees of freedom")
        print(f"Multiple R-squared:      {stats.r_squared:.4f}")
        print(f"Adjusted R-squared:      {adj_str}")

        if f is not None:
            f_pvalue = stats.f_p_value
            f_pval_str = f"{f_pvalue:.4e}" if f_pvalue >= 0.0001 else "< 2.2e-16"
            print(f"F-statistic:             {f:.2f} on {stats.degrees_of_freedom_model} and "
                  f"{stats.degrees_of_freedom_error} DF, p-value: {f_pval_str}")
        else:
            print("F-statistic:             NA")

        print()
        print(f"Backend: {stats.backend.name}")
        print("="*80)
        print()

    def predict(self, newdata: Union[pd.DataFrame, np.ndarray]) -> np.ndarray:
        """
        Predict response for new data.

        Parameters
        ----------
        newdata : DataFrame or array
            New explanatory values, WITHOUT intercept
            - If DataFrame: must have columns matching self.X_names
            - If array: must have same number of columns as X

        Returns
        -------
        array
            Predicted values on the response scale
        """
        if isinstance(newdata, pd.DataFrame):
            X_new = newdata[self.X_names].values
        else:
            X_new = np.asarray(newdata, dtype=np.float64)
            if X_new.ndim == 1:
                X_new = X_new[:, np.newaxis]

        X_new_full = np.column_stack([np.ones(len(X_new)), X_new])
        return self.predictor.predict_many(X_new_full)

    def __repr__(self):
        return (f"Regression(n={self.n_obs}, p={self.n_coef - 1}, "
                f"link={self.link.name}, R²={self.r_squared:.3f})")


_RESIDUAL_QUARTILES = (
    ('Min', 'min'), ('1Q', '25%'), ('Median', '50%'), ('3Q', '75%'), ('Max', 'max'),
)


def _or_none(compute):
    """Value of ``compute()``, or None where the statistic is undefined."""
    try:
        return compute()
    except (DegenerateArithmeticError, SingularMatrixError):
        return None


def _significance_stars(p: float) -> str:
    if p < 0.001:
        return ' ***'
    elif p < 0.01:
        return ' **'
    elif p < 0.05:
        return ' *'
    elif p < 0.1:
        return ' .'
    return ''


def regress(y, X, data=None, link='identity', **kwargs):
    """
    Fit a regression model (convenience function).

    Parameters
    ----------
    y : str or array
        Response variable
    X : list of str or array
        Explanatory variables (intercept added automatically)
    data : DataFrame, optional
        Dataset
    link : str or LinkFunction
        Response-scale transform: 'identity', 'logistic', 'log'
    **kwargs
        Additional arguments passed to Regression

    Returns
    -------
    Regression
        Fitted model object

    Examples
    --------
    >>> model = regress(y='mpg', X=['wt', 'hp'], data=mtcars, learning_rate=0.05)
    >>> model.summary()
    >>> model.conf_int()
    """
    return Regression(y=y, X=X, data=data, link=link, **kwargs)
