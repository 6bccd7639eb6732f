"""
LinkRegression: link-function regression by gradient descent, with
R-style post-fit statistics.
"""

__version__ = "1.0.0"

# Import main user-facing API
from .regression import regress, Regression

# Building blocks
from ._core import (
    LinkFunction,
    Identity,
    Logistic,
    Log,
    resolve_link,
    Observations,
    Predictor,
    SolverConfig,
    SolverResult,
    CoefficientSolver,
    fit_coefficients,
    StatisticsGatherer,
)
from .exceptions import (
    LinkRegressionError,
    ValidationError,
    DimensionError,
    DomainError,
    SingularMatrixError,
    DegenerateArithmeticError,
    ConvergenceError,
    NonConvergenceWarning,
)

# Import backend utilities (for advanced users)
from ._backends import get_backend, list_available_backends

__all__ = [
    'regress',
    'Regression',
    'LinkFunction',
    'Identity',
    'Logistic',
    'Log',
    'resolve_link',
    'Observations',
    'Predictor',
    'SolverConfig',
    'SolverResult',
    'CoefficientSolver',
    'fit_coefficients',
    'StatisticsGatherer',
    'LinkRegressionError',
    'ValidationError',
    'DimensionError',
    'DomainError',
    'SingularMatrixError',
    'DegenerateArithmeticError',
    'ConvergenceError',
    'NonConvergenceWarning',
    'get_backend',
    'list_available_backends',
]
