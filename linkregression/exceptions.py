"""
Exception hierarchy for LinkRegression.

All exceptions inherit from LinkRegressionError so callers can catch any
library-specific failure in one place. Errors carry diagnostic attributes
and are never retried internally: the same inputs cannot succeed twice.
"""

from typing import Optional


class LinkRegressionError(Exception):
    """Base exception for all LinkRegression errors."""
    pass


class ValidationError(LinkRegressionError, ValueError):
    """Input validation failed."""
    pass


class DimensionError(ValidationError):
    """Array dimensions are incorrect or inconsistent."""
    pass


class DomainError(LinkRegressionError, ValueError):
    """
    Value lies outside the domain of a link function.
    
    Raised by ``linearize`` instead of clamping, e.g. a logistic link asked
    to linearize 1.0 or a log link asked to linearize a non-positive value.
    """
    pass


class NumericalError(LinkRegressionError):
    """Base class for errors arising during numerical computation."""
    pass


class SingularMatrixError(NumericalError):
    """
    Matrix is singular or numerically rank-deficient.
    
    Attributes
    ----------
    matrix_name : str or None
        Description of the problematic matrix
    rank : int or None
        Numerical rank, if computed
    expected_rank : int or None
        Rank required for invertibility
    condition_number : float or None
        Estimated condition number, if available
    """
    
    def __init__(
        self,
        message: str,
        matrix_name: Optional[str] = None,
        rank: Optional[int] = None,
        expected_rank: Optional[int] = None,
        condition_number: Optional[float] = None,
    ):
        super().__init__(message)
        self.matrix_name = matrix_name
        self.rank = rank
        self.expected_rank = expected_rank
        self.condition_number = condition_number


class DegenerateArithmeticError(NumericalError, ZeroDivisionError):
    """
    A statistic would divide by zero.
    
    Raised for zero degrees of freedom, a zero mean squared error under
    the F-statistic, or a zero standard error under a t-statistic.
    
    Attributes
    ----------
    quantity : str or None
        Name of the statistic that could not be computed
    """
    
    def __init__(self, message: str, quantity: Optional[str] = None):
        super().__init__(message)
        self.quantity = quantity


class ConvergenceError(LinkRegressionError):
    """
    Gradient descent failed to converge.
    
    Attributes
    ----------
    iterations : int
        Number of iterations completed
    final_change : float or None
        Gradient norm at the last iteration
    reason : str or None
        'max_iterations' or 'diverging'
    threshold : float or None
        Tolerance that was not met
    """
    
    def __init__(
        self,
        message: str,
        iterations: int,
        final_change: Optional[float] = None,
        reason: Optional[str] = None,
        threshold: Optional[float] = None,
    ):
        super().__init__(message)
        self.iterations = iterations
        self.final_change = final_change
        self.reason = reason
        self.threshold = threshold


class NonConvergenceWarning(UserWarning):
    """Iteration cap reached before the convergence tolerance was met."""
    pass


__all__ = [
    "LinkRegressionError",
    "ValidationError",
    "DimensionError",
    "DomainError",
    "NumericalError",
    "SingularMatrixError",
    "DegenerateArithmeticError",
    "ConvergenceError",
    "NonConvergenceWarning",
]
