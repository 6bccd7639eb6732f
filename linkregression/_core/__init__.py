"""
Core algorithms (backend-agnostic).
"""

from .links import LinkFunction, Identity, Logistic, Log, resolve_link
from .observations import Observations
from .predictor import Predictor
from .solver import SolverConfig, SolverResult, CoefficientSolver, fit_coefficients
from .statistics import StatisticsGatherer

__all__ = [
    "LinkFunction",
    "Identity",
    "Logistic",
    "Log",
    "resolve_link",
    "Observations",
    "Predictor",
    "SolverConfig",
    "SolverResult",
    "CoefficientSolver",
    "fit_coefficients",
    "StatisticsGatherer",
]
