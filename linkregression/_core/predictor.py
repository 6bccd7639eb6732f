"""
Prediction from fitted coefficients.
"""

import numpy as np

from .._utils import frozen_copy
from ..exceptions import DimensionError
from .links import LinkFunction


class Predictor:
    """
    Combine coefficients with a link to predict outcomes.
    
    Rows passed to ``predict`` are full design rows: the intercept column
    is included, matching the layout of ``Observations``.
    """
    
    def __init__(self, coefficients, link: LinkFunction):
        self.coefficients = frozen_copy(np.ravel(coefficients))
        self.link = link
    
    def predict(self, row) -> float:
        """Predicted outcome g⁻¹(row·β) for one design row."""
        row = np.asarray(row, dtype=np.float64)
        if row.shape != self.coefficients.shape:
            raise DimensionError(
                f"row has {row.size} entries, expected {self.coefficients.size} "
                f"(intercept included)"
            )
        return float(self.link.delinearize(float(row @ self.coefficients)))
    
    def predict_many(self, X) -> np.ndarray:
        """Predicted outcomes for every row of a design matrix."""
        X = np.asarray(X, dtype=np.float64)
        if X.ndim != 2 or X.shape[1] != self.coefficients.size:
            raise DimensionError(
                f"design matrix must have shape (n, {self.coefficients.size}), "
                f"got {X.shape}"
            )
        return np.asarray(self.link.delinearize(X @ self.coefficients), dtype=np.float64)
    
    def __repr__(self):
        return f"Predictor(k={self.coefficients.size}, link={self.link!r})"
