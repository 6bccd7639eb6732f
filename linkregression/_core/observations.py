"""
Observation data container.

Holds the design matrix (intercept column first) and the outcome vector.
"""

import numpy as np

from .._utils import check_array, check_vector, frozen_copy
from ..exceptions import DimensionError, ValidationError


class Observations:
    """
    Immutable pairing of a design matrix with its outcomes.
    
    Parameters
    ----------
    independents : array-like, shape (n, k)
        Design matrix; column 0 must be all ones (intercept)
    dependents : array-like, shape (n,)
        Outcome vector, index-aligned with the rows
    
    Examples
    --------
    >>> obs = Observations([[1, 0], [1, 1], [1, 2]], [1, 3, 5])
    >>> obs.n_observations, obs.n_features
    (3, 2)
    """
    
    def __init__(self, independents, dependents):
        X = check_array(independents, name='independents')
        y = check_vector(dependents, name='dependents')
        
        if X.shape[0] != y.shape[0]:
            raise DimensionError(
                f"independents has {X.shape[0]} rows but dependents has "
                f"{y.shape[0]} values"
            )
        if not np.all(X[:, 0] == 1.0):
            raise ValidationError(
                "First column of independents must be all ones (intercept). "
                "Use Observations.from_features() to add it."
            )
        
        self._independents = frozen_copy(X)
        self._dependents = frozen_copy(y)
    
    @classmethod
    def from_features(cls, features, dependents) -> "Observations":
        """Build observations from a feature matrix WITHOUT intercept."""
        F = np.asarray(features, dtype=np.float64)
        if F.ndim == 1:
            F = F[:, np.newaxis]
        return cls(np.column_stack([np.ones(F.shape[0]), F]), dependents)
    
    def get_independents(self) -> np.ndarray:
        """Design matrix, shape (n, k). Read-only."""
        return self._independents
    
    def get_dependents(self) -> np.ndarray:
        """Outcome vector, shape (n,). Read-only."""
        return self._dependents
    
    @property
    def n_observations(self) -> int:
        return self._independents.shape[0]
    
    @property
    def n_features(self) -> int:
        return self._independents.shape[1]
    
    def __len__(self) -> int:
        return self.n_observations
    
    def __repr__(self):
        return f"Observations(n={self.n_observations}, k={self.n_features})"
