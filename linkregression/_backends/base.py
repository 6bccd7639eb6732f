"""
Abstract base class for linear-algebra backends.

Backends supply the matrix primitives the statistics need: the numerical
rank of a design matrix and the inverse of its Gram matrix XᵗX.
"""

from abc import ABC, abstractmethod
import numpy as np


class BackendBase(ABC):
    """Abstract base class for all backends."""
    
    name = "base"
    precision = "fp64"
    
    @abstractmethod
    def matrix_rank(self, X: np.ndarray) -> int:
        """
        Numerical rank of X via pivoted QR.
        
        Parameters
        ----------
        X : ndarray, shape (n, k)
            Design matrix (WITH intercept)
        """
        pass
    
    @abstractmethod
    def gram_inverse(self, X: np.ndarray) -> np.ndarray:
        """
        Compute (XᵗX)⁻¹.
        
        Backends compute internally in their native types and convert
        to numpy only at exit.
        
        Parameters
        ----------
        X : ndarray, shape (n, k)
            Design matrix (WITH intercept)
        
        Returns
        -------
        ndarray, shape (k, k)
        
        Raises
        ------
        SingularMatrixError
            If X has rank < k, so XᵗX is not invertible
        """
        pass
    
    @abstractmethod
    def get_device_info(self) -> dict:
        """Get backend information."""
        pass
