"""
CPU backend using NumPy + SciPy.

This is the reference implementation.
"""

import numpy as np
from scipy.linalg import LinAlgError, inv, qr

from ..exceptions import SingularMatrixError
from .base import BackendBase


class CPUBackendFP64(BackendBase):
    """
    CPU backend using NumPy + SciPy.
    
    Always uses FP64 precision.
    """
    
    def __init__(self, tol: float = 1e-7):
        """
        Parameters
        ----------
        tol : float, default=1e-7
            Rank tolerance relative to the largest diagonal entry of R
            (R's lm() default)
        """
        self.name = "cpu_fp64"
        self.precision = "fp64"
        self.tol = tol

    def matrix_rank(self, X: np.ndarray) -> int:
        """Rank from the diagonal of R in a column-pivoted QR."""
        X = np.asarray(X, dtype=np.float64)

        R = qr(X, mode='r', pivoting=True)[0]
        R_diag = np.abs(np.diag(R))
        if R_diag.size == 0 or R_diag[0] == 0:
            return 0

        # Pivoting keeps |diag(R)| non-increasing
        return int(np.sum(R_diag > self.tol * R_diag[0]))
    
    def gram_inverse(self, X: np.ndarray) -> np.ndarray:
        X = np.asarray(X, dtype=np.float64)
        k = X.shape[1]
        
        rank = self.matrix_rank(X)
        if rank < k:
            raise SingularMatrixError(
                f"Design matrix is not invertible: rank {rank} < {k} columns "
                f"(collinear columns or fewer independent rows than columns)",
                matrix_name="X^T X",
                rank=rank,
                expected_rank=k,
            )
        
        XtX = X.T @ X
        try:
            return inv(XtX, check_finite=True)
        except LinAlgError as e:
            raise SingularMatrixError(
                f"Design matrix is not invertible: {e}",
                matrix_name="X^T X",
                rank=rank,
                expected_rank=k,
                condition_number=float(np.linalg.cond(XtX)),
            ) from e
    
    def get_device_info(self) -> dict:
        """Get backend information."""
        import scipy
        return {
            'backend': 'cpu',
            'precision': 'fp64',
            'library': f'NumPy {np.__version__}, SciPy {scipy.__version__}',
        }
