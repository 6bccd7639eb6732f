"""
GPU backend using PyTorch with FP64 precision.

For data center GPUs: A100, H100, V100.
"""

import numpy as np
import warnings
from typing import Optional

from ..exceptions import SingularMatrixError
from .base import BackendBase


class PyTorchBackendFP64(BackendBase):
    """
    PyTorch backend with FP64 precision.
    
    Statistics are only meaningful in double precision, so there is no
    FP32 variant.
    """
    
    def __init__(self, device: Optional[str] = None, tol: float = 1e-7):
        """Initialize PyTorch FP64 backend."""
        self.name = "pytorch_fp64"
        self.tol = tol
        self.precision = "fp64"
        
        try:
            import torch
            self.torch = torch
        except ImportError:
            raise ImportError(
                "PyTorch required for GPU backend. "
                "Install: pip install torch"
            )
        
        # No Metal: MPS has no float64
        if device == 'mps':
            raise RuntimeError(
                "FP64 not supported on Apple Metal. Use the CPU backend."
            )
        
        if device is None:
            if torch.cuda.is_available():
                device = 'cuda'
            else:
                warnings.warn("No CUDA GPU available, using CPU")
                device = 'cpu'
        
        self.device = torch.device(device)
        
        # Warn if using FP64 on gimped hardware
        if self.device.type == 'cuda':
            from .precision_detector import PrecisionSupport, detect_gpu_capabilities
            caps = detect_gpu_capabilities()
            if caps.fp64_support == PrecisionSupport.GIMPED_FP64:
                warnings.warn(
                    f"Using FP64 on {caps.gpu_name} with gimped FP64 support. "
                    f"This will be ~{int(1/caps.fp64_throughput_ratio)}x slower than the CPU path.",
                    UserWarning
                )
    
    def _to_device(self, X: np.ndarray):
        return self.torch.from_numpy(np.ascontiguousarray(X, dtype=np.float64)).to(self.device)
    
    def matrix_rank(self, X: np.ndarray) -> int:
        torch = self.torch
        X_gpu = self._to_device(X)
        
        # Unpivoted QR; rank read off |diag(R)| against its largest entry
        R = torch.linalg.qr(X_gpu, mode='r')[1]
        R_diag = torch.abs(torch.diagonal(R))
        if R_diag.numel() == 0:
            return 0
        largest = torch.max(R_diag)
        if largest == 0:
            return 0
        
        return int(torch.sum(R_diag > self.tol * largest).item())
    
    def gram_inverse(self, X: np.ndarray) -> np.ndarray:
        torch = self.torch
        X_gpu = self._to_device(X)
        k = X_gpu.shape[1]
        
        rank = self.matrix_rank(X)
        if rank < k:
            raise SingularMatrixError(
                f"Design matrix is not invertible: rank {rank} < {k} columns "
                f"(collinear columns or fewer independent rows than columns)",
                matrix_name="X^T X",
                rank=rank,
                expected_rank=k,
            )
        
        XtX = X_gpu.T @ X_gpu
        inverse, info = torch.linalg.inv_ex(XtX)
        if int(info.item()) != 0:
            raise SingularMatrixError(
                "Design matrix is not invertible: zero pivot in LU factorization",
                matrix_name="X^T X",
                rank=rank,
                expected_rank=k,
            )
        return inverse.cpu().numpy()
    
    def get_device_info(self) -> dict:
        """Get backend information."""
        return {
            'backend': 'gpu' if self.device.type == 'cuda' else 'cpu',
            'precision': 'fp64',
            'device': str(self.device),
            'library': f'PyTorch {self.torch.__version__}',
        }
