"""
Linear-algebra backends for the post-fit statistics.

The CPU backend (NumPy/SciPy) is always present. The PyTorch backend is
available when the optional ``torch`` dependency is installed; it always
computes in FP64.
"""

import warnings

from .base import BackendBase
from .precision_detector import detect_gpu_capabilities, GPUCapabilities

try:
    from .cpu_fp64_backend import CPUBackendFP64
    CPU_AVAILABLE = True
except ImportError:
    CPU_AVAILABLE = False
    warnings.warn("CPU backend unavailable - installation error!")

try:
    import torch  # noqa: F401
    from .gpu_fp64_backend import PyTorchBackendFP64
    PYTORCH_AVAILABLE = True
except ImportError:
    PYTORCH_AVAILABLE = False


_VALID = ('auto', 'cpu', 'pytorch')


def get_backend(backend='auto') -> BackendBase:
    """
    Resolve a backend name (or pass an instance through).
    
    Parameters
    ----------
    backend : str or BackendBase
        - 'auto': PyTorch when a full-speed FP64 CUDA GPU is present,
          otherwise CPU
        - 'cpu': NumPy/SciPy
        - 'pytorch': PyTorch (CUDA if present, else CPU tensors)
    
    Examples
    --------
    >>> get_backend('cpu').gram_inverse(X)
    """
    if isinstance(backend, BackendBase):
        return backend
    if backend not in _VALID:
        raise ValueError(
            f"Unknown backend: '{backend}'\n"
            f"Valid options: {', '.join(repr(v) for v in _VALID)}"
        )
    
    if backend == 'pytorch' or (
        backend == 'auto' and PYTORCH_AVAILABLE and detect_gpu_capabilities().recommended
    ):
        if not PYTORCH_AVAILABLE:
            raise RuntimeError(
                "PyTorch backend unavailable.\n"
                "Install: pip install linkregression[gpu]"
            )
        return PyTorchBackendFP64()
    
    if not CPU_AVAILABLE:
        raise RuntimeError("CPU backend unavailable!")
    return CPUBackendFP64()


def list_available_backends() -> list:
    """Names accepted by get_backend() on this machine, besides 'auto'."""
    return [name for name, ok in (('cpu', CPU_AVAILABLE), ('pytorch', PYTORCH_AVAILABLE)) if ok]


__all__ = [
    'get_backend',
    'list_available_backends',
    'BackendBase',
    'detect_gpu_capabilities',
    'GPUCapabilities',
    'CPU_AVAILABLE',
    'PYTORCH_AVAILABLE',
]
