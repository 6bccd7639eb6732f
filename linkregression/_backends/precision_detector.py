"""
CUDA FP64 capability detection.

The statistics invert XᵗX in double precision, so a GPU is only worth
using when its FP64 throughput is close to its FP32 throughput.
"""

import warnings
from dataclasses import dataclass
from enum import Enum


class PrecisionSupport(Enum):
    """FP64 support level for hardware."""
    NO_GPU = "no_gpu"
    GIMPED_FP64 = "gimped_fp64"  # consumer cards, 1/32 to 1/64 of FP32
    FULL_FP64 = "full_fp64"      # data center cards, 1/2 of FP32


# (name fragment, support, FP64/FP32 throughput ratio), first match wins
_NVIDIA_FP64_TABLE = (
    ('A100', PrecisionSupport.FULL_FP64, 1/2),
    ('A800', PrecisionSupport.FULL_FP64, 1/2),
    ('H100', PrecisionSupport.FULL_FP64, 1/2),
    ('H800', PrecisionSupport.FULL_FP64, 1/2),
    ('V100', PrecisionSupport.FULL_FP64, 1/2),
    ('P100', PrecisionSupport.FULL_FP64, 1/2),
    ('RTX 50', PrecisionSupport.GIMPED_FP64, 1/64),
    ('RTX 40', PrecisionSupport.GIMPED_FP64, 1/64),
    ('RTX 30', PrecisionSupport.GIMPED_FP64, 1/64),
    ('RTX 20', PrecisionSupport.GIMPED_FP64, 1/32),
    ('GTX', PrecisionSupport.GIMPED_FP64, 1/32),
)


@dataclass
class GPUCapabilities:
    """
    What the CUDA device (if any) offers for FP64 work.
    
    Attributes
    ----------
    has_gpu : bool
        Whether a CUDA device is visible to torch
    gpu_name : str
        Device name, or "CPU only"
    fp64_support : PrecisionSupport
        Level of FP64 support
    fp64_throughput_ratio : float
        FP64 / FP32 throughput
    recommended : bool
        Prefer the GPU over the CPU for XᵗX inversion
    """
    has_gpu: bool
    gpu_name: str
    fp64_support: PrecisionSupport
    fp64_throughput_ratio: float
    recommended: bool


CPU_ONLY = GPUCapabilities(
    has_gpu=False,
    gpu_name="CPU only",
    fp64_support=PrecisionSupport.NO_GPU,
    fp64_throughput_ratio=1.0,
    recommended=False,
)


def detect_gpu_capabilities() -> GPUCapabilities:
    """Inspect the first CUDA device; CPU_ONLY without torch or CUDA."""
    try:
        import torch
    except ImportError:
        return CPU_ONLY
    
    if not torch.cuda.is_available():
        return CPU_ONLY
    
    gpu_name = torch.cuda.get_device_name(0)
    support, ratio = _classify_nvidia_gpu(gpu_name)
    return GPUCapabilities(
        has_gpu=True,
        gpu_name=gpu_name,
        fp64_support=support,
        fp64_throughput_ratio=ratio,
        recommended=support == PrecisionSupport.FULL_FP64,
    )


def _classify_nvidia_gpu(gpu_name: str) -> tuple:
    """Return (support, throughput_ratio) for an NVIDIA device name."""
    upper = gpu_name.upper()
    for fragment, support, ratio in _NVIDIA_FP64_TABLE:
        if fragment in upper:
            return support, ratio
    
    warnings.warn(
        f"Unknown NVIDIA GPU '{gpu_name}'. Assuming gimped FP64."
    )
    return PrecisionSupport.GIMPED_FP64, 1/32
