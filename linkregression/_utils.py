"""
Utility functions.
"""

import numpy as np

from .exceptions import ValidationError


def check_array(X, name='X', dtype=np.float64):
    """Validate array input."""
    try:
        X = np.asarray(X, dtype=dtype)
    except (ValueError, TypeError) as e:
        raise ValidationError(f"{name}: cannot convert to numeric array: {e}") from e
    if X.ndim != 2:
        raise ValidationError(f"{name} must be 2-dimensional, got {X.ndim} dimension(s)")
    if X.shape[0] == 0 or X.shape[1] == 0:
        raise ValidationError(f"{name} must not be empty, got shape {X.shape}")
    if not np.all(np.isfinite(X)):
        raise ValidationError(f"{name} contains NaN or Inf")
    return X


def check_vector(y, name='y', dtype=np.float64):
    """Validate vector input."""
    try:
        y = np.asarray(y, dtype=dtype)
    except (ValueError, TypeError) as e:
        raise ValidationError(f"{name}: cannot convert to numeric vector: {e}") from e
    if y.ndim != 1:
        raise ValidationError(f"{name} must be 1-dimensional, got {y.ndim} dimension(s)")
    if not np.all(np.isfinite(y)):
        raise ValidationError(f"{name} contains NaN or Inf")
    return y


def frozen_copy(a: np.ndarray) -> np.ndarray:
    """Return a read-only copy of ``a``."""
    a = np.array(a, dtype=np.float64, copy=True)
    a.setflags(write=False)
    return a
