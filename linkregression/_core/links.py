"""
Link function definitions.

A link maps the unbounded linear predictor η = x·β onto the response
scale μ and back. Each link also knows how it reshapes the gradient of the
squared-error loss

    L(β) = (y - g⁻¹(x·β))²

so one generic minimizer can fit any response scale. This is squared error
on the response scale with dμ/dη folded in by the chain rule, not a
deviance or likelihood objective.
"""

import numpy as np
from abc import ABC, abstractmethod
from scipy.special import expit, logit
from typing import Optional, Union

from ..exceptions import DomainError, ValidationError


class LinkFunction(ABC):
    """Base class for link functions."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Link name."""
        pass

    @abstractmethod
    def delinearize(self, eta):
        """Inverse link: μ = g⁻¹(η). Total."""
        pass

    @abstractmethod
    def linearize(self, mu):
        """Link: η = g(μ). Raises DomainError outside the domain."""
        pass

    @abstractmethod
    def derivative(self, hypothesis):
        """dμ/dη written in terms of μ = g⁻¹(η)."""
        pass

    def loss_gradient_term(
        self,
        coefficients: np.ndarray,
        row: np.ndarray,
        outcome: float,
        feature_index: int
    ) -> float:
        """
        Partial derivative of one observation's squared error.

        Parameters
        ----------
        coefficients : ndarray, shape (k,)
            Current coefficient vector
        row : ndarray, shape (k,)
            Design row, intercept column included
        outcome : float
            Observed response for this row
        feature_index : int
            Coefficient to differentiate against

        Returns
        -------
        float
            ∂/∂β_j of (outcome - g⁻¹(row·β))². A minimizer subtracts
            ``learning_rate * term`` from β_j.
        """
        row = np.asarray(row, dtype=np.float64)
        hypothesis = self.delinearize(float(np.dot(coefficients, row)))
        return float(
            -2.0 * (outcome - hypothesis) * self.derivative(hypothesis) * row[feature_index]
        )

    def loss_gradient(
        self,
        coefficients: np.ndarray,
        X: np.ndarray,
        y: np.ndarray,
        aggregate: str = 'mean'
    ) -> np.ndarray:
        """
        Aggregate ``loss_gradient_term`` over all rows for every coefficient.

        Entry j equals the sum (or mean) over rows i of
        ``loss_gradient_term(coefficients, X[i], y[i], j)``.
        """
        hypothesis = self.delinearize(X @ coefficients)
        scale = -2.0 * (y - hypothesis) * self.derivative(hypothesis)
        gradient = X.T @ scale
        if aggregate == 'mean':
            gradient = gradient / X.shape[0]
        elif aggregate != 'sum':
            raise ValueError(f"aggregate must be 'mean' or 'sum', got {aggregate!r}")
        return gradient

    def loss(self, coefficients: np.ndarray, X: np.ndarray, y: np.ndarray) -> float:
        """Total squared error on the response scale."""
        residuals = y - self.delinearize(X @ coefficients)
        return float(np.sum(residuals ** 2))

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class Identity(LinkFunction):
    """Identity link: μ = η. Ordinary least squares."""

    @property
    def name(self) -> str:
        return "identity"

    def delinearize(self, eta):
        return eta

    def linearize(self, mu):
        return mu

    def derivative(self, hypothesis):
        return np.ones_like(hypothesis, dtype=np.float64)


class Logistic(LinkFunction):
    """
    Logistic link: μ = 1/(1 + exp(-η)).

    Values lie strictly inside (0, 1) until float64 saturates: ``expit``
    returns exactly 1.0 for η above about 37 and 0.0 below about -745.
    """

    @property
    def name(self) -> str:
        return "logistic"

    def delinearize(self, eta):
        return expit(eta)

    def linearize(self, mu):
        values = np.asarray(mu, dtype=np.float64)
        if np.any((values <= 0.0) | (values >= 1.0)):
            raise DomainError(
                "Unable to linearize values outside of the open interval (0, 1)"
            )
        return logit(mu)

    def derivative(self, hypothesis):
        """Sigmoid derivative: μ(1 - μ)."""
        return hypothesis * (1.0 - hypothesis)


class Log(LinkFunction):
    """
    Logarithmic link: μ = base^η.

    Parameters
    ----------
    base : float, default e
        Base of the logarithm; positive and not 1
    """

    def __init__(self, base: float = np.e):
        if not np.isfinite(base) or base <= 0 or base == 1:
            raise ValidationError(f"Log base must be positive and not 1, got {base}")
        self.base = float(base)
        self._log_base = np.log(self.base)

    @property
    def name(self) -> str:
        return "log"

    def delinearize(self, eta):
        return np.power(self.base, eta)

    def linearize(self, mu):
        values = np.asarray(mu, dtype=np.float64)
        if np.any(values <= 0.0):
            raise DomainError(
                "Attempting to take the logarithm of a non-positive number"
            )
        # Dedicated routines keep exact powers exact: log_2(8) == 3.0
        if self.base == 2.0:
            return np.log2(mu)
        if self.base == 10.0:
            return np.log10(mu)
        if self.base == np.e:
            return np.log(mu)
        return np.log(mu) / self._log_base

    def derivative(self, hypothesis):
        """d/dη base^η = base^η · ln(base)."""
        return hypothesis * self._log_base

    def __repr__(self) -> str:
        return f"Log(base={self.base!r})"


_LINK_CLASSES = {
    'identity': Identity,
    'logistic': Logistic,
    'logit': Logistic,
    'log': Log,
}


def resolve_link(
    link: Union[str, LinkFunction, None],
    base: Optional[float] = None
) -> LinkFunction:
    """
    Resolve a link argument to a LinkFunction instance.

    Parameters
    ----------
    link : str, LinkFunction or None
        'identity', 'logistic' (alias 'logit'), 'log', an instance, or None
        for identity
    base : float, optional
        Logarithm base; only valid with ``link='log'``
    """
    if link is None:
        link = 'identity'
    if isinstance(link, LinkFunction):
        if base is not None:
            raise ValueError("base applies only when link is given by name")
        return link
    if not isinstance(link, str):
        raise TypeError(f"link must be str or LinkFunction, got {type(link).__name__}")

    cls = _LINK_CLASSES.get(link.lower())
    if cls is None:
        valid = ', '.join(sorted(_LINK_CLASSES))
        raise ValueError(f"Unknown link: {link!r}. Valid links: {valid}")
    if cls is Log:
        return Log() if base is None else Log(base)
    if base is not None:
        raise ValueError(f"base is not a parameter of the {link!r} link")
    return cls()


__all__ = ["LinkFunction", "Identity", "Logistic", "Log", "resolve_link"]
