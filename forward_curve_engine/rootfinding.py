"""One-dimensional root finding: bracketed secant and plain secant."""

from __future__ import annotations

import logging
from typing import Callable, Tuple

import numpy as np
from scipy import optimize

from .config import SECANT_MAX_ITERATIONS, SECANT_TOLERANCE
from .errors import InvalidInput, NoRootBracket, NumericalNonConvergence

logger = logging.getLogger(__name__)

Func = Callable[[float], float]


def _opposite(y0: float, y1: float) -> bool:
    return bool(np.signbit(y0) != np.signbit(y1))


class BracketedSecant:
    """
    Solve f(x) = 0 on a bracket [x0, x1] with f(x0), f(x1) of opposite sign.

    Each step takes the secant estimate (x0*y1 - x1*y0)/(y1 - y0) and falls
    back to the midpoint when the estimate leaves the bracket or when the
    same endpoint has been replaced on two consecutive steps. The endpoint
    sharing the sign of the new value is replaced, so the bracket is valid
    after every step.

    Converged when max(|y0|, |y1|) <= eps, or when the bracket can no longer
    be split in floating point.
    """

    def __init__(self, f: Func, x0: float, x1: float, eps: float = 0.0):
        if not eps >= 0:
            raise InvalidInput(f"eps must be non-negative: {eps=}")

        self.f = f
        self.eps = float(eps)
        self.x0, self.x1 = float(min(x0, x1)), float(max(x0, x1))
        self.y0, self.y1 = float(f(self.x0)), float(f(self.x1))

        if not (np.isfinite(self.y0) and np.isfinite(self.y1)):
            raise NoRootBracket(f"Non-finite value at bracket endpoints: f({self.x0})={self.y0}, f({self.x1})={self.y1}")
        if not _opposite(self.y0, self.y1):
            raise NoRootBracket(f"Root not bracketed: f({self.x0})={self.y0}, f({self.x1})={self.y1}")

        self.iterations = 0
        self._last_side = -1
        self._repeats = 0
        self._exhausted = False

    @property
    def converged(self) -> bool:
        return max(abs(self.y0), abs(self.y1)) <= self.eps or self._exhausted

    @property
    def estimate(self) -> float:
        """Endpoint with the smaller |f|."""
        return self.x0 if abs(self.y0) < abs(self.y1) else self.x1

    def step(self) -> "BracketedSecant":
        x0, x1, y0, y1 = self.x0, self.x1, self.y0, self.y1

        x = (x0 * y1 - x1 * y0) / (y1 - y0)
        if self._repeats >= 2 or not (x0 < x < x1):
            x = x0 / 2 + x1 / 2
            if not (x0 < x < x1):
                self._exhausted = True
                return self

        y = float(self.f(x))
        if not np.isfinite(y):
            raise NumericalNonConvergence(f"Non-finite function value f({x})={y}")

        if np.signbit(y) == np.signbit(y0):
            self.x0, self.y0 = x, y
            side = 0
        else:
            self.x1, self.y1 = x, y
            side = 1

        self._repeats = self._repeats + 1 if side == self._last_side else 1
        self._last_side = side
        self.iterations += 1

        logger.debug(
            "secant iter %s: [%s, %s] f=[%s, %s]", self.iterations, self.x0, self.x1, self.y0, self.y1
        )
        return self

    def solve(self, max_iterations: int = 256) -> float:
        while not self.converged:
            if self.iterations >= max_iterations:
                raise NumericalNonConvergence(
                    f"Bracketed secant did not converge in {max_iterations} iterations: "
                    f"[{self.x0}, {self.x1}] f=[{self.y0}, {self.y1}] eps={self.eps}"
                )
            self.step()
        return self.estimate


def find_bracket(
    f: Func,
    guess: float,
    step: float = 0.001,
    expansion: float = 2.0,
    max_attempts: int = 60,
) -> Tuple[float, float]:
    """
    Search for [x0, x1] with f(x0), f(x1) of opposite sign.

    Starts from [guess, guess + step] and widens symmetrically around the
    guess. An exact zero at an endpoint returns the degenerate bracket (x, x).
    """
    if not step > 0 or not expansion > 1:
        raise InvalidInput(f"Bracket search needs step > 0 and expansion > 1: {step=} {expansion=}")

    a, b = guess, guess + step
    width = step
    for attempt in range(max_attempts + 1):
        fa, fb = f(a), f(b)
        if fa == 0.0:
            return a, a
        if fb == 0.0:
            return b, b
        if np.isfinite(fa) and np.isfinite(fb) and _opposite(fa, fb):
            logger.debug("bracket found after %s widenings: [%s, %s]", attempt, a, b)
            return a, b
        width *= expansion
        a, b = guess - width, guess + width

    raise NoRootBracket(f"Failed to bracket a root around {guess} after {max_attempts} widenings")


def secant(
    f: Func,
    x0: float,
    x1: float,
    tol: float = SECANT_TOLERANCE,
    max_iterations: int = SECANT_MAX_ITERATIONS,
) -> float:
    """
    Plain (unbracketed) secant iteration. No convergence guarantee: raises
    NumericalNonConvergence once the iteration budget is spent or when the
    final point does not satisfy |f(x)| <= tol.
    """
    root, result = optimize.newton(
        f, x0, x1=x1, tol=tol, maxiter=max_iterations, full_output=True, disp=False
    )
    if not result.converged or not np.isfinite(root) or not abs(f(root)) <= tol:
        raise NumericalNonConvergence(
            f"Secant did not converge after {result.iterations} iterations ({result.flag})"
        )
    return float(root)
