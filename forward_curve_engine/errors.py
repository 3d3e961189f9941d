from __future__ import annotations


class CurveError(Exception):
    """Base class for curve construction failures."""


class InvalidInput(CurveError, ValueError):
    """Bad times, mismatched lengths or an empty instrument where a time is needed."""


class NoRootBracket(CurveError, RuntimeError):
    """Root finder endpoints do not straddle a root."""


class NumericalNonConvergence(CurveError, RuntimeError):
    """Iteration budget exhausted before the tolerance was met."""


class DomainError(CurveError, ArithmeticError):
    """A closed-form bootstrap branch needed the log of a non-positive number."""
