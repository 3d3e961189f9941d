from __future__ import annotations

from dataclasses import dataclass

import numpy as np

# One floating type for every time/rate array in a build.
FLOAT_DTYPE = np.float64

# Unbracketed secant (scipy) defaults.
SECANT_TOLERANCE = 1e-8
SECANT_MAX_ITERATIONS = 100


@dataclass(frozen=True)
class BootstrapConfig:
    """
    Numerical settings for extending a curve by one instrument.

    - initial_forward: seed forward when the curve is empty and no guess is given
    - bracket_step: initial bracket is [guess, guess + bracket_step]
    - bracket_expansion / max_bracket_attempts: symmetric widening around the guess
    - tolerance: absolute tolerance on the pricing residual
    - max_iterations: bracketed secant iteration cap
    """
    initial_forward: float = 0.01
    bracket_step: float = 0.001
    bracket_expansion: float = 2.0
    max_bracket_attempts: int = 60
    tolerance: float = 1e-12
    max_iterations: int = 256


DEFAULT_CONFIG = BootstrapConfig()
