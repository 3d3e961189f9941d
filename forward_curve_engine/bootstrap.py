"""
Bootstrap a piecewise flat forward curve from instruments.

Each instrument adds one breakpoint at its last cash flow time. The new
forward is the constant rate on (t_, u_] that reprices the instrument,
where t_ is the current end of the curve and u_ the instrument maturity.
"""

from __future__ import annotations

import logging
import math
from typing import Iterable, Optional, Tuple

import numpy as np

from .config import DEFAULT_CONFIG, BootstrapConfig
from .curves import PiecewiseFlatCurve
from .errors import CurveError, DomainError, InvalidInput
from .instruments import Instrument
from .rootfinding import BracketedSecant, find_bracket

logger = logging.getLogger(__name__)


def _present_value(
    times: np.ndarray,
    cash: np.ndarray,
    curve: PiecewiseFlatCurve,
    extrapolation: Optional[float] = None,
) -> float:
    if len(times) == 0:
        return 0.0
    return float(np.dot(cash, np.asarray(curve.discount(times, extrapolation))))


def present_value(
    instrument: Instrument,
    curve: PiecewiseFlatCurve,
    extrapolation: Optional[float] = None,
) -> float:
    """
    Sum of cash[j] * D(time[j]).

    `extrapolation` replaces the curve's forward past its last breakpoint
    for this valuation only.
    """
    return _present_value(instrument.times, instrument.cash, curve, extrapolation)


def _log(x: float, what: str) -> float:
    if not x > 0:
        raise DomainError(f"Cannot take log of non-positive {what}: {x}")
    return math.log(x)


def extend_point(
    instrument: Instrument,
    curve: PiecewiseFlatCurve,
    price: float = 0.0,
    guess_forward: float = 0.0,
    config: Optional[BootstrapConfig] = None,
) -> Tuple[float, float]:
    """
    Breakpoint (u_, f_) that makes the instrument price to `price` on the
    curve extended by f_ on (t_, u_]. The curve is not modified.

    guess_forward = 0 seeds the solver with the last forward on the curve,
    or config.initial_forward for an empty curve.
    """
    config = config or DEFAULT_CONFIG

    m = instrument.size()
    if m == 0:
        raise InvalidInput("Cannot bootstrap from an empty instrument.")
    if not instrument.ok():
        raise InvalidInput(f"Instrument cash flows are not strictly increasing from 0: {instrument!r}")

    u, c = instrument.times, instrument.cash
    t_ = curve.end()
    u_ = float(u[-1])
    if not u_ > t_:
        raise InvalidInput(f"Instrument maturity {u_} must be past curve end {t_}.")

    c_ = float(c[-1])
    D_ = float(curve.discount(t_))

    # Only the last flow is past t_: p = pv + c_ D_ exp(-f_ (u_ - t_)).
    # Guard is limited to m <= 2 on purpose; m > 2 with all but the last
    # flow inside the curve goes to the solver. Needs review before widening.
    if m == 1 or (m == 2 and u[0] <= t_):
        pv = _present_value(u[:-1], c[:-1], curve)
        denominator = c_ * D_
        if denominator == 0:
            raise DomainError(f"Last cash flow discounts to zero: c={c_} D={D_}")
        f_ = _log((price - pv) / denominator, "price ratio") / (t_ - u_)
        logger.debug("closed form (single flow past %s): f=%s", t_, f_)
        return u_, f_

    # Both flows past t_ and zero price: 0 = c0 exp(-f u0) + c1 exp(-f u1).
    if price == 0 and m == 2:
        if c[1] == 0:
            raise DomainError("Final cash flow is zero.")
        f_ = _log(-float(c[0]) / float(c[1]), "cash flow ratio") / float(u[0] - u[1])
        logger.debug("closed form (two flows, zero price): f=%s", f_)
        return u_, f_

    def residual(f: float) -> float:
        return -price + _present_value(u, c, curve, f)

    if guess_forward == 0:
        guess_forward = curve.back()[1] if curve.size() else config.initial_forward

    x0, x1 = find_bracket(
        residual,
        guess_forward,
        step=config.bracket_step,
        expansion=config.bracket_expansion,
        max_attempts=config.max_bracket_attempts,
    )
    if x0 == x1:
        f_ = x0
    else:
        solver = BracketedSecant(residual, x0, x1, eps=config.tolerance)
        f_ = solver.solve(config.max_iterations)
        logger.debug("solved f=%s on (%s, %s] in %s iterations", f_, t_, u_, solver.iterations)

    return u_, float(f_)


def extend(
    instrument: Instrument,
    curve: PiecewiseFlatCurve,
    price: float = 0.0,
    guess_forward: float = 0.0,
    config: Optional[BootstrapConfig] = None,
) -> PiecewiseFlatCurve:
    """Append the breakpoint repricing `instrument` to `curve`; returns the same curve."""
    u_, f_ = extend_point(instrument, curve, price, guess_forward, config)
    return curve.extend(u_, f_)


def build(
    instruments: Iterable[Instrument],
    config: Optional[BootstrapConfig] = None,
    errors: str = "raise",
) -> PiecewiseFlatCurve:
    """
    Bootstrap from an empty curve, one instrument at a time, in the given order.

    Terminations must increase; the caller is responsible for the order.
    errors="skip" logs and drops instruments that fail instead of aborting.
    """
    if errors not in ("raise", "skip"):
        raise InvalidInput(f"errors must be 'raise' or 'skip': {errors!r}")

    curve = PiecewiseFlatCurve()
    count = 0
    for count, inst in enumerate(instruments, start=1):
        try:
            extend(inst, curve, config=config)
        except CurveError as exc:
            if errors == "raise":
                raise
            logger.warning("Skipping instrument %s (%r): %s", count - 1, inst, exc)

    logger.info("Bootstrapped %s breakpoints from %s instruments", curve.size(), count)
    return curve


def build2(
    primary: Iterable[Instrument],
    secondary: Iterable[Instrument],
    config: Optional[BootstrapConfig] = None,
) -> PiecewiseFlatCurve:
    """
    Bootstrap from two lists: take `primary` instruments while their
    termination is before the first effective time of `secondary`, then
    all of `secondary`.
    """
    secondary = list(secondary)
    cutoff = secondary[0].effective() if secondary else math.inf

    curve = PiecewiseFlatCurve()
    for inst in primary:
        if not inst.termination() < cutoff:
            break
        extend(inst, curve, config=config)
    for inst in secondary:
        extend(inst, curve, config=config)

    logger.info("Bootstrapped %s breakpoints (cutoff %s)", curve.size(), cutoff)
    return curve
