import math

import numpy as np
import pytest

from forward_curve_engine.bootstrap import build, build2, extend, extend_point, present_value
from forward_curve_engine.config import BootstrapConfig
from forward_curve_engine.curves import PiecewiseFlatCurve
from forward_curve_engine.errors import DomainError, InvalidInput, NoRootBracket
from forward_curve_engine.instruments import (
    Instrument,
    cash_deposit,
    forward_rate_agreement,
    portfolio,
)

LN2 = math.log(2.0)


@pytest.fixture
def unit_curve():
    """Curve bootstrapped from a deposit doubling money over one year."""
    return extend(Instrument([0.0, 1.0], [-1.0, 2.0]), PiecewiseFlatCurve())


def test_cash_deposit_from_empty_curve():
    curve = extend(cash_deposit(1.0, LN2), PiecewiseFlatCurve())
    assert curve.size() == 1
    assert curve.back()[0] == 1.0
    assert curve.back()[1] == pytest.approx(LN2, abs=1e-14)
    assert curve.discount(1.0) == pytest.approx(0.5, abs=1e-15)


def test_single_flow_with_price():
    curve = extend(Instrument([1.0], [2.0]), PiecewiseFlatCurve(), 1.0)
    assert curve.back()[0] == 1.0
    assert curve.value(0.0) == pytest.approx(LN2, abs=1e-14)


def test_two_flows_both_past_curve_end():
    curve = extend(Instrument([1.0, 2.0], [-1.0, 2.0]), PiecewiseFlatCurve())
    assert curve.size() == 1
    assert curve.back()[0] == 2.0
    assert curve.value(0.0) == pytest.approx(LN2, abs=1e-14)


@pytest.mark.parametrize("effective, termination", [(1.0, 2.0), (0.9, 1.9), (1.1, 2.1)])
def test_second_fra_keeps_flat_rate(unit_curve, effective, termination):
    curve = extend(Instrument([effective, termination], [-1.0, 2.0]), unit_curve)
    assert curve.size() == 2
    assert curve.back()[0] == termination
    assert curve.value(0.5) == pytest.approx(LN2, abs=1e-14)
    assert curve.value(1.5) == pytest.approx(LN2, abs=1e-14)


def test_solver_branch_multiple_flows(unit_curve):
    extend(Instrument([1.1, 2.1], [-1.0, 2.0]), unit_curve)
    curve = extend(Instrument([0.0, 1.0, 2.0, 3.0], [-1.0, 1.0, 1.0, 2.0]), unit_curve)
    assert curve.size() == 3
    assert curve.back()[0] == 3.0
    assert curve.value(3.0) == pytest.approx(LN2, abs=1e-8)


def test_fra_strip_value_at_midpoints():
    rate = 0.035
    curve = build([cash_deposit(1.0, rate), forward_rate_agreement(1.0, 2.0, rate)])
    assert curve.size() == 2
    assert curve.value(0.5) == pytest.approx(curve.value(1.5))
    assert curve.value(1.5) == pytest.approx(rate)


def test_present_value_round_trip_with_price():
    bond = Instrument([0.5, 1.0, 1.5, 2.0], [0.02, 0.02, 0.02, 1.02])
    curve = build([cash_deposit(0.5, 0.03)])
    extend(bond, curve, price=0.99)
    assert curve.back()[0] == 2.0
    assert present_value(bond, curve) == pytest.approx(0.99, abs=1e-9)


def test_present_value_round_trip_swap_like(unit_curve):
    swap = Instrument([0.0, 1.0, 2.0, 3.0], [-1.0, 0.6, 0.6, 1.1])
    extend(swap, unit_curve, guess_forward=0.2)
    assert present_value(swap, unit_curve) == pytest.approx(0.0, abs=1e-9)


def test_present_value_extrapolation_override(unit_curve):
    inst = Instrument([1.0, 2.0], [-1.0, 2.0])
    expected = -0.5 + 2.0 * 0.5 * math.exp(-0.1)
    assert present_value(inst, unit_curve, extrapolation=0.1) == pytest.approx(expected)
    assert math.isnan(present_value(inst, unit_curve))


def test_extend_point_does_not_mutate(unit_curve):
    u, f = extend_point(forward_rate_agreement(1.0, 2.0, 0.05), unit_curve)
    assert u == 2.0
    assert f == pytest.approx(0.05)
    assert unit_curve.size() == 1


def test_portfolio_bootstraps_like_components():
    a = cash_deposit(1.0, 0.04)
    b = forward_rate_agreement(1.0, 2.0, 0.04)
    p = portfolio([1.0, math.exp(0.04)], [a, b])
    # the weighted flows at t=1 cancel: -1 at 0, exp(0.08) at 2
    curve = extend(p, PiecewiseFlatCurve())
    assert curve.back()[0] == 2.0
    assert curve.value(1.5) == pytest.approx(0.04)


def test_domain_errors():
    with pytest.raises(DomainError):
        extend(Instrument([1.0], [2.0]), PiecewiseFlatCurve())
    with pytest.raises(DomainError):
        extend(Instrument([1.0, 2.0], [1.0, 2.0]), PiecewiseFlatCurve())


def test_invalid_input_leaves_curve_untouched(unit_curve):
    with pytest.raises(InvalidInput):
        extend(cash_deposit(0.5, 0.01), unit_curve)
    with pytest.raises(InvalidInput):
        extend(Instrument(), unit_curve)
    assert unit_curve.size() == 1


def test_no_bracket_leaves_curve_untouched(unit_curve):
    config = BootstrapConfig(max_bracket_attempts=8)
    with pytest.raises(NoRootBracket):
        extend(Instrument([0.5, 1.5, 2.5], [1.0, 1.0, 1.0]), unit_curve, config=config)
    assert unit_curve.size() == 1


def test_build_error_policy():
    instruments = [cash_deposit(1.0, 0.02), cash_deposit(0.5, 0.02), cash_deposit(2.0, 0.03)]

    with pytest.raises(InvalidInput):
        build(instruments)

    curve = build(instruments, errors="skip")
    assert list(curve.times) == [1.0, 2.0]

    with pytest.raises(InvalidInput):
        build(instruments, errors="ignore")


def test_build2_concatenates_terminations():
    rate = 0.03
    primary = [cash_deposit(t, rate) for t in (0.25, 0.5, 0.75, 1.5)]
    secondary = [forward_rate_agreement(1.0, 2.0, rate), forward_rate_agreement(2.0, 3.0, rate)]

    curve = build2(primary, secondary)
    assert list(curve.times) == [0.25, 0.5, 0.75, 2.0, 3.0]
    np.testing.assert_allclose(curve.value([0.1, 0.6, 1.2, 2.5]), rate)


def test_build2_empty_secondary_uses_all_primary():
    primary = [cash_deposit(t, 0.02) for t in (1.0, 2.0)]
    assert list(build2(primary, []).times) == [1.0, 2.0]
