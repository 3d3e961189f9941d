from __future__ import annotations

from enum import Enum
from typing import Iterable, Sequence

import numpy as np
import pandas as pd

from .config import FLOAT_DTYPE
from .errors import InvalidInput


class InstrumentKind(Enum):
    """Instrument variant, fixed at construction."""

    VALUE = "value"
    VIEW = "view"
    FRA = "forward_rate_agreement"
    DEPOSIT = "cash_deposit"
    PORTFOLIO = "portfolio"


def _read_only(a: np.ndarray) -> np.ndarray:
    v = a.view()
    v.flags.writeable = False
    return v


def _check_flows(times: np.ndarray, cash: np.ndarray) -> None:
    if times.ndim != 1 or cash.ndim != 1:
        raise InvalidInput("Cash flow times and amounts must be one-dimensional.")
    if len(times) != len(cash):
        raise InvalidInput(f"Mismatched cash flow arrays: {len(times)} times, {len(cash)} amounts.")
    if len(times) == 0:
        return
    if not times[0] >= 0:
        raise InvalidInput(f"First cash flow time must be non-negative: {times[0]}")
    if np.any(~(np.diff(times) > 0)):
        raise InvalidInput("Cash flow times must be strictly increasing.")


class Instrument:
    """
    Sorted cash flows (u[j], c[j]) with u[0] >= 0 and u strictly increasing.

    Owning instruments copy their inputs and can grow with `extend`.
    Views (`Instrument.view`) borrow the caller's arrays without copying;
    they expose read-only arrays that track the backing storage and cannot
    be extended. A view must not outlive the arrays it borrows.
    """

    def __init__(
        self,
        times: Iterable[float] = (),
        cash: Iterable[float] = (),
        kind: InstrumentKind = InstrumentKind.VALUE,
    ):
        t = np.array(list(times), dtype=FLOAT_DTYPE)
        c = np.array(list(cash), dtype=FLOAT_DTYPE)
        _check_flows(t, c)

        self._times = t
        self._cash = c
        self.kind = InstrumentKind(kind)

    @classmethod
    def view(cls, times: np.ndarray, cash: np.ndarray) -> "Instrument":
        """Borrow existing arrays. Array-likes that are not already FLOAT_DTYPE are copied."""
        t = _read_only(np.asarray(times, dtype=FLOAT_DTYPE))
        c = _read_only(np.asarray(cash, dtype=FLOAT_DTYPE))
        _check_flows(t, c)

        inst = cls.__new__(cls)
        inst._times = t
        inst._cash = c
        inst.kind = InstrumentKind.VIEW
        return inst

    @property
    def is_view(self) -> bool:
        return self.kind is InstrumentKind.VIEW

    @property
    def times(self) -> np.ndarray:
        return self._times if self.is_view else _read_only(self._times)

    @property
    def cash(self) -> np.ndarray:
        return self._cash if self.is_view else _read_only(self._cash)

    def size(self) -> int:
        return len(self._times)

    def __len__(self) -> int:
        return self.size()

    def ok(self) -> bool:
        """Strictly increasing times starting at or after 0 (views can go stale)."""
        try:
            _check_flows(self._times, self._cash)
        except InvalidInput:
            return False
        return True

    def effective(self) -> float:
        if self.size() == 0:
            raise InvalidInput("Empty instrument has no effective time.")
        return float(self._times[0])

    def termination(self) -> float:
        if self.size() == 0:
            raise InvalidInput("Empty instrument has no termination time.")
        return float(self._times[-1])

    def extend(self, u: float, c: float) -> "Instrument":
        """Append one cash flow strictly after the current last one."""
        if self.is_view:
            raise InvalidInput("Cannot extend a borrowed instrument view.")
        if self.size() == 0:
            if not u >= 0:
                raise InvalidInput(f"First cash flow time must be non-negative: {u}")
        elif not u > self._times[-1]:
            raise InvalidInput(f"Cash flow time {u} must exceed last time {self._times[-1]}.")

        self._times = np.append(self._times, FLOAT_DTYPE(u))
        self._cash = np.append(self._cash, FLOAT_DTYPE(c))
        return self

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame({"time": self._times, "cash": self._cash})

    def __repr__(self) -> str:
        flows = ", ".join(f"({u:g}, {c:g})" for u, c in zip(self._times, self._cash))
        return f"Instrument(kind={self.kind.value}, flows=[{flows}])"


def forward_rate_agreement(effective: float, termination: float, rate: float) -> Instrument:
    """Pay 1 at effective, receive exp(rate * (termination - effective)) at termination."""
    if not termination > effective:
        raise InvalidInput(f"FRA termination must exceed effective: {effective=} {termination=}")
    growth = float(np.exp(rate * (termination - effective)))
    return Instrument([effective, termination], [-1.0, growth], kind=InstrumentKind.FRA)


def cash_deposit(maturity: float, rate: float) -> Instrument:
    """FRA starting today."""
    inst = forward_rate_agreement(0.0, maturity, rate)
    inst.kind = InstrumentKind.DEPOSIT
    return inst


def portfolio(weights: Sequence[float], instruments: Sequence[Instrument]) -> Instrument:
    """
    Weighted merge of instruments' cash flows.

    Flows at identical times are summed; the result is sorted by time.
    With one instrument and weight 1 this is just a sort by time.
    """
    if len(weights) != len(instruments):
        raise InvalidInput(f"Got {len(weights)} weights for {len(instruments)} instruments.")

    frames = [
        pd.DataFrame({"time": inst.times, "cash": float(w) * inst.cash})
        for w, inst in zip(weights, instruments)
    ]
    if not frames:
        return Instrument(kind=InstrumentKind.PORTFOLIO)

    flows = pd.concat(frames, ignore_index=True).groupby("time", sort=True)["cash"].sum()
    return Instrument(flows.index.to_numpy(), flows.to_numpy(), kind=InstrumentKind.PORTFOLIO)
