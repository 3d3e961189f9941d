"""
Forward Curve Engine

Modules:
- curves: piecewise flat forward curve (value/integral/discount/spot) + QC report
- instruments: cash flow instruments, FRA, cash deposit, weighted portfolio merge
- rootfinding: bracketed secant solver + plain secant
- bootstrap: extend a curve by one instrument, build curves from instrument lists
- config: numeric dtype and solver settings
- errors: exception types raised by curve construction
"""

from .bootstrap import build, build2, extend, extend_point, present_value
from .config import BootstrapConfig
from .curves import PiecewiseFlatCurve, curve_qc_report
from .errors import CurveError, DomainError, InvalidInput, NoRootBracket, NumericalNonConvergence
from .instruments import Instrument, InstrumentKind, cash_deposit, forward_rate_agreement, portfolio
from .rootfinding import BracketedSecant, find_bracket, secant
