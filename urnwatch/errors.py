"""Error kinds raised by the valuation engine and the chain boundary."""


class MonitorError(Exception):
    """Base class for every recoverable monitoring failure."""


class DataUnavailable(MonitorError):
    """An external read failed or returned something unreadable."""


class PriceUnavailable(MonitorError):
    """A feed pull failed or returned no value."""


class MalformedKey(MonitorError):
    """A key, address or call argument cannot be encoded for the chain."""


class DivideByZero(MonitorError):
    """A fixed-point division would divide by zero."""


class ArithmeticOverflow(MonitorError):
    """A fixed-point operation exceeds its intermediate width."""


class UnknownCollateralClass(MonitorError):
    """A lookup references a collateral class absent from configuration."""
