"""Exception types raised by boundsplit."""


class BoundsplitError(Exception):
    """Base class for boundsplit errors."""

    pass


class SizerLoadError(BoundsplitError):
    """Raised when a sizer's tokenizer or encoding cannot be loaded."""

    pass


class SizerContractError(BoundsplitError):
    """Raised when a sizer returns a measurement that breaks its contract."""

    pass
