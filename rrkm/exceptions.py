"""Exception hierarchy for model construction and evaluation."""
from __future__ import annotations


class RrkmError(RuntimeError):
    """Base class for domain specific exceptions."""


class UnopenedFileException(RrkmError):
    pass


class DataNotFoundException(RrkmError):
    pass


class InputError(RrkmError):
    """Missing keyword, out-of-range value or inconsistent model definition."""


class LogicError(RrkmError):
    """Invariant violation; indicates a defect rather than bad input."""


class ConvergenceError(RrkmError):
    """Numeric non-convergence for a particular model and argument."""


class ExtrapolationError(RrkmError):
    """Query too far outside the tabulated range."""
