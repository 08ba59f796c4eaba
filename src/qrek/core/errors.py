# src/qrek/core/errors.py
from __future__ import annotations


class DateInputError(ValueError):
    """Malformed or out-of-range date input (raised before any engine work)."""


class ConversionError(RuntimeError):
    """Base class for failures inside the conversion engine."""


class NonConvergenceError(ConversionError):
    """
    An iterative locator did not settle within its iteration budget.
    """

    def __init__(self, message: str, *, jd_approx: float, iterations: int) -> None:
        super().__init__(message)
        self.jd_approx = jd_approx
        self.iterations = iterations


class CalendarInvariantError(ConversionError):
    """The assembled months/terms contradict an expected calendar invariant."""
