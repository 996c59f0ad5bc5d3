"""Exceptions raised by the calculation engine."""


class FinanceTrackerError(Exception):
    """Base exception for the finance tracker engine."""
    pass


class InvalidFrequencyError(FinanceTrackerError, ValueError):
    """An unrecognized bill frequency reached the period calculator."""

    def __init__(self, frequency: object):
        self.frequency = frequency
        super().__init__(
            f"Unsupported bill frequency: {frequency!r}. "
            "Expected one of: monthly, bimonthly, quarterly, yearly"
        )


class InvalidDateError(FinanceTrackerError, ValueError):
    """A date at the boundary could not be parsed."""
    pass
