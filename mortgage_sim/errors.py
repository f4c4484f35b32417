"""Exceptions raised when a loan input cannot be simulated."""


class SimulationInputError(ValueError):
    """Base class for inputs rejected before the schedule is generated."""


class InvalidRateError(SimulationInputError):
    """The effective monthly rate is zero or negative."""


class InvalidPrincipalError(SimulationInputError):
    """The financed principal after down payment and subsidy is negative."""


class InvalidTermError(SimulationInputError):
    """The loan term (or its grace period) is not usable."""
