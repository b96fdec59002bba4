class AQIError(Exception):
    """Base class for errors raised by the AQI core and surfaced as HTTP 400."""


class UnknownPollutantError(AQIError):
    pass


class UnknownModelError(AQIError):
    pass


class InsufficientInputError(AQIError):
    pass


class InvalidInputError(AQIError):
    pass
