"""Exceptions raised by the training form engine."""


class ValidationError(ValueError):
    """Raised when a caller asks for something that cannot be computed.

    Examples are a prediction target date in the past or a taper of zero days.
    Soft conditions such as insufficient history are returned as empty results
    and never raise.
    """
