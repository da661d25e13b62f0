"""Exceptions raised by seatshare services.

Routers translate these into HTTP responses; anything else (including
SQLAlchemy errors) is a store failure and propagates unchanged.
"""


class SeatshareError(Exception):
    """Base class for business-rule failures."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(SeatshareError):
    """Input data does not satisfy format/rules."""


class NotFoundError(SeatshareError):
    """A referenced provider, country, account, slot or request does not exist."""


class UnsupportedError(SeatshareError):
    """The country is inactive or not supported by the provider."""


class ConflictError(SeatshareError):
    pass


class DuplicateRequestError(ConflictError):
    """The user already has an unresolved request for the same tuple."""


class AlreadyAssignedError(ConflictError):
    """The user already holds an active seat for the provider."""


class InvalidTransitionError(ConflictError):
    """The request is not in a state that allows the transition."""
