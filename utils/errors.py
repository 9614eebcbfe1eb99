"""
utils/errors.py
---------------
Error taxonomy shared by repositories, services and handlers.

Repositories raise TransientIOError for store failures, services raise the
domain errors, and the Telegram handlers turn each class into a reply.
None of these errors is retried automatically.
"""


class ParkingError(Exception):
    """Base class for every error this application raises on purpose."""


class ValidationError(ParkingError):
    """Malformed input (username, amount, date, form fields)."""


class AuthorizationError(ParkingError):
    """The operator lacks the role required for the action."""


class NotFoundError(ParkingError):
    """A referenced subscriber, payment, message or operator does not exist."""


class TransientIOError(ParkingError):
    """A network or store call failed. The operation was abandoned."""


class InvalidRangeError(ParkingError):
    """Statistics were requested for a month that has not started yet."""


class PartialBulkFailure(ParkingError):
    """
    Some members of a bulk operation failed, others succeeded.

    Successes are kept; failed members stay in their previous state and
    have to be retried one by one.
    """

    def __init__(self, succeeded: list[int], failed: list[int]):
        self.succeeded = succeeded
        self.failed = failed
        super().__init__(
            f"{len(succeeded)} succeeded, {len(failed)} failed (ids: {failed})"
        )
