"""Domain exceptions raised by the stores and the session resolver.

Request handlers translate these into HTTP responses; none of them carry
driver details in their message.
"""


class BookingError(Exception):
    default_message = 'Unexpected server error.'

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class StoreError(BookingError):
    default_message = 'Store operation failed.'


class SlotAlreadyBooked(BookingError):
    default_message = 'This time slot is already booked.'


class AccountError(BookingError):
    default_message = 'Registration failed.'


class InvalidCredentials(BookingError):
    default_message = 'Invalid credentials.'


class InvalidToken(BookingError):
    default_message = 'Invalid session.'


class ProfileNotFound(BookingError):
    default_message = 'User role not found.'


class SessionError(BookingError):
    pass


class NotAuthenticated(SessionError):
    default_message = 'Not authenticated.'


class InvalidSession(SessionError):
    default_message = 'Invalid session.'
