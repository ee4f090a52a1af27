"""Shared exceptions for service layer operations."""


class ShortLinkError(Exception):
    """Base class for errors the HTTP layer reports to clients."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationError(ShortLinkError):
    """Raised when request input is missing or malformed."""


class ConflictError(ShortLinkError):
    """Raised when a custom short id is already taken."""


class UnauthenticatedError(ShortLinkError):
    """Raised when the bearer credential is missing or rejected."""


class ForbiddenError(ShortLinkError):
    """Raised when a user acts on a link they do not own."""


class NotFoundError(ShortLinkError):
    """Raised when no link matches the short id."""

    def __init__(self, short_id: str) -> None:
        self.short_id = short_id
        super().__init__("URL not found")


class ExpiredError(ShortLinkError):
    """Raised when resolving a link whose expiration date has passed."""

    def __init__(self, short_id: str) -> None:
        self.short_id = short_id
        super().__init__("URL has expired")


class PasswordError(ShortLinkError):
    """
    Base for password gating failures.

    Clients use the is_password_protected flag to prompt for a password.
    """

    is_password_protected = True


class PasswordRequiredError(PasswordError):
    """Raised when a protected link is resolved without a password."""

    def __init__(self) -> None:
        super().__init__("Password required")


class InvalidPasswordError(PasswordError):
    """Raised when the supplied password does not match."""

    def __init__(self) -> None:
        super().__init__("Invalid password")


class InternalError(ShortLinkError):
    """Raised for unexpected failures the client cannot fix."""


class ShortIdGenerationError(InternalError):
    """Raised when every generated short id collided with an existing one."""

    def __init__(self, attempts: int) -> None:
        self.attempts = attempts
        super().__init__(f"Could not generate a unique short id after {attempts} attempts")


class IdentityProviderUnavailableError(ShortLinkError):
    """Raised when the identity provider's signing keys cannot be fetched."""

    def __init__(self) -> None:
        super().__init__("Could not validate credentials")
