"""Account domain specific exceptions."""


class AccountError(Exception):
    """Base class for account domain errors."""


class InvalidInputError(AccountError):
    """Raised when required input is missing or malformed."""


class DuplicateEmailError(AccountError):
    """Raised when registering an email that already belongs to an account."""


class InvalidCredentialsError(AccountError):
    """Raised for an unknown email or a wrong password, without saying which."""


class AccountBlockedError(AccountError):
    """Raised when a blocked account attempts to log in."""


class UnauthenticatedError(AccountError):
    """Raised when a request carries no usable bearer token."""


class TokenError(UnauthenticatedError):
    """Base class for token verification failures."""


class TokenExpiredError(TokenError):
    """Raised when a token is past its expiry."""


class TokenMalformedError(TokenError):
    """Raised when a token's signature, issuer or structure is invalid."""


class ForbiddenError(AccountError):
    """Raised when an identified account is not allowed to proceed."""


class SelfActionForbiddenError(ForbiddenError):
    """Raised when an actor targets their own account with block or delete."""


class StorageError(AccountError):
    """Raised when the persistence layer fails; details stay server-side."""


class CorruptHashError(AccountError):
    """Raised when a stored password hash cannot be parsed."""
