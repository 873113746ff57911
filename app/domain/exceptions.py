from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    MISSING_PARAMETERS = "missing_parameters"
    INVALID_STATE = "invalid_state"
    INVALID_TOKEN = "invalid_token"
    INVALID_POLL_ID = "invalid_poll_id"
    INVALID_DATA = "invalid_data"
    AUTHENTICATION_FAILED = "authentication_failed"
    ACCOUNT_EXISTS = "account_exists"
    USERNAME_TAKEN = "username_taken"
    NETWORK_ERROR = "network_error"
    CONFIGURATION_ERROR = "configuration_error"
    USER_NOT_FOUND = "user_not_found"
    INTERNAL_ERROR = "internal_error"


class DomainError(Exception):
    """Base for every error the auth core raises on purpose."""

    code: ErrorCode = ErrorCode.INTERNAL_ERROR


class MissingParametersError(DomainError):
    code = ErrorCode.MISSING_PARAMETERS


class ConfigurationError(DomainError):
    """A provider is missing required configuration."""

    code = ErrorCode.CONFIGURATION_ERROR

    def __init__(self, platform: str, missing: list[str]):
        self.platform = platform
        self.missing = list(missing)
        super().__init__(f"{platform} is not configured. Missing: {', '.join(self.missing)}.")


class AuthError(DomainError):
    """Authentication with a provider failed."""

    code = ErrorCode.AUTHENTICATION_FAILED

    def __init__(self, message: str, *, platform: str):
        self.platform = platform
        super().__init__(message)


class InvalidOrExpiredStateError(AuthError):
    code = ErrorCode.INVALID_STATE

    def __init__(self, *, platform: str, message: str = "Invalid or expired state."):
        super().__init__(message, platform=platform)


class InvalidOrExpiredTokenError(AuthError):
    """The provider rejected the credential; the user has to log in again."""

    code = ErrorCode.INVALID_TOKEN

    def __init__(self, *, platform: str, message: str = "Invalid or expired token."):
        super().__init__(message, platform=platform)


class ProviderNetworkError(AuthError):
    """Provider unreachable or answering 5xx. Safe to retry."""

    code = ErrorCode.NETWORK_ERROR

    def __init__(self, *, platform: str, message: str = "Unable to reach the identity provider."):
        super().__init__(message, platform=platform)


class AccountExistsError(DomainError):
    code = ErrorCode.ACCOUNT_EXISTS


class UsernameTakenError(DomainError):
    code = ErrorCode.USERNAME_TAKEN


class UserNotFoundError(DomainError):
    """A session references a user that was never persisted."""

    code = ErrorCode.USER_NOT_FOUND


class InvalidPollIdError(DomainError):
    code = ErrorCode.INVALID_POLL_ID


class InvalidRelayDataError(DomainError):
    code = ErrorCode.INVALID_DATA


class InvalidSessionError(DomainError):
    """The bearer token is missing, unknown or expired."""

    code = ErrorCode.INVALID_TOKEN
