"""Error taxonomy shared by the provider client, sync engine and API layer.

Every error carries an HTTP status and a message that is safe to show to the
end user. Provider payloads and credentials never go into ``message``.
"""
from typing import Optional


class TrueBalanceError(Exception):
    """Base class for domain errors."""

    status_code = 500
    code = "internal_error"
    message = "Something went wrong, please try again"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)
        if message:
            self.message = message


class ConfigurationError(TrueBalanceError):
    """Required configuration is missing or unsafe."""

    code = "configuration_error"


class ProviderError(TrueBalanceError):
    """Base class for failures talking to the aggregation provider."""

    status_code = 502
    code = "provider_error"


class ProviderAuthError(ProviderError):
    """The provider rejected the access credential."""

    status_code = 409
    code = "reconnect_required"
    message = "Your bank connection has expired, please reconnect your bank"


class ProviderUnavailable(ProviderError):
    """Network or transport failure reaching the provider."""

    status_code = 503
    code = "provider_unavailable"
    message = "Your bank is unavailable right now, please try again later"


class ProviderTimeout(ProviderError):
    """The provider did not answer within the configured timeout."""

    status_code = 504
    code = "provider_timeout"
    message = "Your bank took too long to respond, please try again later"


class ProviderResponseError(ProviderError):
    """The provider answered with something we could not understand."""

    status_code = 502
    code = "provider_response_error"
    message = "Failed to sync with your bank"


class NotFound(TrueBalanceError):
    """A referenced account or credential does not exist locally."""

    status_code = 404
    code = "not_found"
    message = "Not found"


class AlreadyExists(TrueBalanceError):
    """The resource being created is already registered."""

    status_code = 400
    code = "already_exists"
    message = "Already exists"


class TooManyRequests(TrueBalanceError):
    """A client exceeded a request rate limit."""

    status_code = 429
    code = "rate_limited"
    message = "Too many requests, please try again later"


class DecryptionError(TrueBalanceError):
    """A stored credential could not be decrypted (tampered or wrong key)."""

    code = "decryption_error"


class AuthenticationError(TrueBalanceError):
    """Bearer authentication or login failed."""

    status_code = 401
    code = "authentication_failed"
    message = "Authentication required"

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code
