# storefront/domain/errors.py


class ConfigurationError(RuntimeError):
    """A required setting (secret, api key) is missing."""


class NotFoundError(LookupError):
    pass


class InvalidSignatureError(ValueError):
    pass


class AuthenticationError(PermissionError):
    pass


class TooManyAttemptsError(PermissionError):
    def __init__(self, retry_after: int):
        super().__init__("Too many failed attempts, try again later")
        self.retry_after = retry_after


class GatewayError(RuntimeError):
    """Payment gateway call failed. Message is passed through to the caller."""
