class PaymentError(Exception):
    """Base class for payment failures handled at the view boundary."""


class ConfigurationError(PaymentError):
    """A required gateway credential is missing from the settings store."""


class GatewayError(PaymentError):
    """The provider rejected the request or answered with something unusable."""

    def __init__(self, message, *, status_message=None, payload=None):
        super().__init__(message)
        self.status_message = status_message or message
        self.payload = payload


class NotFoundError(PaymentError):
    """No project matches the order id carried by a gateway notification."""


class AuthenticationError(PaymentError):
    """A webhook did not present the configured verification key."""


class SmsError(Exception):
    """The SMS gateway could not deliver a message."""
