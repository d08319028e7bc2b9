"""Custom exception classes for the redfish_client library."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .response import Response


class RedfishError(Exception):
    """Base exception class for all redfish_client errors."""

    def __init__(self, message: str, *, response: "Response | None" = None):
        """Initializes the base exception.

        Args:
            message: The error message.
            response: Optional Response associated with the error.
        """
        super().__init__(message)
        self.message = message
        self.response = response

    def __str__(self) -> str:
        if self.response is not None:
            return f"{self.message} (Status: {self.response.status})"
        return self.message


class ConfigurationError(RedfishError):
    """Represents an error in the library's configuration."""

    def __init__(self, message: str):
        # Configuration errors never carry a service response
        super().__init__(message, response=None)


class AuthenticationError(RedfishError):
    """Raised when the service rejects the supplied credentials."""


class ResourceNotFoundError(RedfishError):
    """Raised when a resource cannot be fetched by its id."""


class NoAddressableIdError(RedfishError):
    """Raised when a request verb is used on a resource without a target address.

    Issuing requests against pure-data resources indicates a bug in the caller.
    """


class AsyncTimeoutError(RedfishError):
    """Raised when an asynchronous operation does not finish within the polling budget."""


class MissingKeyError(RedfishError, KeyError):
    """Raised by strict navigation when a key is not present."""


class IndexOutOfRangeError(RedfishError, IndexError):
    """Raised by strict navigation when an array index is not valid."""
