"""Exceptions raised by the EcoFlow client."""

from __future__ import annotations


class EcoflowError(Exception):
    """Base class for all errors raised by this package."""


class TransportError(EcoflowError):
    """The HTTP request could not be completed (DNS, TLS, connection, timeout)."""


class HttpStatusError(EcoflowError):
    """The server answered with a status other than 200."""

    def __init__(self, uri: str, status: int) -> None:
        super().__init__(f"Response status is failed|url={uri}, statusCode={status}")
        self.uri = uri
        self.status = status


class DecodeError(EcoflowError):
    """The response body is not valid JSON or does not have the expected shape."""


class ApplicationError(EcoflowError):
    """The API returned a non-success ``code``."""

    def __init__(self, code: str, message: str, action: str = "request failed") -> None:
        super().__init__(f"{action}, error code: {code}, error message: {message}")
        self.code = code
        self.message = message


class CommandRejected(ApplicationError):
    """A set-parameter command was refused by the device or API."""

    def __init__(self, code: str, message: str) -> None:
        super().__init__(code, message, "command rejected")


class UnsupportedMethod(EcoflowError, ValueError):
    """Only GET, POST and PUT are signed and sent."""


class ValidationError(EcoflowError, ValueError):
    """A parameter is out of range; raised before any network call."""


class InvalidMetricName(EcoflowError, ValueError):
    """A quota key cannot be turned into a valid Prometheus metric name."""


class MqttError(ConnectionError):
    """Raised when an MQTT operation fails.

    Wraps :class:`aiomqtt.MqttError` so callers do not need to import
    ``aiomqtt`` to catch broker failures from :class:`ecoflow.MqttClient`.
    """
