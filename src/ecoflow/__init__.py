"""Python API and CLI for the EcoFlow cloud IoT API."""

from ecoflow.client import Client
from ecoflow.devices import build_command
from ecoflow.errors import (
    ApplicationError,
    CommandRejected,
    DecodeError,
    EcoflowError,
    HttpStatusError,
    InvalidMetricName,
    MqttError,
    TransportError,
    UnsupportedMethod,
    ValidationError,
)
from ecoflow.models import (
    CommandResult,
    DeviceInfo,
    MqttConnectionConfig,
    MqttDeviceParams,
    SettingSwitcher,
)
from ecoflow.mqtt import MqttClient, Subscription, get_mqtt_credentials

__all__ = [
    "ApplicationError",
    "Client",
    "CommandRejected",
    "CommandResult",
    "DecodeError",
    "DeviceInfo",
    "EcoflowError",
    "HttpStatusError",
    "InvalidMetricName",
    "MqttClient",
    "MqttConnectionConfig",
    "MqttDeviceParams",
    "MqttError",
    "SettingSwitcher",
    "Subscription",
    "TransportError",
    "UnsupportedMethod",
    "ValidationError",
    "build_command",
    "get_mqtt_credentials",
]
