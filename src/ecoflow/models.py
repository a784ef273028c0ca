"""Typed results and enumerations shared across device families."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum


@dataclass
class DeviceInfo:
    """A device bound to the developer account."""

    sn: str
    """Device serial number."""

    online: int = 0
    """``1`` when the device is connected to the cloud."""

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> DeviceInfo:
        return cls(sn=str(data["sn"]), online=int(str(data.get("online", 0) or 0)))


@dataclass
class CommandResult:
    """Outcome of a set-parameter command."""

    code: str
    message: str = ""


@dataclass
class MqttConnectionConfig:
    """Broker parameters returned by the certification endpoint."""

    certificate_account: str
    certificate_password: str
    url: str
    port: int
    protocol: str
    user_id: str


@dataclass
class MqttDeviceParams:
    """A device property update received over MQTT."""

    id: int
    timestamp: int
    module_type: str = ""
    params: dict[str, object] = field(default_factory=dict)


class SettingSwitcher(IntEnum):
    DISABLED = 0
    ENABLED = 1


class ModuleType(IntEnum):
    """Module addressed by ``operateType`` commands on Delta-class stations."""

    PD = 1
    BMS = 2
    INV = 3
    BMS_SLAVE = 4
    MPPT = 5


class GridFrequency(IntEnum):
    HZ_50 = 1
    HZ_60 = 2


class TemperatureUnit(IntEnum):
    CELSIUS = 0
    FAHRENHEIT = 1
