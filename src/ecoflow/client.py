"""EcoFlow open API client.

Provides programmatic access to EcoFlow power stations and accessories via
the signed developer REST API.  The :class:`Client` class is the main entry
point; use one of the device accessors (:meth:`~Client.power_station`,
:meth:`~Client.smart_plug`, ...) to obtain per-device command builders::

    import asyncio
    from ecoflow import Client, SettingSwitcher

    client = Client("access-key", "secret-key")
    devices = await client.get_device_list()

    station = client.power_station(devices[0].sn)
    quota = await station.get_all_parameters()
    await station.set_dc_switch(SettingSwitcher.ENABLED)

Every request is signed independently; the client keeps no mutable state
and can be shared between concurrent tasks.
"""

from __future__ import annotations

import logging
import os

import aiohttp

from ecoflow._constants import (
    API_BASE,
    DEFAULT_TIMEOUT,
    DEVICE_LIST_PATH,
    DEVICE_QUOTA_ALL_PATH,
    DEVICE_QUOTA_PATH,
    ENV_ACCESS_KEY,
    ENV_API_URL,
    ENV_SECRET_KEY,
    SUCCESS_CODE,
)
from ecoflow._http import check_response_code, decode_response, execute
from ecoflow.devices import (
    Glacier,
    PowerKit,
    PowerStation,
    PowerStationPro,
    PowerStream,
    SmartHomePanel,
    SmartPlug,
    WaveAirConditioner,
)
from ecoflow.errors import CommandRejected, DecodeError, ValidationError
from ecoflow.models import CommandResult, DeviceInfo

_LOGGER = logging.getLogger(__name__)


class Client:
    """EcoFlow developer API client.

    Args:
        access_key: Developer access key.
        secret_key: Developer secret key used to sign requests.
        base_url: API host, e.g. ``https://api-e.ecoflow.com`` for the EU
            region.
        session: Shared :class:`aiohttp.ClientSession`.  When omitted a
            short-lived session is opened for every request.
        timeout: Total per-request timeout in seconds.
    """

    def __init__(
        self,
        access_key: str,
        secret_key: str,
        *,
        base_url: str = API_BASE,
        session: aiohttp.ClientSession | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._access_key = access_key
        self._secret_key = secret_key
        self._base_url = base_url.rstrip("/")
        self._session = session
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    @classmethod
    def from_env(cls, *, session: aiohttp.ClientSession | None = None) -> Client:
        """Build a client from ``ECOFLOW_ACCESS_KEY`` / ``ECOFLOW_SECRET_KEY``.

        ``ECOFLOW_API_URL`` overrides the API host when set.

        Raises :class:`KeyError` if either key is missing.
        """
        missing = [name for name in (ENV_ACCESS_KEY, ENV_SECRET_KEY) if not os.environ.get(name)]
        if missing:
            raise KeyError(f"Missing environment variable(s): {', '.join(missing)}")
        return cls(
            os.environ[ENV_ACCESS_KEY],
            os.environ[ENV_SECRET_KEY],
            base_url=os.environ.get(ENV_API_URL) or API_BASE,
            session=session,
        )

    @property
    def access_key(self) -> str:
        """Developer access key sent with every request."""
        return self._access_key

    @property
    def base_url(self) -> str:
        """API host requests are sent to."""
        return self._base_url

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _request(
        self, method: str, path: str, params: dict[str, object] | None = None
    ) -> dict[str, object]:
        """Send a signed request and decode the JSON envelope."""
        uri = f"{self._base_url}{path}"
        if self._session is not None:
            raw = await execute(
                self._session,
                method,
                uri,
                params,
                self._access_key,
                self._secret_key,
                timeout=self._timeout,
            )
        else:
            async with aiohttp.ClientSession() as session:
                raw = await execute(
                    session,
                    method,
                    uri,
                    params,
                    self._access_key,
                    self._secret_key,
                    timeout=self._timeout,
                )
        return decode_response(raw)

    # ------------------------------------------------------------------
    # Generic API
    # ------------------------------------------------------------------

    async def get_device_list(self) -> list[DeviceInfo]:
        """List the devices bound to the account (shared devices excluded)."""
        body = await self._request("GET", DEVICE_LIST_PATH)
        check_response_code(body, "can't get device list")
        data = body.get("data") or []
        if not isinstance(data, list):
            raise DecodeError("Device list response is not valid, can't process it")
        try:
            return [DeviceInfo.from_dict(d) for d in data]
        except (KeyError, TypeError, ValueError) as e:
            raise DecodeError(f"Device list entry is malformed: {e}") from e

    async def get_device_all_parameters(self, sn: str) -> dict[str, object]:
        """Fetch the full quota (live parameter snapshot) of a device.

        Returns the raw ``data`` map, e.g. ``{"pd.soc": 85, ...}``.  Values
        are mostly numbers; some are lists.
        """
        body = await self._request("GET", DEVICE_QUOTA_ALL_PATH, {"sn": sn})
        check_response_code(body, "can't get parameters")
        data = body.get("data")
        if not isinstance(data, dict):
            raise DecodeError("Response is not valid, can't process it")
        return data

    async def set_device_parameter(self, request: dict[str, object]) -> CommandResult:
        """Send a command envelope built by :func:`~ecoflow.devices.build_command`.

        Works for any device family, including ones without a dedicated
        builder in this package.

        Raises:
            CommandRejected: If the API answers with a non-success code.
        """
        _LOGGER.debug("set_device_parameter request=%s", request)
        body = await self._request("PUT", DEVICE_QUOTA_PATH, request)
        code = str(body.get("code"))
        message = str(body.get("message", ""))
        if code != SUCCESS_CODE:
            raise CommandRejected(code, message)
        return CommandResult(code=code, message=message)

    async def get_device_parameters(self, sn: str, quotas: list[str]) -> dict[str, object]:
        """Fetch selected quota values of a device by name.

        Raises:
            ValidationError: If *sn* or *quotas* is empty (no request sent).
        """
        if not quotas:
            raise ValidationError("Parameters are mandatory")
        if not sn:
            raise ValidationError("Device SN is mandatory")
        body = await self._request(
            "POST", DEVICE_QUOTA_PATH, {"sn": sn, "params": {"quotas": list(quotas)}}
        )
        if "code" not in body:
            raise DecodeError("Response has no code, can't process it")
        check_response_code(body, "can't get parameters")
        data = body.get("data")
        if not isinstance(data, dict):
            raise DecodeError("Response is not valid, can't process it")
        return data

    # ------------------------------------------------------------------
    # Device builders
    # ------------------------------------------------------------------

    def power_station(self, sn: str) -> PowerStation:
        """Delta 2 / Delta 2 Max / River 2 family."""
        return PowerStation(self, sn)

    def power_station_pro(self, sn: str) -> PowerStationPro:
        """Delta Pro family."""
        return PowerStationPro(self, sn)

    def smart_plug(self, sn: str) -> SmartPlug:
        return SmartPlug(self, sn)

    def powerstream(self, sn: str) -> PowerStream:
        """PowerStream micro inverter."""
        return PowerStream(self, sn)

    def smart_home_panel(self, sn: str) -> SmartHomePanel:
        return SmartHomePanel(self, sn)

    def glacier(self, sn: str) -> Glacier:
        return Glacier(self, sn)

    def wave_air_conditioner(self, sn: str) -> WaveAirConditioner:
        return WaveAirConditioner(self, sn)

    def power_kit(self, sn: str, module_sn: str) -> PowerKit:
        """Power Kit module *module_sn* attached to hub *sn*."""
        return PowerKit(self, sn, module_sn)
