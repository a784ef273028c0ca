"""MQTT credential bootstrap and a thin ``aiomqtt`` wrapper.

The developer REST API does not hand out broker credentials.  They come
from the consumer app endpoints in two chained calls:

1. ``POST /auth/login`` with the account email and base64 password,
   returning a bearer token and the user id.
2. ``GET /iot-auth/app/certification`` (with a JSON body) returning the
   broker host, port, protocol and certificate account/password.

Device property updates are then published on
``/app/device/property/<sn>``::

    async with await MqttClient.login(email, password) as mqtt:
        await mqtt.subscribe_for_parameters(sn)
        async for topic, update in mqtt.messages():
            print(topic, update.params)

:meth:`MqttClient.subscribe` runs the same subscription as a background
task that reconnects whenever the broker drops the connection.
"""

from __future__ import annotations

import asyncio
import base64
import contextlib
import json
import logging
import ssl
import uuid
from collections.abc import AsyncIterator, Awaitable, Callable, Iterable
from types import TracebackType

import aiohttp
import aiomqtt

from ecoflow._constants import (
    APP_HEADERS,
    CERTIFICATION_URL,
    DEFAULT_TIMEOUT,
    LOGIN_SCENE,
    LOGIN_URL,
    LOGIN_USER_TYPE,
    MQTT_CLIENT_ID_PREFIX,
    MQTT_PROPERTY_TOPIC,
    MQTT_RECONNECT_INTERVAL,
)
from ecoflow._http import check_response_code, decode_response
from ecoflow.errors import DecodeError, HttpStatusError, MqttError, TransportError
from ecoflow.models import MqttConnectionConfig, MqttDeviceParams

_LOGGER = logging.getLogger(__name__)

_TLS_PROTOCOLS = ("mqtts", "ssl", "tls")


# ---------------------------------------------------------------------------
# Credential bootstrap
# ---------------------------------------------------------------------------


async def get_mqtt_credentials(
    email: str,
    password: str,
    *,
    session: aiohttp.ClientSession | None = None,
    login_url: str = LOGIN_URL,
    certification_url: str = CERTIFICATION_URL,
) -> MqttConnectionConfig:
    """Log in with app credentials and fetch the MQTT connection config.

    Raises:
        TransportError: If either call could not be completed.
        HttpStatusError: If either call returns a status other than 200.
        DecodeError: If a response is not JSON or lacks an expected field.
        ApplicationError: If either call returns a non-success code.
    """
    if session is None:
        async with aiohttp.ClientSession() as own_session:
            return await _bootstrap(own_session, email, password, login_url, certification_url)
    return await _bootstrap(session, email, password, login_url, certification_url)


async def _bootstrap(
    session: aiohttp.ClientSession,
    email: str,
    password: str,
    login_url: str,
    certification_url: str,
) -> MqttConnectionConfig:
    token, user_id = await _login(session, email, password, login_url)

    headers = {**APP_HEADERS, "Authorization": f"Bearer {token}"}
    body = await _send_json(session, "GET", certification_url, {"userId": user_id}, headers)
    check_response_code(body, "can't get MQTT certification")
    data = body.get("data")
    if not isinstance(data, dict):
        raise DecodeError("Certification response has no data")
    try:
        config = MqttConnectionConfig(
            certificate_account=str(data["certificateAccount"]),
            certificate_password=str(data["certificatePassword"]),
            url=str(data["url"]),
            port=int(str(data["port"])),
            protocol=str(data.get("protocol") or "mqtts"),
            user_id=user_id,
        )
    except (KeyError, ValueError) as e:
        raise DecodeError(f"Certification response is malformed: {e}") from e

    _LOGGER.debug("MQTT broker %s://%s:%s", config.protocol, config.url, config.port)
    return config


async def _login(
    session: aiohttp.ClientSession, email: str, password: str, login_url: str
) -> tuple[str, str]:
    """Return ``(token, user_id)`` for the app account."""
    payload = {
        "email": email,
        "password": base64.b64encode(password.encode("utf-8")).decode("ascii"),
        "scene": LOGIN_SCENE,
        "userType": LOGIN_USER_TYPE,
    }
    headers = {**APP_HEADERS, "Content-Type": "application/json"}
    body = await _send_json(session, "POST", login_url, payload, headers)
    check_response_code(body, "login failed")

    data = body.get("data")
    if not isinstance(data, dict):
        raise DecodeError("Login response has no data")
    user = data.get("user")
    token = data.get("token")
    if not isinstance(user, dict) or not token or not user.get("userId"):
        raise DecodeError("Login response has no token or user id")
    return str(token), str(user["userId"])


async def _send_json(
    session: aiohttp.ClientSession,
    method: str,
    url: str,
    payload: dict[str, object],
    headers: dict[str, str],
) -> dict[str, object]:
    """Send *payload* as a JSON body (also for GET) and decode the reply."""
    data = json.dumps(payload, separators=(",", ":")).encode("utf-8")
    try:
        async with session.request(
            method,
            url,
            data=data,
            headers=headers,
            timeout=aiohttp.ClientTimeout(total=DEFAULT_TIMEOUT),
        ) as resp:
            if resp.status != 200:
                raise HttpStatusError(url, resp.status)
            raw = await resp.read()
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        raise TransportError(f"Request to {url} failed: {e}") from e
    return decode_response(raw)


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


UpdateCallback = Callable[[str, MqttDeviceParams], Awaitable[None]]
"""Receives ``(topic, update)`` for every parsed property message."""


class MqttClient:
    """Subscriber for device property updates.

    A fresh client identifier ``ANDROID_<uuid>_<userId>`` is generated per
    instance; the broker rejects other shapes.

    Args:
        config: Broker credentials from :func:`get_mqtt_credentials`.
        on_connect: Awaited after every successful broker connection.
        on_connection_lost: Awaited with the error (or ``None`` on a clean
            broker close) when an established connection ends.
        on_reconnect: Awaited before each reconnection attempt of a
            :meth:`subscribe` loop.
        reconnect_interval: Seconds to wait between reconnection attempts.
    """

    def __init__(
        self,
        config: MqttConnectionConfig,
        *,
        on_connect: Callable[[], Awaitable[None]] | None = None,
        on_connection_lost: Callable[[Exception | None], Awaitable[None]] | None = None,
        on_reconnect: Callable[[], Awaitable[None]] | None = None,
        reconnect_interval: float = MQTT_RECONNECT_INTERVAL,
    ) -> None:
        self._config = config
        self._client_id = f"{MQTT_CLIENT_ID_PREFIX}_{uuid.uuid4()}_{config.user_id}"
        self._mqtt: aiomqtt.Client | None = None
        self._on_connect = on_connect
        self._on_connection_lost = on_connection_lost
        self._on_reconnect = on_reconnect
        self._reconnect_interval = reconnect_interval

    @classmethod
    async def login(
        cls,
        email: str,
        password: str,
        *,
        session: aiohttp.ClientSession | None = None,
        **kwargs: object,
    ) -> MqttClient:
        """Run the credential bootstrap and return an unconnected client.

        Extra keyword arguments are passed to the constructor.
        """
        return cls(await get_mqtt_credentials(email, password, session=session), **kwargs)  # type: ignore[arg-type]

    @property
    def config(self) -> MqttConnectionConfig:
        return self._config

    @property
    def client_id(self) -> str:
        """MQTT client identifier used when connecting."""
        return self._client_id

    @property
    def is_connected(self) -> bool:
        return self._mqtt is not None

    async def __aenter__(self) -> MqttClient:
        client = aiomqtt.Client(**_mqtt_params(self._config, self._client_id))  # type: ignore[arg-type]
        try:
            await client.__aenter__()
        except aiomqtt.MqttError as e:
            raise MqttError(str(e)) from e
        self._mqtt = client
        if self._on_connect is not None:
            await self._on_connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        client, self._mqtt = self._mqtt, None
        if client is None:
            return
        try:
            await client.__aexit__(exc_type, exc, tb)
        except aiomqtt.MqttError as e:
            raise MqttError(str(e)) from e

    def _connected(self) -> aiomqtt.Client:
        if self._mqtt is None:
            raise MqttError("Not connected; use 'async with' first")
        return self._mqtt

    async def subscribe_for_parameters(self, sn: str) -> None:
        """Subscribe to the property topic of device *sn*."""
        await self.subscribe_to_topics([MQTT_PROPERTY_TOPIC.format(sn=sn)])

    async def subscribe_to_topics(self, topics: Iterable[str]) -> None:
        """Subscribe to each of *topics* at QoS 1."""
        client = self._connected()
        try:
            for topic in topics:
                _LOGGER.debug("Subscribing to %s", topic)
                await client.subscribe(topic, qos=1)
        except aiomqtt.MqttError as e:
            raise MqttError(str(e)) from e

    async def messages(self) -> AsyncIterator[tuple[str, MqttDeviceParams]]:
        """Yield ``(topic, update)`` pairs until the connection closes.

        Payloads that are not device property updates are logged and
        skipped.  A dropped connection is reported to *on_connection_lost*
        and raised as :class:`MqttError`; use :meth:`subscribe` to
        reconnect automatically.
        """
        client = self._connected()
        try:
            async for message in client.messages:
                parsed = _parse_message(message)
                if parsed is not None:
                    yield parsed
        except aiomqtt.MqttError as e:
            if self._on_connection_lost is not None:
                await self._on_connection_lost(e)
            raise MqttError(str(e)) from e

    async def subscribe(self, serials: Iterable[str], callback: UpdateCallback) -> Subscription:
        """Subscribe to the property topics of *serials* in the background.

        The listener reconnects with the same credentials and client id
        whenever the broker connection drops, and re-subscribes every
        topic.  Returns a :class:`Subscription` whose
        :meth:`~Subscription.stop` cancels it.
        """
        topics = [MQTT_PROPERTY_TOPIC.format(sn=sn) for sn in serials]
        subscription = Subscription()
        subscription._task = asyncio.create_task(
            self._run_subscribe_loop(topics, callback, subscription)
        )
        return subscription

    async def _run_subscribe_loop(
        self, topics: list[str], callback: UpdateCallback, subscription: Subscription
    ) -> None:
        attempt = 0
        while True:
            if attempt and self._on_reconnect is not None:
                await self._on_reconnect()
            attempt += 1
            connected = False
            error: Exception | None = None
            try:
                params = _mqtt_params(self._config, self._client_id)
                async with aiomqtt.Client(**params) as client:  # type: ignore[arg-type]
                    connected = subscription._connected = True
                    try:
                        if self._on_connect is not None:
                            await self._on_connect()
                        for topic in topics:
                            _LOGGER.debug("Subscribing to %s", topic)
                            await client.subscribe(topic, qos=1)
                        async for message in client.messages:
                            parsed = _parse_message(message)
                            if parsed is not None:
                                await callback(*parsed)
                    finally:
                        subscription._connected = False
            except aiomqtt.MqttError as e:
                error = e
                _LOGGER.debug("MQTT connection error: %s", e)
            # A clean broker close is retried too, e.g. when another client
            # took over the same identifier.
            if connected and self._on_connection_lost is not None:
                await self._on_connection_lost(error)
            await asyncio.sleep(self._reconnect_interval)


class Subscription:
    """Handle for a background MQTT subscription.

    Returned by :meth:`MqttClient.subscribe`.  Call :meth:`stop` to cancel
    the listener, or :meth:`wait` to block until it ends.
    """

    def __init__(self) -> None:
        self._task: asyncio.Task[None] | None = None
        self._connected = False

    @property
    def is_connected(self) -> bool:
        """True while the broker connection is established."""
        return self._connected

    async def stop(self) -> None:
        """Cancel the subscription and wait for cleanup."""
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError, Exception):
            await self._task

    async def wait(self) -> None:
        """Wait until the subscription ends.

        Raises :class:`asyncio.CancelledError` if the task is cancelled
        externally (e.g. by *Ctrl-C*).
        """
        if self._task is not None:
            await self._task


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------


def _mqtt_params(config: MqttConnectionConfig, client_id: str) -> dict[str, object]:
    """Derive aiomqtt.Client constructor kwargs from the connection config."""
    params: dict[str, object] = {
        "hostname": config.url,
        "port": config.port,
        "identifier": client_id,
        "username": config.certificate_account,
        "password": config.certificate_password,
    }
    if config.protocol.lower() in _TLS_PROTOCOLS:
        params["tls_context"] = ssl.create_default_context()
    return params


def _parse_message(message: aiomqtt.Message) -> tuple[str, MqttDeviceParams] | None:
    topic = str(message.topic.value)
    parsed = _parse_device_params(message.payload)
    if parsed is None:
        _LOGGER.debug("Skipping unparsable message on %s: %r", topic, message.payload)
        return None
    return topic, parsed


def _parse_device_params(payload: object) -> MqttDeviceParams | None:
    """Parse a property update payload or return ``None``."""
    if not isinstance(payload, (bytes, bytearray, str)):
        return None
    try:
        data = json.loads(payload)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    if not isinstance(data, dict):
        return None
    params = data.get("params")
    if params is None:
        params = {}
    if not isinstance(params, dict):
        return None
    try:
        return MqttDeviceParams(
            id=int(data.get("id", 0)),
            timestamp=int(data.get("timestamp", 0)),
            module_type=str(data.get("moduleType") or ""),
            params=params,
        )
    except (TypeError, ValueError):
        return None
