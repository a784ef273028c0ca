"""Prometheus export of device quota values.

Quota keys such as ``pd.wireUsedTime`` are converted to metric names like
``ecoflow_pd_wire_used_time``; each device becomes a ``device`` label on the
shared gauge.
"""

from __future__ import annotations

import asyncio
import logging
import re
import threading
from collections.abc import Mapping

from prometheus_client import REGISTRY, CollectorRegistry, Gauge, start_http_server

from ecoflow.client import Client
from ecoflow.errors import EcoflowError, InvalidMetricName

_LOGGER = logging.getLogger(__name__)

_METRIC_NAME_RE = re.compile(r"[a-zA-Z_:][a-zA-Z0-9_:]*")

DEFAULT_PREFIX = "ecoflow"
DEFAULT_INTERVAL = 30  # seconds


def convert_key_to_metric_name(key: str) -> str:
    """Convert a dotted camelCase quota key to a snake_case metric name.

    ``"pd.wireUsedTime"`` becomes ``"pd_wire_used_time"``.  Upper-case
    characters are lowered and prefixed with ``_`` unless one was just
    written.

    Raises :class:`InvalidMetricName` if *key* is empty or the result is not
    a valid Prometheus name.
    """
    if not key:
        raise InvalidMetricName("Cannot convert an empty key to a metric name")

    key = key.replace(".", "_")
    out = [key[0].lower()]
    for ch in key[1:]:
        if ch.isupper() and out[-1] != "_":
            out.append("_")
        out.append(ch.lower())
    name = "".join(out)

    if not _METRIC_NAME_RE.fullmatch(name):
        raise InvalidMetricName(
            f"cannot convert payload key {key} to comply with the Prometheus data model"
        )
    return name


def generate_metric_name(key: str, prefix: str, sn: str) -> tuple[str, str]:
    """Return ``(metric_name, device_metric_name)`` for a quota key.

    ``device_metric_name`` is ``<sn>_<metric_name>`` and identifies one
    device's series.
    """
    metric_name = f"{prefix}_{convert_key_to_metric_name(key)}"
    return metric_name, f"{sn}_{metric_name}"


class MetricsExporter:
    """Poll every device's quota and publish it as Prometheus gauges.

    Args:
        client: REST client used for the device list and quota calls.
        prefix: Metric name prefix.
        interval: Seconds between polls in :meth:`run`.
        registry: Target registry; the process-wide default when omitted.
    """

    def __init__(
        self,
        client: Client,
        *,
        prefix: str = DEFAULT_PREFIX,
        interval: float = DEFAULT_INTERVAL,
        registry: CollectorRegistry | None = None,
    ) -> None:
        self._client = client
        self._prefix = prefix
        self._interval = interval
        self._registry = registry if registry is not None else REGISTRY
        # Written only by the polling task; read by snapshot() from any thread.
        self._lock = threading.Lock()
        self._gauges: dict[str, Gauge] = {}
        self._values: dict[str, float] = {}

    @property
    def registry(self) -> CollectorRegistry:
        return self._registry

    def snapshot(self) -> dict[str, float]:
        """Latest value per ``<sn>_<metric_name>``."""
        with self._lock:
            return dict(self._values)

    def serve(self, port: int, addr: str = "0.0.0.0") -> object:
        """Start the Prometheus HTTP endpoint in a background thread."""
        _LOGGER.info("Serving metrics on %s:%d", addr, port)
        return start_http_server(port, addr=addr, registry=self._registry)

    async def run(self) -> None:
        """Poll forever at the configured interval until cancelled."""
        while True:
            await self.poll_once()
            await asyncio.sleep(self._interval)

    async def poll_once(self) -> None:
        """Fetch the device list and record every device's quota once.

        A failing device is logged and skipped; the others are still
        recorded.  A value that cannot be recorded skips only that metric.
        """
        try:
            devices = await self._client.get_device_list()
        except EcoflowError as e:
            _LOGGER.error("Cannot get devices list: %s", e)
            return
        except Exception:
            _LOGGER.exception("Unexpected error getting devices list")
            return

        for device in devices:
            try:
                quota = await self._client.get_device_all_parameters(device.sn)
                self._record(device.sn, "online", device.online)
                self._record_all(device.sn, quota)
            except EcoflowError as e:
                _LOGGER.error("Cannot get device quota for %s: %s", device.sn, e)
            except Exception:
                _LOGGER.exception("Unexpected error polling device %s", device.sn)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _record_all(self, sn: str, quota: Mapping[str, object]) -> None:
        for key, value in quota.items():
            try:
                self._record(sn, key, value)
            except Exception:
                _LOGGER.exception("Unable to record %s for device %s", key, sn)

    def _record(self, sn: str, key: str, value: object) -> None:
        try:
            metric_name, device_metric_name = generate_metric_name(key, self._prefix, sn)
        except InvalidMetricName:
            _LOGGER.error("Unable to generate metric name for %s", key)
            return

        if isinstance(value, (list, tuple)):
            _LOGGER.debug("The value of %s is an array, skipping it", metric_name)
            return
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            _LOGGER.error(
                "Unable to convert value %r to float, skipping metric %s", value, metric_name
            )
            return
        try:
            number = float(value)
        except OverflowError:
            _LOGGER.error("Value of %s is out of float range, skipping it", metric_name)
            return

        with self._lock:
            gauge = self._gauges.get(metric_name)
            if gauge is None:
                _LOGGER.debug("Adding new metric %s for device %s", metric_name, sn)
                gauge = Gauge(
                    metric_name,
                    f"EcoFlow quota value {key}",
                    labelnames=("device",),
                    registry=self._registry,
                )
                self._gauges[metric_name] = gauge
            gauge.labels(device=sn).set(number)
            self._values[device_metric_name] = number
