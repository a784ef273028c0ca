"""Tests for ecoflow.metrics."""

from __future__ import annotations

import asyncio
import logging
import threading
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from prometheus_client import CollectorRegistry, Gauge

from ecoflow.errors import ApplicationError, InvalidMetricName, TransportError
from ecoflow.metrics import MetricsExporter, convert_key_to_metric_name, generate_metric_name
from ecoflow.models import DeviceInfo


def _client(devices: list[DeviceInfo], quotas: dict[str, object]) -> MagicMock:
    """Mock client whose quota call returns ``quotas[sn]`` or raises it."""

    async def fake_quota(sn: str) -> dict[str, object]:
        q = quotas[sn]
        if isinstance(q, Exception):
            raise q
        assert isinstance(q, dict)
        return q

    client = MagicMock()
    client.get_device_list = AsyncMock(return_value=devices)
    client.get_device_all_parameters = AsyncMock(side_effect=fake_quota)
    return client


# ---------------------------------------------------------------------------
# Name conversion
# ---------------------------------------------------------------------------


class TestConvertKeyToMetricName:
    @pytest.mark.parametrize(
        ("key", "expected"),
        [
            ("pd.wireUsedTime", "pd_wire_used_time"),
            ("bms_bmsStatus.f32ShowSoc", "bms_bms_status_f32_show_soc"),
            ("inv.cfgAcEnabled", "inv_cfg_ac_enabled"),
            ("Soc", "soc"),
            ("pd.USB1Watts", "pd_u_s_b1_watts"),
            ("soc", "soc"),
            ("a.B", "a_b"),
        ],
    )
    def test_conversion(self, key, expected):
        assert convert_key_to_metric_name(key) == expected

    def test_empty_key(self):
        with pytest.raises(InvalidMetricName):
            convert_key_to_metric_name("")

    @pytest.mark.parametrize("key", ["1soc", "pd.soc-level", "pd soc", "pd.温度"])
    def test_invalid_characters(self, key):
        with pytest.raises(InvalidMetricName):
            convert_key_to_metric_name(key)

    def test_is_value_error(self):
        with pytest.raises(ValueError):
            convert_key_to_metric_name("bad-key")


class TestGenerateMetricName:
    def test_names(self):
        assert generate_metric_name("pd.wireUsedTime", "ecoflow", "R13124123123213") == (
            "ecoflow_pd_wire_used_time",
            "R13124123123213_ecoflow_pd_wire_used_time",
        )


# ---------------------------------------------------------------------------
# Exporter
# ---------------------------------------------------------------------------


class TestMetricsExporter:
    async def test_poll_records_gauges(self):
        registry = CollectorRegistry()
        client = _client(
            [DeviceInfo("R1", online=1)],
            {"R1": {"pd.soc": 85, "inv.outputWatts": 12.5}},
        )
        exporter = MetricsExporter(client, registry=registry)
        await exporter.poll_once()

        assert registry.get_sample_value("ecoflow_online", {"device": "R1"}) == 1.0
        assert registry.get_sample_value("ecoflow_pd_soc", {"device": "R1"}) == 85.0
        assert registry.get_sample_value("ecoflow_inv_output_watts", {"device": "R1"}) == 12.5
        assert exporter.snapshot() == {
            "R1_ecoflow_online": 1.0,
            "R1_ecoflow_pd_soc": 85.0,
            "R1_ecoflow_inv_output_watts": 12.5,
        }

    async def test_custom_prefix(self):
        registry = CollectorRegistry()
        client = _client([DeviceInfo("R1", online=0)], {"R1": {"pd.soc": 10}})
        await MetricsExporter(client, prefix="home", registry=registry).poll_once()
        assert registry.get_sample_value("home_pd_soc", {"device": "R1"}) == 10.0
        assert registry.get_sample_value("home_online", {"device": "R1"}) == 0.0

    async def test_devices_share_gauge(self):
        registry = CollectorRegistry()
        client = _client(
            [DeviceInfo("R1", online=1), DeviceInfo("R2", online=1)],
            {"R1": {"pd.soc": 50}, "R2": {"pd.soc": 70}},
        )
        await MetricsExporter(client, registry=registry).poll_once()
        assert registry.get_sample_value("ecoflow_pd_soc", {"device": "R1"}) == 50.0
        assert registry.get_sample_value("ecoflow_pd_soc", {"device": "R2"}) == 70.0

    async def test_values_update_across_polls(self):
        registry = CollectorRegistry()
        quotas: dict[str, object] = {"R1": {"pd.soc": 50}}
        client = _client([DeviceInfo("R1", online=1)], quotas)
        exporter = MetricsExporter(client, registry=registry)

        await exporter.poll_once()
        quotas["R1"] = {"pd.soc": 49}
        await exporter.poll_once()

        assert registry.get_sample_value("ecoflow_pd_soc", {"device": "R1"}) == 49.0

    async def test_lists_and_non_numeric_skipped(self, caplog):
        registry = CollectorRegistry()
        client = _client(
            [DeviceInfo("R1", online=1)],
            {"R1": {"pd.list": [1, 2], "pd.name": "Delta", "pd.flag": True, "pd.soc": 1}},
        )
        with caplog.at_level(logging.DEBUG, logger="ecoflow.metrics"):
            await MetricsExporter(client, registry=registry).poll_once()

        assert registry.get_sample_value("ecoflow_pd_list", {"device": "R1"}) is None
        assert registry.get_sample_value("ecoflow_pd_name", {"device": "R1"}) is None
        assert registry.get_sample_value("ecoflow_pd_flag", {"device": "R1"}) is None
        assert registry.get_sample_value("ecoflow_pd_soc", {"device": "R1"}) == 1.0
        assert "array" in caplog.text
        assert "Unable to convert value 'Delta'" in caplog.text

    async def test_invalid_key_skipped(self, caplog):
        registry = CollectorRegistry()
        client = _client([DeviceInfo("R1", online=1)], {"R1": {"bad-key": 1, "pd.soc": 2}})
        with caplog.at_level(logging.ERROR, logger="ecoflow.metrics"):
            await MetricsExporter(client, registry=registry).poll_once()

        assert registry.get_sample_value("ecoflow_pd_soc", {"device": "R1"}) == 2.0
        assert "bad-key" in caplog.text

    async def test_one_device_failure_isolated(self, caplog):
        registry = CollectorRegistry()
        client = _client(
            [DeviceInfo("R1", online=1), DeviceInfo("R2", online=1)],
            {"R1": TransportError("timeout"), "R2": {"pd.soc": 33}},
        )
        with caplog.at_level(logging.ERROR, logger="ecoflow.metrics"):
            await MetricsExporter(client, registry=registry).poll_once()

        assert registry.get_sample_value("ecoflow_pd_soc", {"device": "R2"}) == 33.0
        assert registry.get_sample_value("ecoflow_online", {"device": "R1"}) is None
        assert "R1" in caplog.text

    async def test_overflowing_value_does_not_stop_other_devices(self, caplog):
        registry = CollectorRegistry()
        client = _client(
            [DeviceInfo("A", online=1), DeviceInfo("B", online=1)],
            {"A": {"pd.soc": 10**400, "pd.temp": 21}, "B": {"pd.soc": 50}},
        )
        exporter = MetricsExporter(client, registry=registry)
        with caplog.at_level(logging.ERROR, logger="ecoflow.metrics"):
            await exporter.poll_once()

        assert registry.get_sample_value("ecoflow_pd_soc", {"device": "A"}) is None
        assert registry.get_sample_value("ecoflow_pd_temp", {"device": "A"}) == 21.0
        assert registry.get_sample_value("ecoflow_pd_soc", {"device": "B"}) == 50.0
        assert "out of float range" in caplog.text

    async def test_registration_error_skips_only_that_metric(self, caplog):
        registry = CollectorRegistry()
        Gauge("ecoflow_pd_temp", "already taken", registry=registry)
        client = _client(
            [DeviceInfo("A", online=1), DeviceInfo("B", online=1)],
            {"A": {"pd.temp": 1, "pd.soc": 2}, "B": {"pd.soc": 3}},
        )
        with caplog.at_level(logging.ERROR, logger="ecoflow.metrics"):
            await MetricsExporter(client, registry=registry).poll_once()

        assert registry.get_sample_value("ecoflow_pd_soc", {"device": "A"}) == 2.0
        assert registry.get_sample_value("ecoflow_pd_soc", {"device": "B"}) == 3.0
        assert "pd.temp" in caplog.text

    async def test_unexpected_device_error_isolated(self, caplog):
        registry = CollectorRegistry()
        client = _client(
            [DeviceInfo("A", online=1), DeviceInfo("B", online=1)],
            {"A": RuntimeError("boom"), "B": {"pd.soc": 7}},
        )
        with caplog.at_level(logging.ERROR, logger="ecoflow.metrics"):
            await MetricsExporter(client, registry=registry).poll_once()

        assert registry.get_sample_value("ecoflow_pd_soc", {"device": "B"}) == 7.0
        assert "device A" in caplog.text

    async def test_run_survives_unexpected_errors(self):
        client = _client([DeviceInfo("A", online=1)], {"A": {"pd.soc": 1}})
        client.get_device_list = AsyncMock(side_effect=RuntimeError("boom"))
        exporter = MetricsExporter(client, interval=0.01, registry=CollectorRegistry())
        task = asyncio.create_task(exporter.run())
        await asyncio.sleep(0.05)
        assert not task.done()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert client.get_device_list.await_count >= 2

    async def test_snapshot_from_another_thread(self):
        quotas: dict[str, object] = {f"R{i}": {f"pd.v{i}": i} for i in range(20)}
        client = _client([DeviceInfo(sn, online=1) for sn in quotas], quotas)
        exporter = MetricsExporter(client, registry=CollectorRegistry())
        stop = threading.Event()
        errors: list[Exception] = []
        seen: list[int] = []

        def reader() -> None:
            while True:
                try:
                    seen.append(len(exporter.snapshot()))
                except Exception as e:
                    errors.append(e)
                    return
                if stop.is_set():
                    return

        thread = threading.Thread(target=reader)
        thread.start()
        try:
            for _ in range(5):
                await exporter.poll_once()
                await asyncio.sleep(0)
        finally:
            stop.set()
            thread.join()

        assert errors == []
        assert seen
        assert len(exporter.snapshot()) == 40

    async def test_device_list_failure_logged(self, caplog):
        client = MagicMock()
        client.get_device_list = AsyncMock(side_effect=ApplicationError("8521", "signature is wrong"))
        client.get_device_all_parameters = AsyncMock()
        with caplog.at_level(logging.ERROR, logger="ecoflow.metrics"):
            await MetricsExporter(client, registry=CollectorRegistry()).poll_once()

        client.get_device_all_parameters.assert_not_awaited()
        assert "Cannot get devices list" in caplog.text

    async def test_snapshot_is_a_copy(self):
        client = _client([DeviceInfo("R1", online=1)], {"R1": {}})
        exporter = MetricsExporter(client, registry=CollectorRegistry())
        await exporter.poll_once()
        snap = exporter.snapshot()
        snap["injected"] = 1.0
        assert "injected" not in exporter.snapshot()

    async def test_run_polls_until_cancelled(self):
        client = _client([DeviceInfo("R1", online=1)], {"R1": {"pd.soc": 5}})
        exporter = MetricsExporter(client, interval=0.01, registry=CollectorRegistry())
        task = asyncio.create_task(exporter.run())
        await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert client.get_device_list.await_count >= 2

    def test_serve_uses_registry(self):
        registry = CollectorRegistry()
        exporter = MetricsExporter(MagicMock(), registry=registry)
        with patch("ecoflow.metrics.start_http_server") as start:
            exporter.serve(9999)
        start.assert_called_once_with(9999, addr="0.0.0.0", registry=registry)
