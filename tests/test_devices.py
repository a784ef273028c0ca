"""Tests for ecoflow.devices."""

from __future__ import annotations

from datetime import datetime
from unittest.mock import AsyncMock, patch

import pytest

from ecoflow.client import Client
from ecoflow.devices import (
    ConditionerMainMode,
    ConditionerSubMode,
    ConditionerTemperatureDisplay,
    GlacierIceShape,
    GlacierMode,
    PowerKitDcVoltage,
    PowerKitDischargeSwitch,
    PowerKitModuleType,
    PvChargeType,
    SupplyPriority,
    build_command,
)
from ecoflow.errors import ValidationError
from ecoflow.models import CommandResult, GridFrequency, ModuleType, SettingSwitcher

ON = SettingSwitcher.ENABLED
OFF = SettingSwitcher.DISABLED


@pytest.fixture
def client() -> Client:
    c = Client("ak", "sk")
    c.set_device_parameter = AsyncMock(return_value=CommandResult(code="0"))  # type: ignore[method-assign]
    return c


def _sent(client: Client) -> dict[str, object]:
    """The single command envelope passed to ``set_device_parameter``."""
    mock = client.set_device_parameter
    assert isinstance(mock, AsyncMock)
    mock.assert_awaited_once()
    return mock.await_args.args[0]


# ---------------------------------------------------------------------------
# Envelope
# ---------------------------------------------------------------------------


class TestBuildCommand:
    def test_operate_type_envelope(self):
        with patch("ecoflow.devices.time.time", return_value=1700000000.5):
            cmd = build_command("R1", {"enabled": 1}, operate_type="dcOutCfg", module_type=ModuleType.PD)

        assert cmd == {
            "id": "1700000000500",
            "sn": "R1",
            "operateType": "dcOutCfg",
            "moduleType": 1,
            "params": {"enabled": 1},
        }

    def test_cmd_code_envelope_has_no_module_type(self):
        cmd = build_command("HW1", {"plugSwitch": 1}, cmd_code="WN511_SOCKET_SET_PLUG_SWITCH_MESSAGE")
        assert cmd["cmdCode"] == "WN511_SOCKET_SET_PLUG_SWITCH_MESSAGE"
        assert "moduleType" not in cmd
        assert "operateType" not in cmd

    def test_zero_module_type_omitted(self):
        cmd = build_command("M1", {}, operate_type="x", module_type=PowerKitModuleType.BP5000_BP2000)
        assert "moduleType" not in cmd
        assert cmd["operateType"] == "x"

    def test_empty_opcodes_omitted(self):
        cmd = build_command("M1", {}, operate_type="", cmd_code="WN511_SOCKET_SET_PLUG_SWITCH_MESSAGE")
        assert "operateType" not in cmd
        assert cmd["cmdCode"] == "WN511_SOCKET_SET_PLUG_SWITCH_MESSAGE"

    def test_extra_fields(self):
        cmd = build_command("M1", {}, operate_type="x", moduleSn="MOD1")
        assert cmd["moduleSn"] == "MOD1"

    def test_id_is_decimal_millis(self):
        cmd = build_command("R1", {})
        assert isinstance(cmd["id"], str)
        assert cmd["id"].isdigit()
        assert len(cmd["id"]) == 13

    def test_empty_sn(self):
        with pytest.raises(ValidationError, match="SN"):
            build_command("", {})

    def test_both_opcodes(self):
        with pytest.raises(ValidationError, match="mutually exclusive"):
            build_command("R1", {}, operate_type="a", cmd_code="b")


# ---------------------------------------------------------------------------
# Families
# ---------------------------------------------------------------------------


class TestPowerStation:
    async def test_dc_switch(self, client):
        result = await client.power_station("R1").set_dc_switch(ON)
        assert result == CommandResult(code="0")
        cmd = _sent(client)
        assert cmd["sn"] == "R1"
        assert cmd["operateType"] == "dcOutCfg"
        assert cmd["moduleType"] == 1
        assert cmd["params"] == {"enabled": ON}

    async def test_ac_charging(self, client):
        await client.power_station("R1").set_ac_charging_settings(400, OFF)
        cmd = _sent(client)
        assert cmd["operateType"] == "acChgCfg"
        assert cmd["moduleType"] == ModuleType.MPPT
        assert cmd["params"] == {"chgWatts": 400, "chgPauseFlag": 0}

    async def test_ac_discharge(self, client):
        await client.power_station("R1").set_ac_discharge_settings(ON, OFF, 230, GridFrequency.HZ_50)
        cmd = _sent(client)
        assert cmd["operateType"] == "acOutCfg"
        assert cmd["params"] == {"enabled": 1, "xboost": 0, "out_voltage": 230, "out_freq": 1}

    async def test_negative_watts_rejected(self, client):
        with pytest.raises(ValidationError):
            await client.power_station("R1").set_ac_charging_settings(-1)
        client.set_device_parameter.assert_not_awaited()

    @pytest.mark.parametrize("value", [3999, 10001])
    async def test_dc_current_range(self, client, value):
        with pytest.raises(ValidationError):
            await client.power_station("R1").set_12v_dc_charging_current(value)

    async def test_dc_current_bounds_accepted(self, client):
        await client.power_station("R1").set_12v_dc_charging_current(8000)
        assert _sent(client)["params"] == {"dcChgCfg": 8000}

    async def test_lcd_timeout_fixed_brightness(self, client):
        await client.power_station("R1").set_lcd_screen_timeout(60)
        assert _sent(client)["params"] == {"delayOff": 60, "brighLevel": 3}

    @pytest.mark.parametrize(
        "method",
        [
            "set_max_charge_soc",
            "set_min_discharge_soc",
            "set_soc_to_turn_on_smart_generator",
            "set_soc_to_turn_off_smart_generator",
        ],
    )
    async def test_percentages_validated(self, client, method):
        station = client.power_station("R1")
        with pytest.raises(ValidationError):
            await getattr(station, method)(101)
        with pytest.raises(ValidationError):
            await getattr(station, method)(-1)
        client.set_device_parameter.assert_not_awaited()

    async def test_max_charge_soc(self, client):
        await client.power_station("R1").set_max_charge_soc(90)
        cmd = _sent(client)
        assert cmd["operateType"] == "upsConfig"
        assert cmd["moduleType"] == ModuleType.BMS
        assert cmd["params"] == {"maxChgSoc": 90}


class TestPowerStationPro:
    async def test_xboost(self, client):
        await client.power_station_pro("DCEB1").set_xboost_switch(ON)
        cmd = _sent(client)
        assert "operateType" not in cmd
        assert "cmdCode" not in cmd
        assert cmd["params"] == {"cmdSet": 32, "id": 66, "enabled": 1, "xboost": 1}

    async def test_pv_charging_type(self, client):
        await client.power_station_pro("DCEB1").set_pv_charging_type(PvChargeType.ADAPTER)
        assert _sent(client)["params"] == {"cmdSet": 32, "id": 82, "chgType": 2}

    async def test_max_charge_level_validated(self, client):
        with pytest.raises(ValidationError):
            await client.power_station_pro("DCEB1").set_max_charge_level(150)


class TestSmartPlug:
    async def test_relay(self, client):
        await client.smart_plug("HW1").set_relay_switch(OFF)
        cmd = _sent(client)
        assert cmd["cmdCode"] == "WN511_SOCKET_SET_PLUG_SWITCH_MESSAGE"
        assert cmd["params"] == {"plugSwitch": 0}

    async def test_brightness_range(self, client):
        with pytest.raises(ValidationError):
            await client.smart_plug("HW1").set_indicator_brightness(1024)

    async def test_delete_task_range(self, client):
        with pytest.raises(ValidationError):
            await client.smart_plug("HW1").delete_scheduled_task(10)
        await client.smart_plug("HW1").delete_scheduled_task(9)
        assert _sent(client)["params"] == {"taskIndex": 9}


class TestPowerStream:
    async def test_supply_priority(self, client):
        await client.powerstream("HW51").set_power_supply_priority(SupplyPriority.POWER_STORAGE)
        cmd = _sent(client)
        assert cmd["cmdCode"] == "WN511_SET_SUPPLY_PRIORITY_PACK"
        assert cmd["params"] == {"supplyPriority": 1}

    @pytest.mark.parametrize(
        ("method", "bad"),
        [
            ("set_custom_load_power", 601),
            ("set_battery_discharge_lower_limit", 0),
            ("set_battery_discharge_lower_limit", 31),
            ("set_battery_charge_upper_limit", 69),
            ("set_light_brightness", -1),
            ("delete_scheduled_task", 11),
        ],
    )
    async def test_ranges(self, client, method, bad):
        with pytest.raises(ValidationError):
            await getattr(client.powerstream("HW51"), method)(bad)
        client.set_device_parameter.assert_not_awaited()


class TestSmartHomePanel:
    async def test_rtc_time(self, client):
        # 2024-03-10 is a Sunday
        await client.smart_home_panel("SP1").set_rtc_time(datetime(2024, 3, 10, 8, 30, 15))
        cmd = _sent(client)
        assert cmd["operateType"] == "TCP"
        assert cmd["params"] == {
            "cmdSet": 11,
            "id": 3,
            "week": 0,
            "sec": 15,
            "min": 30,
            "hour": 8,
            "day": 10,
            "month": 3,
            "year": 2024,
        }

    async def test_load_channel_info_is_nested(self, client):
        await client.smart_home_panel("SP1").set_load_channel_configuration(2, "Fridge", 10)
        assert _sent(client)["params"] == {
            "cmdSet": 11,
            "id": 32,
            "chNum": 2,
            "info": {"chName": "Fridge", "iconInfo": 10},
        }

    async def test_channel_enable(self, client):
        await client.smart_home_panel("SP1").set_channel_enable_status(1, ON)
        assert _sent(client)["params"] == {"cmdSet": 11, "id": 26, "chNum": 1, "isEnable": 1}

    async def test_channel_range(self, client):
        with pytest.raises(ValidationError):
            await client.smart_home_panel("SP1").set_channel_enable_status(10, ON)

    async def test_channel_current_values(self, client):
        with pytest.raises(ValidationError):
            await client.smart_home_panel("SP1").set_channel_current(1, 15)


class TestGlacier:
    async def test_temperature(self, client):
        await client.glacier("BX1").set_temperature(3, -18, 0)
        cmd = _sent(client)
        assert cmd["operateType"] == "temp"
        assert cmd["moduleType"] == 1
        assert cmd["params"] == {"tmpR": 3, "tmpL": -18, "tmpM": 0}

    async def test_temperature_difference_limit(self, client):
        with pytest.raises(ValidationError):
            await client.glacier("BX1").set_temperature(5, -25, 0)

    async def test_eco_mode(self, client):
        await client.glacier("BX1").set_eco_mode(GlacierMode.ECO)
        assert _sent(client)["params"] == {"mode": 1}

    async def test_ice_making(self, client):
        await client.glacier("BX1").set_ice_making(ON, GlacierIceShape.LARGE)
        cmd = _sent(client)
        assert cmd["operateType"] == "iceMake"
        assert cmd["params"] == {"enable": 1, "iceShape": 1}


class TestWaveAirConditioner:
    async def test_main_mode_has_module_type(self, client):
        await client.wave_air_conditioner("KT1").set_main_mode(ConditionerMainMode.HEAT)
        cmd = _sent(client)
        assert cmd["operateType"] == "mainMode"
        assert cmd["moduleType"] == 1
        assert cmd["params"] == {"mainMode": 1}

    async def test_sub_mode_has_no_module_type(self, client):
        await client.wave_air_conditioner("KT1").set_sub_mode(ConditionerSubMode.SLEEP)
        cmd = _sent(client)
        assert cmd["operateType"] == "subMode"
        assert "moduleType" not in cmd

    async def test_temperature_display(self, client):
        await client.wave_air_conditioner("KT1").set_temperature_display(
            ConditionerTemperatureDisplay.AIR_OUTLET
        )
        cmd = _sent(client)
        assert cmd["operateType"] == "tempDisplay"
        assert cmd["params"] == {"tempDisplay": 1}

    async def test_timer_range(self, client):
        with pytest.raises(ValidationError):
            await client.wave_air_conditioner("KT1").set_timer(65536, ON)

    async def test_drainage_range(self, client):
        with pytest.raises(ValidationError):
            await client.wave_air_conditioner("KT1").set_automatic_drainage(4)


class TestPowerKit:
    async def test_envelope_has_module_sn(self, client):
        await client.power_kit("M1", "MOD1").set_discharging_switch(PowerKitDischargeSwitch.ON)
        cmd = _sent(client)
        assert cmd["sn"] == "M1"
        assert cmd["moduleSn"] == "MOD1"
        assert cmd["operateType"] == "dischgParaSet"
        assert cmd["moduleType"] == PowerKitModuleType.BBC_OUT
        assert cmd["params"] == {"swSta": 1}

    async def test_dc_output_voltage(self, client):
        await client.power_kit("M1", "MOD1").set_dc_output_voltage(PowerKitDcVoltage.V24)
        cmd = _sent(client)
        assert cmd["operateType"] == "dischgParaSet"
        assert cmd["moduleType"] == 15362
        assert cmd["params"] == {"volTag": 1}

    async def test_ac_input_current_range(self, client):
        with pytest.raises(ValidationError):
            await client.power_kit("M1", "MOD1").set_ac_input_current(24)
        await client.power_kit("M1", "MOD1").set_ac_input_current(23)
        assert _sent(client)["params"] == {"acCurrMaxSet": 23}

    def test_voltage_and_switch_are_distinct_enums(self):
        assert PowerKitDcVoltage is not PowerKitDischargeSwitch
        assert PowerKitDcVoltage.V12 == 0
        assert PowerKitDischargeSwitch.ON == 1


class TestReadHelpers:
    async def test_get_parameters_delegates(self):
        client = Client("ak", "sk")
        with patch.object(Client, "get_device_parameters", AsyncMock(return_value={"pd.soc": 50})) as m:
            result = await client.power_station("R1").get_parameters(["pd.soc"])
        assert result == {"pd.soc": 50}
        m.assert_awaited_once_with("R1", ["pd.soc"])

    async def test_get_all_parameters_delegates(self):
        client = Client("ak", "sk")
        with patch.object(Client, "get_device_all_parameters", AsyncMock(return_value={})) as m:
            await client.glacier("BX1").get_all_parameters()
        m.assert_awaited_once_with("BX1")
