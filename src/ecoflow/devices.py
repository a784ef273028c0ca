"""Per-family command builders.

Each device family exposes typed setters that assemble a parameter map and
hand it to :meth:`Client.set_device_parameter` wrapped in the generic
command envelope built by :func:`build_command`.  Families differ only in
how the operation is named on the wire:

* ``operateType`` + optional ``moduleType`` (Delta 2, Glacier, Wave, Power Kit)
* ``cmdCode`` (Smart Plug, PowerStream)
* ``params.cmdSet`` + ``params.id`` (Delta Pro, Smart Home Panel)
"""

from __future__ import annotations

import time
from datetime import datetime
from enum import IntEnum
from typing import TYPE_CHECKING

from ecoflow.errors import ValidationError
from ecoflow.models import CommandResult, GridFrequency, ModuleType, SettingSwitcher, TemperatureUnit

if TYPE_CHECKING:
    from ecoflow.client import Client


def build_command(
    sn: str,
    params: dict[str, object],
    *,
    operate_type: str | None = None,
    cmd_code: str | None = None,
    module_type: int | None = None,
    **extra: object,
) -> dict[str, object]:
    """Build a set-parameter command envelope.

    ``id`` is the current time in milliseconds; it is not used for
    deduplication, so two calls never share an id in practice but nothing
    enforces it.  Empty opcodes and a zero *module_type* are omitted.
    *extra* fields (e.g. ``moduleSn``) are copied verbatim.

    Raises:
        ValidationError: If *sn* is empty or both *operate_type* and
            *cmd_code* are given.
    """
    if not sn:
        raise ValidationError("Device SN is mandatory")
    if operate_type and cmd_code:
        raise ValidationError("operateType and cmdCode are mutually exclusive")

    command: dict[str, object] = {"id": str(int(time.time() * 1000)), "sn": sn}
    if operate_type:
        command["operateType"] = operate_type
    if cmd_code:
        command["cmdCode"] = cmd_code
    if module_type:
        command["moduleType"] = int(module_type)
    command.update(extra)
    command["params"] = params
    return command


def _check_range(name: str, value: float, low: float, high: float) -> None:
    if value < low or value > high:
        raise ValidationError(f"{name} is out of range. Range {low}:{high}")


def _check_non_negative(name: str, value: float) -> None:
    if value < 0:
        raise ValidationError(f"{name} must be positive")


class _Device:
    """State shared by every device builder: the client and serial number."""

    def __init__(self, client: Client, sn: str) -> None:
        self._client = client
        self._sn = sn

    @property
    def sn(self) -> str:
        """Serial number of this device."""
        return self._sn

    async def get_parameters(self, quotas: list[str]) -> dict[str, object]:
        """Fetch selected quota values by name."""
        return await self._client.get_device_parameters(self._sn, quotas)

    async def get_all_parameters(self) -> dict[str, object]:
        """Fetch the full quota map."""
        return await self._client.get_device_all_parameters(self._sn)

    async def _send(self, params: dict[str, object], **envelope: object) -> CommandResult:
        command = build_command(self._sn, params, **envelope)  # type: ignore[arg-type]
        return await self._client.set_device_parameter(command)


# ---------------------------------------------------------------------------
# Delta 2 / Delta 2 Max / River 2
# ---------------------------------------------------------------------------


class PowerStation(_Device):
    """Delta-class power station addressed by ``operateType`` + ``moduleType``."""

    async def _set(self, operate_type: str, module: ModuleType, params: dict[str, object]) -> CommandResult:
        return await self._send(params, operate_type=operate_type, module_type=module)

    # MPPT

    async def set_car_charger_switch(self, enabled: SettingSwitcher) -> CommandResult:
        return await self._set("mpptCar", ModuleType.MPPT, {"enabled": enabled})

    async def set_buzzer_silent_mode(self, enabled: SettingSwitcher) -> CommandResult:
        return await self._set("quietMode", ModuleType.MPPT, {"enabled": enabled})

    async def set_ac_discharge_settings(
        self,
        enabled: SettingSwitcher,
        xboost: SettingSwitcher,
        out_voltage: int,
        out_freq: GridFrequency,
    ) -> CommandResult:
        """AC output switch, X-Boost, output voltage (V) and frequency."""
        _check_non_negative("out_voltage", out_voltage)
        return await self._set(
            "acOutCfg",
            ModuleType.MPPT,
            {"enabled": enabled, "xboost": xboost, "out_voltage": out_voltage, "out_freq": out_freq},
        )

    async def set_ac_charging_settings(
        self, charge_watts: int, chg_pause_flag: SettingSwitcher = SettingSwitcher.DISABLED
    ) -> CommandResult:
        """AC charging power in watts.

        ``chg_pause_flag`` pauses AC charging until the charger is
        replugged; leave it disabled for normal operation.
        """
        _check_non_negative("chargeWatts", charge_watts)
        return await self._set(
            "acChgCfg", ModuleType.MPPT, {"chgWatts": charge_watts, "chgPauseFlag": chg_pause_flag}
        )

    async def set_ac_standby_time(self, standby_mins: int) -> CommandResult:
        """AC auto-off with no load, in minutes (0 = never)."""
        _check_non_negative("standbyMins", standby_mins)
        return await self._set("standbyTime", ModuleType.MPPT, {"standbyMins": standby_mins})

    async def set_car_standby_time(self, standby_mins: int) -> CommandResult:
        _check_non_negative("standbyMins", standby_mins)
        return await self._set("carStandby", ModuleType.MPPT, {"standbyMins": standby_mins})

    async def set_12v_dc_charging_current(self, charging_current: int) -> CommandResult:
        """Maximum car charger current in mA (4000-10000)."""
        _check_range("chargingCurrent", charging_current, 4000, 10000)
        return await self._set("dcChgCfg", ModuleType.MPPT, {"dcChgCfg": charging_current})

    # PD

    async def set_standby_time(self, standby_min: int) -> CommandResult:
        """Unit standby time in minutes (0 = never)."""
        return await self._set("standbyTime", ModuleType.PD, {"standbyMin": standby_min})

    async def set_dc_switch(self, enabled: SettingSwitcher) -> CommandResult:
        """DC (USB) output switch."""
        return await self._set("dcOutCfg", ModuleType.PD, {"enabled": enabled})

    async def set_lcd_screen_timeout(self, delay_off_seconds: int) -> CommandResult:
        _check_non_negative("delayOff", delay_off_seconds)
        # brighLevel (sic) must be 3, the device rejects anything else
        return await self._set(
            "lcdCfg", ModuleType.PD, {"delayOff": delay_off_seconds, "brighLevel": 3}
        )

    async def set_prioritize_solar_charging(self, enabled: SettingSwitcher) -> CommandResult:
        return await self._set("pvChangePrio", ModuleType.PD, {"pvChangeSet": enabled})

    # BMS

    async def set_max_charge_soc(self, max_chg_soc: int) -> CommandResult:
        """Upper SoC limit when charging (UPS), percent."""
        _check_range("maxChgSoc", max_chg_soc, 0, 100)
        return await self._set("upsConfig", ModuleType.BMS, {"maxChgSoc": max_chg_soc})

    async def set_min_discharge_soc(self, min_dsg_soc: int) -> CommandResult:
        """Lower SoC limit when discharging, percent."""
        _check_range("minDsgSoc", min_dsg_soc, 0, 100)
        return await self._set("dsgCfg", ModuleType.BMS, {"minDsgSoc": min_dsg_soc})

    async def set_soc_to_turn_on_smart_generator(self, open_oil_soc: int) -> CommandResult:
        _check_range("openOilSoc", open_oil_soc, 0, 100)
        return await self._set("openOilSoc", ModuleType.BMS, {"openOilSoc": open_oil_soc})

    async def set_soc_to_turn_off_smart_generator(self, close_oil_soc: int) -> CommandResult:
        _check_range("closeOilSoc", close_oil_soc, 0, 100)
        return await self._set("closeOilSoc", ModuleType.BMS, {"closeOilSoc": close_oil_soc})


# ---------------------------------------------------------------------------
# Delta Pro
# ---------------------------------------------------------------------------


class PvChargeType(IntEnum):
    AUTO = 0
    MPPT = 1
    ADAPTER = 2


class PowerStationPro(_Device):
    """Delta Pro.  Operations are selected by ``params.id`` under ``cmdSet`` 32."""

    _CMD_SET = 32

    async def _set(self, op_id: int, **values: object) -> CommandResult:
        return await self._send({"cmdSet": self._CMD_SET, "id": op_id, **values})

    async def set_xboost_switch(self, enabled: SettingSwitcher) -> CommandResult:
        return await self._set(66, enabled=enabled, xboost=enabled)

    async def set_car_charger_switch(self, enabled: SettingSwitcher) -> CommandResult:
        return await self._set(81, enabled=enabled)

    async def set_max_charge_level(self, max_chg_soc: int) -> CommandResult:
        _check_range("maxChgSoc", max_chg_soc, 0, 100)
        return await self._set(49, maxChgSoc=max_chg_soc)

    async def set_min_discharge_level(self, min_dsg_soc: int) -> CommandResult:
        _check_range("minDsgSoc", min_dsg_soc, 0, 100)
        return await self._set(51, minDsgSoc=min_dsg_soc)

    async def set_car_input_current(self, curr_ma: int) -> CommandResult:
        return await self._set(71, currMa=curr_ma)

    async def set_beep_switch(self, enabled: SettingSwitcher) -> CommandResult:
        return await self._set(38, enabled=enabled)

    async def set_screen_brightness(self, lcd_brightness: int) -> CommandResult:
        return await self._set(39, lcdBrightness=lcd_brightness)

    async def set_soc_to_turn_on_smart_generator(self, open_oil_soc: int) -> CommandResult:
        _check_range("openOilSoc", open_oil_soc, 0, 100)
        return await self._set(52, openOilSoc=open_oil_soc)

    async def set_soc_to_turn_off_smart_generator(self, close_oil_soc: int) -> CommandResult:
        _check_range("closeOilSoc", close_oil_soc, 0, 100)
        return await self._set(53, closeOilSoc=close_oil_soc)

    async def set_unit_timeout(self, stand_by_mode: int) -> CommandResult:
        return await self._set(33, standByMode=stand_by_mode)

    async def set_screen_timeout(self, lcd_time: int) -> CommandResult:
        return await self._set(39, lcdTime=lcd_time)

    async def set_ac_standby_time(self, stand_by_mins: int) -> CommandResult:
        return await self._set(153, standByMins=stand_by_mins)

    async def set_ac_charging_settings(self, slow_chg_power: int) -> CommandResult:
        return await self._set(69, slowChgPower=slow_chg_power)

    async def set_pv_charging_type(self, chg_type: PvChargeType) -> CommandResult:
        return await self._set(82, chgType=chg_type)

    async def set_bypass_ac_auto_start(self, enabled: SettingSwitcher) -> CommandResult:
        return await self._set(84, enabled=enabled)


# ---------------------------------------------------------------------------
# Smart Plug / PowerStream (cmdCode)
# ---------------------------------------------------------------------------


class SmartPlug(_Device):
    async def set_relay_switch(self, enabled: SettingSwitcher) -> CommandResult:
        return await self._send(
            {"plugSwitch": enabled}, cmd_code="WN511_SOCKET_SET_PLUG_SWITCH_MESSAGE"
        )

    async def set_indicator_brightness(self, brightness: int) -> CommandResult:
        """LED brightness, 0-1023."""
        _check_range("brightness", brightness, 0, 1023)
        return await self._send({"brightness": brightness}, cmd_code="WN511_SOCKET_SET_BRIGHTNESS_PACK")

    async def delete_scheduled_task(self, task_index: int) -> CommandResult:
        _check_range("taskIndex", task_index, 0, 9)
        return await self._send({"taskIndex": task_index}, cmd_code="WN511_SOCKET_DELETE_TIME_TASK")


class SupplyPriority(IntEnum):
    POWER_SUPPLY = 0
    POWER_STORAGE = 1


class PowerStream(_Device):
    """PowerStream micro inverter."""

    async def set_power_supply_priority(self, priority: SupplyPriority) -> CommandResult:
        return await self._send({"supplyPriority": priority}, cmd_code="WN511_SET_SUPPLY_PRIORITY_PACK")

    async def set_custom_load_power(self, permanent_watts: float) -> CommandResult:
        """Custom load power, 0-600 in units of 0.1 W."""
        _check_range("permanentWatts", permanent_watts, 0, 600)
        return await self._send(
            {"permanentWatts": permanent_watts}, cmd_code="WN511_SET_PERMANENT_WATTS_PACK"
        )

    async def set_battery_discharge_lower_limit(self, lower_limit: float) -> CommandResult:
        _check_range("lowerLimit", lower_limit, 1, 30)
        return await self._send({"lowerLimit": lower_limit}, cmd_code="WN511_SET_BAT_LOWER_PACK")

    async def set_battery_charge_upper_limit(self, upper_limit: float) -> CommandResult:
        _check_range("upperLimit", upper_limit, 70, 100)
        return await self._send({"upperLimit": upper_limit}, cmd_code="WN511_SET_BAT_UPPER_PACK")

    async def set_light_brightness(self, brightness: int) -> CommandResult:
        _check_range("brightness", brightness, 0, 1023)
        return await self._send({"brightness": brightness}, cmd_code="WN511_SET_BRIGHTNESS_PACK")

    async def delete_scheduled_task(self, task_index: int) -> CommandResult:
        _check_range("taskIndex", task_index, 0, 10)
        return await self._send({"taskIndex": task_index}, cmd_code="WN511_DELETE_TIME_TASK")


# ---------------------------------------------------------------------------
# Smart Home Panel
# ---------------------------------------------------------------------------


class SmartHomePanel(_Device):
    """Smart Home Panel.  All commands go through ``operateType`` ``TCP``."""

    _CMD_SET = 11

    async def _set(self, op_id: int, **values: object) -> CommandResult:
        return await self._send({"cmdSet": self._CMD_SET, "id": op_id, **values}, operate_type="TCP")

    async def set_rtc_time(self, t: datetime) -> CommandResult:
        """Set the panel clock (``week`` counts from Sunday = 0)."""
        return await self._set(
            3,
            week=t.isoweekday() % 7,
            sec=t.second,
            min=t.minute,
            hour=t.hour,
            day=t.day,
            month=t.month,
            year=t.year,
        )

    async def set_load_channel_control(self, ch: int, ctrl_mode: int, sta: int) -> CommandResult:
        return await self._set(16, ch=ch, ctrlMode=ctrl_mode, sta=sta)

    async def set_standby_channel_control(self, ch: int, ctrl_mode: int, sta: int) -> CommandResult:
        return await self._set(17, ch=ch, ctrlMode=ctrl_mode, sta=sta)

    async def set_channel_current(self, ch_num: int, cur: int) -> CommandResult:
        """Channel breaker current; the panel accepts 6, 13, 16, 20 or 30 A."""
        if cur not in (6, 13, 16, 20, 30):
            raise ValidationError("cur must be one of 6, 13, 16, 20, 30")
        return await self._set(20, chNum=ch_num, cur=cur)

    async def set_grid_power_configuration(self, grid_vol: int, grid_freq: int) -> CommandResult:
        return await self._set(22, gridVol=grid_vol, gridFreq=grid_freq)

    async def set_eps_mode(self, enabled: SettingSwitcher) -> CommandResult:
        return await self._set(24, eps=enabled)

    async def set_channel_enable_status(self, ch_num: int, enabled: SettingSwitcher) -> CommandResult:
        _check_range("chNum", ch_num, 0, 9)
        return await self._set(26, chNum=ch_num, isEnable=enabled)

    async def set_load_channel_configuration(
        self, ch_num: int, ch_name: str, icon_info: int
    ) -> CommandResult:
        _check_range("chNum", ch_num, 0, 9)
        return await self._set(32, chNum=ch_num, info={"chName": ch_name, "iconInfo": icon_info})

    async def set_region(self, area: str) -> CommandResult:
        return await self._set(34, area=area)

    async def set_configuration_status(self, cfg_sta: SettingSwitcher) -> CommandResult:
        return await self._set(7, cfgSta=cfg_sta)

    async def start_self_check_push(self, self_check_type: int) -> CommandResult:
        return await self._set(112, selfCheckType=self_check_type)

    async def push_standby_charge_discharge_parameters(
        self, force_charge_high: int, disc_lower: int
    ) -> CommandResult:
        return await self._set(29, forceChargeHigh=force_charge_high, discLower=disc_lower)


# ---------------------------------------------------------------------------
# Glacier
# ---------------------------------------------------------------------------


class GlacierMode(IntEnum):
    NORMAL = 0
    ECO = 1


class GlacierIceShape(IntEnum):
    SMALL = 0
    LARGE = 1


class GlacierSensorDetection(IntEnum):
    UNBLOCKED = 0
    BLOCKED = 1


class GlacierBuzzerCommand(IntEnum):
    ALWAYS_BEEPING = 0
    BEEP_ONCE = 1
    BEEP_TWICE = 2
    BEEP_THREE_TIMES = 3


class GlacierVoltageProtectionLevel(IntEnum):
    LOW = 0
    MEDIUM = 1
    HIGH = 2


class Glacier(_Device):
    """Glacier portable refrigerator."""

    async def _set(self, operate_type: str, params: dict[str, object]) -> CommandResult:
        return await self._send(params, operate_type=operate_type, module_type=ModuleType.PD)

    async def set_temperature(self, tmp_r: int, tmp_l: int, tmp_m: int) -> CommandResult:
        """Zone temperatures in degrees C.

        *tmp_m* applies when the middle partition is removed.  Left and
        right may differ by at most 25 degrees.
        """
        if abs(tmp_r - tmp_l) > 25:
            raise ValidationError("Difference between tmpR and tmpL cannot exceed 25")
        return await self._set("temp", {"tmpR": tmp_r, "tmpL": tmp_l, "tmpM": tmp_m})

    async def set_eco_mode(self, mode: GlacierMode) -> CommandResult:
        return await self._set("ecoMode", {"mode": mode})

    async def set_buzzer_enabled(self, enabled: SettingSwitcher) -> CommandResult:
        return await self._set("beepEn", {"flag": enabled})

    async def set_buzzer_command(self, command: GlacierBuzzerCommand) -> CommandResult:
        return await self._set("beep", {"flag": command})

    async def set_screen_timeout(self, seconds: int) -> CommandResult:
        """Screen timeout in seconds (0 = always on)."""
        _check_non_negative("time", seconds)
        return await self._set("blTime", {"time": seconds})

    async def set_temperature_unit(self, unit: TemperatureUnit) -> CommandResult:
        return await self._set("tmpUnit", {"unit": unit})

    async def set_ice_making(self, enable: SettingSwitcher, ice_shape: GlacierIceShape) -> CommandResult:
        return await self._set("iceMake", {"enable": enable, "iceShape": ice_shape})

    async def set_ice_detaching(self, enable: SettingSwitcher) -> CommandResult:
        return await self._set("deIce", {"enable": enable})

    async def set_sensor_detection_blocking(self, sensor: GlacierSensorDetection) -> CommandResult:
        return await self._set("sensorAdv", {"sensorAdv": sensor})

    async def set_battery_low_voltage_protection(
        self, state: SettingSwitcher, level: GlacierVoltageProtectionLevel
    ) -> CommandResult:
        return await self._set("protectBat", {"state": state, "level": level})


# ---------------------------------------------------------------------------
# Wave air conditioner
# ---------------------------------------------------------------------------


class ConditionerMainMode(IntEnum):
    COOL = 0
    HEAT = 1
    FAN = 2


class ConditionerSubMode(IntEnum):
    MAX = 0
    SLEEP = 1
    ECO = 2
    MANUAL = 3


class ConditionerTemperatureDisplay(IntEnum):
    AMBIENT = 0
    AIR_OUTLET = 1


class ConditionerWindSpeed(IntEnum):
    LOW = 0
    MEDIUM = 1
    HIGH = 2


class ConditionerLightStripMode(IntEnum):
    FOLLOW_SCREEN = 0
    ALWAYS_ON = 1
    ALWAYS_OFF = 2


class ConditionerPowerMode(IntEnum):
    STARTUP = 1
    STANDBY = 2
    SHUTDOWN = 3


class WaveAirConditioner(_Device):
    """Wave portable air conditioner.

    Some operations carry ``moduleType`` 1, others omit it entirely.
    """

    async def _set(
        self, operate_type: str, params: dict[str, object], module: ModuleType | None = None
    ) -> CommandResult:
        return await self._send(params, operate_type=operate_type, module_type=module)

    async def set_main_mode(self, main_mode: ConditionerMainMode) -> CommandResult:
        return await self._set("mainMode", {"mainMode": main_mode}, ModuleType.PD)

    async def set_sub_mode(self, sub_mode: ConditionerSubMode) -> CommandResult:
        return await self._set("subMode", {"subMode": sub_mode})

    async def set_temperature_unit(self, mode: TemperatureUnit) -> CommandResult:
        return await self._set("tempSys", {"mode": mode})

    async def set_screen_timeout(self, idle_time: int, idle_mode: SettingSwitcher) -> CommandResult:
        """Screen timeout in seconds; ``idle_time=0`` with mode disabled keeps it on."""
        _check_non_negative("idleTime", idle_time)
        return await self._set("display", {"idleTime": idle_time, "idleMode": idle_mode})

    async def set_timer(self, time_set: int, time_en: SettingSwitcher) -> CommandResult:
        """Timer in minutes (0-65535)."""
        _check_range("timeSet", time_set, 0, 65535)
        return await self._set("sacTiming", {"timeSet": time_set, "timeEn": time_en})

    async def set_buzzer_enabled(self, enabled: SettingSwitcher) -> CommandResult:
        return await self._set("beepEn", {"en": enabled})

    async def set_temperature(self, set_temp: int) -> CommandResult:
        """Target temperature, 16-30 degrees C."""
        _check_range("setTemp", set_temp, 16, 30)
        return await self._set("setTemp", {"setTemp": set_temp}, ModuleType.PD)

    async def set_temperature_display(self, display: ConditionerTemperatureDisplay) -> CommandResult:
        return await self._set("tempDisplay", {"tempDisplay": display}, ModuleType.PD)

    async def set_wind_speed(self, fan_value: ConditionerWindSpeed) -> CommandResult:
        return await self._set("fanValue", {"fanValue": fan_value})

    async def set_automatic_drainage(self, wte_fth_en: int) -> CommandResult:
        """Drainage mode 0-3; meaning depends on the main mode."""
        _check_range("wteFthEn", wte_fth_en, 0, 3)
        return await self._set("wteFthEn", {"wteFthEn": wte_fth_en})

    async def set_light_strip_mode(self, rgb_state: ConditionerLightStripMode) -> CommandResult:
        return await self._set("rgbState", {"rgbState": rgb_state}, ModuleType.PD)

    async def set_power_mode(self, power_mode: ConditionerPowerMode) -> CommandResult:
        return await self._set("powerMode", {"powerMode": power_mode}, ModuleType.PD)


# ---------------------------------------------------------------------------
# Power Kit
# ---------------------------------------------------------------------------


class PowerKitModuleType(IntEnum):
    BP5000_BP2000 = 0
    BBC_IN = 15362
    BBC_OUT = 15363
    IC_LOW = 15365
    LD_AC = 15367
    LD_DC = 15368
    WIRELESS = 15370


class PowerKitDcVoltage(IntEnum):
    V12 = 0
    V24 = 1


class PowerKitDischargeSwitch(IntEnum):
    OFF = 0
    ON = 1


class PowerKitPassByMode(IntEnum):
    ON = 1
    OFF = 2


class PowerKit(_Device):
    """A Power Kit module; commands also carry the module serial number."""

    def __init__(self, client: Client, sn: str, module_sn: str) -> None:
        super().__init__(client, sn)
        self._module_sn = module_sn

    @property
    def module_sn(self) -> str:
        """Serial number of the addressed module."""
        return self._module_sn

    async def _set(
        self, operate_type: str, module: PowerKitModuleType, params: dict[str, object]
    ) -> CommandResult:
        return await self._send(
            params, operate_type=operate_type, module_type=module, moduleSn=self._module_sn
        )

    async def set_dc_output_voltage(self, voltage: PowerKitDcVoltage) -> CommandResult:
        return await self._set("dischgParaSet", PowerKitModuleType.BBC_IN, {"volTag": voltage})

    async def set_charging_settings(
        self,
        chg_pause: int,
        max_chg_curr: int,
        alt_volt_lmt_en: int = 255,
        shake_ctrl_disable: int = 255,
        alt_cable_unit: int = 255,
        alt_cable_len: int = -1,
        alt_volt_lmt: int = 65535,
    ) -> CommandResult:
        """Alternator charging settings.  ``255``/``-1``/``65535`` mean "unchanged"."""
        return await self._set(
            "chgParaSet",
            PowerKitModuleType.BBC_IN,
            {
                "chgPause": chg_pause,
                "maxChgCurr": max_chg_curr,
                "altVoltLmtEn": alt_volt_lmt_en,
                "shakeCtrlDisable": shake_ctrl_disable,
                "altCableUnit": alt_cable_unit,
                "altCableLen": alt_cable_len,
                "altVoltLmt": alt_volt_lmt,
            },
        )

    async def set_discharging_switch(self, state: PowerKitDischargeSwitch) -> CommandResult:
        return await self._set("dischgParaSet", PowerKitModuleType.BBC_OUT, {"swSta": state})

    async def broadcast_rtc_time(
        self, unix_time: int, time_zone: int, time_zone_quarter: int
    ) -> CommandResult:
        """Broadcast the RTC time to all modules."""
        return await self._set(
            "rtcBroadcast",
            PowerKitModuleType.BBC_OUT,
            {"unixTime": unix_time, "timeZone": time_zone, "timeZoneQuarter": time_zone_quarter},
        )

    async def set_discharging_command(
        self,
        power_on: SettingSwitcher,
        ac_curr_max_set: int = 255,
        ac_chg_disa: int = 255,
        ac_frequency_set: int = 255,
        ac_vol_set: int = 255,
    ) -> CommandResult:
        """Inverter AC output on/off; other fields at ``255`` are left unchanged."""
        return await self._set(
            "dischgIcParaSet",
            PowerKitModuleType.IC_LOW,
            {
                "acCurrMaxSet": ac_curr_max_set,
                "powerOn": power_on,
                "acChgDisa": ac_chg_disa,
                "acFrequencySet": ac_frequency_set,
                "acVolSet": ac_vol_set,
            },
        )

    async def set_ac_input_current(self, ac_curr_max_set: int) -> CommandResult:
        """AC input current in amps (1-23)."""
        _check_range("acCurrMaxSet", ac_curr_max_set, 1, 23)
        return await self._set(
            "dischgIcParaSet", PowerKitModuleType.IC_LOW, {"acCurrMaxSet": ac_curr_max_set}
        )

    async def set_grid_power_in_priority(
        self,
        pass_by_mode: PowerKitPassByMode,
        dsg_low_pwr_en: int = 255,
        pfc_dsg_mode_en: int = 255,
        pass_by_curr_max: int = 255,
    ) -> CommandResult:
        return await self._set(
            "dsgIcParaSet",
            PowerKitModuleType.IC_LOW,
            {
                "dsgLowPwrEn": dsg_low_pwr_en,
                "pfcDsgModeEn": pfc_dsg_mode_en,
                "passByCurrMax": pass_by_curr_max,
                "passByModeEn": pass_by_mode,
            },
        )
