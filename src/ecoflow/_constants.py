"""Internal constants for the EcoFlow open API and app endpoints."""

from __future__ import annotations

API_BASE = "https://api.ecoflow.com"

DEVICE_LIST_PATH = "/iot-open/sign/device/list"
DEVICE_QUOTA_ALL_PATH = "/iot-open/sign/device/quota/all"
DEVICE_QUOTA_PATH = "/iot-open/sign/device/quota"

# App endpoints used only to bootstrap MQTT credentials (not signed)
LOGIN_URL = "https://api.ecoflow.com/auth/login"
CERTIFICATION_URL = "https://api.ecoflow.com/iot-auth/app/certification"
LOGIN_SCENE = "IOT_APP"
LOGIN_USER_TYPE = "ECOFLOW"

MQTT_CLIENT_ID_PREFIX = "ANDROID"
MQTT_PROPERTY_TOPIC = "/app/device/property/{sn}"

SUCCESS_CODE = "0"

JSON_CONTENT_TYPE = "application/json;charset=UTF-8"

DEFAULT_TIMEOUT = 15  # seconds

MQTT_RECONNECT_INTERVAL = 5  # seconds between reconnection attempts

APP_HEADERS: dict[str, str] = {
    "lang": "en_US",
}

ENV_ACCESS_KEY = "ECOFLOW_ACCESS_KEY"
ENV_SECRET_KEY = "ECOFLOW_SECRET_KEY"
ENV_API_URL = "ECOFLOW_API_URL"
ENV_EMAIL = "ECOFLOW_EMAIL"
ENV_PASSWORD = "ECOFLOW_PASSWORD"
