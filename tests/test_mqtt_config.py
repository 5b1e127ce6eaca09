from datetime import timedelta

import pytest

from kioskhub.mqtt.config import MqttConfig, config_from_env

_VARIABLES = (
    "MQTT_BROKER_URL",
    "MQTT_PORT",
    "MQTT_CLIENT_ID",
    "MQTT_USERNAME",
    "MQTT_PASSWORD",
    "MQTT_USE_TLS",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in _VARIABLES:
        monkeypatch.delenv(name, raising=False)


def test_config_from_env_defaults():
    config = config_from_env()
    assert config.broker_url == "localhost"
    assert config.port == 1883
    assert config.client_id == "freekiosk-hub"
    assert config.keep_alive == timedelta(seconds=60)
    assert config.use_tls is False
    assert config.clean_start is False
    assert config.auto_reconnect is True
    assert config.username == ""


def test_config_from_env_overrides(monkeypatch):
    monkeypatch.setenv("MQTT_BROKER_URL", "broker.example.com")
    monkeypatch.setenv("MQTT_PORT", "8883")
    monkeypatch.setenv("MQTT_CLIENT_ID", "hub-a")
    monkeypatch.setenv("MQTT_USERNAME", "user")
    monkeypatch.setenv("MQTT_PASSWORD", "password")
    config = config_from_env()
    assert config.broker_url == "broker.example.com"
    assert config.port == 8883
    assert config.client_id == "hub-a"
    assert config.username == "user"
    assert config.password == "password"


def test_empty_variables_keep_defaults(monkeypatch):
    monkeypatch.setenv("MQTT_BROKER_URL", "")
    monkeypatch.setenv("MQTT_PORT", "")
    config = config_from_env()
    assert config.broker_url == "localhost"
    assert config.port == 1883


def test_invalid_port_keeps_default(monkeypatch):
    monkeypatch.setenv("MQTT_PORT", "abc")
    assert config_from_env().port == 1883


@pytest.mark.parametrize(
    "value, expected",
    [("true", True), ("TRUE", True), ("1", True), ("yes", False), ("false", False)],
)
def test_use_tls_parsing(monkeypatch, value, expected):
    monkeypatch.setenv("MQTT_USE_TLS", value)
    assert config_from_env().use_tls is expected


def test_broker_address():
    config = MqttConfig(broker_url="localhost", port=1883)
    assert config.broker_address() == "localhost:1883"