from kioskhub.models.device import (
    Device,
    DeviceGroup,
    DeviceInfo,
    DeviceRegistration,
    DeviceStatus,
)

ALL_KEYS = {
    "brand", "model", "android_version", "sdk_version", "serial_number", "imei",
    "wifi_mac", "battery_level", "battery_charging", "screen_on", "screen_brightness",
    "volume", "app_version", "free_storage", "total_storage", "free_memory", "total_memory",
}


def test_device_status_values():
    assert DeviceStatus("active") is DeviceStatus.ACTIVE
    assert DeviceStatus.DISABLED.value == "disabled"


def test_to_map_of_empty_info_keeps_only_flags():
    assert DeviceInfo().to_map() == {"battery_charging": False, "screen_on": False}


def test_to_map_with_every_field_set():
    info = DeviceInfo(
        brand="Acme", model="K1", android_version="13", sdk_version=33,
        serial_number="SN-EXAMPLE-0001", imei="IMEI-EXAMPLE", wifi_mac="00:00:5e:00:53:01",
        battery_level=80, battery_charging=True, screen_on=True, screen_brightness=120,
        volume=40, app_version="1.2.3", free_storage=100, total_storage=200,
        free_memory=10, total_memory=20,
    )
    mapped = info.to_map()
    assert set(mapped) == ALL_KEYS
    assert mapped["sdk_version"] == 33
    assert mapped["wifi_mac"] == "00:00:5e:00:53:01"
    assert mapped["battery_charging"] is True


def test_to_map_drops_non_positive_numbers():
    mapped = DeviceInfo(sdk_version=-1, battery_level=0, volume=5).to_map()
    assert "sdk_version" not in mapped
    assert "battery_level" not in mapped
    assert mapped["volume"] == 5


def test_to_map_returns_fresh_dict():
    info = DeviceInfo(brand="Acme")
    first = info.to_map()
    first["brand"] = "changed"
    assert info.to_map()["brand"] == "Acme"


def test_registration_device_info_is_independent():
    first = DeviceRegistration(tenant_id="t", device_key="k1", csr_pem="pem")
    second = DeviceRegistration(tenant_id="t", device_key="k2", csr_pem="pem")
    first.device_info.brand = "Acme"
    assert second.device_info.brand == ""


def test_device_info_maps_are_independent():
    first = Device(id="a")
    second = Device(id="b")
    first.device_info["brand"] = "Acme"
    assert second.device_info == {}


def test_device_group_parent_defaults_to_none():
    group = DeviceGroup(id="g1", name="Lobby")
    assert group.parent_id is None
    assert group.metadata == {}