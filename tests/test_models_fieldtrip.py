from kioskhub.models.fieldtrip import (
    CommandPoll,
    DeviceConfig,
    FieldTripDevice,
    PendingCommand,
)


def test_device_to_dict_hides_api_key_hash():
    device = FieldTripDevice(id="d1", name="Bus 1", api_key_hash="placeholder")
    data = device.to_dict()
    assert "api_key_hash" not in data
    assert "placeholder" not in data.values()


def test_device_to_dict_keys():
    data = FieldTripDevice(id="d1").to_dict()
    assert set(data) == {
        "id", "name", "group_id", "hub_url", "last_seen", "last_lat", "last_lng",
        "status", "signing_pubkey", "created_at", "updated_at",
    }


def test_device_to_dict_keeps_unknown_location_as_none():
    data = FieldTripDevice(id="d1").to_dict()
    assert data["last_seen"] is None
    assert data["last_lat"] is None


def test_device_to_dict_carries_location():
    device = FieldTripDevice(id="d1", last_lat=48.85, last_lng=2.35, last_seen=1700000000)
    data = device.to_dict()
    assert (data["last_lat"], data["last_lng"], data["last_seen"]) == (48.85, 2.35, 1700000000)


def test_empty_command_poll_serialises_to_empty_object():
    assert CommandPoll().to_dict() == {}


def test_command_poll_includes_set_fields():
    poll = CommandPoll(whitelist=["com.example.app"], broadcast="hello")
    assert poll.to_dict() == {"whitelist": ["com.example.app"], "broadcast": "hello"}


def test_command_poll_whitelist_is_copied():
    poll = CommandPoll(whitelist=["com.example.app"])
    poll.to_dict()["whitelist"].append("other")
    assert poll.whitelist == ["com.example.app"]


def test_device_config_lists_are_independent():
    first = DeviceConfig()
    second = DeviceConfig()
    first.allowed_apps.append("com.example.app")
    assert second.allowed_apps == []


def test_pending_command_undelivered_by_default():
    command = PendingCommand(id="p1", device_id="d1", command_type="broadcast", payload="{}")
    assert command.delivered_at is None
    assert command.payload == "{}"