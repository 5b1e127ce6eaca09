"""Topic names used between the hub and the kiosks.

Layout:
  kiosk/{tenant}/{device}/status               device state (retained)
  kiosk/{tenant}/{device}/command              commands to the device
  kiosk/{tenant}/{device}/config               configuration updates
  kiosk/{tenant}/{device}/event                device events
  kiosk/{tenant}/{device}/telemetry            telemetry
  kiosk/{tenant}/{device}/response/{command}   command responses
"""

from __future__ import annotations

from dataclasses import dataclass

TOPIC_STATUS = "kiosk/{}/{}/status"
TOPIC_EVENT = "kiosk/{}/{}/event"
TOPIC_TELEMETRY = "kiosk/{}/{}/telemetry"
TOPIC_RESPONSE = "kiosk/{}/{}/response/{}"

TOPIC_COMMAND = "kiosk/{}/{}/command"
TOPIC_CONFIG = "kiosk/{}/{}/config"
TOPIC_FIRMWARE = "kiosk/{}/{}/firmware"

TOPIC_BROADCAST_COMMAND = "kiosk/{}/broadcast/command"
TOPIC_BROADCAST_CONFIG = "kiosk/{}/broadcast/config"

SHARED_SUBSCRIPTION_PATTERN = "$share/{}/kiosk/+/+/command"


@dataclass(frozen=True)
class TopicBuilder:
    """Builds the topics of one device."""

    tenant_id: str
    device_id: str

    def status_topic(self) -> str:
        return TOPIC_STATUS.format(self.tenant_id, self.device_id)

    def command_topic(self) -> str:
        return TOPIC_COMMAND.format(self.tenant_id, self.device_id)

    def config_topic(self) -> str:
        return TOPIC_CONFIG.format(self.tenant_id, self.device_id)

    def event_topic(self) -> str:
        return TOPIC_EVENT.format(self.tenant_id, self.device_id)

    def telemetry_topic(self) -> str:
        return TOPIC_TELEMETRY.format(self.tenant_id, self.device_id)

    def response_topic(self, command_id: str) -> str:
        return TOPIC_RESPONSE.format(self.tenant_id, self.device_id, command_id)

    def firmware_topic(self) -> str:
        return TOPIC_FIRMWARE.format(self.tenant_id, self.device_id)


def broadcast_command_topic(tenant_id: str) -> str:
    return TOPIC_BROADCAST_COMMAND.format(tenant_id)


def broadcast_config_topic(tenant_id: str) -> str:
    return TOPIC_BROADCAST_CONFIG.format(tenant_id)


def shared_command_subscription(group: str) -> str:
    """Return the shared subscription that spreads commands over a hub cluster."""
    return SHARED_SUBSCRIPTION_PATTERN.format(group)


def status_wildcard(tenant_id: str) -> str:
    return f"kiosk/{tenant_id}/+/status"


def event_wildcard(tenant_id: str) -> str:
    return f"kiosk/{tenant_id}/+/event"


def telemetry_wildcard(tenant_id: str) -> str:
    return f"kiosk/{tenant_id}/+/telemetry"