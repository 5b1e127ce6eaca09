"""View objects combining stored data for display."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from kioskhub.models.command import _format_time
from kioskhub.repositories.group import Group
from kioskhub.repositories.report import TabletReport
from kioskhub.repositories.tablet import Tablet


@dataclass
class TabletDisplay:
    """A tablet with its latest report and its groups."""

    tablet: Tablet
    last_report: TabletReport | None = None
    groups: list[Group] = field(default_factory=list)


@dataclass
class DeviceStatusDisplay:
    """The state of a device as shown to operators."""

    device_id: str
    name: str = ""
    online: bool = False
    last_seen: datetime | None = None
    status: dict[str, Any] = field(default_factory=dict)
    battery: int = 0
    screen_on: bool = False
    temperature: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON view; empty optional fields are left out."""
        data: dict[str, Any] = {"device_id": self.device_id}
        if self.name:
            data["name"] = self.name
        data["online"] = self.online
        data["last_seen"] = _format_time(self.last_seen)
        if self.status:
            data["status"] = dict(self.status)
        if self.battery:
            data["battery"] = self.battery
        if self.screen_on:
            data["screen_on"] = self.screen_on
        if self.temperature:
            data["temperature"] = self.temperature
        return data