"""Handlers that decode broker messages and pass them on through queues."""

from __future__ import annotations

import json
import logging
import queue
import threading
from typing import Any, Callable, TypeVar

from kioskhub.models.command import CommandResult
from kioskhub.models.device_status import DeviceEvent, DeviceStatusInfo, DeviceTelemetry

logger = logging.getLogger(__name__)

_T = TypeVar("_T")


def _decode(payload: bytes | str, build: Callable[[Any], _T], what: str) -> _T:
    try:
        data = json.loads(payload)
        if data is None:
            data = {}
        return build(data)
    except ValueError as exc:
        raise ValueError(f"failed to parse {what}: {exc}") from exc


class DeviceStatusHandler:
    """Decodes status messages into ``DeviceStatusInfo`` objects."""

    def __init__(self, status_queue: queue.Queue) -> None:
        self._queue = status_queue

    def handle(self, topic: str, payload: bytes | str) -> None:
        """Decode the message and queue it; drop it when the queue is full."""
        status = _decode(payload, DeviceStatusInfo.from_dict, "status message")
        try:
            self._queue.put_nowait(status)
        except queue.Full:
            logger.warning("Status queue full, dropping message")
        else:
            logger.info("Received device status update")


class DeviceEventHandler:
    """Decodes event messages into ``DeviceEvent`` objects."""

    def __init__(self, event_queue: queue.Queue) -> None:
        self._queue = event_queue

    def handle(self, topic: str, payload: bytes | str) -> None:
        """Decode the message and queue it; drop it when the queue is full."""
        event = _decode(payload, DeviceEvent.from_dict, "event message")
        try:
            self._queue.put_nowait(event)
        except queue.Full:
            logger.warning("Event queue full, dropping message")
        else:
            logger.info("Received device event: %s", event.type)


class DeviceTelemetryHandler:
    """Decodes telemetry messages into ``DeviceTelemetry`` objects."""

    def __init__(self, telemetry_queue: queue.Queue) -> None:
        self._queue = telemetry_queue

    def handle(self, topic: str, payload: bytes | str) -> None:
        """Decode the message and queue it; telemetry is dropped silently when full."""
        telemetry = _decode(payload, DeviceTelemetry.from_dict, "telemetry message")
        try:
            self._queue.put_nowait(telemetry)
        except queue.Full:
            pass
        else:
            logger.info("Received telemetry")


class CommandResponseHandler:
    """Routes command responses to the queue registered for their command id."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._queues: dict[str, queue.Queue] = {}

    def handle(self, topic: str, payload: bytes | str) -> None:
        """Decode the response and queue it for its command, if one is waiting."""
        result = _decode(payload, CommandResult.from_dict, "command response")
        with self._lock:
            target = self._queues.get(result.command_id)
        if target is None:
            return
        try:
            target.put_nowait(result)
        except queue.Full:
            logger.warning("Response queue full: %s", result.command_id)

    def register(self, command_id: str, channel: queue.Queue) -> None:
        with self._lock:
            self._queues[command_id] = channel

    def unregister(self, command_id: str) -> None:
        with self._lock:
            self._queues.pop(command_id, None)