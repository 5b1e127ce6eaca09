"""Broker client with topic-to-handler routing and background reconnection."""

from __future__ import annotations

import logging
import ssl
import threading
from typing import Any, Callable

import paho.mqtt.client as mqtt
from paho.mqtt.packettypes import PacketTypes
from paho.mqtt.properties import Properties

from kioskhub.mqtt.config import MqttConfig

logger = logging.getLogger(__name__)

MessageHandler = Callable[[str, bytes], None]

_SESSION_EXPIRY_SECONDS = 3600


class MqttError(Exception):
    """A broker operation failed."""


class MqttClient:
    """Connects to the broker, dispatches messages by topic and publishes with QoS 1."""

    def __init__(
        self,
        config: MqttConfig,
        *,
        client_factory: Callable[..., Any] | None = None,
        connect_wait: float = 5.0,
        publish_timeout: float = 10.0,
    ) -> None:
        self._config = config
        self._factory = client_factory or mqtt.Client
        self._connect_wait = connect_wait
        self._publish_timeout = publish_timeout
        self._handlers: dict[str, MessageHandler] = {}
        self._lock = threading.Lock()
        self._connected = False
        self._connected_event = threading.Event()
        self._client: Any = None

    def __enter__(self) -> MqttClient:
        self.connect()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.disconnect()

    def connect(self) -> None:
        """Start connecting; wait briefly, then leave retries to the background loop."""
        cfg = self._config
        scheme = "ssl" if cfg.use_tls else "tcp"
        broker = f"{scheme}://{cfg.broker_url}:{cfg.port}"
        try:
            client = self._factory(
                callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
                client_id=cfg.client_id,
                protocol=mqtt.MQTTv5,
            )
        except (ValueError, TypeError) as exc:
            raise MqttError(f"failed to create broker connection: {exc}") from exc

        client.on_connect = self._on_connect
        client.on_disconnect = self._on_disconnect
        client.on_connect_fail = self._on_connect_fail
        client.on_message = self._on_message

        if cfg.use_tls:
            client.tls_set(cert_reqs=ssl.CERT_NONE)
            client.tls_insecure_set(True)
            logger.info("TLS enabled for broker connection")

        if cfg.username:
            client.username_pw_set(cfg.username, cfg.password)
            logger.info("Username authentication configured: %s", cfg.username)

        properties = Properties(PacketTypes.CONNECT)
        properties.SessionExpiryInterval = _SESSION_EXPIRY_SECONDS

        self._connected_event.clear()
        try:
            client.connect_async(
                cfg.broker_url,
                cfg.port,
                keepalive=int(cfg.keep_alive.total_seconds()),
                clean_start=cfg.clean_start,
                properties=properties,
            )
        except (ValueError, OSError) as exc:
            raise MqttError(f"failed to create broker connection: {exc}") from exc

        self._client = client
        self._broker = broker
        client.loop_start()

        if not self._connected_event.wait(self._connect_wait):
            logger.warning("Initial connection to %s failed, retrying in background", broker)
            return
        logger.info("Client %s connected", cfg.client_id)

    def subscribe(self, topic: str, handler: MessageHandler) -> None:
        """Route messages on ``topic`` to ``handler`` and subscribe with QoS 1."""
        with self._lock:
            self._handlers[topic] = handler
        client = self._require_client()
        result, _mid = client.subscribe(topic, qos=1)
        if result != mqtt.MQTT_ERR_SUCCESS:
            raise MqttError(f"subscribe to {topic} failed: {mqtt.error_string(result)}")
        logger.info("Subscribed: %s", topic)

    def subscribe_shared(self, group: str, topic: str, handler: MessageHandler) -> None:
        """Subscribe to ``topic`` as part of a shared subscription group."""
        self.subscribe(f"$share/{group}/{topic}", handler)

    def publish(self, topic: str, payload: bytes | str) -> None:
        self._publish(topic, payload, retain=False)
        logger.info("Published to %s (%d bytes)", topic, len(payload))

    def publish_retain(self, topic: str, payload: bytes | str) -> None:
        """Publish a message the broker keeps for later subscribers."""
        self._publish(topic, payload, retain=True)
        logger.info("Published retained message to %s", topic)

    def disconnect(self) -> None:
        client = self._client
        if client is None:
            return
        logger.info("Disconnecting...")
        client.disconnect()
        client.loop_stop()
        with self._lock:
            self._connected = False
        self._connected_event.clear()

    def is_connected(self) -> bool:
        with self._lock:
            return self._connected

    def _require_client(self) -> Any:
        if self._client is None:
            raise MqttError("client is not connected")
        return self._client

    def _publish(self, topic: str, payload: bytes | str, *, retain: bool) -> None:
        client = self._require_client()
        kind = "retained message" if retain else "message"
        info = client.publish(topic, payload, qos=1, retain=retain)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise MqttError(
                f"publishing {kind} to {topic} failed: {mqtt.error_string(info.rc)}"
            )
        try:
            info.wait_for_publish(self._publish_timeout)
        except (RuntimeError, ValueError) as exc:
            raise MqttError(f"publishing {kind} to {topic} failed: {exc}") from exc
        if not info.is_published():
            raise MqttError(f"publishing {kind} to {topic} failed: no acknowledgement")

    def _on_connect(self, client: Any, userdata: Any, flags: Any, reason_code: Any, properties: Any) -> None:
        if reason_code.is_failure:
            logger.warning("Connection refused: %s", reason_code)
            return
        logger.info("Connected to %s", self._broker)
        with self._lock:
            self._connected = True
        self._connected_event.set()

    def _on_disconnect(self, client: Any, userdata: Any, flags: Any, reason_code: Any, properties: Any) -> None:
        logger.warning("Connection lost, reconnecting...")
        with self._lock:
            self._connected = False
        self._connected_event.clear()

    def _on_connect_fail(self, client: Any, userdata: Any) -> None:
        logger.warning("Connection error to %s", self._broker)

    def _on_message(self, client: Any, userdata: Any, message: Any) -> None:
        self._dispatch(message.topic, message.payload)

    def _dispatch(self, topic: str, payload: bytes) -> None:
        with self._lock:
            handler = self._handlers.get(topic)
        if handler is None:
            logger.warning("No handler for: %s", topic)
            return
        try:
            handler(topic, payload)
        except Exception:
            logger.exception("Handling message on %s failed", topic)