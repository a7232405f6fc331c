import asyncio
import logging
from concurrent.futures import Future
from typing import Awaitable, Callable, Optional

import paho.mqtt.client as mqtt

from app.config.settings import Settings

logger = logging.getLogger(__name__)

PublishHandler = Callable[[str, str, bytes], Awaitable[object]]
ConnectionListener = Callable[[str], None]

UNKNOWN_CLIENT = "unknown"


def client_id_from_topic(topic_filter: str, topic: str) -> str:
    """Return the topic level matched by the first ``+`` of the filter."""
    filter_levels = topic_filter.split("/")
    topic_levels = topic.split("/")

    for index, level in enumerate(filter_levels):
        if level == "#":
            break
        if level == "+":
            if index < len(topic_levels) and topic_levels[index]:
                return topic_levels[index]
            break

    return UNKNOWN_CLIENT


class MqttTransport:
    """paho-mqtt subscriber that hands publish events to an asyncio handler.

    paho runs its network loop on its own thread. Each message is scheduled
    onto the application loop as an independent task, so a slow ingestion
    never holds up delivery of other messages.
    """

    def __init__(
        self,
        host: str,
        port: int = 1883,
        topic: str = "wattmon/+/data",
        client_id: str = "wattmon-ingest",
        username: Optional[str] = None,
        password: Optional[str] = None,
        keepalive: int = 60,
        client_factory: Optional[Callable[..., mqtt.Client]] = None,
    ):
        self.host = host
        self.port = port
        self.topic = topic
        self.client_id = client_id
        self.username = username
        self.password = password
        self.keepalive = keepalive
        self._client_factory = client_factory or mqtt.Client

        self._client: Optional[mqtt.Client] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._handler: Optional[PublishHandler] = None
        self._on_connect_listener: Optional[ConnectionListener] = None
        self._on_disconnect_listener: Optional[ConnectionListener] = None
        self._connected = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "MqttTransport":
        return cls(
            host=settings.mqtt_host,
            port=settings.mqtt_port,
            topic=settings.mqtt_topic,
            client_id=settings.mqtt_client_id,
            username=settings.mqtt_username,
            password=settings.mqtt_password,
            keepalive=settings.mqtt_keepalive,
        )

    def register_handler(self, handler: PublishHandler) -> None:
        self._handler = handler

    def register_connection_listener(
        self, on_connect: ConnectionListener, on_disconnect: ConnectionListener
    ) -> None:
        self._on_connect_listener = on_connect
        self._on_disconnect_listener = on_disconnect

    @property
    def is_connected(self) -> bool:
        return self._connected

    def start(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop
        self._client = self._client_factory(
            callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
            client_id=self.client_id,
            protocol=mqtt.MQTTv311,
        )
        self._client.on_connect = self._on_connect
        self._client.on_disconnect = self._on_disconnect
        self._client.on_message = self._on_message

        if self.username:
            self._client.username_pw_set(self.username, self.password)

        logger.info(f"Connecting to MQTT broker {self.host}:{self.port}")
        self._client.connect_async(self.host, self.port, keepalive=self.keepalive)
        self._client.loop_start()

    def stop(self) -> None:
        if not self._client:
            return
        try:
            self._client.disconnect()
            self._client.loop_stop()
        except Exception as e:
            logger.warning(f"MQTT disconnect error: {e}")
        self._connected = False
        self._client = None

    def _on_connect(self, client, userdata, flags, reason_code, properties=None):
        if reason_code.is_failure:
            self._connected = False
            logger.error(
                f"MQTT connection refused: {reason_code}",
                extra={"data": {"host": self.host, "port": self.port}},
            )
            return

        self._connected = True
        client.subscribe(self.topic, qos=1)
        logger.info(f"Subscribed to {self.topic}")
        self._notify(self._on_connect_listener)

    def _on_disconnect(self, client, userdata, flags, reason_code, properties=None):
        self._connected = False
        self._notify(self._on_disconnect_listener)
        if reason_code.is_failure:
            logger.warning(f"MQTT connection lost: {reason_code}")

    def _notify(self, listener: Optional[ConnectionListener]) -> None:
        if listener is None or self._loop is None or self._loop.is_closed():
            return
        self._loop.call_soon_threadsafe(listener, self.client_id)

    def _on_message(self, client, userdata, message):
        if self._handler is None or self._loop is None:
            logger.warning(f"Dropping message on {message.topic}: no handler")
            return

        publisher = client_id_from_topic(self.topic, message.topic)
        future = asyncio.run_coroutine_threadsafe(
            self._handler(publisher, message.topic, message.payload), self._loop
        )
        future.add_done_callback(self._report_failure)

    @staticmethod
    def _report_failure(future: Future) -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.error(f"MQTT handler failed: {error}")
