"""
MQTT Transport Implementation
paho-mqtt client running its network loop in a background thread; inbound
messages and connection events are marshalled onto the asyncio loop.
"""

import asyncio
import json
import logging
import uuid
from typing import Any, Dict, List, Optional

import paho.mqtt.client as mqtt
from paho.mqtt.enums import CallbackAPIVersion

from huereset.core.exceptions import ConfigurationError, ProtocolError, PublishFailed, TransportUnavailable
from huereset.core.patterns import ClientState, LogLevel, StatusReporter
from huereset.protocols.base_transport import BaseTransport, TransportConfig


class MQTTTransport(BaseTransport):
    """
    MQTT transport to the bridge.

    Features:
    - Re-subscription after automatic reconnects
    - TCP or WebSocket transport
    - Connection status reported on the status stream
    - Thread-safe hand-off of inbound messages to the dispatch loop
    """

    def __init__(self, config: TransportConfig, reporter: Optional[StatusReporter] = None):
        super().__init__(config, reporter)

        self.client: Optional[mqtt.Client] = None
        self.subscribed_topics = set()
        self._pending_subscriptions: Dict[int, str] = {}
        self._was_connected = False

        self._parse_mqtt_config()

    def _parse_mqtt_config(self):
        """Parse MQTT-specific configuration parameters."""
        params = self.config.connection_params

        self.broker_host = params.get('host', 'localhost')
        self.broker_port = params.get('port', 1883)
        self.client_id = params.get('client_id') or f"hue-reset-{uuid.uuid4().hex[:8]}"
        self.clean_session = params.get('clean_session', True)
        self.keepalive = params.get('keepalive', 30)
        self.qos = params.get('qos', 0)
        self.transport = params.get('transport', 'tcp')
        self.ws_path = params.get('ws_path', '/')

        # Authentication
        self.username = params.get('username') or None
        self.password = params.get('password') or None

    def _validate_config(self):
        """Validate MQTT-specific configuration."""
        if not self.broker_host:
            raise ConfigurationError("MQTT broker host is required")

        if not isinstance(self.broker_port, int) or not (1 <= self.broker_port <= 65535):
            raise ConfigurationError("MQTT broker port must be a valid port number")

        if self.transport not in ('tcp', 'websockets'):
            raise ConfigurationError(f"MQTT transport must be 'tcp' or 'websockets', got {self.transport!r}")

        if not self.config.subscriptions:
            self.logger.warning("No topics configured for subscription")

    async def _initialize_client(self):
        """Initialize the MQTT client."""
        self.client = mqtt.Client(
            callback_api_version=CallbackAPIVersion.VERSION2,
            client_id=self.client_id,
            clean_session=self.clean_session,
            protocol=mqtt.MQTTv311,
            transport=self.transport,
        )

        if self.username:
            self.client.username_pw_set(self.username, self.password)

        if self.transport == 'websockets':
            self.client.ws_set_options(path=self.ws_path)

        self.client.reconnect_delay_set(
            min_delay=max(1, int(self.config.retry_delay)),
            max_delay=max(1, int(self.config.max_retry_delay)),
        )

        self.client.on_connect = self._on_connect
        self.client.on_disconnect = self._on_disconnect
        self.client.on_message = self._on_message
        self.client.on_subscribe = self._on_subscribe
        self.client.on_log = self._on_log

        self.logger.info(f"MQTT client initialized with ID: {self.client_id}")

    async def _connect(self):
        """Establish connection to MQTT broker."""
        self.logger.info(f"Connecting to MQTT broker at {self.broker_host}:{self.broker_port} ({self.transport})")

        self.client.connect_async(
            host=self.broker_host,
            port=self.broker_port,
            keepalive=self.keepalive
        )
        self.client.loop_start()

        loop = asyncio.get_running_loop()
        start_time = loop.time()
        while not self.client.is_connected():
            if loop.time() - start_time > self.config.timeout:
                self.client.loop_stop()
                raise TimeoutError(f"Connection timeout after {self.config.timeout}s")
            await asyncio.sleep(0.1)

        self.logger.info("Successfully connected to MQTT broker")

    async def _disconnect(self):
        """Disconnect from MQTT broker."""
        if not self.client:
            return
        self.logger.info("Disconnecting from MQTT broker")
        self.running = False
        self.client.disconnect()
        self.client.loop_stop()
        self.subscribed_topics.clear()
        self._pending_subscriptions.clear()

    async def _setup_monitoring(self):
        """Subscribe to the configured topics."""
        for topic in self.config.subscriptions:
            await self.subscribe_to_topic(topic)

        self.logger.info(f"Setup monitoring for {len(self.config.subscriptions)} topics")

    # MQTT Event Callbacks (paho network thread)
    def _on_connect(self, client, userdata, flags, reason_code, properties):
        if reason_code.is_failure:
            self.logger.error(f"Connection refused by broker: {reason_code}")
            self._set_state_threadsafe(ClientState.ERROR)
            self.report_threadsafe(f"MQTT error: connection refused ({reason_code})", LogLevel.ERROR)
            return

        self._was_connected = True
        self._set_state_threadsafe(ClientState.CONNECTED)
        self.report_threadsafe("MQTT connected.", LogLevel.OK)

        # after an automatic reconnect the broker may have dropped our session
        for topic in list(self.subscribed_topics):
            try:
                self._subscribe(topic)
            except ProtocolError as e:
                self.logger.error(str(e))
                self.report_threadsafe(f"Subscribe failed: {e}", LogLevel.ERROR)

    def _on_disconnect(self, client, userdata, disconnect_flags, reason_code, properties):
        if self.running:
            self.logger.warning(f"Unexpected disconnection from MQTT broker ({reason_code})")
            self._set_state_threadsafe(ClientState.RECONNECTING)
            if self._was_connected:
                self.report_threadsafe("MQTT disconnected, reconnecting…", LogLevel.WARNING)
        else:
            self.logger.info("Disconnected from MQTT broker")
            if self._was_connected:
                self.report_threadsafe("MQTT disconnected.", LogLevel.WARNING)
        self._was_connected = False

    def _on_message(self, client, userdata, msg):
        self.enqueue_message(msg.topic, msg.payload)

        if self.logger.isEnabledFor(logging.DEBUG):
            self.logger.debug(f"Received message on topic '{msg.topic}': {len(msg.payload)} bytes")

    def _on_subscribe(self, client, userdata, mid, reason_code_list, properties):
        topic = self._pending_subscriptions.pop(mid, f"mid {mid}")
        for reason_code in reason_code_list:
            if reason_code.is_failure:
                self.report_threadsafe(f"Subscribe failed: {topic} ({reason_code})", LogLevel.ERROR)
            else:
                self.report_threadsafe(f"Subscribed to {topic}", LogLevel.OK)

    def _on_log(self, client, userdata, level, buf):
        level_map = {
            mqtt.MQTT_LOG_DEBUG: logging.DEBUG,
            mqtt.MQTT_LOG_INFO: logging.DEBUG,
            mqtt.MQTT_LOG_NOTICE: logging.INFO,
            mqtt.MQTT_LOG_WARNING: logging.WARNING,
            mqtt.MQTT_LOG_ERR: logging.ERROR
        }
        self.logger.log(level_map.get(level, logging.DEBUG), f"MQTT: {buf}")

    def _set_state_threadsafe(self, state: ClientState):
        if self.loop is None or self.loop.is_closed():
            return
        self.loop.call_soon_threadsafe(self.state_machine.transition, state)

    # Public methods
    def is_connected(self) -> bool:
        return self.client is not None and self.client.is_connected()

    def _subscribe(self, topic: str) -> int:
        result, mid = self.client.subscribe(topic, self.qos)
        if result != mqtt.MQTT_ERR_SUCCESS:
            raise ProtocolError(f"Failed to subscribe to topic '{topic}': {mqtt.error_string(result)}")
        self._pending_subscriptions[mid] = topic
        return mid

    async def subscribe_to_topic(self, topic: str):
        """Subscribe to a specific topic."""
        if not self.is_connected():
            raise TransportUnavailable("MQTT client is not connected")

        try:
            self._subscribe(topic)
        except ProtocolError as e:
            self.reporter.log(f"Subscribe failed: {e}", LogLevel.ERROR)
            raise

        self.subscribed_topics.add(topic)
        self.logger.info(f"Subscribed to topic '{topic}' with QoS {self.qos}")

    async def publish_message(self, topic: str, payload: Any):
        """Publish a message to a topic."""
        if not self.is_connected():
            raise TransportUnavailable("MQTT client is not connected")

        # Serialize payload if necessary
        if isinstance(payload, (dict, list)):
            payload = json.dumps(payload)
        elif not isinstance(payload, (str, bytes)):
            payload = str(payload)

        result = self.client.publish(topic, payload, self.qos, False)

        if result.rc != mqtt.MQTT_ERR_SUCCESS:
            raise PublishFailed(f"Failed to publish message to topic '{topic}': {mqtt.error_string(result.rc)}")

        self.logger.info(f"Published message to topic '{topic}'")
        return result

    def get_subscribed_topics(self) -> List[str]:
        """Get list of currently subscribed topics."""
        return list(self.subscribed_topics)
