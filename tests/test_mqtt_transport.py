import asyncio
import json
from types import SimpleNamespace
from unittest.mock import MagicMock

import paho.mqtt.client as mqtt
import pytest

from huereset.core.exceptions import ConfigurationError, ProtocolError, PublishFailed, TransportUnavailable
from huereset.core.patterns import ClientState, LogLevel
from huereset.protocols import MQTTTransport, TransportConfig
from huereset.protocols import mqtt_transport
from tests.conftest import settle

SUBSCRIPTIONS = [
    "zigbee2mqtt/bridge/response/action",
    "zigbee2mqtt/bridge/response/permit_join",
    "zigbee2mqtt/bridge/event",
]


def make_config(**params):
    connection = {"host": "broker.local", "port": 1883}
    connection.update(params)
    return TransportConfig(connection_params=connection, subscriptions=list(SUBSCRIPTIONS),
                           max_retries=1, timeout=1)


@pytest.fixture
def paho_client(monkeypatch):
    client = MagicMock()
    client.is_connected.return_value = True
    client.subscribe.side_effect = lambda topic, qos: (mqtt.MQTT_ERR_SUCCESS, len(client.subscribe.call_args_list))
    client.publish.return_value = SimpleNamespace(rc=mqtt.MQTT_ERR_SUCCESS)
    factory = MagicMock(return_value=client)
    monkeypatch.setattr(mqtt_transport.mqtt, "Client", factory)
    client.factory = factory
    return client


@pytest.fixture
def mqtt_transport_(reporter):
    return MQTTTransport(make_config(), reporter)


class TestConfiguration:

    def test_defaults(self):
        transport = MQTTTransport(make_config())
        assert transport.broker_port == 1883
        assert transport.transport == "tcp"
        assert transport.client_id.startswith("hue-reset-")
        assert transport.username is None

    @pytest.mark.parametrize("params", [
        {"host": ""},
        {"port": 0},
        {"port": "1883"},
        {"transport": "udp"},
    ])
    def test_invalid_configuration(self, params):
        with pytest.raises(ConfigurationError):
            MQTTTransport(make_config(**params))._validate_config()


@pytest.mark.asyncio
async def test_open_connects_and_subscribes(paho_client, mqtt_transport_, recorder):
    await mqtt_transport_.open()

    kwargs = paho_client.factory.call_args.kwargs
    assert kwargs["transport"] == "tcp"
    paho_client.connect_async.assert_called_once_with(host="broker.local", port=1883, keepalive=30)
    paho_client.loop_start.assert_called_once()
    paho_client.tls_set.assert_not_called()
    assert [c.args[0] for c in paho_client.subscribe.call_args_list] == SUBSCRIPTIONS
    assert mqtt_transport_.get_connection_state() is ClientState.CONNECTED
    assert set(mqtt_transport_.get_subscribed_topics()) == set(SUBSCRIPTIONS)

    await mqtt_transport_.stop()
    paho_client.disconnect.assert_called_once()
    paho_client.loop_stop.assert_called()
    assert mqtt_transport_.get_connection_state() is ClientState.DISCONNECTED


@pytest.mark.asyncio
async def test_credentials_and_websockets(paho_client, reporter):
    transport = MQTTTransport(make_config(transport="websockets", ws_path="/mqtt",
                                          username="hue", password="secret"), reporter)
    await transport.open()
    paho_client.username_pw_set.assert_called_once_with("hue", "secret")
    paho_client.ws_set_options.assert_called_once_with(path="/mqtt")
    await transport.stop()


@pytest.mark.asyncio
async def test_publish_serializes_json(paho_client, mqtt_transport_):
    await mqtt_transport_.open()
    payload = {"time": 120}
    await mqtt_transport_.publish_message("zigbee2mqtt/bridge/request/permit_join", payload)
    paho_client.publish.assert_called_once_with(
        "zigbee2mqtt/bridge/request/permit_join", json.dumps(payload), 0, False)
    await mqtt_transport_.stop()


@pytest.mark.asyncio
async def test_publish_failure_raises(paho_client, mqtt_transport_):
    await mqtt_transport_.open()
    paho_client.publish.return_value = SimpleNamespace(rc=mqtt.MQTT_ERR_NO_CONN)
    with pytest.raises(PublishFailed):
        await mqtt_transport_.publish_message("t", {"a": 1})
    await mqtt_transport_.stop()


@pytest.mark.asyncio
async def test_publish_without_connection(mqtt_transport_):
    assert not mqtt_transport_.is_connected()
    with pytest.raises(TransportUnavailable):
        await mqtt_transport_.publish_message("t", {"a": 1})
    with pytest.raises(TransportUnavailable):
        await mqtt_transport_.subscribe_to_topic("t")


@pytest.mark.asyncio
async def test_subscribe_failure_is_reported(paho_client, mqtt_transport_, recorder):
    await mqtt_transport_.open()
    paho_client.subscribe.side_effect = None
    paho_client.subscribe.return_value = (mqtt.MQTT_ERR_NO_CONN, None)
    with pytest.raises(ProtocolError):
        await mqtt_transport_.subscribe_to_topic("zigbee2mqtt/bridge/devices")
    assert any(m.startswith("Subscribe failed") for m in recorder.messages(LogLevel.ERROR))
    await mqtt_transport_.stop()


@pytest.mark.asyncio
async def test_inbound_messages_are_queued_in_order(paho_client, mqtt_transport_):
    await mqtt_transport_.open()
    mqtt_transport_._on_message(None, None, SimpleNamespace(topic="a", payload=b"1"))
    mqtt_transport_._on_message(None, None, SimpleNamespace(topic="b", payload=b"2"))
    await settle()

    first = await asyncio.wait_for(mqtt_transport_._inbound.get(), 1)
    second = await asyncio.wait_for(mqtt_transport_._inbound.get(), 1)
    assert (first.topic, first.payload) == ("a", b"1")
    assert (second.topic, second.payload) == ("b", b"2")
    await mqtt_transport_.stop()


@pytest.mark.asyncio
async def test_dispatch_loop_delivers_to_callback(paho_client, mqtt_transport_):
    received = []

    async def on_message(topic, payload):
        received.append((topic, payload))
        await mqtt_transport_.stop()

    task = asyncio.create_task(mqtt_transport_.start(on_message))
    await settle(20)
    mqtt_transport_._on_message(None, None, SimpleNamespace(topic="a", payload=b"{}"))
    await asyncio.wait_for(task, 3)
    assert received == [("a", b"{}")]


@pytest.mark.asyncio
async def test_connection_events_are_reported(paho_client, mqtt_transport_, recorder):
    await mqtt_transport_.open()
    mqtt_transport_._on_connect(None, None, None, SimpleNamespace(is_failure=False), None)
    await settle()
    paho_client.subscribe.reset_mock()

    mqtt_transport_._on_disconnect(None, None, None, "keepalive timeout", None)
    await settle()
    assert mqtt_transport_.get_connection_state() is ClientState.RECONNECTING
    assert "MQTT disconnected, reconnecting…" in recorder.messages(LogLevel.WARNING)

    mqtt_transport_._on_connect(None, None, None, SimpleNamespace(is_failure=False), None)
    await settle()
    assert mqtt_transport_.get_connection_state() is ClientState.CONNECTED
    assert "MQTT connected." in recorder.messages(LogLevel.OK)
    assert {c.args[0] for c in paho_client.subscribe.call_args_list} == set(SUBSCRIPTIONS)

    mqtt_transport_._on_subscribe(None, None, 1, [SimpleNamespace(is_failure=False)], None)
    await settle()
    assert any(m.startswith("Subscribed to") for m in recorder.messages(LogLevel.OK))
    await mqtt_transport_.stop()


@pytest.mark.asyncio
async def test_refused_connection_is_an_error(paho_client, mqtt_transport_, recorder):
    await mqtt_transport_.open()
    mqtt_transport_._on_disconnect(None, None, None, "connection lost", None)
    mqtt_transport_._on_connect(None, None, None, SimpleNamespace(is_failure=True), None)
    await settle()
    assert mqtt_transport_.get_connection_state() is ClientState.ERROR
    assert any(m.startswith("MQTT error") for m in recorder.messages(LogLevel.ERROR))
    await mqtt_transport_.stop()
