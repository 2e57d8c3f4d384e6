import pytest

from tinymqtt.packets import (
    ConnackReturnCode,
    ConnectPacket,
    PacketType,
    PublishPacket,
    PubrelPacket,
    SubscribePacket,
    TopicFilterQos,
)


def test_connect_flag_properties():
    flags = 0x80 | 0x40 | 0x20 | (1 << 3) | 0x04 | 0x02
    pkt = ConnectPacket(flags=flags)
    assert pkt.username_flag
    assert pkt.password_flag
    assert pkt.will_retain
    assert pkt.will_qos == 1
    assert pkt.will_flag
    assert pkt.clean_session
    assert not pkt.reserved


def test_connect_no_flags():
    pkt = ConnectPacket(flags=0)
    assert not any(
        [pkt.username_flag, pkt.password_flag, pkt.will_retain,
         pkt.will_flag, pkt.clean_session, pkt.reserved]
    )
    assert pkt.will_qos == 0


def test_connect_describe_minimal():
    pkt = ConnectPacket(flags=0, keep_alive=60, client_id="c1")
    assert pkt.describe() == (
        "CONNECT{Username Flag: Not set; Password Flag: Not set; Will Retain: Not set;"
        " Will QoS=0; Will Flag: Not set; Clean Session: Not set; Keep Alive=60; ClientID=c1}"
    )


def test_connect_describe_full():
    password = "password"
    flags = 0x80 | 0x40 | (1 << 3) | 0x04 | 0x02
    pkt = ConnectPacket(
        flags=flags, keep_alive=30, client_id="dev", will_topic="status",
        will_message="offline", username="alice", password=password,
    )
    assert pkt.describe() == (
        "CONNECT{Username Flag:Set; Password Flag:Set; Will Retain: Not set;"
        " Will QoS=1; Will Flag:Set; Clean Session:Set; Keep Alive=30; ClientID=dev;"
        " Will Topic:status; Will Message:offline; Username:alice; Password:password}"
    )


def test_connect_describe_omits_unflagged_fields():
    pkt = ConnectPacket(flags=0, client_id="x", username="bob", will_topic="t")
    text = pkt.describe()
    assert "bob" not in text
    assert "Will Topic" not in text
    assert text.endswith("ClientID=x}")


def test_subscribe_describe():
    pkt = SubscribePacket(
        packet_id=7,
        topics=[TopicFilterQos("a/b", 1), TopicFilterQos("c/#", 0)],
    )
    assert pkt.describe() == "SUBSCRIBE{PacketID=7, (a/b, qos=1), (c/#, qos=0)}"


def test_subscribe_describe_without_topics():
    pkt = SubscribePacket(packet_id=3)
    assert pkt.describe() == "SUBSCRIBE{PacketID=3}"


@pytest.mark.parametrize("qos", [0, 1, 2])
def test_publish_flag_properties(qos):
    pkt = PublishPacket(flags=0x08 | (qos << 1) | 0x01, topic="t", payload="p")
    assert pkt.qos == qos
    assert pkt.dup
    assert pkt.retain


def test_publish_clone_is_equal_and_independent():
    pkt = PublishPacket(flags=2 << 1, topic="a/b", packet_id=42, payload="hello")
    copy = pkt.clone()
    assert copy == pkt
    assert copy is not pkt
    copy.topic = "other"
    copy.packet_id = 1
    assert pkt.topic == "a/b"
    assert pkt.packet_id == 42


def test_pubrel_clone():
    pkt = PubrelPacket(packet_id=99)
    copy = pkt.clone()
    assert copy == pkt
    copy.packet_id = 5
    assert pkt.packet_id == 99


def test_packet_type_roundtrip():
    assert PacketType(int(PacketType.PUBLISH)) is PacketType.PUBLISH
    assert [t.value for t in PacketType] == list(range(1, len(PacketType) + 1))
    assert PacketType.DISCONNECT.value == len(PacketType)


def test_connack_codes_sequential():
    assert [c.value for c in ConnackReturnCode] == list(range(len(ConnackReturnCode)))
    assert ConnackReturnCode(0) is ConnackReturnCode.CONNECTION_ACCEPTED