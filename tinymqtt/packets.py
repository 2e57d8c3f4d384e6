"""MQTT control packets, messages and publish requests."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from enum import IntEnum


class PacketType(IntEnum):
    """MQTT control packet types as carried in the fixed header."""

    CONNECT = 1
    CONNACK = 2
    PUBLISH = 3
    PUBACK = 4
    PUBREC = 5
    PUBREL = 6
    PUBCOMP = 7
    SUBSCRIBE = 8
    SUBACK = 9
    UNSUBSCRIBE = 10
    UNSUBACK = 11
    PINGREQ = 12
    PINGRESP = 13
    DISCONNECT = 14


class ConnackReturnCode(IntEnum):
    """Return codes of a CONNACK packet."""

    CONNECTION_ACCEPTED = 0
    UNACCEPTABLE_PROTOCOL_VERSION = 1
    IDENTIFIER_REJECTED = 2
    SERVER_UNAVAILABLE = 3
    BAD_USERNAME_OR_PASSWORD = 4
    NOT_AUTHORIZED = 5


@dataclass
class MqttMessage:
    """An application message with the QoS it was published at."""

    message: str
    qos: int = 0


@dataclass
class PublishRequest:
    """A message to be routed through the topic tree."""

    topic: str
    message: MqttMessage
    retain: bool = False
    is_tunneled_pub: bool = False
    publisher_username: str | None = None
    publisher_client_id: str | None = None


_FLAG_TEXT = {True: "Set;", False: " Not set;"}


@dataclass
class ConnectPacket:
    """CONNECT packet; the flag bits are exposed as properties."""

    flags: int = 0
    keep_alive: int = 0
    client_id: str = ""
    will_topic: str | None = None
    will_message: str | None = None
    username: str | None = None
    password: str | None = None

    @property
    def username_flag(self) -> bool:
        return bool(self.flags & 0x80)

    @property
    def password_flag(self) -> bool:
        return bool(self.flags & 0x40)

    @property
    def will_retain(self) -> bool:
        return bool(self.flags & 0x20)

    @property
    def will_qos(self) -> int:
        return (self.flags >> 3) & 0x03

    @property
    def will_flag(self) -> bool:
        return bool(self.flags & 0x04)

    @property
    def clean_session(self) -> bool:
        return bool(self.flags & 0x02)

    @property
    def reserved(self) -> bool:
        return bool(self.flags & 0x01)

    def describe(self) -> str:
        """Return a one-line human readable summary of the packet."""
        parts = [
            "CONNECT{Username Flag:", _FLAG_TEXT[self.username_flag],
            " Password Flag:", _FLAG_TEXT[self.password_flag],
            " Will Retain:", _FLAG_TEXT[self.will_retain],
            " Will QoS=", str(self.will_qos),
            "; Will Flag:", _FLAG_TEXT[self.will_flag],
            " Clean Session:", _FLAG_TEXT[self.clean_session],
            " Keep Alive=", str(self.keep_alive),
            "; ClientID=", self.client_id or "",
        ]
        if self.will_flag:
            parts += ["; Will Topic:", self.will_topic or "",
                      "; Will Message:", self.will_message or ""]
        if self.username_flag:
            parts += ["; Username:", self.username or ""]
        if self.password_flag:
            parts += ["; Password:", self.password or ""]
        parts.append("}")
        return "".join(parts)


@dataclass
class ConnackPacket:
    ack_flags: int = 0
    return_code: ConnackReturnCode = ConnackReturnCode.CONNECTION_ACCEPTED


@dataclass
class PublishPacket:
    """PUBLISH packet; packet_id is only meaningful for QoS 1 and 2."""

    flags: int = 0
    topic: str = ""
    packet_id: int = 0
    payload: str = ""

    @property
    def qos(self) -> int:
        return (self.flags >> 1) & 0x03

    @property
    def dup(self) -> bool:
        return bool(self.flags & 0x08)

    @property
    def retain(self) -> bool:
        return bool(self.flags & 0x01)

    def clone(self) -> PublishPacket:
        """Return an independent copy of this packet."""
        return dataclasses.replace(self)


@dataclass
class PubackPacket:
    packet_id: int = 0


@dataclass
class PubrecPacket:
    packet_id: int = 0


@dataclass
class PubrelPacket:
    packet_id: int = 0

    def clone(self) -> PubrelPacket:
        """Return an independent copy of this packet."""
        return PubrelPacket(self.packet_id)


@dataclass
class PubcompPacket:
    packet_id: int = 0


@dataclass
class TopicFilterQos:
    topic_filter: str
    qos: int = 0


@dataclass
class SubscribePacket:
    packet_id: int = 0
    topics: list[TopicFilterQos] = field(default_factory=list)

    def describe(self) -> str:
        """Return a one-line human readable summary of the packet."""
        entries = "".join(
            f", ({tf.topic_filter}, qos={tf.qos})" for tf in self.topics
        )
        return f"SUBSCRIBE{{PacketID={self.packet_id}{entries}}}"


@dataclass
class SubackPacket:
    packet_id: int = 0
    return_codes: list[int] = field(default_factory=list)


@dataclass
class UnsubscribePacket:
    packet_id: int = 0
    topics: list[str] = field(default_factory=list)


@dataclass
class UnsubackPacket:
    packet_id: int = 0