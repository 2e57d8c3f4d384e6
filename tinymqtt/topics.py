"""Topic tree: subscriptions, retained messages, listeners and cluster routes."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol

from tinymqtt.packets import MqttMessage, PublishRequest

_log = logging.getLogger(__name__)

SINGLE_WILDCARD = "+"
MULTI_WILDCARD = "#"
_WILDCARDS = (SINGLE_WILDCARD, MULTI_WILDCARD)
_SEPARATOR_LINE = "--------------------\n"


class _Session(Protocol):
    client_id: str


class _Listener(Protocol):
    need_json_payload: bool

    def publish_event(self, event: PublishEvent) -> Any: ...


ClientMatchCallback = Callable[[str, MqttMessage, "dict[str, SubscribeInfo]"], Any]
RouteMatchCallback = Callable[[str, MqttMessage, "set[str]"], Any]


def split_topic(topic: str) -> list[str]:
    """Split a topic into its levels, keeping empty leading and trailing levels.

    ``"a/b"`` gives ``["a", "b"]`` while ``"/a/b"`` gives ``["", "a", "b"]``.
    """
    return topic.split("/")


@dataclass
class RetainedMessage:
    """The last retained message published to a topic."""

    message: MqttMessage
    topic: str


@dataclass
class SubscribeInfo:
    """A client's subscription to one topic filter."""

    session: Any
    qos: int
    is_session_closed: bool = False


@dataclass
class PublishEvent:
    """What an event listener is told about a matching publish."""

    username: str | None
    client_id: str | None
    qos: int
    retain: bool
    payload_as_json: Any = None


@dataclass(eq=False)
class TopicNode:
    """One level of the topic tree."""

    level_name: str | None
    parent: TopicNode | None = None
    children: dict[str, TopicNode] = field(default_factory=dict)
    subscribers: dict[str, SubscribeInfo] | None = None
    listeners: list[Any] = field(default_factory=list)
    subscribe_members: list[str] = field(default_factory=list)
    retain_message: RetainedMessage | None = None

    def child(self, level: str, create: bool) -> TopicNode | None:
        node = self.children.get(level)
        if node is None and create:
            node = TopicNode(level, parent=self)
            self.children[level] = node
        return node


class TopicTree:
    """Routes published messages to subscribers, listeners and cluster members."""

    def __init__(
        self,
        client_on_match: ClientMatchCallback | None = None,
        route_on_match: RouteMatchCallback | None = None,
    ) -> None:
        self.root = TopicNode(None)
        self.client_on_match = client_on_match
        self.route_on_match = route_on_match
        self._matched_members: set[str] = set()

    def _walk(self, topic_filter: str, create: bool) -> list[TopicNode] | None:
        """Return the node path from the root for a filter, or None if absent."""
        path = [self.root]
        for level in split_topic(topic_filter):
            node = path[-1].child(level, create)
            if node is None:
                return None
            path.append(node)
        return path

    def add_subscription(
        self, topic_filter: str, session: _Session, qos: int
    ) -> tuple[list[RetainedMessage], bool, TopicNode | None]:
        """Subscribe a session to a filter.

        Returns the retained messages matching the filter, whether the filter
        already had subscribers, and the filter's node. An empty filter is
        ignored and gives ``([], False, None)``.
        """
        if not topic_filter:
            return [], False, None
        path = self._walk(topic_filter, create=True)
        assert path is not None
        node = path[-1]
        topic_exist = node.subscribers is not None
        if node.subscribers is None:
            node.subscribers = {}
        node.subscribers[session.client_id] = SubscribeInfo(session, qos)

        last = len(path) - 1
        i = 0
        while i < last and path[i + 1].level_name not in _WILDCARDS:
            i += 1
        retained: list[RetainedMessage] = []
        if i == last and path[i].retain_message is not None:
            retained.append(path[i].retain_message)
        else:
            self._find_retained(path[i], i + 1, path, retained)
        return retained, topic_exist, node

    def _find_retained(
        self, cur: TopicNode, index: int, path: list[TopicNode], out: list[RetainedMessage]
    ) -> None:
        if index == len(path):
            if cur.retain_message is not None:
                out.append(cur.retain_message)
            return
        level = path[index].level_name
        if level == SINGLE_WILDCARD:
            for name, child in list(cur.children.items()):
                if name not in _WILDCARDS:
                    self._find_retained(child, index + 1, path, out)
        elif level == MULTI_WILDCARD:
            self._collect_retained(cur, out)
        else:
            child = cur.children.get(level)
            if child is not None:
                self._find_retained(child, index + 1, path, out)

    def _collect_retained(self, node: TopicNode, out: list[RetainedMessage]) -> None:
        if node.retain_message is not None:
            out.append(node.retain_message)
        for name, child in node.children.items():
            if name not in _WILDCARDS:
                self._collect_retained(child, out)

    def add_listener(self, topic_filter: str, listener: _Listener) -> TopicNode:
        """Attach an event listener to a filter; newer listeners run first."""
        path = self._walk(topic_filter, create=True)
        assert path is not None
        node = path[-1]
        node.listeners.insert(0, listener)
        return node

    def add_route(self, topic_filter: str, member_addr: str) -> TopicNode:
        """Record that a cluster member subscribes to a filter."""
        path = self._walk(topic_filter, create=True)
        assert path is not None
        node = path[-1]
        node.subscribe_members.insert(0, member_addr)
        return node

    def remove_subscription(self, topic_filter: str, client_id: str) -> bool:
        """Drop a client's subscription and prune nodes left empty.

        Returns False, with a warning logged, if the filter is not in the tree.
        """
        path = self._walk(topic_filter, create=False)
        if path is None or path[-1].subscribers is None:
            _log.warning("topic filter doesn't exist: %s", topic_filter)
            return False
        node = path[-1]
        removed = node.subscribers.pop(client_id, None) is not None
        if not node.subscribers:
            node.subscribers = None
        self._try_remove(node)
        return removed

    def _try_remove(self, node: TopicNode) -> None:
        while (
            node.subscribers is None
            and not node.children
            and node.retain_message is None
            and node.parent is not None
        ):
            parent = node.parent
            parent.children.pop(node.level_name, None)
            node = parent
            if node is self.root:
                break

    def publish(self, req: PublishRequest) -> None:
        """Deliver a publish to every matching subscriber, listener and member."""
        levels = split_topic(req.topic)
        self._match(self.root, False, levels, 0, req.retain, req)
        if self._matched_members:
            if not req.is_tunneled_pub and self.route_on_match is not None:
                self.route_on_match(req.topic, req.message, set(self._matched_members))
            self._matched_members.clear()

    def _deliver(self, node: TopicNode, req: PublishRequest) -> None:
        if not req.is_tunneled_pub:
            self._trigger_event(node, req)
        if node.subscribers and self.client_on_match is not None:
            self.client_on_match(req.topic, req.message, node.subscribers)
        self._matched_members.update(node.subscribe_members)

    @staticmethod
    def _trigger_event(node: TopicNode, req: PublishRequest) -> None:
        for listener in list(node.listeners):
            event = PublishEvent(
                username=req.publisher_username,
                client_id=req.publisher_client_id,
                qos=req.message.qos,
                retain=req.retain,
            )
            if getattr(listener, "need_json_payload", False):
                try:
                    event.payload_as_json = json.loads(req.message.message)
                except (json.JSONDecodeError, TypeError):
                    continue
            listener.publish_event(event)

    def _match(
        self,
        node: TopicNode,
        is_multi_wildcard: bool,
        levels: list[str],
        n: int,
        retain: bool,
        req: PublishRequest,
    ) -> None:
        if n == len(levels) or is_multi_wildcard:
            self._deliver(node, req)
            if n == len(levels):
                if retain:
                    if node.retain_message is None:
                        node.retain_message = RetainedMessage(MqttMessage(""), "")
                    node.retain_message.message.message = req.message.message
                    node.retain_message.message.qos = req.message.qos
                    node.retain_message.topic = req.topic
                # "#" also matches its parent level
                hash_node = node.children.get(MULTI_WILDCARD)
                if hash_node is not None:
                    self._deliver(hash_node, req)
            return
        level = levels[n]
        nxt = node.children.get(level)
        if nxt is not None:
            self._match(nxt, False, levels, n + 1, retain, req)
        elif retain:
            self._match(node.child(level, True), False, levels, n + 1, retain, req)
        nxt = node.children.get(SINGLE_WILDCARD)
        if nxt is not None:
            self._match(nxt, False, levels, n + 1, False, req)
        nxt = node.children.get(MULTI_WILDCARD)
        if nxt is not None:
            self._match(nxt, True, levels, n + 1, False, req)

    def info(self) -> str:
        """Describe every topic that has subscribers or a retained message."""
        lines: list[str] = []
        self._node_info(self.root, [], lines)
        lines.append(_SEPARATOR_LINE)
        return "".join(lines)

    def _node_info(self, node: TopicNode, levels: list[str], out: list[str]) -> None:
        for name, child in node.children.items():
            self._node_info(child, levels + [name], out)
        if node.subscribers or node.retain_message is not None:
            out.append(_SEPARATOR_LINE)
            out.append("/".join(levels))
            out.append("\nsubscribers:")
            for client_id, sub in (node.subscribers or {}).items():
                out.append(f"<{client_id}, {sub.qos}> ")
            out.append("\n")
            if node.retain_message is not None:
                out.append(f"retain message: {node.retain_message.message.message}\n")