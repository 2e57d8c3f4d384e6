"""Topic based access control lists for publish and subscribe requests."""

from __future__ import annotations

import ipaddress
import threading
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any

from tinymqtt.topics import MULTI_WILDCARD, SINGLE_WILDCARD, split_topic


class Permission(IntEnum):
    """Outcome of an access check; UNKNOWN means no rule applied."""

    ALLOW = 0
    DENY = 1
    UNKNOWN = 2

    def __str__(self) -> str:
        return self.name.lower()


class Access(IntEnum):
    """The kind of access a rule covers or a client requests."""

    PUB = 0
    SUB = 1
    PUB_SUB = 2

    def __str__(self) -> str:
        return _ACCESS_LABELS[self]


_ACCESS_LABELS = {
    Access.PUB: "publish",
    Access.SUB: "subscribe",
    Access.PUB_SUB: "publish/subscribe",
}


class AclRule:
    """A rule granting or denying access to the clients it targets.

    Sessions checked against rules are expected to expose ``client_id``,
    ``username`` and ``peer_ip`` attributes.
    """

    def __init__(self, permission: Permission, access: Access) -> None:
        self.permission = Permission(permission)
        self.access = Access(access)

    def _covers(self, access: Access) -> bool:
        return self.access == Access.PUB_SUB or self.access == access

    def _targets(self, session: Any) -> bool:
        raise NotImplementedError

    def _target(self) -> Any:
        return None

    def check_permission(self, session: Any, access: Access) -> Permission:
        """Return this rule's permission if it applies, else UNKNOWN."""
        if not self._covers(access):
            return Permission.UNKNOWN
        if self._targets(session):
            return self.permission
        return Permission.UNKNOWN

    def same_target(self, other: AclRule) -> bool:
        """Whether both rules are of one kind and aim at the same clients."""
        return type(self) is type(other) and self._target() == other._target()

    def __repr__(self) -> str:
        target = self._target()
        shown = "" if target is None else f", {target!r}"
        return f"{type(self).__name__}({self.permission!s}{shown}, {self.access!s})"


class ClientIdRule(AclRule):
    """Applies to the session with a given client identifier."""

    def __init__(self, permission: Permission, client_id: str, access: Access) -> None:
        super().__init__(permission, access)
        self.client_id = client_id

    def _target(self) -> str:
        return self.client_id

    def _targets(self, session: Any) -> bool:
        return getattr(session, "client_id", None) == self.client_id


class UsernameRule(AclRule):
    """Applies to sessions logged in with a given username."""

    def __init__(self, permission: Permission, username: str, access: Access) -> None:
        super().__init__(permission, access)
        self.username = username

    def _target(self) -> str:
        return self.username

    def _targets(self, session: Any) -> bool:
        return getattr(session, "username", None) == self.username


class IpRule(AclRule):
    """Applies to sessions connected from a given IPv4 address."""

    def __init__(self, permission: Permission, ip: str, access: Access) -> None:
        super().__init__(permission, access)
        try:
            self.address = ipaddress.IPv4Address(ip)
        except ipaddress.AddressValueError as exc:
            raise ValueError(f"invalid IPv4 address: {ip!r}") from exc

    def _target(self) -> ipaddress.IPv4Address:
        return self.address

    def _targets(self, session: Any) -> bool:
        peer = getattr(session, "peer_ip", None)
        if peer is None:
            return False
        try:
            return ipaddress.IPv4Address(peer) == self.address
        except ipaddress.AddressValueError:
            return False


class AllRule(AclRule):
    """Applies to every session."""

    def _targets(self, session: Any) -> bool:
        return True


@dataclass(eq=False)
class _AclNode:
    rules: list[AclRule] = field(default_factory=list)
    rules_for_all: list[AclRule] = field(default_factory=list)
    children: dict[str, _AclNode] = field(default_factory=dict)


def _add_rule(rules: list[AclRule], new: AclRule) -> None:
    """Insert a rule, dropping conflicting rules and merging compatible ones."""
    merged = False
    kept: list[AclRule] = []
    for existing in rules:
        if existing.same_target(new):
            overlap = (
                existing.access == new.access
                or existing.access == Access.PUB_SUB
                or new.access == Access.PUB_SUB
            )
            if existing.permission != new.permission and overlap:
                continue
            if existing.permission == new.permission and existing.access != new.access:
                existing.access = Access.PUB_SUB
                merged = True
        kept.append(existing)
    if not merged:
        kept.insert(0, new)
    rules[:] = kept


class Acl:
    """A tree of topic filters, each carrying its access rules."""

    def __init__(self, nomatch: Permission = Permission.DENY) -> None:
        self.nomatch_permission = Permission(nomatch)
        self._root = _AclNode()
        self._lock = threading.Lock()

    def _node_for(self, topic_filter: str) -> _AclNode:
        node = self._root
        for level in split_topic(topic_filter):
            node = node.children.setdefault(level, _AclNode())
        return node

    def add_rule(self, topic_filter: str, rule: AclRule) -> None:
        """Attach a rule to a topic filter."""
        with self._lock:
            _add_rule(self._node_for(topic_filter).rules, rule)

    def add_rule_for_all(self, topic_filter: str, rule: AclRule) -> None:
        """Attach a fallback rule, consulted after the filter's own rules."""
        with self._lock:
            _add_rule(self._node_for(topic_filter).rules_for_all, rule)

    def _match(self, node: _AclNode, n: int, multi: bool, levels: list[str]) -> _AclNode | None:
        if n == len(levels) or multi:
            return node
        for key, is_multi in ((levels[n], False), (SINGLE_WILDCARD, False), (MULTI_WILDCARD, True)):
            child = node.children.get(key)
            if child is not None:
                found = self._match(child, n + 1, is_multi, levels)
                if found is not None:
                    return found
        return None

    def auth(self, session: Any, topic_filter: str, access: Access) -> Permission:
        """Decide whether a session may access a topic."""
        levels = split_topic(topic_filter)
        with self._lock:
            node = self._match(self._root, 0, False, levels)
            if node is None:
                return self.nomatch_permission
            for rules in (node.rules, node.rules_for_all):
                for rule in rules:
                    perm = rule.check_permission(session, access)
                    if perm != Permission.UNKNOWN:
                        return perm
        return self.nomatch_permission