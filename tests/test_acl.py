from dataclasses import dataclass

import pytest

from tinymqtt.acl import (
    Access,
    Acl,
    AllRule,
    ClientIdRule,
    IpRule,
    Permission,
    UsernameRule,
)


@dataclass
class FakeSession:
    client_id: str
    username: str | None = None
    peer_ip: str | None = None


ALICE = FakeSession("alice", "user-a", "10.0.0.1")
BOB = FakeSession("bob", "user-b", "10.0.0.2")


def test_enum_labels():
    assert str(Acl(Permission.ALLOW).auth(ALICE, "a/b", Access.PUB)) == "allow"
    assert str(Acl(Permission.DENY).auth(ALICE, "a/b", Access.SUB)) == "deny"
    assert str(Access.PUB) == "publish"
    assert str(Access.SUB) == "subscribe"
    assert str(Access.PUB_SUB) == "publish/subscribe"


def test_no_rules_gives_nomatch():
    assert Acl(Permission.DENY).auth(ALICE, "a/b", Access.PUB) == Permission.DENY
    assert Acl(Permission.ALLOW).auth(ALICE, "a/b", Access.SUB) == Permission.ALLOW


def test_client_id_rule():
    acl = Acl(Permission.DENY)
    acl.add_rule("a/b", ClientIdRule(Permission.ALLOW, "alice", Access.PUB))
    assert acl.auth(ALICE, "a/b", Access.PUB) == Permission.ALLOW
    assert acl.auth(BOB, "a/b", Access.PUB) == Permission.DENY
    assert acl.auth(ALICE, "a/b", Access.SUB) == Permission.DENY


def test_pub_sub_rule_covers_both():
    acl = Acl(Permission.ALLOW)
    acl.add_rule("t", UsernameRule(Permission.DENY, "user-a", Access.PUB_SUB))
    assert acl.auth(ALICE, "t", Access.PUB) == Permission.DENY
    assert acl.auth(ALICE, "t", Access.SUB) == Permission.DENY
    assert acl.auth(BOB, "t", Access.SUB) == Permission.ALLOW


def test_ip_rule():
    acl = Acl(Permission.DENY)
    acl.add_rule("t", IpRule(Permission.ALLOW, "10.0.0.1", Access.SUB))
    assert acl.auth(ALICE, "t", Access.SUB) == Permission.ALLOW
    assert acl.auth(BOB, "t", Access.SUB) == Permission.DENY
    assert acl.auth(FakeSession("c"), "t", Access.SUB) == Permission.DENY


def test_ip_rule_rejects_invalid_address():
    with pytest.raises(ValueError):
        IpRule(Permission.ALLOW, "not-an-ip", Access.PUB)


def test_rules_for_all_used_as_fallback():
    acl = Acl(Permission.ALLOW)
    acl.add_rule("t", ClientIdRule(Permission.ALLOW, "alice", Access.PUB))
    acl.add_rule_for_all("t", AllRule(Permission.DENY, Access.PUB))
    assert acl.auth(ALICE, "t", Access.PUB) == Permission.ALLOW
    assert acl.auth(BOB, "t", Access.PUB) == Permission.DENY
    assert acl.auth(BOB, "t", Access.SUB) == Permission.ALLOW


def test_single_level_wildcard():
    acl = Acl(Permission.DENY)
    acl.add_rule("a/+/c", AllRule(Permission.ALLOW, Access.PUB))
    assert acl.auth(ALICE, "a/x/c", Access.PUB) == Permission.ALLOW
    assert acl.auth(ALICE, "a/x/y", Access.PUB) == Permission.DENY


def test_multi_level_wildcard():
    acl = Acl(Permission.DENY)
    acl.add_rule("a/#", AllRule(Permission.ALLOW, Access.SUB))
    assert acl.auth(ALICE, "a/b", Access.SUB) == Permission.ALLOW
    assert acl.auth(ALICE, "a/b/c/d", Access.SUB) == Permission.ALLOW
    assert acl.auth(ALICE, "b/c", Access.SUB) == Permission.DENY


def test_leading_separator_is_a_distinct_level():
    acl = Acl(Permission.DENY)
    acl.add_rule("/a", AllRule(Permission.ALLOW, Access.PUB))
    assert acl.auth(ALICE, "/a", Access.PUB) == Permission.ALLOW
    assert acl.auth(ALICE, "a", Access.PUB) == Permission.DENY


def test_exact_match_takes_the_node_before_wildcards():
    acl = Acl(Permission.ALLOW)
    acl.add_rule("a/b", ClientIdRule(Permission.ALLOW, "alice", Access.PUB))
    acl.add_rule("a/+", AllRule(Permission.DENY, Access.PUB))
    assert acl.auth(ALICE, "a/b", Access.PUB) == Permission.ALLOW
    # the exact node matched, so the wildcard's deny is never consulted
    assert acl.auth(BOB, "a/b", Access.PUB) == Permission.ALLOW
    assert acl.auth(BOB, "a/z", Access.PUB) == Permission.DENY


def test_conflicting_rule_replaces_existing():
    acl = Acl(Permission.ALLOW)
    acl.add_rule("t", ClientIdRule(Permission.ALLOW, "alice", Access.PUB))
    acl.add_rule("t", ClientIdRule(Permission.DENY, "alice", Access.PUB))
    assert acl.auth(ALICE, "t", Access.PUB) == Permission.DENY


def test_merged_rule_is_removed_whole_on_conflict():
    acl = Acl(Permission.DENY)
    acl.add_rule("t", ClientIdRule(Permission.ALLOW, "alice", Access.PUB))
    acl.add_rule("t", ClientIdRule(Permission.ALLOW, "alice", Access.SUB))
    assert acl.auth(ALICE, "t", Access.PUB) == Permission.ALLOW
    assert acl.auth(ALICE, "t", Access.SUB) == Permission.ALLOW
    acl.add_rule("t", ClientIdRule(Permission.DENY, "alice", Access.PUB))
    assert acl.auth(ALICE, "t", Access.PUB) == Permission.DENY
    assert acl.auth(ALICE, "t", Access.SUB) == Permission.DENY


def test_non_overlapping_rules_coexist():
    acl = Acl(Permission.ALLOW)
    acl.add_rule("t", ClientIdRule(Permission.ALLOW, "alice", Access.PUB))
    acl.add_rule("t", ClientIdRule(Permission.DENY, "alice", Access.SUB))
    assert acl.auth(ALICE, "t", Access.PUB) == Permission.ALLOW
    assert acl.auth(ALICE, "t", Access.SUB) == Permission.DENY


def test_same_target():
    a = ClientIdRule(Permission.ALLOW, "alice", Access.PUB)
    assert a.same_target(ClientIdRule(Permission.DENY, "alice", Access.SUB))
    assert not a.same_target(ClientIdRule(Permission.ALLOW, "bob", Access.PUB))
    assert not a.same_target(UsernameRule(Permission.ALLOW, "alice", Access.PUB))
    assert AllRule(Permission.ALLOW, Access.PUB).same_target(AllRule(Permission.DENY, Access.SUB))
    assert IpRule(Permission.ALLOW, "10.0.0.1", Access.PUB).same_target(
        IpRule(Permission.DENY, "10.0.0.1", Access.SUB)
    )


def test_check_permission_directly():
    rule = UsernameRule(Permission.DENY, "user-b", Access.SUB)
    assert rule.check_permission(BOB, Access.SUB) == Permission.DENY
    assert rule.check_permission(BOB, Access.PUB) == Permission.UNKNOWN
    assert rule.check_permission(ALICE, Access.SUB) == Permission.UNKNOWN
    assert AllRule(Permission.ALLOW, Access.PUB_SUB).check_permission(ALICE, Access.PUB) == Permission.ALLOW