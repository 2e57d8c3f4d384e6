# tinymqtt

The pieces an MQTT broker is built from, in plain Python with no third-party
dependencies.

## Modules

- `tinymqtt.packets`: dataclasses for the MQTT control packets
  (`ConnectPacket`, `ConnackPacket`, `PublishPacket`, `PubackPacket`,
  `PubrecPacket`, `PubrelPacket`, `PubcompPacket`, `SubscribePacket`,
  `SubackPacket`, `UnsubscribePacket`, `UnsubackPacket`, `TopicFilterQos`).
  It also holds the `PacketType` and `ConnackReturnCode` enums and the
  `MqttMessage` and `PublishRequest` records. `ConnectPacket` and
  `PublishPacket` expose their flag bits as properties, for example
  `clean_session`, `will_qos`, `qos` and `retain`. `ConnectPacket.describe()`
  and `SubscribePacket.describe()` return a one-line summary.
  `PublishPacket.clone()` and `PubrelPacket.clone()` return copies.
- `tinymqtt.topics`: `split_topic` splits a topic into its levels and keeps
  empty ones. `TopicTree` holds subscriptions with the `+` and `#` wildcards,
  retained messages, event listeners and cluster routes:
  - `add_subscription(topic_filter, session, qos)` returns
    `(retained_messages, topic_existed, node)`. The session only needs a
    `client_id` attribute.
  - `publish(req)` takes a `PublishRequest`. It calls
    `client_on_match(topic, message, subscribers)` once for each matching
    filter that has subscribers, and calls
    `route_on_match(topic, message, member_addresses)` once per publish when
    cluster routes match. It also calls `publish_event(event)` on each matching
    listener. A listener whose `need_json_payload` is true gets the payload
    parsed as JSON, and is skipped when the payload does not parse. A retained
    publish is stored under its topic.
  - `add_listener`, `add_route` and `remove_subscription` manage the tree.
    `remove_subscription` prunes nodes that are left empty.
  - `info()` returns a text dump of every topic that has subscribers or a
    retained message.
- `tinymqtt.acl`: `Acl` is a tree of topic filters that carry `ClientIdRule`,
  `UsernameRule`, `IpRule` and `AllRule` entries. `Acl.auth(session, topic,
  access)` answers `Permission.ALLOW` or `Permission.DENY` for `Access.PUB` or
  `Access.SUB`. The rules added with `add_rule` are consulted first, then those
  added with `add_rule_for_all`. When no rule applies, `auth` returns the
  permission given to the constructor (`DENY` by default). Adding a rule drops
  any rule for the same target that conflicts with it, and merges
  publish-only and subscribe-only rules with the same permission into one
  `PUB_SUB` rule.
- `tinymqtt.mailbox`: `Mailbox(owner, handler, notify=None)` is thread-safe.
  `push(mail)` can be called from any thread; it queues the mail and calls
  `notify`. `dispatch()` hands every queued mail, in order, to
  `handler(owner, mail)` and returns how many it handled. `close()` drops the
  queued mails and refuses new ones.
- `tinymqtt.executor`: `PriorityExecutor(priorities=2)` runs tasks on a single
  worker thread. `post(routine, arg, priority)` queues `routine(arg)`.
  Higher-priority work interrupts the batch that is running, and the rest of
  that batch resumes afterwards. `run()` starts the worker. `stop()` finishes
  the queued tasks and then joins the worker. The executor also works as a
  context manager.

## Install

```
pip install .
```

For the test suite:

```
pip install ".[test]"
pytest
```

## Example

```python
from types import SimpleNamespace

from tinymqtt.acl import Access, Acl, AllRule, ClientIdRule, Permission
from tinymqtt.packets import MqttMessage, PublishRequest
from tinymqtt.topics import TopicTree, split_topic

print(split_topic("/sport/tennis/"))   # ['', 'sport', 'tennis', '']

tree = TopicTree(client_on_match=lambda topic, msg, subs: print(topic, list(subs)))
tree.publish(PublishRequest("sport/tennis/p1", MqttMessage("hi", 1), retain=True))
session = SimpleNamespace(client_id="client-1", username="alice")
retained, existed, node = tree.add_subscription("sport/#", session, 1)
print(retained[0].topic)               # sport/tennis/p1

acl = Acl(Permission.DENY)
acl.add_rule("sensors/+/temp", ClientIdRule(Permission.ALLOW, "client-1", Access.PUB))
acl.add_rule_for_all("sensors/#", AllRule(Permission.ALLOW, Access.SUB))
print(acl.auth(session, "sensors/a/temp", Access.PUB))   # allow
```

An `IpRule` also reads the session's `peer_ip` attribute, which must hold an
IPv4 address.

## What it does not do

This package has no networking. It does not encode or decode packets on the
wire, and it has no broker server, client, command-line tool or persistent
storage. The packet classes are plain data. The topic tree, ACL, mailbox and
executor are in-memory components that an application wires together itself.