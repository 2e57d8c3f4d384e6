"""In-memory MQTT broker components: packets, topic tree, ACL, mailbox and executor."""

__version__ = "0.1.0"
__all__ = ["acl", "executor", "mailbox", "packets", "topics"]