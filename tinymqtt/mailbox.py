"""Thread-safe mailbox that hands queued mails to a handler in batches."""

from __future__ import annotations

import threading
from typing import Any, Callable, Generic, TypeVar

Mail = TypeVar("Mail")
Owner = TypeVar("Owner")


class Mailbox(Generic[Owner, Mail]):
    """Collects mails from any thread and delivers them on the owning thread.

    ``push`` may be called from any thread; it queues the mail and calls the
    optional ``notify`` callback so the owner knows to call ``dispatch``.
    ``dispatch`` takes every mail queued so far and passes each one, in the
    order pushed, to ``handler(owner, mail)``. Mails pushed while a batch is
    being handled are kept for the next ``dispatch``.
    """

    def __init__(
        self,
        owner: Owner,
        handler: Callable[[Owner, Mail], Any],
        notify: Callable[[], Any] | None = None,
    ) -> None:
        self.owner = owner
        self._handler = handler
        self._notify = notify
        self._lock = threading.Lock()
        self._mails: list[Mail] = []
        self._closed = False

    def __len__(self) -> int:
        with self._lock:
            return len(self._mails)

    def __enter__(self) -> Mailbox[Owner, Mail]:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._closed

    def push(self, mail: Mail) -> None:
        """Queue a mail and wake the owner."""
        with self._lock:
            if self._closed:
                raise RuntimeError("mailbox is closed")
            self._mails.append(mail)
        if self._notify is not None:
            self._notify()

    def dispatch(self) -> int:
        """Hand every queued mail to the handler; return how many were handled."""
        with self._lock:
            mails, self._mails = self._mails, []
        for mail in mails:
            self._handler(self.owner, mail)
        return len(mails)

    def close(self) -> None:
        """Refuse further mails and drop those still queued."""
        with self._lock:
            self._closed = True
            self._mails.clear()