from __future__ import annotations

from typing import Protocol

from .model import ChangeBatch, PendingChange, PushOutcome


class RemoteStore(Protocol):
    """Remote source of truth, keyed exactly like the local ledger.

    Implementations raise TransportError for anything network related and
    never touch local state.
    """

    def push(self, change: PendingChange) -> PushOutcome:
        """Offer one local change.

        The remote refuses it (``accepted=False`` with its ``current``
        record) when it already holds a higher revision for the key, or the
        same revision with different values.
        """

        raise NotImplementedError

    def pull(self, since: int) -> ChangeBatch:
        """Return remote records changed after cursor ``since``."""

        raise NotImplementedError
