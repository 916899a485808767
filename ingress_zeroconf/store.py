"""In-memory store of active mDNS registrations."""

from typing import Dict, Generic, List, Optional, TypeVar

from .models import LocalHostname

H = TypeVar("H")


class RecordStore(Generic[H]):
    """Maps each advertised LocalHostname to its registration handle.

    A key is present only while its registration is live on the network.
    The store does no locking of its own: it is owned by the reconciler
    and must only be mutated from the thread that consumes watch events.
    """

    def __init__(self) -> None:
        self._records: Dict[LocalHostname, H] = {}

    def get(self, key: LocalHostname) -> Optional[H]:
        return self._records.get(key)

    def put(self, key: LocalHostname, handle: H) -> None:
        self._records[key] = handle

    def remove(self, key: LocalHostname) -> Optional[H]:
        return self._records.pop(key, None)

    def keys(self) -> List[LocalHostname]:
        """Snapshot of the keys currently present."""
        return list(self._records)

    def __contains__(self, key: object) -> bool:
        return key in self._records

    def __len__(self) -> int:
        return len(self._records)
