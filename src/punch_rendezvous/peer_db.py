import logging
import time
from typing import Callable, Dict, List, Optional, Tuple

from .models import PeerRecord

log = logging.getLogger("peer_db")

DEFAULT_CAPACITY = 128
DEFAULT_TTL = 120.0


class PeerDirectory:
    """Bounded id -> PeerRecord map owned by the receive loop.

    Only one thread touches it, so there is no lock.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY, ttl: float = DEFAULT_TTL,
                 clock: Callable[[], float] = time.monotonic):
        self.capacity = capacity
        self.ttl = ttl
        self.clock = clock
        self._peers: Dict[str, PeerRecord] = {}

    def __len__(self):
        return len(self._peers)

    def __contains__(self, peer_id):
        return peer_id in self._peers

    def register(self, peer_id: str, address: Tuple[str, int]) -> Optional[PeerRecord]:
        """Create or refresh ``peer_id``; returns None when the directory is full."""
        now = self.clock()
        ip, port = address
        record = self._peers.get(peer_id)
        if record is not None:
            if record.address != (ip, port):
                log.info("Peer %s moved %s:%d -> %s:%d", peer_id, record.ip, record.port, ip, port)
            record.ip = ip
            record.port = port
            record.last_activity = now
            return record

        if len(self._peers) >= self.capacity:
            # fail-open: caller gets no record and no reply
            log.warning("Directory full (%d); dropping registration of %s", self.capacity, peer_id)
            return None

        record = PeerRecord(peer_id=peer_id, ip=ip, port=port, last_activity=now)
        self._peers[peer_id] = record
        log.info("Added peer %s at %s:%d (%d/%d)", peer_id, ip, port, len(self._peers), self.capacity)
        return record

    def get(self, peer_id: str) -> Optional[PeerRecord]:
        return self._peers.get(peer_id)

    def find_by_address(self, address: Tuple[str, int]) -> Optional[PeerRecord]:
        # first match in insertion order; ambiguous if ids share an address
        for record in self._peers.values():
            if record.address == tuple(address):
                return record
        return None

    def touch(self, peer_id: str) -> bool:
        record = self._peers.get(peer_id)
        if record is None:
            return False
        record.last_activity = self.clock()
        return True

    def remove(self, peer_id: str) -> bool:
        removed = self._peers.pop(peer_id, None)
        if removed is not None:
            log.info("Removed peer %s", peer_id)
        return removed is not None

    def sweep(self, now: Optional[float] = None) -> List[str]:
        if now is None:
            now = self.clock()
        expired = [pid for pid, rec in self._peers.items() if rec.is_expired(now, self.ttl)]
        for pid in expired:
            del self._peers[pid]
            log.info("Cleaning up peer %s (timeout)", pid)
        if expired:
            log.info("Expired %d peer(s) removed", len(expired))
        return expired

    def all(self) -> List[PeerRecord]:
        return list(self._peers.values())
