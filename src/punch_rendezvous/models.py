from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple


@dataclass(slots=True)
class PeerRecord:
    peer_id: str
    ip: str
    port: int
    last_activity: float

    @property
    def address(self) -> Tuple[str, int]:
        return (self.ip, self.port)

    def age(self, now: float) -> float:
        return now - self.last_activity

    def is_expired(self, now: float, ttl: float) -> bool:
        return self.age(now) > ttl
