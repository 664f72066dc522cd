import logging
import random
import threading
from typing import Any, Callable, Dict, List, Optional

from .room import Room, now_ms

logger = logging.getLogger(__name__)

PIN_MIN = 100000
PIN_MAX = 999999


class RoomRegistry:
    """Live rooms keyed by their 6-digit pin.

    One instance per app; tests build their own with a fake clock or a seeded rng.
    """

    def __init__(self, clock: Callable[[], int] = now_ms, rng: Optional[random.Random] = None,
                 default_duration_sec: int = 20):
        self._rooms: Dict[str, Room] = {}
        self._clock = clock
        self._rng = rng or random.Random()
        self._default_duration_sec = default_duration_sec
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._rooms)

    def __contains__(self, pin: object) -> bool:
        with self._lock:
            return pin in self._rooms

    def _new_pin(self) -> str:
        # caller holds self._lock
        while True:
            pin = str(self._rng.randint(PIN_MIN, PIN_MAX))
            if pin not in self._rooms:
                return pin
            logger.info(f"[pin-collision] pin={pin} live_rooms={len(self._rooms)}")

    def create_room(self, host_sid: str, title: Any = None) -> str:
        with self._lock:
            pin = self._new_pin()
            self._rooms[pin] = Room(pin, host_sid, title, clock=self._clock,
                                    default_duration_sec=self._default_duration_sec)
        return pin

    def get_room(self, pin: Any) -> Optional[Room]:
        if pin is None:
            return None
        with self._lock:
            return self._rooms.get(str(pin).strip())

    def delete_room(self, pin: str) -> None:
        with self._lock:
            self._rooms.pop(pin, None)

    def rooms_for_connection(self, sid: str) -> List[Room]:
        with self._lock:
            rooms = list(self._rooms.values())
        return [room for room in rooms if room.has_connection(sid)]
