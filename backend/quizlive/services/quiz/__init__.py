"""Quiz session services: room state machine, scoring, registry and question generation.

Socket handlers and HTTP routes import from here; nothing in this package
touches the transport.
"""

from .registry import RoomRegistry
from .room import Emit, Room

__all__ = ['Emit', 'Room', 'RoomRegistry']
