"""
Star Broadcast Hub Module

WebSocket server, session loops and the broadcast control loop
"""

from .session import Session
from .router import BroadcastHub, EventKind, HubEvent
from .server import HubServer, run_server

__all__ = [
    "Session",
    "BroadcastHub",
    "EventKind",
    "HubEvent",
    "HubServer",
    "run_server",
]
