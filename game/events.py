"""
Wolf's Journey Home - Client Events

Messages pushed to connected clients over Socket.IO so they can follow a
batch past the HTTP response (state recorded, Walrus upload attempted).
"""

from datetime import datetime
from typing import Any, Dict


class MessageType:
    """Types of messages the server can emit"""
    GAME_STATE_UPDATED = "game_state_updated"
    SYNC_SUCCEEDED = "sync_succeeded"
    SYNC_FAILED = "sync_failed"
    ERROR = "error"


def build_message(msg_type: str, data: Dict[str, Any] = None) -> Dict[str, Any]:
    """Create a standardized message"""
    return {
        "type": msg_type,
        "data": data or {},
        "timestamp": datetime.now().isoformat()
    }
