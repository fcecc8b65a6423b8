"""
Core system components for connection supervision and state management
"""

from .connection_state import ConnectionStore, ConnectionState, ConnectionStatus
from .connection_supervisor import ConnectionSupervisor

__all__ = ["ConnectionStore", "ConnectionState", "ConnectionStatus", "ConnectionSupervisor"]
