"""
Event tracking system for the control surface
"""

from .event_bus import EventBus, EventTypes, SystemEvent

__all__ = ['EventBus', 'EventTypes', 'SystemEvent']
