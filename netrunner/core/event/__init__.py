from netrunner.core.event.bus import CallbackType, EventBus, EventPayload

__all__ = ["EventBus", "EventPayload", "CallbackType"]
