"""Session change notifications."""

from .redis import EventStream, StreamEvent

STATUS_EVENT = "status"

__all__ = ["EventStream", "StreamEvent", "STATUS_EVENT"]
