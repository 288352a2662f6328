from .session import TrackerSession

__all__ = ["TrackerSession"]
