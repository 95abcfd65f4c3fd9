"""Application layer: export lifecycle and frame routing."""

from .frame_router import FrameRouter
from .lifecycle import LifecycleManager
from .outcome import ExportOutcome

__all__ = ["ExportOutcome", "FrameRouter", "LifecycleManager"]
