"""
Pose studio: photo pose, clothing and background editing through a generative image model.
"""
from .config import load_config
from .lifecycle import GenerationLifecycleController
from .session import EditingSession
from .submission import Submission

__all__ = ["load_config", "GenerationLifecycleController", "EditingSession", "Submission"]
