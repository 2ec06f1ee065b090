"""
Generation client boundary and the Gemini implementation.
"""
from .base import GenerationClient
from .gemini import GeminiImageClient

__all__ = ["GenerationClient", "GeminiImageClient"]
