"""
Business-logic managers wrapping the provider clients.

Components:
- PlivoManager: Call defaults, answer XML, recording polling
- DeepgramManager: Transcription defaults and transcript helpers
"""

from callscribe.managers.deepgram_manager import DeepgramManager, DeepgramManagerConfig
from callscribe.managers.plivo_manager import PlivoManager, PlivoManagerConfig

__all__ = [
    "PlivoManager",
    "PlivoManagerConfig",
    "DeepgramManager",
    "DeepgramManagerConfig",
]
