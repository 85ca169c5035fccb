"""
Application Interfaces (Ports)

Abstract interfaces that define contracts between the application
layer and infrastructure adapters. These are the "ports" in
hexagonal architecture.
"""

from holo_bot.application.interfaces.metadata_extractor import MetadataExtractor
from holo_bot.application.interfaces.voice_session import AudioTrack, EndHandler, VoiceSession

__all__ = [
    "MetadataExtractor",
    "VoiceSession",
    "AudioTrack",
    "EndHandler",
]
