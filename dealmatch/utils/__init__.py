# Utilities package
from .transcript import ChatTranscript, PendingMessage

__all__ = [
    "ChatTranscript",
    "PendingMessage",
]
