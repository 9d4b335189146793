"""Scene hierarchy, scene-file chunk I/O, audio mixing, WAV/PNG loading and a trackball camera."""

__version__ = "0.1.0"

__all__ = [
    "chunks",
    "linalg",
    "png",
    "scene",
    "sound",
    "trackball",
    "wav",
]