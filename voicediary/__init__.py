"""voicediary - voice-to-structured diary entry pipeline."""

__version__ = "0.1.0"
