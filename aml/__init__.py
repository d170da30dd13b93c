"""Compile a compact music notation into Standard MIDI Files, and list MIDI file contents."""

__version__ = "0.8.0"
__all__ = ["__version__"]