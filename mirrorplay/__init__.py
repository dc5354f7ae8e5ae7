"""Mirror Play voice input: capture, transcribe, review and submit spoken answers."""

__version__ = "0.1.0"
