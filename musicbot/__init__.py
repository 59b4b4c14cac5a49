"""Per-guild track queues, voice sessions, an audio pipeline and chat command dispatch for a music bot."""

__version__ = "0.1.0"