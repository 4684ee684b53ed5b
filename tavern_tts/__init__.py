"""Gemini text-to-speech narration for chat characters."""
