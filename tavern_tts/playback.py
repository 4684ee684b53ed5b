"""Playback collaborators — where synthesized audio goes.

The controller hands every successful clip to a callable matching:

    async def __call__(self, clip: AudioClip) -> None: ...

WavFileSink writes clips to disk; DiscardPlayback drops them, which is
enough to exercise the pipeline wiring without any audio output.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import re
import wave
from pathlib import Path
from typing import Protocol

from tavern_tts.models import AudioClip

logger = logging.getLogger(__name__)

DEFAULT_SAMPLE_RATE = 24000

_RATE = re.compile(r"rate=(\d+)")

# Containerised formats are written as-is.
_EXTENSIONS = {
    "audio/wav": "wav",
    "audio/x-wav": "wav",
    "audio/mpeg": "mp3",
    "audio/mp3": "mp3",
    "audio/ogg": "ogg",
    "audio/flac": "flac",
}


class Playback(Protocol):
    async def __call__(self, clip: AudioClip) -> None: ...


def is_raw_pcm(mime_type: str) -> bool:
    base = mime_type.split(";", 1)[0].strip().lower()
    return base in ("audio/l16", "audio/pcm")


def sample_rate(mime_type: str) -> int:
    """Sample rate declared in e.g. "audio/L16;codec=pcm;rate=24000"."""
    match = _RATE.search(mime_type)
    return int(match.group(1)) if match else DEFAULT_SAMPLE_RATE


def write_wav(path: Path, pcm: bytes, rate: int) -> None:
    """Wrap mono 16-bit little-endian PCM in a WAV container."""
    with wave.open(str(path), "wb") as wav_file:
        wav_file.setnchannels(1)
        wav_file.setsampwidth(2)
        wav_file.setframerate(rate)
        wav_file.writeframes(pcm)


class WavFileSink:
    """Writes each clip to {directory}/narration-NNNN.{ext}.

    Raw PCM becomes a .wav file; other audio types keep their own
    container and extension.
    """

    def __init__(self, directory: Path) -> None:
        self._dir = directory
        self._dir.mkdir(parents=True, exist_ok=True)
        existing = [int(m.group(1)) for p in self._dir.iterdir()
                    if (m := re.match(r"narration-(\d+)\.", p.name))]
        self._counter = itertools.count(max(existing, default=0) + 1)
        self.written: list[Path] = []

    async def __call__(self, clip: AudioClip) -> None:
        n = next(self._counter)
        if is_raw_pcm(clip.mime_type):
            path = self._dir / f"narration-{n:04d}.wav"
            await asyncio.to_thread(write_wav, path, clip.data, sample_rate(clip.mime_type))
        else:
            base = clip.mime_type.split(";", 1)[0].strip().lower()
            path = self._dir / f"narration-{n:04d}.{_EXTENSIONS.get(base, 'bin')}"
            await asyncio.to_thread(path.write_bytes, clip.data)
        self.written.append(path)
        logger.info("narration audio written to %s (%d bytes)", path, len(clip.data))


class DiscardPlayback:
    """Drops clips after logging them. No audio output."""

    async def __call__(self, clip: AudioClip) -> None:
        logger.debug("DiscardPlayback mime=%s bytes=%d", clip.mime_type, len(clip.data))
