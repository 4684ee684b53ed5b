"""Narration controller — runs one narration attempt end-to-end.

Attempt flow:
  1. Gate: automatic narration enabled? (skipped for on-demand narration)
  2. Identify the speaker; no speaker means nothing to narrate.
  3. Gate: user-authored messages only when include_narration is on.
  4. Normalize the text; empty result means nothing to narrate.
  5. Resolve the voice profile, build the payload, synthesize.
  6. Hand audio to playback, or log the failure.

Every attempt reads one settings snapshot up front and ends in DONE or
FAILED. Nothing is retried and nothing reaches playback on a failure path.
Attempts are independent: dispatch() spawns a task per event with no
queueing or deduplication, so concurrent attempts may finish in any order.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from tavern_tts.models import NarrationEvent, ResolvedVoiceProfile, TTSSettings
from tavern_tts.playback import Playback
from tavern_tts.speech import GeminiSpeechClient, SpeechClient, build_request
from tavern_tts.text import normalize
from tavern_tts.voices import DEFAULT_VOICE, character_key, resolve_voice_profile

logger = logging.getLogger(__name__)

CONNECTION_TEST_TEXT = "Hello"


class NarrationState(str, Enum):
    IDLE = "idle"
    FILTERING = "filtering"
    RESOLVING = "resolving"
    BUILDING = "building"
    SYNTHESIZING = "synthesizing"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class ConnectionStatus:
    ok: bool
    message: str


ClientFactory = Callable[[str], SpeechClient]


class NarrationController:
    """Turns host message events into played narration.

    Args:
        settings:         Returns the current settings snapshot.
        playback:         Receives audio from successful attempts.
        client_factory:   Builds a speech client from an API key. Defaults
                          to GeminiSpeechClient.
        active_character: Returns the host's currently selected character,
                          the last resort when an event names no speaker.
    """

    def __init__(
        self,
        settings: Callable[[], TTSSettings],
        playback: Playback,
        client_factory: ClientFactory = GeminiSpeechClient,
        active_character: Callable[[], str | None] | None = None,
    ) -> None:
        self._settings = settings
        self._playback = playback
        self._client_factory = client_factory
        self._active_character = active_character or (lambda: None)
        self._tasks: set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def handle(self, event: NarrationEvent) -> NarrationState:
        """Run one automatic narration attempt for a host event."""
        settings = self._settings()
        if not settings.enabled:
            return NarrationState.DONE

        speaker = character_key(event, self._active_character())
        if speaker is None:
            logger.debug("no speaker on %s event, skipped", event.type)
            return NarrationState.DONE

        if event.is_user and not settings.include_narration:
            return NarrationState.DONE

        return await self._run(event.message, speaker, settings)

    def dispatch(self, event: NarrationEvent) -> asyncio.Task:
        """Schedule handle(event) as an independent task and return it."""
        task = asyncio.create_task(self.handle(event))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        task.add_done_callback(_log_task_failure)
        return task

    async def drain(self) -> None:
        """Wait for every dispatched attempt still in flight."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def narrate(self, text: str, character_id: str | None) -> NarrationState:
        """Narrate a message on request, regardless of the automatic gates."""
        settings = self._settings()
        speaker = character_key(NarrationEvent(message=text, character_id=character_id),
                                self._active_character())
        if speaker is None:
            return NarrationState.DONE
        return await self._run(text, speaker, settings)

    async def check_connection(self) -> ConnectionStatus:
        """Synthesize a short phrase with the default voice to test the key."""
        settings = self._settings()
        if not settings.api_key.strip():
            return ConnectionStatus(False, "Please enter an API key first")

        payload = build_request(
            CONNECTION_TEST_TEXT,
            ResolvedVoiceProfile(voice_id=DEFAULT_VOICE),
            settings.language,
        )
        result = await self._client_factory(settings.api_key).synthesize(payload)
        if result.ok:
            return ConnectionStatus(True, "API key is valid")
        logger.error("connection test failed kind=%s: %s", result.error.kind, result.error)
        return ConnectionStatus(False, f"API key test failed ({result.error.kind}): {result.error}")

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    async def _run(self, raw_text: str, speaker: str, settings: TTSSettings) -> NarrationState:
        _trace(speaker, NarrationState.FILTERING)
        text = normalize(raw_text, settings)
        if not text:
            logger.debug("nothing to narrate for %s after filtering", speaker)
            return NarrationState.DONE

        _trace(speaker, NarrationState.RESOLVING)
        profile = resolve_voice_profile(speaker, settings)

        _trace(speaker, NarrationState.BUILDING)
        payload = build_request(text, profile, settings.language)

        _trace(speaker, NarrationState.SYNTHESIZING)
        logger.debug("narrating %s voice=%s chars=%d", speaker, profile.voice_id, len(text))
        result = await self._client_factory(settings.api_key).synthesize(payload)
        if not result.ok:
            logger.error(
                "narration failed for %s kind=%s: %s",
                speaker, result.error.kind, result.error,
            )
            return NarrationState.FAILED

        try:
            await self._playback(result.clip)
        except Exception:
            logger.exception("playback failed for %s", speaker)
            return NarrationState.FAILED
        return NarrationState.DONE


def _trace(speaker: str, state: NarrationState) -> None:
    logger.debug("narration %s -> %s", speaker, state.value)


def _log_task_failure(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("narration attempt crashed", exc_info=exc)
