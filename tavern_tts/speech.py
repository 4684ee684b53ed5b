"""Speech endpoint client — request payload construction and synthesis.

The narration pipeline builds a payload with build_request() and hands it
to a SpeechClient:

    async def synthesize(self, payload: dict) -> SynthesisResult: ...

Wire format (POST {base_url}/models/{model}:generateContent):

    {
      "contents": [{"parts": [{"text": <text>}]}],
      "generationConfig": {
        "responseModalities": ["AUDIO"],
        "speechConfig": {"voiceConfig": {"prebuiltVoiceConfig": {"voiceName": <voice>}}}
      },
      "systemInstruction": {"parts": [{"text": <style>}]}   # only when style is non-blank
    }

Response: {"candidates": [{"content": {"parts": [{"inlineData": {"mimeType", "data"}}]}}]}
where data is base64. The first part whose mimeType starts with "audio/"
wins; the client decodes it to bytes.

Failures never escape synthesize(): they come back as the `error` of a
SynthesisResult so the caller can log them and move on.
"""

from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from tavern_tts.models import AudioClip, ResolvedVoiceProfile

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_MODEL = "gemini-2.5-pro-preview-tts"


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class SpeechError(RuntimeError):
    """Base for every way a synthesis attempt can fail."""

    kind = "speech_error"


class ConfigurationError(SpeechError):
    """No credential configured; the request was never sent."""

    kind = "configuration"


class RemoteError(SpeechError):
    """The endpoint answered with a non-success status."""

    kind = "remote"

    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(f"Speech endpoint returned HTTP {status_code}: {body[:500]}")
        self.status_code = status_code
        self.body = body


class EmptyResponseError(SpeechError):
    """The response was readable but carried no audio part."""

    kind = "empty_response"


class TransportError(SpeechError):
    """The request did not complete (DNS, connect, timeout, reset)."""

    kind = "transport"

    def __init__(self, message: str, cause: BaseException) -> None:
        super().__init__(message)
        self.cause = cause


@dataclass(frozen=True)
class SynthesisResult:
    clip: AudioClip | None = None
    error: SpeechError | None = None

    @property
    def ok(self) -> bool:
        return self.clip is not None


# ---------------------------------------------------------------------------
# Payload construction
# ---------------------------------------------------------------------------

def build_request(
    text: str,
    profile: ResolvedVoiceProfile,
    language: str,
    *,
    include_language: bool = False,
) -> dict[str, Any]:
    """Build the generateContent payload for one narration.

    `language` only changes the payload when include_language is set; the
    default prebuilt-voice endpoint infers the locale from the text.
    """
    speech_config: dict[str, Any] = {
        "voiceConfig": {"prebuiltVoiceConfig": {"voiceName": profile.voice_id}},
    }
    if include_language and language:
        speech_config["languageCode"] = language

    payload: dict[str, Any] = {
        "contents": [{"parts": [{"text": text}]}],
        "generationConfig": {
            "responseModalities": ["AUDIO"],
            "speechConfig": speech_config,
        },
    }
    if profile.style_text.strip():
        payload["systemInstruction"] = {"parts": [{"text": profile.style_text}]}
    return payload


def extract_audio(data: Any) -> AudioClip:
    """Pull the first audio part out of a generateContent response body."""
    try:
        parts = data["candidates"][0]["content"]["parts"]
    except (KeyError, IndexError, TypeError):
        raise EmptyResponseError("No audio in response") from None
    if not isinstance(parts, list):
        raise EmptyResponseError("No audio in response")

    for part in parts:
        inline = part.get("inlineData") if isinstance(part, dict) else None
        if not isinstance(inline, dict):
            continue
        mime_type = inline.get("mimeType")
        if not isinstance(mime_type, str) or not mime_type.startswith("audio/"):
            continue
        encoded = inline.get("data")
        if not isinstance(encoded, str):
            raise EmptyResponseError("Audio part carries no data")
        try:
            audio = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as e:
            raise EmptyResponseError("Audio part is not valid base64") from e
        if not audio:
            continue
        return AudioClip(data=audio, mime_type=mime_type)

    raise EmptyResponseError("No audio in response")


# ---------------------------------------------------------------------------
# Clients
# ---------------------------------------------------------------------------

class SpeechClient(Protocol):
    async def synthesize(self, payload: dict[str, Any]) -> SynthesisResult: ...


class GeminiSpeechClient:
    """Async HTTP client for the Gemini text-to-speech endpoint.

    Args:
        api_key:  Credential sent in the x-goog-api-key header. Empty means
                  unconfigured; synthesize() then fails without a request.
        model:    Speech-capable model name.
        base_url: API root, e.g. "https://generativelanguage.googleapis.com/v1beta".
        timeout:  HTTP timeout in seconds. Defaults to 120.
    """

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 120.0,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    @property
    def url(self) -> str:
        return f"{self._base_url}/models/{self._model}:generateContent"

    def _headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json", "x-goog-api-key": self._api_key}

    async def _generate(self, payload: dict[str, Any]) -> AudioClip:
        if not self._api_key.strip():
            raise ConfigurationError("API key not configured")

        logger.debug("speech call model=%s voice=%s", self._model, _voice_name(payload))
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(self.url, json=payload, headers=self._headers())
                resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise RemoteError(e.response.status_code, e.response.text) from e
        except httpx.TimeoutException as e:
            raise TransportError(f"Speech endpoint timed out after {self._timeout}s", e) from e
        except httpx.ConnectError as e:
            raise TransportError(f"Cannot connect to speech endpoint at {self._base_url}", e) from e
        except httpx.TransportError as e:
            raise TransportError(f"Speech request failed: {e}", e) from e

        try:
            body = resp.json()
        except ValueError as e:
            raise EmptyResponseError("Response body is not JSON") from e

        clip = extract_audio(body)
        logger.debug("speech response mime=%s bytes=%d", clip.mime_type, len(clip.data))
        return clip

    async def synthesize(self, payload: dict[str, Any]) -> SynthesisResult:
        try:
            return SynthesisResult(clip=await self._generate(payload))
        except SpeechError as e:
            return SynthesisResult(error=e)


def _voice_name(payload: dict[str, Any]) -> str:
    try:
        config = payload["generationConfig"]["speechConfig"]["voiceConfig"]
        return config["prebuiltVoiceConfig"]["voiceName"]
    except (KeyError, TypeError):
        return "?"
