"""HTTP surface for host integration: settings, catalogs, events, narration."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from fastapi import APIRouter, FastAPI, HTTPException, Request
from pydantic import BaseModel, Field, ValidationError

from tavern_tts.controller import NarrationController
from tavern_tts.models import CharacterConfig, ChatMessage, NarrationEvent, TTSSettings
from tavern_tts.playback import WavFileSink
from tavern_tts.settings import SettingsStore
from tavern_tts.voices import (
    LANGUAGE_CATALOG,
    VOICE_CATALOG,
    character_config,
    characters_in_chat,
)

load_dotenv(Path(__file__).parent.parent / ".env")

DEFAULT_DATA_DIR = Path(__file__).parent.parent / "data"

router = APIRouter()


class NarrateBody(BaseModel):
    text: str
    character_id: str | None = None


class CharactersBody(BaseModel):
    chat: list[ChatMessage] = Field(default_factory=list)


def _store(request: Request) -> SettingsStore:
    return request.app.state.settings


def _controller(request: Request) -> NarrationController:
    return request.app.state.controller


def _public(settings: TTSSettings) -> dict[str, Any]:
    """Settings for the host UI. The key itself is never sent back."""
    data = settings.model_dump(by_alias=True, exclude={"api_key"})
    data["apiKeySet"] = bool(settings.api_key.strip())
    return data


@router.get("/health")
async def health():
    """Health check."""
    return {"status": "ok"}


@router.get("/settings")
async def get_settings(request: Request):
    """Current settings, camelCase keys."""
    return _public(_store(request).get())


@router.patch("/settings")
async def update_settings(request: Request, body: dict[str, Any]):
    """Update settings (partial merge; per-character maps merge by key)."""
    try:
        settings = _store(request).update(body)
    except ValidationError as e:
        raise HTTPException(422, e.errors(include_url=False, include_context=False))
    return _public(settings)


@router.get("/voices")
async def voices():
    return [v.model_dump() for v in VOICE_CATALOG]


@router.get("/languages")
async def languages():
    return [lang.model_dump() for lang in LANGUAGE_CATALOG]


@router.post("/events", status_code=202)
async def receive_event(request: Request, event: NarrationEvent):
    """Accept a message event and narrate it in the background."""
    _controller(request).dispatch(event)
    return {"accepted": True}


@router.post("/narrate")
async def narrate(request: Request, body: NarrateBody):
    """Narrate one message on demand (the per-message play button)."""
    state = await _controller(request).narrate(body.text, body.character_id)
    return {"state": state.value}


@router.post("/check-connection")
async def check_connection(request: Request):
    """Test the configured API key with a short synthesis."""
    status = await _controller(request).check_connection()
    return {"ok": status.ok, "message": status.message}


@router.post("/characters", response_model=list[CharacterConfig])
async def characters(request: Request, body: CharactersBody):
    """Voice config for every character speaking in the given chat."""
    settings = _store(request).get()
    return [character_config(settings, name) for name in characters_in_chat(body.chat)]


def create_app(data_dir: Path | None = None) -> FastAPI:
    resolved = data_dir or Path(os.getenv("DATA_DIR", str(DEFAULT_DATA_DIR)))
    store = SettingsStore(resolved / "settings.json")

    app = FastAPI(title="Tavern TTS")
    app.state.settings = store
    app.state.controller = NarrationController(store.get, WavFileSink(resolved / "audio"))
    app.include_router(router, prefix="/api")
    return app
