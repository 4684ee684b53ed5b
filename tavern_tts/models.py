"""Core domain models.

Every narration stage operates on these types. Pydantic is used for
validation and serialisation at every data boundary: settings loaded from
disk, events arriving from the host, and the catalogs shown to the user.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from pydantic import AliasGenerator, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

EventType = Literal["message_received", "character_message_rendered"]


class TTSSettings(BaseModel):
    """Immutable settings snapshot read by one narration attempt.

    Stored on disk with camelCase keys (the host's extension-settings
    format); snake_case field names are accepted as well. Unknown keys are
    dropped.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=AliasGenerator(validation_alias=to_camel, serialization_alias=to_camel),
    )

    enabled: bool = False
    api_key: str = ""
    language: str = "en-US"
    include_narration: bool = True
    pass_asterisks: bool = False
    only_quotes: bool = False
    skip_codeblocks: bool = True
    skip_tagged_blocks: bool = True
    ignore_asterisks: bool = False
    character_voices: dict[str, str] = Field(default_factory=dict)
    character_instructions: dict[str, str] = Field(default_factory=dict)
    character_personality: dict[str, str] = Field(default_factory=dict)
    character_vocal_traits: dict[str, str] = Field(default_factory=dict)


# Per-character maps merge key-wise on update; everything else is replaced.
CHARACTER_MAPS = (
    "character_voices",
    "character_instructions",
    "character_personality",
    "character_vocal_traits",
)


class NarrationEvent(BaseModel):
    """A message-arrival notification pushed by the host chat application."""

    type: EventType = "message_received"
    message: str = ""
    character_id: str | None = None
    character_name: str | None = None  # display name; used only without an id
    is_user: bool = False


class Voice(BaseModel):
    model_config = ConfigDict(frozen=True)

    voice_id: str
    description: str


class Language(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: str
    display_name: str


class ResolvedVoiceProfile(BaseModel):
    """Voice id plus the composed style text for one character."""

    model_config = ConfigDict(frozen=True)

    voice_id: str
    style_text: str = ""


class ChatMessage(BaseModel):
    """The slice of a host chat message needed for character discovery."""

    name: str = ""
    is_user: bool = False


class CharacterConfig(BaseModel):
    """Effective per-character values, as shown in the voice config panel."""

    name: str
    voice_id: str
    instructions: str
    personality: str
    vocal_traits: str


@dataclass(frozen=True)
class AudioClip:
    """Decoded audio returned by the speech endpoint."""

    data: bytes
    mime_type: str
