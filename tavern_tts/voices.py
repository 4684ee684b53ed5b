"""Voice and language catalogs, per-character voice profile resolution."""

from __future__ import annotations

from collections.abc import Iterable

from tavern_tts.models import (
    CharacterConfig,
    ChatMessage,
    Language,
    NarrationEvent,
    ResolvedVoiceProfile,
    TTSSettings,
    Voice,
)

# Prebuilt speech voices. Order matters: the first entry is the default.
VOICE_CATALOG: tuple[Voice, ...] = tuple(
    Voice(voice_id=name, description=desc)
    for name, desc in (
        ("Kore", "Firm"),
        ("Orus", "Firm"),
        ("Autonoe", "Bright"),
        ("Umbriel", "Easy-going"),
        ("Erinome", "Clear"),
        ("Laomedeia", "Upbeat"),
        ("Schedar", "Even"),
        ("Achird", "Friendly"),
        ("Sadachbia", "Lively"),
        ("Fenrir", "Excitable"),
        ("Aoede", "Breezy"),
        ("Enceladus", "Breathy"),
        ("Algieba", "Smooth"),
        ("Algenib", "Gravelly"),
        ("Achernar", "Soft"),
        ("Gacrux", "Mature"),
        ("Zubenelgenubi", "Casual"),
        ("Sadaltager", "Knowledgeable"),
        ("Leda", "Youthful"),
        ("Callirrhoe", "Easy-going"),
        ("Iapetus", "Clear"),
        ("Despina", "Smooth"),
        ("Rasalgethi", "Informative"),
        ("Alnilam", "Firm"),
        ("Pulcherrima", "Forward"),
        ("Vindemiatrix", "Gentle"),
        ("Sulafat", "Warm"),
    )
)

DEFAULT_VOICE = VOICE_CATALOG[0].voice_id

LANGUAGE_CATALOG: tuple[Language, ...] = tuple(
    Language(code=code, display_name=name)
    for code, name in (
        ("en-US", "English (US)"),
        ("en-GB", "English (UK)"),
        ("es-ES", "Spanish (Spain)"),
        ("es-US", "Spanish (US)"),
        ("fr-FR", "French"),
        ("de-DE", "German"),
        ("it-IT", "Italian"),
        ("ja-JP", "Japanese"),
        ("ko-KR", "Korean"),
        ("pt-BR", "Portuguese (Brazil)"),
        ("zh-CN", "Chinese (Simplified)"),
        ("hi-IN", "Hindi"),
        ("ru-RU", "Russian"),
    )
)

PERSONALITY_HEADER = "### CHARACTER PERSONALITY"
VOCAL_TRAITS_HEADER = "### VOCAL CHARACTERISTICS"

# Pre-filled into the config panel for characters without instructions.
# Only what the user saves is ever sent to the speech endpoint.
DEFAULT_INSTRUCTIONS = """\
### INSTRUCTION
You are an advanced Audio Engine creating an immersive First-Person roleplay experience.
Your goal is to perform the script below with extreme emotional realism and physical presence.

### HOW TO HANDLE BRACKETS [Action/Tone: ...]
The text inside brackets is your DIRECTORIAL CUE. You must interpret it intelligently:

1. **If it describes a Sound (e.g., [chewing, fabric rustling, moan]):**
   -> GENERATE that sound audibly.

2. **If it describes a Vocal Tone (e.g., [voice drops to a whisper, condescending purr]):**
   -> DO NOT read these words. Instead, APPLY that specific tone to the dialogue that follows.

3. **If it describes a Physical Action (e.g., [chewing slowly, kissing]):**
   -> Perform the action *while* speaking or in between words (e.g., speak with your mouth full, or breathe heavily)."""


def _blank(value: str | None) -> bool:
    return not value or not value.strip()


def character_key(
    event: NarrationEvent, active_character_id: str | None = None
) -> str | None:
    """Pick the key used to look up per-character settings.

    Precedence: the event's stable character id, then its display name,
    then the host's currently selected character. None when no speaker can
    be identified.
    """
    for candidate in (event.character_id, event.character_name, active_character_id):
        if not _blank(candidate):
            return candidate
    return None


def compose_style_text(instructions: str, personality: str, vocal_traits: str) -> str:
    style = instructions or ""
    if not _blank(personality):
        style += f"\n\n{PERSONALITY_HEADER}\n{personality}"
    if not _blank(vocal_traits):
        style += f"\n\n{VOCAL_TRAITS_HEADER}\n{vocal_traits}"
    return style


def resolve_voice_profile(
    character_id: str | None, settings: TTSSettings
) -> ResolvedVoiceProfile:
    """Resolve the voice and style text for a character. Never fails.

    Unconfigured characters (or no character at all) get the default voice
    and empty style text.
    """
    if _blank(character_id):
        return ResolvedVoiceProfile(voice_id=DEFAULT_VOICE)

    voice_id = settings.character_voices.get(character_id) or DEFAULT_VOICE
    style = compose_style_text(
        settings.character_instructions.get(character_id, ""),
        settings.character_personality.get(character_id, ""),
        settings.character_vocal_traits.get(character_id, ""),
    )
    return ResolvedVoiceProfile(voice_id=voice_id, style_text=style)


def characters_in_chat(messages: Iterable[ChatMessage]) -> list[str]:
    """Unique names of non-user speakers, in order of first appearance."""
    seen: dict[str, None] = {}
    for msg in messages:
        if msg.name and not msg.is_user:
            seen.setdefault(msg.name, None)
    return list(seen)


def character_config(settings: TTSSettings, name: str) -> CharacterConfig:
    """Effective values for one character in the voice config panel."""
    return CharacterConfig(
        name=name,
        voice_id=settings.character_voices.get(name) or DEFAULT_VOICE,
        instructions=settings.character_instructions.get(name) or DEFAULT_INSTRUCTIONS,
        personality=settings.character_personality.get(name, ""),
        vocal_traits=settings.character_vocal_traits.get(name, ""),
    )
