"""Tests for tavern_tts.voices — catalogs, profile resolution, character discovery."""

import pytest
from pydantic import ValidationError

from tavern_tts.models import ChatMessage, NarrationEvent, TTSSettings
from tavern_tts.voices import (
    DEFAULT_INSTRUCTIONS,
    DEFAULT_VOICE,
    LANGUAGE_CATALOG,
    VOICE_CATALOG,
    character_config,
    character_key,
    characters_in_chat,
    resolve_voice_profile,
)


class TestCatalogs:
    def test_default_voice_is_first_entry(self) -> None:
        assert DEFAULT_VOICE == VOICE_CATALOG[0].voice_id == "Kore"

    def test_voice_ids_unique(self) -> None:
        ids = [v.voice_id for v in VOICE_CATALOG]
        assert len(ids) == len(set(ids)) == 27

    def test_languages(self) -> None:
        codes = [lang.code for lang in LANGUAGE_CATALOG]
        assert codes[0] == "en-US"
        assert "ja-JP" in codes
        assert len(codes) == 13

    def test_entries_are_frozen(self) -> None:
        with pytest.raises(ValidationError):
            VOICE_CATALOG[0].voice_id = "Puck"


class TestResolveVoiceProfile:
    def test_unconfigured_character_gets_defaults(self) -> None:
        profile = resolve_voice_profile("nobody", TTSSettings())
        assert profile.voice_id == DEFAULT_VOICE
        assert profile.style_text.strip() == ""

    @pytest.mark.parametrize("character_id", [None, "", "   "])
    def test_missing_character_gets_defaults(self, character_id) -> None:
        settings = TTSSettings(character_voices={"": "Puck"})
        profile = resolve_voice_profile(character_id, settings)
        assert profile.voice_id == DEFAULT_VOICE
        assert profile.style_text == ""

    def test_configured_voice(self) -> None:
        settings = TTSSettings(character_voices={"seraphina.png": "Leda"})
        assert resolve_voice_profile("seraphina.png", settings).voice_id == "Leda"

    def test_instructions_only(self) -> None:
        settings = TTSSettings(character_instructions={"a": "Speak softly."})
        assert resolve_voice_profile("a", settings).style_text == "Speak softly."

    def test_all_sections(self) -> None:
        settings = TTSSettings(
            character_instructions={"a": "Speak softly."},
            character_personality={"a": "Shy."},
            character_vocal_traits={"a": "Husky."},
        )
        assert resolve_voice_profile("a", settings).style_text == (
            "Speak softly."
            "\n\n### CHARACTER PERSONALITY\nShy."
            "\n\n### VOCAL CHARACTERISTICS\nHusky."
        )

    def test_blank_sections_skipped(self) -> None:
        settings = TTSSettings(
            character_personality={"a": "   \n"},
            character_vocal_traits={"a": "Gravelly."},
        )
        style = resolve_voice_profile("a", settings).style_text
        assert "PERSONALITY" not in style
        assert style == "\n\n### VOCAL CHARACTERISTICS\nGravelly."

    def test_other_characters_do_not_leak(self) -> None:
        settings = TTSSettings(
            character_voices={"a": "Fenrir"},
            character_instructions={"a": "Loud."},
        )
        profile = resolve_voice_profile("b", settings)
        assert profile.voice_id == DEFAULT_VOICE
        assert profile.style_text == ""


class TestCharacterKey:
    def test_id_preferred_over_name(self) -> None:
        event = NarrationEvent(message="x", character_id="sera.png", character_name="Seraphina")
        assert character_key(event, "active") == "sera.png"

    def test_name_when_no_id(self) -> None:
        event = NarrationEvent(message="x", character_name="Seraphina")
        assert character_key(event, "active") == "Seraphina"

    def test_active_character_last(self) -> None:
        event = NarrationEvent(message="x", character_id="  ")
        assert character_key(event, "active") == "active"

    def test_none_when_no_speaker(self) -> None:
        assert character_key(NarrationEvent(message="x")) is None


class TestCharacterDiscovery:
    def test_unique_non_user_names_in_order(self) -> None:
        chat = [
            ChatMessage(name="Seraphina"),
            ChatMessage(name="You", is_user=True),
            ChatMessage(name="Brunolf"),
            ChatMessage(name="Seraphina"),
            ChatMessage(name=""),
        ]
        assert characters_in_chat(chat) == ["Seraphina", "Brunolf"]

    def test_empty_chat(self) -> None:
        assert characters_in_chat([]) == []

    def test_config_view_defaults(self) -> None:
        view = character_config(TTSSettings(), "Seraphina")
        assert view.voice_id == DEFAULT_VOICE
        assert view.instructions == DEFAULT_INSTRUCTIONS
        assert view.personality == ""
        assert view.vocal_traits == ""

    def test_config_view_stored_values(self) -> None:
        settings = TTSSettings(
            character_voices={"Seraphina": "Aoede"},
            character_instructions={"Seraphina": "Whisper."},
            character_personality={"Seraphina": "Kind."},
        )
        view = character_config(settings, "Seraphina")
        assert view.voice_id == "Aoede"
        assert view.instructions == "Whisper."
        assert view.personality == "Kind."

    def test_default_instructions_not_sent(self) -> None:
        # The panel pre-fills DEFAULT_INSTRUCTIONS, but only saved text is narrated.
        assert resolve_voice_profile("Seraphina", TTSSettings()).style_text == ""
