"""Tests for tavern_tts.playback."""

import asyncio
import wave
from unittest.mock import patch

from tavern_tts.models import AudioClip
from tavern_tts.playback import DiscardPlayback, WavFileSink, is_raw_pcm, sample_rate


def test_sample_rate_from_mime():
    assert sample_rate("audio/L16;codec=pcm;rate=24000") == 24000
    assert sample_rate("audio/L16;rate=16000") == 16000
    assert sample_rate("audio/L16") == 24000


def test_is_raw_pcm():
    assert is_raw_pcm("audio/L16;codec=pcm;rate=24000")
    assert is_raw_pcm("audio/pcm")
    assert not is_raw_pcm("audio/mpeg")


async def test_pcm_written_as_wav(data_dir):
    sink = WavFileSink(data_dir / "audio")
    pcm = b"\x00\x00\xff\x7f" * 100
    await sink(AudioClip(data=pcm, mime_type="audio/L16;codec=pcm;rate=16000"))

    assert len(sink.written) == 1
    path = sink.written[0]
    assert path.name == "narration-0001.wav"
    with wave.open(str(path), "rb") as wav_file:
        assert wav_file.getnchannels() == 1
        assert wav_file.getsampwidth() == 2
        assert wav_file.getframerate() == 16000
        assert wav_file.readframes(wav_file.getnframes()) == pcm


async def test_container_formats_written_as_is(data_dir):
    sink = WavFileSink(data_dir / "audio")
    await sink(AudioClip(data=b"ID3mp3", mime_type="audio/mpeg"))
    await sink(AudioClip(data=b"????", mime_type="audio/x-unknown"))
    assert [p.name for p in sink.written] == ["narration-0001.mp3", "narration-0002.bin"]
    assert sink.written[0].read_bytes() == b"ID3mp3"


async def test_numbering_continues_after_existing_files(data_dir):
    audio = data_dir / "audio"
    audio.mkdir()
    (audio / "narration-0007.wav").write_bytes(b"")
    sink = WavFileSink(audio)
    await sink(AudioClip(data=b"x", mime_type="audio/mpeg"))
    assert sink.written[0].name == "narration-0008.mp3"


async def test_discard_playback_accepts_clip():
    await DiscardPlayback()(AudioClip(data=b"x", mime_type="audio/mpeg"))


async def test_writes_run_off_the_event_loop(data_dir):
    sink = WavFileSink(data_dir / "audio")
    with patch("tavern_tts.playback.asyncio.to_thread", wraps=asyncio.to_thread) as to_thread:
        await sink(AudioClip(data=b"\x00\x00", mime_type="audio/L16;rate=24000"))
        await sink(AudioClip(data=b"ID3", mime_type="audio/mpeg"))
    assert to_thread.call_count == 2
    assert [p.exists() for p in sink.written] == [True, True]
