"""Message text normalization — raw chat text into narratable text."""

from __future__ import annotations

import re

from tavern_tts.models import TTSSettings

_CODE_FENCE = re.compile(r"```[\s\S]*?```")
_INLINE_CODE = re.compile(r"`[^`]+`")
_TAGGED_BLOCK = re.compile(r"<[^>]+>[\s\S]*?</[^>]+>")
_ASTERISK_SPAN = re.compile(r"\*[^*]+\*")
_QUOTE_SPAN = re.compile(r'"[^"]+"')


def normalize(raw_text: str | None, flags: TTSSettings) -> str:
    """Apply the enabled text filters to a chat message.

    Filters run in a fixed order, each one narrowing what the next sees:

        1. skip_codeblocks     drop ``` fences, then inline `code`
        2. skip_tagged_blocks  drop <tag>...</tag> spans
        3. ignore_asterisks    drop *action* spans entirely
        4. only_quotes         keep only "quoted" spans, space-joined
        5. not pass_asterisks  strip leftover * markers, keep the words

    Unbalanced delimiters never match steps 1-4 and are left as literal
    text. The result is stripped of surrounding whitespace.
    """
    if not raw_text:
        return ""

    text = raw_text

    if flags.skip_codeblocks:
        text = _CODE_FENCE.sub("", text)
        text = _INLINE_CODE.sub("", text)

    if flags.skip_tagged_blocks:
        text = _TAGGED_BLOCK.sub("", text)

    if flags.ignore_asterisks:
        text = _ASTERISK_SPAN.sub("", text)

    if flags.only_quotes:
        text = " ".join(_QUOTE_SPAN.findall(text))

    if not flags.pass_asterisks:
        text = text.replace("*", "")

    return text.strip()
