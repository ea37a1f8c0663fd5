"""
Token counting for DeepSeek models.

DeepSeek uses a byte-level BPE vocabulary published as a HuggingFace
tokenizer.json. When that tokenizer can be loaded (from a local file or the
HuggingFace hub), counts are exact. Otherwise, or if encoding fails, a
per-script average is used: roughly 0.3 tokens per Latin-script character
and 0.6 tokens per character of any other script (CJK, digits, punctuation,
whitespace).
"""

from __future__ import annotations

import logging
import math
import unicodedata
from collections.abc import Iterable
from pathlib import Path

from tokenizers import Tokenizer

from deepchat.llm.models import Message

logger = logging.getLogger(__name__)

DEFAULT_TOKENIZER = "deepseek-ai/DeepSeek-V3"

AVG_LATIN_CHARS_PER_TOKEN = 3.3
AVG_OTHER_CHARS_PER_TOKEN = 1.7


def _is_latin(char: str) -> bool:
    return unicodedata.name(char, "").startswith("LATIN ")


def load_tokenizer(source: str | Path) -> Tokenizer:
    """
    Load a tokenizer from a tokenizer.json path or a HuggingFace hub id.

    Raises:
        Exception: Whatever the tokenizers library raises for a missing file,
                   an unknown repo or a network failure
    """
    path = Path(source)
    if path.is_dir():
        path = path / "tokenizer.json"
    if path.is_file():
        return Tokenizer.from_file(str(path))
    return Tokenizer.from_pretrained(str(source))


class TokenEstimator:
    """
    Counts tokens for text and message lists.

    Args:
        tokenizer: A loaded Tokenizer, a tokenizer.json path (file or
                   directory) or a hub id. None counts heuristically only.
        latin_chars_per_token: Heuristic average for Latin-script characters
        other_chars_per_token: Heuristic average for everything else
    """

    def __init__(
        self,
        tokenizer: Tokenizer | str | Path | None = None,
        latin_chars_per_token: float = AVG_LATIN_CHARS_PER_TOKEN,
        other_chars_per_token: float = AVG_OTHER_CHARS_PER_TOKEN,
    ):
        self.latin_chars_per_token = latin_chars_per_token
        self.other_chars_per_token = other_chars_per_token
        self._tokenizer: Tokenizer | None = None

        if isinstance(tokenizer, (str, Path)):
            try:
                self._tokenizer = load_tokenizer(tokenizer)
                logger.debug(f"Loaded tokenizer from {tokenizer}")
            except Exception as e:
                logger.warning(f"Could not load tokenizer '{tokenizer}', using heuristic counts: {e}")
        else:
            self._tokenizer = tokenizer

    @property
    def exact(self) -> bool:
        """True when counts come from a real tokenizer."""
        return self._tokenizer is not None

    def count(self, text: str | None) -> int:
        if not text:
            return 0
        if self._tokenizer is not None:
            try:
                return len(self._tokenizer.encode(text, add_special_tokens=False).ids)
            except Exception as e:
                logger.debug(f"Tokenizer failed, falling back to heuristic: {e}")
        return self.estimate(text)

    def estimate(self, text: str | None) -> int:
        """Heuristic count from per-script character averages."""
        if not text:
            return 0
        latin = sum(1 for char in text if _is_latin(char))
        other = len(text) - latin
        estimate = latin / self.latin_chars_per_token + other / self.other_chars_per_token
        return math.ceil(estimate)

    def count_messages(self, messages: Iterable[Message]) -> int:
        """Sum of content counts. Role and framing overhead is not counted."""
        return sum(self.count(message.content) for message in messages)
