"""Token estimation and prompt trimming."""

from __future__ import annotations

import logging
import math

logger = logging.getLogger(__name__)

MIN_CHUNK_SIZE = 140


class TokenEstimator:
    """
    Estimates token counts for prompt budgeting.

    Uses a characters-per-token ratio by default. With `use_tiktoken=True`
    the `o200k_base` encoding is used for exact counts (requires the
    encoding files to be available locally or downloadable).
    """

    def __init__(
        self,
        use_tiktoken: bool = False,
        chars_per_token: float = 4.0,
        encoding_name: str = "o200k_base",
    ):
        self.use_tiktoken = use_tiktoken
        self.chars_per_token = chars_per_token
        self.encoding_name = encoding_name
        self._encoding = None

    def _get_encoding(self):
        if self._encoding is None:
            import tiktoken

            self._encoding = tiktoken.get_encoding(self.encoding_name)
        return self._encoding

    def estimate_tokens(self, text: str) -> int:
        """Estimate the number of tokens in text."""
        if not text:
            return 0
        if self.use_tiktoken:
            return len(self._get_encoding().encode(text))
        return math.ceil(len(text) / self.chars_per_token)

    def trim(self, text: str, max_tokens: int) -> str:
        """
        Trim text so it fits in `max_tokens`.

        Cuts by character count using the observed chars/token ratio and
        re-checks, shrinking further until the text fits. Never returns
        less than MIN_CHUNK_SIZE characters.

        Args:
            text: Text to trim
            max_tokens: Token budget

        Returns:
            The text, or a prefix of it that fits the budget
        """
        if not text:
            return ""

        length = self.estimate_tokens(text)
        if length <= max_tokens:
            return text

        overflow_tokens = length - max_tokens
        # 3 chars per token is a conservative cut that usually lands under budget
        chunk_size = len(text) - overflow_tokens * 3
        if chunk_size < MIN_CHUNK_SIZE:
            return text[:MIN_CHUNK_SIZE]

        trimmed = text[:chunk_size]
        logger.debug(f"Trimmed prompt from {length} tokens ({len(text)} -> {len(trimmed)} chars)")
        return self.trim(trimmed, max_tokens)
