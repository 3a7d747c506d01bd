"""Case-insensitive urgency keyword matching."""

import re
from collections.abc import Iterable

from src.consultation.models import TranscriptionMessage


class KeywordMatcher:
    """Matches text against a fixed keyword set.

    Keywords must start at a word boundary, so inflections match
    ("painful" for "pain", "dores" for "dor") while unrelated words that
    merely contain a keyword do not ("doutor" does not match "dor").

    Example:
        >>> matcher = KeywordMatcher(["pain", "urgent"])
        >>> matcher.matches("The pain started yesterday")
        True
    """

    def __init__(self, keywords: Iterable[str]) -> None:
        self.keywords = tuple(k.strip() for k in keywords if k.strip())
        if not self.keywords:
            raise ValueError("KeywordMatcher requires at least one keyword")

        # Longest first so overlapping keywords prefer the most specific match
        alternatives = sorted(self.keywords, key=len, reverse=True)
        self._pattern = re.compile(
            r"\b(?:" + "|".join(re.escape(k) for k in alternatives) + ")",
            re.IGNORECASE,
        )

    def matches(self, text: str) -> bool:
        return self._pattern.search(text) is not None

    def any_match(self, messages: Iterable[TranscriptionMessage]) -> bool:
        """Return True if any message's text contains a keyword."""
        return any(self.matches(message.text) for message in messages)
