"""Keyword based content filter used on send and by the moderation sweep."""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional

logger = logging.getLogger(__name__)


class ContentFilter:
    """Case-insensitive substring match against an operator supplied keyword list."""

    def __init__(self, keywords: Optional[Iterable[str]] = None) -> None:
        self._keywords: List[str] = [
            k.strip().lower() for k in (keywords or []) if k and k.strip()
        ]

    @property
    def keywords(self) -> List[str]:
        return list(self._keywords)

    @property
    def enabled(self) -> bool:
        return bool(self._keywords)

    def matched_keyword(self, text: str) -> Optional[str]:
        normalized = text.lower()
        for keyword in self._keywords:
            if keyword in normalized:
                return keyword
        return None

    def should_hide(self, text: str) -> bool:
        keyword = self.matched_keyword(text)
        if keyword is not None:
            logger.info("Keyword match %r in message %r", keyword, text[:50])
            return True
        return False
