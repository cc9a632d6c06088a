"""Keyword router producing a `RoutingDecision` for the coordinator.

Each configured specialist declares a list of keywords. The query is
tokenized into lower-case words and every specialist is scored by the number
of its keywords present. The highest score wins; ties go to the specialist
declared first in the configuration. A query with no hits falls back to the
configured default specialist.
"""

import re
from typing import List

from .exceptions import MissingFieldError
from .models import CoordinatorConfig, RoutingDecision

_WORD_PATTERN = re.compile(r"[\w']+")


class KeywordRouter:

    def __init__(self, config: CoordinatorConfig):
        self._config = config

    def _matches(self, words: set, lowered: str, keywords: List[str]) -> List[str]:
        matched = []
        for keyword in keywords:
            keyword = keyword.lower()
            # Multi-word keywords are matched as phrases.
            if (" " in keyword and keyword in lowered) or keyword in words:
                matched.append(keyword)
        return matched

    def route(self, user_query: str) -> RoutingDecision:
        if user_query is None or not user_query.strip():
            raise MissingFieldError("user_query")

        lowered = user_query.lower()
        words = set(_WORD_PATTERN.findall(lowered))

        best_name = self._config.default_specialist
        best_matches: List[str] = []
        for name, settings in self._config.specialists.items():
            matched = self._matches(words, lowered, settings.keywords)
            if len(matched) > len(best_matches):
                best_name, best_matches = name, matched

        settings = self._config.specialists[best_name]
        return RoutingDecision(
            specialist=best_name,
            payload={
                "user_query": user_query,
                "specialist": best_name,
                "specialist_description": settings.description,
                "matched_keywords": best_matches,
            },
        )
