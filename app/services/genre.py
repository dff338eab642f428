"""Language-model fallback for entities that end up without a genre."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..config import Settings
from ..media_kinds import MediaKindDefinition, get_media_kind
from ..models import GenreHints
from ..utils import normalize_text

logger = logging.getLogger(__name__)

PROMPT_TEMPLATE = """You are a librarian helping to categorize {label_plural}. Based on the following {label} information, select the single most appropriate genre from this list:
{vocabulary}

{label_title} Information:
{facts}

Respond with ONLY the genre name from the list above, nothing else. If you're unsure, pick the closest match."""


def match_genre(answer: str | None, vocabulary: tuple[str, ...] | list[str], default: str) -> str:
    """Validate a free-text classifier answer against a closed vocabulary.

    An exact (case-insensitive) match wins. Otherwise a vocabulary term
    contained in the answer, or an answer contained in a term, is accepted;
    the longest such term is preferred. Anything else yields ``default``.
    """

    normalized = normalize_text(answer)
    if not normalized:
        return default

    for genre in vocabulary:
        if normalize_text(genre) == normalized:
            return genre

    candidates = []
    for genre in vocabulary:
        term = normalize_text(genre)
        if term and (f" {term} " in f" {normalized} " or normalized in term):
            candidates.append(genre)
    if candidates:
        return max(candidates, key=len)
    return default


def build_prompt(definition: MediaKindDefinition, hints: GenreHints) -> str:
    facts = [f"- Title: {hints.title}"]
    if hints.creator:
        facts.append(f"- {definition.creator_field.capitalize()}: {hints.creator}")
    if hints.description:
        facts.append(f"- Description: {hints.description}")
    if hints.subjects:
        facts.append(f"- Subjects/Categories: {', '.join(hints.subjects)}")
    label = definition.label.lower()
    return PROMPT_TEMPLATE.format(
        label=label,
        label_plural=f"{label}s",
        label_title=definition.label,
        vocabulary=", ".join(definition.genre_vocabulary),
        facts="\n".join(facts),
    )


class GenreDeducer:
    """Ask an OpenRouter-hosted model to pick one genre from a kind's vocabulary."""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        self._settings = settings
        self._client = http_client
        self._endpoint = f"{settings.api_base(settings.openrouter_api_url)}/chat/completions"

    @property
    def enabled(self) -> bool:
        return bool(self._settings.openrouter_api_key)

    async def deduce_genre(self, kind: str, hints: GenreHints) -> str | None:
        """Return a validated genre, or ``None`` when the classifier is unavailable."""

        if not self.enabled:
            return None
        definition = get_media_kind(kind)
        try:
            answer = await self._complete(build_prompt(definition, hints))
        except (httpx.HTTPError, RuntimeError, ValueError) as exc:
            logger.warning("Genre deduction failed for %s %r: %s", kind, hints.title, exc)
            return None
        genre = match_genre(answer, definition.genre_vocabulary, definition.default_genre)
        logger.debug("Deduced genre %s for %s %r (answer %r)", genre, kind, hints.title, answer)
        return genre

    async def _complete(self, prompt: str) -> str:
        payload: dict[str, Any] = {
            "model": self._settings.openrouter_model,
            "temperature": 0,
            "max_tokens": 50,
            "messages": [{"role": "user", "content": prompt}],
        }
        headers = {
            "Authorization": f"Bearer {self._settings.openrouter_api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": "https://github.com/mediashelf/mediashelf",
            "X-Title": self._settings.app_name,
        }

        response = await self._client.post(self._endpoint, json=payload, headers=headers)
        if response.status_code >= 400:
            raise RuntimeError(response.text)

        data = response.json()
        if not isinstance(data, dict):
            raise RuntimeError("Unexpected completion payload")
        choices = data.get("choices") or []
        if not choices:
            raise RuntimeError("Model returned no choices")
        content = choices[0].get("message", {}).get("content")
        if not isinstance(content, str):
            raise RuntimeError("Model response missing content")
        return content.strip()
