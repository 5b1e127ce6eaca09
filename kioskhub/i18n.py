"""Translations loaded from per-language JSON files."""

from __future__ import annotations

import functools
import json
import logging
import os
import threading
from collections.abc import Mapping
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE = "zh"
SUPPORTED_LANGUAGES = ("en", "zh", "es", "fr", "de", "ja", "ko", "pt", "ru", "ar")


class TranslationError(Exception):
    """A translation file could not be read or parsed."""


class TranslationStore:
    """Holds translations per language and the current language."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._translations: dict[str, dict[str, str]] = {}
        self._current_lang = DEFAULT_LANGUAGE

    @property
    def current_lang(self) -> str:
        return self._current_lang

    def load_language(self, lang: str, file_path: str | os.PathLike[str]) -> None:
        """Load the translations of ``lang`` from a JSON object of strings."""
        try:
            data = Path(file_path).read_bytes()
        except OSError as exc:
            raise TranslationError(f"failed to read translation file: {exc}") from exc
        try:
            parsed = json.loads(data)
        except ValueError as exc:
            raise TranslationError(f"failed to parse translation file: {exc}") from exc
        if parsed is None:
            parsed = {}
        if not isinstance(parsed, dict) or not all(
            isinstance(value, str) for value in parsed.values()
        ):
            raise TranslationError(
                "failed to parse translation file: expected an object of strings"
            )
        with self._lock:
            self._translations[lang] = parsed

    def load_translations(self, base_path: str | os.PathLike[str]) -> None:
        """Load every supported language found under ``base_path``; skip the others."""
        for lang in SUPPORTED_LANGUAGES:
            try:
                self.load_language(lang, Path(base_path) / f"{lang}.json")
            except TranslationError as exc:
                logger.warning("Could not load %s translations: %s", lang, exc)

    def set_language(self, lang: str) -> None:
        """Make ``lang`` current if its translations are loaded."""
        with self._lock:
            if lang in self._translations:
                self._current_lang = lang

    def get(self, key: str) -> str:
        return self.get_lang(self._current_lang, key)

    def get_lang(self, lang: str, key: str) -> str:
        """Translate ``key`` into ``lang``, falling back to Chinese, then to the key."""
        with self._lock:
            for candidate in (lang, DEFAULT_LANGUAGE):
                value = self._translations.get(candidate, {}).get(key)
                if value is not None:
                    return value
        return key


@functools.lru_cache(maxsize=None)
def get_store() -> TranslationStore:
    """Return the shared translation store."""
    return TranslationStore()


def t(key: str) -> str:
    return get_store().get(key)


def tl(lang: str, key: str) -> str:
    return get_store().get_lang(lang, key)


def set_lang(lang: str) -> None:
    get_store().set_language(lang)


def detect_language(query_lang: str | None, accept_language: str | None) -> str:
    """Pick a language from a ``lang`` query value or an Accept-Language header."""
    lang = query_lang or ""
    if not lang:
        lang = accept_language or ""
        if lang:
            lang = lang.split(",", 1)[0]
            lang = lang.split("-", 1)[0]
    return lang or DEFAULT_LANGUAGE


def t_from_context(context: Mapping[str, Any], key: str) -> str:
    """Translate ``key`` using the language stored under ``"lang"`` in ``context``."""
    lang = context.get("lang")
    if not isinstance(lang, str):
        lang = DEFAULT_LANGUAGE
    return get_store().get_lang(lang, key)