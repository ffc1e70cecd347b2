"""Parsing and validation of the vocabulary descriptor artifact."""

from __future__ import annotations

import json
import logging
import math
from typing import Any, Mapping, Optional, Union

from ..errors import InvalidVocabulary
from .types import VocabularyDescriptor

__all__ = ["WORD_LIST_KEYS", "parse_vocabulary", "parse_vocabulary_bytes"]

logger = logging.getLogger(__name__)

# "vocab" is the key written by the chunked exporter; "words" by the single-blob one.
WORD_LIST_KEYS = ("words", "vocab")


def _coerce_dim(value: Any, source: Optional[str]) -> int:
    if isinstance(value, bool):
        raise InvalidVocabulary(f"invalid dim in vocabulary ({source})", source=source)
    if isinstance(value, int):
        dim = value
    elif isinstance(value, float) and math.isfinite(value) and value.is_integer():
        dim = int(value)
    else:
        raise InvalidVocabulary(f"invalid dim in vocabulary ({source})", source=source)
    if dim <= 0:
        raise InvalidVocabulary(f"invalid dim in vocabulary ({source})", source=source)
    return dim


def parse_vocabulary(payload: Any, *, source: Optional[str] = None) -> VocabularyDescriptor:
    """Validate a decoded vocabulary payload.

    Args:
        payload: Decoded JSON value; must be an object with ``dim`` and a word
            list under ``words`` (or the legacy ``vocab`` key).
        source: Location used in error messages.

    Returns:
        :class:`VocabularyDescriptor` with the word list frozen as a tuple.

    Raises:
        InvalidVocabulary: If ``dim`` is not a positive integer or the word
            list is missing, empty, or contains non-string entries.
    """

    if not isinstance(payload, Mapping):
        raise InvalidVocabulary(f"vocabulary must be a JSON object ({source})", source=source)
    dim = _coerce_dim(payload.get("dim"), source)

    words = None
    for key in WORD_LIST_KEYS:
        if key in payload:
            words = payload[key]
            break
    if not isinstance(words, list) or not words:
        raise InvalidVocabulary(f"invalid words array in vocabulary ({source})", source=source)
    for position, word in enumerate(words):
        if not isinstance(word, str):
            raise InvalidVocabulary(
                f"vocabulary entry {position} is not a string ({source})", source=source
            )

    descriptor = VocabularyDescriptor(dim=dim, words=tuple(words))
    logger.debug(
        "vocabulary parsed",
        extra={"stage": "vocabulary", "source": source, "dim": dim, "words": len(words)},
    )
    return descriptor


def parse_vocabulary_bytes(
    raw: Union[bytes, str], *, source: Optional[str] = None
) -> VocabularyDescriptor:
    """Decode JSON text and validate it with :func:`parse_vocabulary`."""

    try:
        payload = json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise InvalidVocabulary(f"vocabulary is not valid JSON ({source}): {exc}", source=source) from exc
    return parse_vocabulary(payload, source=source)
