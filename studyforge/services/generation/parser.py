"""Parsing of completion responses into typed study items."""

import json
import logging
from typing import Any, Dict, List, Tuple, Type

from pydantic import ValidationError

from studyforge.core.errors import GenerationError
from studyforge.schemas.generation import Flashcard, MultipleChoice, OpenEnded, ParsedCompletion, StudyItem, Summary

logger = logging.getLogger(__name__)

# (field on ParsedCompletion, accepted response keys, item model)
COLLECTIONS: List[Tuple[str, Tuple[str, ...], Type[StudyItem]]] = [
    ("flashcards", ("flashcards",), Flashcard),
    ("multiple_choice", ("multipleChoice", "multiple_choice"), MultipleChoice),
    ("open_ended", ("openEnded", "open_ended"), OpenEnded),
    ("summaries", ("summaries",), Summary),
]


def _collection(data: Dict[str, Any], keys: Tuple[str, ...]) -> List[Any]:
    for key in keys:
        value = data.get(key)
        if value is None:
            continue
        if not isinstance(value, list):
            logger.warning(f"Ignoring '{key}' in completion: expected a list, got {type(value).__name__}")
            return []
        return value
    return []


def parse_completion(text: str) -> ParsedCompletion:
    """Parse a completion response body.

    Args:
        text: Raw message content returned by the completion service

    Returns:
        ParsedCompletion with the valid items of each type

    Raises:
        GenerationError: if the body is not JSON or not a JSON object
    """
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        logger.error(f"Failed to parse completion response: {e}")
        raise GenerationError("Failed to parse AI response. Please try again.") from e

    if not isinstance(data, dict):
        raise GenerationError(f"AI response must be a JSON object, got {type(data).__name__}")

    parsed = ParsedCompletion()
    for field, keys, model in COLLECTIONS:
        valid = getattr(parsed, field)
        for index, raw_item in enumerate(_collection(data, keys)):
            if not isinstance(raw_item, dict):
                logger.warning(f"Dropping {field}[{index}]: not an object")
                parsed.dropped += 1
                continue
            # The item type comes from the collection, not from the payload
            raw_item = {k: v for k, v in raw_item.items() if k not in ("type", "item_type")}
            try:
                valid.append(model.model_validate(raw_item))
            except ValidationError as e:
                logger.warning(f"Dropping {field}[{index}]: {e.error_count()} validation error(s)")
                parsed.dropped += 1

    logger.info(f"Parsed {parsed.total} items from completion ({parsed.dropped} dropped): {parsed.breakdown}")
    return parsed
