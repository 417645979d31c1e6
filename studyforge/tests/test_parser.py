import json

import pytest

from studyforge.core.errors import GenerationError
from studyforge.schemas.generation import Flashcard, MultipleChoice, OpenEnded, StudyItem, Summary
from studyforge.services.generation import parse_completion


def test_parses_every_collection(completion_payload):
    parsed = parse_completion(json.dumps(completion_payload))

    assert parsed.breakdown == {"flashcards": 2, "multiple_choice": 1, "open_ended": 1, "summaries": 1}
    assert parsed.dropped == 1
    assert parsed.total == 5
    assert [type(item) for item in parsed.items] == [Flashcard, Flashcard, MultipleChoice, OpenEnded, Summary]


def test_snake_case_keys_are_accepted():
    body = {
        "multiple_choice": [{"question": "2 + 2?", "options": ["3", "4"], "correctAnswer": 1}],
        "open_ended": [{"question": "Why is the sky blue?"}],
    }

    parsed = parse_completion(json.dumps(body))

    assert parsed.breakdown["multiple_choice"] == 1
    assert parsed.breakdown["open_ended"] == 1
    assert parsed.multiple_choice[0].correct_answer == 1


def test_difficulty_is_normalized():
    body = {"flashcards": [
        {"front": "A", "back": "B", "difficulty": " Hard "},
        {"front": "C", "back": "D", "difficulty": "impossible"},
        {"front": "E", "back": "F"},
    ]}

    parsed = parse_completion(json.dumps(body))

    assert [card.difficulty for card in parsed.flashcards] == ["hard", "medium", "medium"]


def test_invalid_items_are_dropped():
    body = {
        "flashcards": ["not an object", {"front": "", "back": "empty front"}, {"front": "Q", "back": "A"}],
        "multipleChoice": [{"question": "One option only", "options": ["A"], "correctAnswer": 0}],
        "summaries": [{"content": "Missing a title"}],
    }

    parsed = parse_completion(json.dumps(body))

    assert parsed.total == 1
    assert parsed.dropped == 4
    assert parsed.flashcards[0].front == "Q"


def test_payload_type_is_taken_from_the_collection():
    body = {"flashcards": [{"type": "summary", "front": "Q", "back": "A"}]}

    [card] = parse_completion(json.dumps(body)).flashcards

    assert card.item_type == "flashcard"
    assert card.to_payload()["type"] == "flashcard"


def test_non_list_collection_is_ignored():
    parsed = parse_completion(json.dumps({"flashcards": {"front": "Q", "back": "A"}}))

    assert parsed.total == 0


def test_empty_object_is_valid():
    parsed = parse_completion("{}")

    assert parsed.total == 0
    assert parsed.dropped == 0
    assert parsed.breakdown == {"flashcards": 0, "multiple_choice": 0, "open_ended": 0, "summaries": 0}


def test_invalid_json_is_a_generation_error():
    with pytest.raises(GenerationError, match="Failed to parse AI response"):
        parse_completion("Here are your flashcards: ...")


def test_non_object_json_is_a_generation_error():
    with pytest.raises(GenerationError):
        parse_completion(json.dumps([{"front": "Q", "back": "A"}]))


def test_item_titles():
    assert Flashcard(front="What is ATP?", back="Energy currency").title == "What is ATP?"
    assert Summary(title="Cell respiration", content="Glucose is oxidized.").title == "Cell respiration"
    assert StudyItem(item_type="matching-pairs").title == "Matching Pairs"
