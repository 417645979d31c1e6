import json

import pytest
from sqlalchemy import func, select

from studyforge.core.errors import (
    EmptyIntersectionError,
    GenerationError,
    GenerationStateError,
    NoSourcesError,
    PersistenceError,
    QuotaError,
)
from studyforge.db.models import Generation, GenerationItem, GenerationItemSource, Question
from studyforge.schemas.generation import Flashcard


async def count_rows(db_session, model):
    result = await db_session.execute(select(func.count()).select_from(model))
    return result.scalar_one()


@pytest.fixture
async def sources(ingestion_service, topic, principal_id):
    """Three sources A, B and C, ingested in that order."""
    texts = [
        ("A", "Glycolysis splits glucose into pyruvate."),
        ("B", "The Krebs cycle runs in the mitochondrial matrix."),
        ("C", "The electron transport chain pumps protons."),
    ]
    return [await ingestion_service.ingest_text(topic.id, principal_id, text, title) for title, text in texts]


async def test_bulk_generation_uses_every_source(generation_service, completion_client, topic, principal_id, sources):
    result = await generation_service.generate(topic.id, principal_id)

    assert result.generation_type == "bulk"
    assert result.status == "completed"
    assert result.source_ids == [source.id for source in sources]
    assert result.items_generated == 5
    assert result.breakdown == {"flashcards": 2, "multiple_choice": 1, "open_ended": 1, "summaries": 1}
    assert result.message == "Successfully generated 5 study items from 3 source(s)!"

    topic_name, content = completion_client.complete.await_args.args
    assert topic_name == "Cell Biology"
    assert "Glycolysis" in content and "Krebs" in content and "electron transport" in content
    assert content.index("Glycolysis") < content.index("Krebs") < content.index("electron transport")


async def test_selective_generation_drops_foreign_ids(generation_service, db_session, topic, principal_id, sources):
    a, b, _ = sources

    result = await generation_service.generate(topic.id, principal_id, [b.id, a.id, "foreign-source-id"])

    assert result.generation_type == "selective"
    assert result.source_ids == [a.id, b.id]
    for question in result.questions:
        assert question.source_attribution == [a.id, b.id]

    links = await db_session.execute(select(GenerationItemSource.source_id).distinct())
    assert set(links.scalars().all()) == {a.id, b.id}


async def test_selective_generation_with_only_foreign_ids(generation_service, db_session, topic, principal_id, sources):
    with pytest.raises(EmptyIntersectionError):
        await generation_service.generate(topic.id, principal_id, ["foreign-1", "foreign-2"])

    assert await count_rows(db_session, Generation) == 0


async def test_bulk_generation_without_sources(generation_service, completion_client, db_session, topic, principal_id):
    with pytest.raises(NoSourcesError):
        await generation_service.generate(topic.id, principal_id)

    assert await count_rows(db_session, Generation) == 0
    completion_client.complete.assert_not_awaited()


async def test_generations_are_additive(generation_service, db_session, topic, principal_id, sources):
    first = await generation_service.generate(topic.id, principal_id)
    before = await count_rows(db_session, Question)
    first_ids = {question.id for question in first.questions}

    second = await generation_service.generate(topic.id, principal_id, [sources[0].id])

    assert await count_rows(db_session, Question) == before + second.items_generated
    remaining = await db_session.execute(select(Question.id).where(Question.generation_id == first.generation_id))
    assert set(remaining.scalars().all()) == first_ids
    assert not first_ids & {question.id for question in second.questions}


async def test_generation_items_record_titles_and_difficulty(generation_service, db_session, topic, principal_id, sources):
    result = await generation_service.generate(topic.id, principal_id)

    rows = await db_session.execute(
        select(GenerationItem.item_type, GenerationItem.item_title, GenerationItem.difficulty)
        .where(GenerationItem.generation_id == result.generation_id)
    )
    items = {(item_type, title): difficulty for item_type, title, difficulty in rows.all()}
    assert items[("flashcard", "What is ATP?")] == "easy"
    assert items[("flashcard", "Where does glycolysis occur?")] == "hard"
    assert items[("open-ended", "Explain why cells need ATP.")] == "medium"
    assert items[("summary", "Cellular respiration")] is None


async def test_malformed_response_fails_generation(generation_service, completion_client, store, topic, principal_id,
                                                    sources):
    completion_client.complete.return_value = "Sorry, I cannot help with that."

    with pytest.raises(GenerationError):
        await generation_service.generate(topic.id, principal_id)

    [generation] = await store.list_generations(topic.id, principal_id)
    assert generation.status == "failed"
    assert generation.completed_at is not None
    assert "Failed to parse AI response" in generation.error_message
    assert await store.count_questions(topic.id, principal_id) == 0


async def test_empty_but_valid_response_is_success(generation_service, completion_client, topic, principal_id, sources):
    completion_client.complete.return_value = json.dumps({"flashcards": [], "multipleChoice": []})

    result = await generation_service.generate(topic.id, principal_id)

    assert result.status == "completed"
    assert result.items_generated == 0
    assert result.questions == []


async def test_quota_error_fails_generation(generation_service, completion_client, store, topic, principal_id, sources):
    completion_client.complete.side_effect = QuotaError("quota exceeded")

    with pytest.raises(QuotaError):
        await generation_service.generate(topic.id, principal_id)

    [generation] = await store.list_generations(topic.id, principal_id)
    assert generation.status == "failed"
    assert generation.error_message == "quota exceeded"


async def test_terminal_generation_cannot_change(generation_service, store, topic, principal_id, sources):
    result = await generation_service.generate(topic.id, principal_id)
    [generation] = await store.list_generations(topic.id, principal_id)
    assert generation.is_terminal

    with pytest.raises(GenerationStateError):
        await store.finalize_generation(generation, "failed", error_message="late failure")

    with pytest.raises(GenerationStateError):
        await store.add_generated_items(generation, [Flashcard(front="Q", back="A")], result.source_ids)

    [reloaded] = await store.list_generations(topic.id, principal_id)
    assert reloaded.status == "completed"
    assert reloaded.items_generated == 5


async def test_attribution_must_stay_within_generation(store, topic, principal_id, sources):
    a, b, c = sources
    generation = await store.create_generation(topic.id, principal_id, "selective", [a.id, b.id])
    assert not generation.is_terminal

    with pytest.raises(PersistenceError):
        await store.add_generated_items(generation, [Flashcard(front="Q", back="A")], [a.id, c.id])


async def test_attribution_to_deleted_source_is_rejected(store, topic, principal_id, sources):
    a, b, _ = sources
    generation = await store.create_generation(topic.id, principal_id, "selective", [a.id, b.id])
    await store.delete_source(b.id)

    with pytest.raises(PersistenceError):
        await store.add_generated_items(generation, [Flashcard(front="Q", back="A")], [a.id, b.id])


async def test_generate_from_text(generation_service, store, topic, principal_id):
    result = await generation_service.generate_from_text(
        topic.id, principal_id, "Photosynthesis converts light into chemical energy.", "Photosynthesis"
    )

    assert result.generation_type == "direct-text"
    assert result.source_ids == []
    assert result.items_generated == 5
    assert all(question.source_attribution == [] for question in result.questions)
    assert await store.list_sources(topic.id, principal_id) == []
    assert result.message == "Successfully generated 5 study items!"


async def test_save_question(generation_service, topic, principal_id, sources):
    result = await generation_service.generate(topic.id, principal_id)

    saved = await generation_service.save_question(result.questions[0].id, principal_id)

    assert saved.is_saved
    saved_only = await generation_service.list_questions(topic.id, principal_id, saved_only=True)
    assert [question.id for question in saved_only] == [saved.id]
    assert len(await generation_service.list_questions(topic.id, principal_id)) == 5
