from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from studyforge.core.errors import GenerationError, NotFoundError
from studyforge.services.history.reporter import HistoryReporter


@pytest.fixture
def reporter(db_session):
    return HistoryReporter(db_session)


@pytest.fixture
async def sources(ingestion_service, topic, principal_id):
    first = await ingestion_service.ingest_text(topic.id, principal_id, "Meiosis produces four haploid cells.", "Meiosis")
    second = await ingestion_service.ingest_file(
        topic.id, principal_id, "genes.txt", b"Genes are segments of DNA that code for proteins.", "text/plain"
    )
    return [first, second]


async def test_timeline_is_newest_first(reporter, generation_service, topic, principal_id, sources):
    result = await generation_service.generate(topic.id, principal_id)

    timeline = await reporter.topic_history(topic.id, principal_id)

    assert [entry.id for entry in timeline] == [result.generation_id, sources[1].id, sources[0].id]
    assert [entry.entry_type for entry in timeline] == ["generation", "source", "source"]
    generation_entry = timeline[0]
    assert generation_entry.title == "Bulk generation"
    assert generation_entry.status == "completed"
    assert generation_entry.details["items_generated"] == 5
    assert timeline[1].title == "genes.txt"
    assert timeline[1].details["original_name"] == "genes.txt"


async def test_processing_generation_is_reported(reporter, store, topic, principal_id, sources):
    generation = await store.create_generation(topic.id, principal_id, "selective", [sources[0].id])

    timeline = await reporter.topic_history(topic.id, principal_id)
    [record] = await reporter.generation_history(topic.id, principal_id)

    assert timeline[0].id == generation.id
    assert timeline[0].status == "processing"
    assert record.completed_at is None
    assert record.items == []


async def test_source_counts_follow_attribution(reporter, generation_service, topic, principal_id, sources):
    first, second = sources
    await generation_service.generate(topic.id, principal_id)
    await generation_service.generate(topic.id, principal_id, [second.id])

    stats = {entry.id: entry for entry in await reporter.sources_with_stats(topic.id, principal_id)}

    assert stats[first.id].generated_items_count == 5
    assert stats[second.id].generated_items_count == 10
    assert stats[second.id].error is None
    assert stats[second.id].word_count == second.word_count


def fail_count_for(source_id):
    async def count(requested_id):
        if requested_id == source_id:
            raise OperationalError("SELECT count(*)", {}, Exception("database is locked"))
        return 0

    return AsyncMock(side_effect=count)


async def test_source_count_failure_is_reported_per_source(reporter, topic, principal_id, sources):
    # Rolling back expires loaded instances, so keep plain ids
    topic_id = topic.id
    first_id, second_id = [source.id for source in sources]
    reporter.store.count_items_for_source = fail_count_for(first_id)

    with patch.object(reporter.db, "rollback", wraps=reporter.db.rollback) as rollback:
        stats = await reporter.sources_with_stats(topic_id, principal_id)

    rollback.assert_awaited_once()
    assert [entry.id for entry in stats] == [first_id, second_id]
    assert stats[0].generated_items_count is None
    assert stats[0].error.startswith("Could not count generated items")
    assert stats[1].generated_items_count == 0
    assert stats[1].error is None


async def test_generation_history_lists_items_with_attribution(reporter, generation_service, topic, principal_id,
                                                               sources):
    result = await generation_service.generate(topic.id, principal_id, [sources[0].id])

    [record] = await reporter.generation_history(topic.id, principal_id)

    assert record.id == result.generation_id
    assert record.generation_type == "selective"
    assert record.ai_model == "test-model"
    assert record.completed_at >= record.started_at
    assert len(record.items) == 5
    assert all(item.derived_from_sources == [sources[0].id] for item in record.items)
    assert {item.question_id for item in record.items} == {question.id for question in result.questions}


async def test_topic_report_totals(reporter, generation_service, completion_client, topic, principal_id, sources):
    await generation_service.generate(topic.id, principal_id)
    completion_client.complete.return_value = "not json"
    with pytest.raises(GenerationError):
        await generation_service.generate(topic.id, principal_id)

    report = await reporter.topic_report(topic.id, principal_id)

    assert report.summary.total_sources == 2
    assert report.summary.total_generations == 2
    assert report.summary.total_words == sum(source.word_count for source in sources)
    assert report.summary.total_generated_items == 10
    assert {record.status for record in report.generations} == {"completed", "failed"}
    assert len(report.timeline) == 4


async def test_topic_report_for_unknown_topic(reporter, principal_id):
    with pytest.raises(NotFoundError):
        await reporter.topic_report("missing-topic", principal_id)


async def test_topic_report_survives_a_failed_count(reporter, generation_service, topic, principal_id, sources):
    topic_id = topic.id
    first_id, second_id = [source.id for source in sources]
    await generation_service.generate(topic_id, principal_id)
    reporter.store.count_items_for_source = fail_count_for(second_id)

    report = await reporter.topic_report(topic_id, principal_id)

    stats = {entry.id: entry for entry in report.sources}
    assert stats[second_id].generated_items_count is None
    assert stats[first_id].error is None
    assert report.summary.total_sources == 2
    assert [record.status for record in report.generations] == ["completed"]
    assert len(report.generations[0].items) == 5
