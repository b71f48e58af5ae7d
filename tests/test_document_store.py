"""Tests for the SQL document store."""

from datetime import date

import pytest

from cardtally.errors import DocumentNotFoundError, ValidationError, VersionConflictError
from cardtally.services.periods import DailyPeriod, PeriodParams, ReportKind
from cardtally.services.report_aggregator import ReportAggregator


async def test_get_missing(sql_store):
    assert await sql_store.get("reports/daily/2025-04/06") is None


async def test_unconditional_save_bumps_version(sql_store):
    assert await sql_store.save("a/b", {"x": 1}) == 1
    assert await sql_store.save("a/b", {"y": 2}) == 2

    document = await sql_store.get("a/b")
    assert document.data == {"y": 2}
    assert document.version == 2


async def test_create_only_if_absent(sql_store):
    assert await sql_store.save("a/b", {"x": 1}, expected_version=0) == 1
    with pytest.raises(VersionConflictError):
        await sql_store.save("a/b", {"x": 2}, expected_version=0)
    assert (await sql_store.get("a/b")).data == {"x": 1}


async def test_compare_and_set(sql_store):
    await sql_store.save("a/b", {"x": 1}, expected_version=0)

    assert await sql_store.save("a/b", {"x": 2}, expected_version=1) == 2
    with pytest.raises(VersionConflictError):
        await sql_store.save("a/b", {"x": 3}, expected_version=1)
    assert (await sql_store.get("a/b")).data == {"x": 2}


async def test_update_merges(sql_store):
    await sql_store.save("a/b", {"x": 1, "y": 1})

    assert await sql_store.update("a/b", {"y": 2, "z": 3}) == 2
    assert (await sql_store.get("a/b")).data == {"x": 1, "y": 2, "z": 3}


async def test_update_with_stale_version(sql_store):
    await sql_store.save("a/b", {"x": 1})
    await sql_store.update("a/b", {"x": 2})

    with pytest.raises(VersionConflictError) as exc_info:
        await sql_store.update("a/b", {"x": 3}, expected_version=1)
    assert exc_info.value.actual_version == 2


async def test_update_missing(sql_store):
    with pytest.raises(DocumentNotFoundError):
        await sql_store.update("a/b", {"x": 1})


async def test_paths_are_normalized(sql_store):
    await sql_store.save("/a/b/", {"x": 1})

    assert sql_store.get_ref("/a/b/") == "a/b"
    assert (await sql_store.get("a/b")).data == {"x": 1}


@pytest.mark.parametrize("path", ["", "/", "a//b"])
async def test_invalid_paths(sql_store, path):
    with pytest.raises(ValidationError):
        await sql_store.get(path)


async def test_aggregator_on_sql_store(sql_store):
    aggregator = ReportAggregator(ReportKind.DAILY, sql_store)
    params = PeriodParams.from_date(date(2025, 4, 6))

    await aggregator.process_report("a", 1000, params)
    await aggregator.process_report("b", 500, params)
    await aggregator.update_for_deletion("a", params, -1000)

    aggregate = await aggregator.get(DailyPeriod(2025, 4, 6))
    assert aggregate.total_amount == 500
    assert aggregate.total_count == 1
    assert aggregate.contributing_record_refs == ["a", "b"]
    assert aggregate.version == 3


async def test_list_prefix_returns_documents_below_prefix(sql_store):
    await sql_store.save("details/2025/04/term2/07/2", {"amount": 2})
    await sql_store.save("details/2025/04/term2/06/1", {"amount": 1})
    await sql_store.save("details/2025/041/term1/01/3", {"amount": 3})
    await sql_store.save("details/2025/05/term1/01/4", {"amount": 4})
    await sql_store.save("details/2025/04", {"amount": 0})

    documents = await sql_store.list_prefix("/details/2025/04/")

    assert [d.path for d in documents] == ["details/2025/04/term2/06/1", "details/2025/04/term2/07/2"]
    assert documents[0].data == {"amount": 1}
    assert documents[0].version == 1


async def test_list_prefix_escapes_wildcards(sql_store):
    await sql_store.save("a_b/1", {"x": 1})
    await sql_store.save("axb/2", {"x": 2})
    await sql_store.save("a%/3", {"x": 3})

    assert [d.path for d in await sql_store.list_prefix("a_b")] == ["a_b/1"]
    assert await sql_store.list_prefix("a%b") == []


async def test_list_prefix_empty(sql_store):
    assert await sql_store.list_prefix("details/2025/04") == []
