import pytest
from unittest.mock import AsyncMock, patch
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from models.content_submission import ContentSubmission
from services.errors import LedgerIntegrityError, LedgerWriteError
from services.pet import create_pet
from services.scoring import NEUTRAL_HEALTH_SCORE
from services.submissions import (
    calculate_average_score,
    get_submission_history,
    get_submission_stats,
    record_submission,
)
from tests.conftest import OTHER_USER_ID, TEST_USER_ID


async def _record(session, pet_id, score, *, user_id=TEST_USER_ID, url=None):
    return await record_submission(
        user_id,
        session,
        pet_id=pet_id,
        url=url or f"https://news.example.com/{score}",
        credibility_score=score,
        quality_category="good" if score >= 60 else "poor",
        is_good_content=score >= 50,
    )


@pytest.mark.asyncio
async def test_empty_ledger_average_matches_new_pet_health(session_maker):
    async with session_maker() as session:
        average = await calculate_average_score(TEST_USER_ID, session)
        creation = await create_pet(TEST_USER_ID, session)

    assert average == NEUTRAL_HEALTH_SCORE == 50
    assert creation.pet.health_score == average


@pytest.mark.asyncio
async def test_average_is_recomputed_over_all_rows_per_user(session_maker):
    async with session_maker() as session:
        pet = (await create_pet(TEST_USER_ID, session)).pet
        other_pet = (await create_pet(OTHER_USER_ID, session)).pet
        await _record(session, pet.id, 80)
        await _record(session, pet.id, 40)
        await _record(session, other_pet.id, 0, user_id=OTHER_USER_ID)
        await session.commit()

        assert await calculate_average_score(TEST_USER_ID, session) == 60
        assert await calculate_average_score(OTHER_USER_ID, session) == 0


@pytest.mark.asyncio
async def test_stats_without_submissions_are_zero(session_maker):
    async with session_maker() as session:
        stats = await get_submission_stats(TEST_USER_ID, session)
    assert stats == {"total_checks": 0, "good_content_count": 0, "accuracy_rate": 0}


@pytest.mark.asyncio
async def test_stats_count_good_content_and_accuracy(session_maker):
    async with session_maker() as session:
        pet = (await create_pet(TEST_USER_ID, session)).pet
        for score in (90, 50, 49, 10):
            await _record(session, pet.id, score)
        await session.commit()
        stats = await get_submission_stats(TEST_USER_ID, session)

    assert stats["total_checks"] == 4
    assert stats["good_content_count"] == 2
    assert stats["accuracy_rate"] == pytest.approx(50.0)


@pytest.mark.asyncio
@pytest.mark.parametrize("score", [-0.1, 100.5, float("nan")])
async def test_out_of_range_scores_are_refused(session_maker, score):
    async with session_maker() as session:
        pet = (await create_pet(TEST_USER_ID, session)).pet
        with pytest.raises(LedgerIntegrityError) as exc_info:
            await _record(session, pet.id, score)
        count = await session.execute(select(func.count(ContentSubmission.id)))

    assert exc_info.value.step == "ledger_write"
    assert count.scalar() == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("score", ["high", None, True, object()])
async def test_non_numeric_scores_are_refused(session_maker, score):
    async with session_maker() as session:
        pet = (await create_pet(TEST_USER_ID, session)).pet
        with pytest.raises(LedgerIntegrityError) as exc_info:
            await record_submission(
                TEST_USER_ID,
                session,
                pet_id=pet.id,
                url="https://example.com",
                credibility_score=score,
                quality_category="good",
                is_good_content=True,
            )
        count = await session.execute(select(func.count(ContentSubmission.id)))

    assert "is not a number" in str(exc_info.value)
    assert exc_info.value.persisted is False
    assert count.scalar() == 0


@pytest.mark.asyncio
async def test_unknown_category_is_refused(session_maker):
    async with session_maker() as session:
        pet = (await create_pet(TEST_USER_ID, session)).pet
        with pytest.raises(LedgerIntegrityError):
            await record_submission(
                TEST_USER_ID,
                session,
                pet_id=pet.id,
                url="https://example.com",
                credibility_score=70,
                quality_category="great",
                is_good_content=True,
            )


@pytest.mark.asyncio
async def test_storage_failure_is_surfaced_as_ledger_write_error(session_maker):
    async with session_maker() as session:
        pet = (await create_pet(TEST_USER_ID, session)).pet
        failing_flush = AsyncMock(side_effect=OperationalError("INSERT INTO content_submissions", {}, Exception("disk full")))
        with patch.object(session, "flush", failing_flush):
            with pytest.raises(LedgerWriteError) as exc_info:
                await _record(session, pet.id, 75)

    assert "Failed to create submission" in str(exc_info.value)
    assert exc_info.value.persisted is False


@pytest.mark.asyncio
async def test_history_is_newest_first_and_limited(session_maker):
    async with session_maker() as session:
        pet = (await create_pet(TEST_USER_ID, session)).pet
        first = await _record(session, pet.id, 10, url="https://example.com/first")
        second = await _record(session, pet.id, 20, url="https://example.com/second")
        third = await _record(session, pet.id, 30, url="https://example.com/third")
        await session.commit()

        history = await get_submission_history(TEST_USER_ID, session)
        limited = await get_submission_history(TEST_USER_ID, session, limit=2)

    assert [entry.id for entry in history] == [third.id, second.id, first.id]
    assert [entry.id for entry in limited] == [third.id, second.id]
