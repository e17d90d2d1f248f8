"""Integration tests for the expiry sweeper."""

import time
from unittest.mock import patch

import pytest
from sqlalchemy import func, select

from pastebin_core.config import SweeperConfig
from pastebin_core.constants import OperationStatus
from pastebin_core.db.db_paste_models import Paste
from pastebin_core.exceptions import NotFound, StoreUnavailable
from pastebin_core.processors.expiry_sweeper import ExpirySweeper
from pastebin_core.schemas.paste_schemas import PastePatch

from paste_doubles import make_documents


@pytest.fixture
def sweeper(coordinator):
    sweeper = ExpirySweeper(coordinator, SweeperConfig(interval_seconds=0.05, max_workers=2))
    yield sweeper
    sweeper.stop(timeout=5)


def paste_count(session):
    return session.scalar(select(func.count()).select_from(Paste))


class TestRunCycle:
    def test_view_cap(self, coordinator, sweeper, object_store):
        created = coordinator.create_paste(make_documents("notes.txt"), max_views=3)
        paste_id = created.paste.id

        for expected in (1, 2, 3):
            assert coordinator.get_paste(paste_id).views == expected

        result = sweeper.run_cycle()

        assert result["status"] == OperationStatus.SUCCESS.value
        assert result["deleted"] == 1
        with pytest.raises(NotFound):
            coordinator.get_paste(paste_id)
        assert len(object_store) == 0

    def test_paste_below_cap_survives(self, coordinator, sweeper):
        created = coordinator.create_paste(make_documents("notes.txt"), max_views=3)
        coordinator.get_paste(created.paste.id)

        assert sweeper.run_cycle()["candidates"] == 0
        assert coordinator.get_paste(created.paste.id).views == 2

    def test_time_expiry(self, coordinator, sweeper, clock, db_session):
        created = coordinator.create_paste(make_documents("notes.txt"), expiry_hours=1)
        keep = coordinator.create_paste(make_documents("keep.txt"))

        clock.advance(minutes=59)
        assert coordinator.get_paste(created.paste.id).id == created.paste.id
        assert sweeper.run_cycle()["deleted"] == 0

        clock.advance(minutes=2)
        result = sweeper.run_cycle()

        assert result["candidates"] == 1
        assert result["deleted"] == 1
        assert paste_count(db_session) == 1
        assert coordinator.get_paste(keep.paste.id).id == keep.paste.id

    def test_already_deleted_is_not_a_failure(self, coordinator, sweeper):
        created = coordinator.create_paste(make_documents("notes.txt"), max_views=1)
        coordinator.get_paste(created.paste.id)

        with patch.object(coordinator, "find_expired", return_value=[created.paste.id, 987654321]):
            result = sweeper.run_cycle()

        assert result["status"] == OperationStatus.SUCCESS.value
        assert result["deleted"] == 1
        assert result["already_gone"] == 1
        assert result["failed"] == 0

    def test_paste_revived_after_listing_is_skipped(self, coordinator, sweeper, object_store):
        created = coordinator.create_paste(make_documents("notes.txt"), max_views=1)
        coordinator.get_paste(created.paste.id)
        listed = coordinator.find_expired()
        coordinator.patch_paste(created.paste.id, created.token, PastePatch(max_views=None))

        with patch.object(coordinator, "find_expired", return_value=listed):
            result = sweeper.run_cycle()

        assert result["status"] == OperationStatus.SUCCESS.value
        assert result["deleted"] == 0
        assert result["skipped"] == 1
        assert coordinator.get_paste(created.paste.id).views == 2
        assert len(object_store) == 1

    def test_failed_deletion_is_reported(self, coordinator, sweeper):
        first = coordinator.create_paste(make_documents("one.txt"), max_views=1)
        second = coordinator.create_paste(make_documents("two.txt"), max_views=1)
        coordinator.get_paste(first.paste.id)
        coordinator.get_paste(second.paste.id)
        original = coordinator.expire_paste

        def flaky_expire(paste_id):
            if paste_id == first.paste.id:
                raise StoreUnavailable("database went away", service_name="database")
            return original(paste_id)

        with patch.object(coordinator, "expire_paste", side_effect=flaky_expire):
            result = sweeper.run_cycle()

        assert result["status"] == OperationStatus.PARTIAL.value
        assert result["deleted"] == 1
        assert result["failed_ids"] == [first.paste.id]

        # Still eligible on the next cycle
        assert sweeper.run_cycle()["deleted"] == 1

    def test_lookup_failure(self, coordinator, sweeper):
        with patch.object(coordinator, "find_expired", side_effect=RuntimeError("no database")):
            result = sweeper.run_cycle()

        assert result["status"] == OperationStatus.ERROR.value
        assert result["error_type"] == "RuntimeError"

    def test_batch_size(self, coordinator):
        sweeper = ExpirySweeper(coordinator, SweeperConfig(batch_size=2))
        for name in ("one.txt", "two.txt", "three.txt"):
            created = coordinator.create_paste(make_documents(name), max_views=1)
            coordinator.get_paste(created.paste.id)

        assert sweeper.run_cycle()["deleted"] == 2
        assert sweeper.run_cycle()["deleted"] == 1


class TestSweeperLoop:
    def test_start_and_stop(self, coordinator, sweeper, db_session):
        created = coordinator.create_paste(make_documents("notes.txt"), max_views=1)
        coordinator.get_paste(created.paste.id)

        sweeper.start()
        assert sweeper.running

        for _ in range(100):
            if paste_count(db_session) == 0:
                break
            time.sleep(0.05)
        assert paste_count(db_session) == 0

        assert sweeper.stop(timeout=5) is True
        assert not sweeper.running

    def test_stop_without_start(self, sweeper):
        assert sweeper.stop() is True

    def test_start_twice_keeps_one_thread(self, sweeper):
        sweeper.start()
        thread = sweeper._thread
        sweeper.start()

        assert sweeper._thread is thread

    def test_stop_after_lookup_deletes_nothing(self, coordinator, sweeper, db_session):
        created = coordinator.create_paste(make_documents("notes.txt"), max_views=1)
        coordinator.get_paste(created.paste.id)
        find_expired = coordinator.find_expired

        def find_then_stop(limit):
            found = find_expired(limit=limit)
            sweeper.stop(timeout=1)
            return found

        with patch.object(coordinator, "find_expired", side_effect=find_then_stop):
            result = sweeper.run_cycle()

        assert result["status"] == OperationStatus.CANCELLED.value
        assert result["candidates"] == 1
        assert result["deleted"] == 0
        assert paste_count(db_session) == 1
