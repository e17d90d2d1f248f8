"""
Repository for paste rows.

View counting, the patch version guard and the deletion claim are single
UPDATE statements, so concurrent callers are serialized by the database
rather than by this process.
"""

from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy import and_, delete, or_, select, update
from sqlalchemy.orm import Session, selectinload

from ..db.db_paste_models import Paste
from ..enums import PasteState
from .base_repository import BaseRepository


class PasteRepository(BaseRepository[Paste]):
    """Data access for the ``pastes`` table."""

    def __init__(self, session: Session):
        super().__init__(session, Paste)

    @staticmethod
    def _live(now: datetime):
        """Filter for pastes that have not expired by ``now``."""
        return or_(Paste.expiry.is_(None), Paste.expiry > now)

    @staticmethod
    def _eligible(now: datetime):
        """Filter for pastes past their expiry or at their view cap."""
        # Reaching max_views is what makes a paste eligible
        return or_(
            Paste.expiry <= now,
            and_(Paste.max_views.is_not(None), Paste.views >= Paste.max_views),
        )

    def get(self, paste_id: int, now: Optional[datetime] = None) -> Optional[Paste]:
        """
        Get a paste with its documents loaded.

        Args:
            paste_id: Paste identifier
            now: When given, pastes whose expiry has passed are treated as missing
        """
        with self._session_operation("get_paste", paste_id, is_read_only=True):
            query = (
                select(Paste)
                .options(selectinload(Paste.documents))
                .where(Paste.id == paste_id)
            )
            if now is not None:
                query = query.where(self._live(now))
            return self.session.execute(query).scalar_one_or_none()

    def get_many(self, paste_ids: Iterable[int], now: datetime) -> List[Paste]:
        """Get live pastes by id, ordered by id. Unknown ids are skipped."""
        paste_ids = list(paste_ids)
        if not paste_ids:
            return []
        with self._session_operation("get_pastes", is_read_only=True):
            query = (
                select(Paste)
                .options(selectinload(Paste.documents))
                .where(Paste.id.in_(paste_ids), self._live(now))
                .order_by(Paste.id)
            )
            return list(self.session.execute(query).scalars().all())

    def insert(self, paste: Paste) -> Paste:
        with self._session_operation("insert_paste", paste.id):
            self.session.add(paste)
        return paste

    def add_view(self, paste_id: int, now: datetime) -> Optional[int]:
        """
        Atomically count one view.

        Returns:
            The new view count, or None if the paste is missing or expired
        """
        with self._session_operation("add_view", paste_id):
            result = self.session.execute(
                update(Paste)
                .where(Paste.id == paste_id, self._live(now))
                .values(views=Paste.views + 1)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                return None
            return self.session.execute(
                select(Paste.views).where(Paste.id == paste_id)
            ).scalar_one()

    def compare_and_bump_version(self, paste_id: int, expected_version: int, **values) -> bool:
        """
        Apply ``values`` and increment the version only if it is still
        ``expected_version`` and no deleter has claimed the paste.

        Returns:
            True if this caller won, False if the row changed, was claimed or disappeared
        """
        with self._session_operation("compare_and_bump_version", paste_id):
            result = self.session.execute(
                update(Paste)
                .where(
                    Paste.id == paste_id,
                    Paste.version == expected_version,
                    Paste.state == PasteState.ACTIVE.value,
                )
                .values(version=Paste.version + 1, **values)
                .execution_options(synchronize_session=False)
            )
            return result.rowcount == 1

    def claim_for_deletion(self, paste_id: int, now: Optional[datetime] = None) -> bool:
        """
        Move a paste from ACTIVE to DELETING.

        Without ``now`` only an ACTIVE paste can be claimed. With ``now`` the
        paste must also still be eligible for expiry at that instant, and a
        paste left in DELETING by an interrupted deletion is taken over. The
        version bump makes any patch that loaded the paste earlier lose its
        check-and-set.

        Returns:
            True if the caller now owns the deletion
        """
        if now is None:
            condition = Paste.state == PasteState.ACTIVE.value
        else:
            condition = or_(
                Paste.state == PasteState.DELETING.value,
                and_(Paste.state == PasteState.ACTIVE.value, self._eligible(now)),
            )

        with self._session_operation("claim_for_deletion", paste_id):
            result = self.session.execute(
                update(Paste)
                .where(Paste.id == paste_id, condition)
                .values(state=PasteState.DELETING.value, version=Paste.version + 1)
                .execution_options(synchronize_session=False)
            )
            return result.rowcount == 1

    def state_of(self, paste_id: int) -> Optional[PasteState]:
        """Current state of a paste, or None if the row is gone."""
        with self._session_operation("paste_state", paste_id, is_read_only=True):
            state = self.session.execute(
                select(Paste.state).where(Paste.id == paste_id)
            ).scalar_one_or_none()
        return PasteState(state) if state is not None else None

    def find_expired(self, now: datetime, limit: int = 100) -> List[int]:
        """Ids of pastes eligible for expiry, plus any whose deletion was interrupted."""
        with self._session_operation("find_expired", is_read_only=True):
            query = (
                select(Paste.id)
                .where(
                    or_(
                        Paste.state == PasteState.DELETING.value,
                        and_(Paste.state == PasteState.ACTIVE.value, self._eligible(now)),
                    )
                )
                .order_by(Paste.id)
                .limit(limit)
            )
            return list(self.session.execute(query).scalars().all())

    def delete(self, paste_id: int) -> bool:
        """
        Delete a paste; tokens and documents go with it by cascade.

        Returns:
            True if a row was removed, False if it was already gone
        """
        with self._session_operation("delete_paste", paste_id):
            result = self.session.execute(
                delete(Paste)
                .where(Paste.id == paste_id)
                .execution_options(synchronize_session=False)
            )
            deleted = result.rowcount == 1

        if deleted:
            self.logger.info("Deleted paste", extra={"paste_id": paste_id})
        return deleted
