"""Repository for paste bearer tokens."""

import secrets
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..db.db_paste_models import PasteToken
from .base_repository import BaseRepository


class PasteTokenRepository(BaseRepository[PasteToken]):
    """Data access for the ``paste_tokens`` table."""

    def __init__(self, session: Session):
        super().__init__(session, PasteToken)

    def insert(self, paste_id: int, token: str) -> PasteToken:
        paste_token = PasteToken(paste_id=paste_id, token=token)
        with self._session_operation("insert_token", paste_id):
            self.session.add(paste_token)
        return paste_token

    def get_token(self, paste_id: int) -> Optional[str]:
        with self._session_operation("get_token", paste_id, is_read_only=True):
            return self.session.execute(
                select(PasteToken.token).where(PasteToken.paste_id == paste_id)
            ).scalar_one_or_none()

    def matches(self, paste_id: int, presented: str) -> bool:
        """Check a presented token against the one bound to the paste in constant time."""
        stored = self.get_token(paste_id)
        if stored is None:
            return False
        return secrets.compare_digest(stored.encode(), presented.encode())
