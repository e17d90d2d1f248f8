"""Repository for document metadata rows."""

from typing import Iterable, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from ..db.db_paste_models import Document, Paste
from .base_repository import BaseRepository


class DocumentRepository(BaseRepository[Document]):
    """Data access for the ``documents`` table."""

    def __init__(self, session: Session):
        super().__init__(session, Document)

    def get(self, paste_id: int, document_id: int, now=None) -> Optional[Document]:
        """Get a document of a paste; with ``now``, documents of expired pastes read as missing."""
        with self._session_operation("get_document", document_id, is_read_only=True):
            query = (
                select(Document)
                .join(Paste, Paste.id == Document.paste_id)
                .where(Document.id == document_id, Document.paste_id == paste_id)
            )
            if now is not None:
                query = query.where((Paste.expiry.is_(None)) | (Paste.expiry > now))
            return self.session.execute(query).scalar_one_or_none()

    def list_for_paste(self, paste_id: int) -> List[Document]:
        with self._session_operation("list_documents", paste_id, is_read_only=True):
            query = select(Document).where(Document.paste_id == paste_id).order_by(Document.id)
            return list(self.session.execute(query).scalars().all())

    def insert_many(self, documents: Iterable[Document]) -> None:
        with self._session_operation("insert_documents"):
            self.session.add_all(list(documents))

    def rewrite_many(self, paste_id: int, documents: Iterable[Document]) -> None:
        """
        Replace rows of a paste, keeping their ids.

        Every old row is removed before any new row is written, so names can
        move between documents of one paste (a swap) without a transient
        duplicate under the per-paste unique name constraint.
        """
        documents = list(documents)
        if not documents:
            return
        with self._session_operation("rewrite_documents", paste_id):
            self.session.execute(
                delete(Document)
                .where(Document.paste_id == paste_id, Document.id.in_([d.id for d in documents]))
                .execution_options(synchronize_session="fetch")
            )
            self.session.add_all(documents)

    def delete_many(self, paste_id: int, document_ids: Iterable[int]) -> int:
        document_ids = list(document_ids)
        if not document_ids:
            return 0
        with self._session_operation("delete_documents", paste_id):
            result = self.session.execute(
                delete(Document)
                .where(Document.paste_id == paste_id, Document.id.in_(document_ids))
                .execution_options(synchronize_session=False)
            )
            return result.rowcount
