"""
Storage coordinator for pastes and their documents.

Paste metadata lives in the relational store and document bodies in the
object store. No transaction spans both, so every mutation follows a fixed
order:

* create and patch write blobs first and commit metadata last. A failed
  blob write leaves no row behind; a failed metadata commit removes the
  blobs it just wrote.
* delete first claims the row by moving it to DELETING, then removes blobs
  and finally rows. Rows are the source of truth for existence, so a blob
  failure is logged and the delete still happens.

Concurrent patches on one paste are ordered by a version column: the
metadata commit only applies if the version it read is still current and
the paste is still ACTIVE. The deletion claim bumps the same version.
"""

from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Iterable, List, Optional, Sequence

from sqlalchemy.orm import Session

from ..context.operation_context import operation
from ..context.service_decorators import handle_repository_errors
from ..db.db_base import utc_now
from ..db.db_paste_models import Document, Paste
from ..enums import PasteState
from ..exceptions import (
    BaseError,
    Conflict,
    MetadataCommitFailed,
    NotFound,
    StoreUnavailable,
    Unauthorized,
    UnknownDocument,
    ValidationRejected,
)
from ..processing.limits_policy import LimitsPolicy, drafts_from
from ..repositories.document_repository import DocumentRepository
from ..repositories.paste_repository import PasteRepository
from ..repositories.paste_token_repository import PasteTokenRepository
from ..schemas.paste_schemas import (
    CreatedPaste,
    DocumentDraft,
    DocumentUpload,
    DocumentView,
    PastePatch,
    PasteView,
)
from ..storage.object_store import ObjectStore, document_key
from ..utils.id_utils import IdGenerator, next_token
from .base_service import BaseService
from .blob_transaction import BlobTransaction, PendingBlob


@dataclass
class _PlannedDocument:
    """A document as it will exist after a patch commits."""

    id: int
    name: str
    type: str
    size: int
    new_content: Optional[bytes] = None


@dataclass
class _PatchPlan:
    kept: List[_PlannedDocument] = field(default_factory=list)
    # Kept documents whose name or type changes; their blobs stay put
    rewritten: List[_PlannedDocument] = field(default_factory=list)
    added: List[_PlannedDocument] = field(default_factory=list)
    dropped_ids: List[int] = field(default_factory=list)

    @property
    def resulting(self) -> List[_PlannedDocument]:
        return self.kept + self.added


class StorageCoordinator(BaseService):
    """
    Create, read, patch and delete pastes across both stores.

    Args:
        session_factory: Creates relational sessions
        object_store: Blob backend for document contents
        limits_policy: Validates every proposed document set
        id_generator: Shared process-wide id source
        clock: Returns the current aware UTC datetime
        store_timeout: Seconds to wait on any single object store call
        max_blob_workers: Concurrent blob operations per call
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        object_store: ObjectStore,
        limits_policy: LimitsPolicy,
        id_generator: IdGenerator,
        clock: Callable[[], datetime] = utc_now,
        store_timeout: float = 30.0,
        max_blob_workers: int = 8,
    ):
        super().__init__(session_factory)
        self.object_store = object_store
        self.limits_policy = limits_policy
        self.id_generator = id_generator
        self.clock = clock
        self.store_timeout = store_timeout
        self.max_blob_workers = max_blob_workers
        self._executor = ThreadPoolExecutor(max_workers=max_blob_workers, thread_name_prefix="blob-io")

    def close(self) -> None:
        self._executor.shutdown(wait=True, cancel_futures=True)

    # ==================== CREATE ====================

    @operation()
    def create_paste(
        self,
        documents: Sequence[DocumentUpload],
        expiry_hours: Optional[int] = None,
        max_views: Optional[int] = None,
    ) -> CreatedPaste:
        """
        Store a new paste with its documents and token.

        Raises:
            ValidationRejected: A limit is violated; nothing was written
            EntropyUnavailable: No id or token could be minted; nothing was written
            ObjectStoreWriteFailed: A blob write failed; written blobs were removed
            MetadataCommitFailed: The relational commit failed; written blobs were removed
        """
        now = self.clock()
        self.limits_policy.validate_documents(drafts_from(documents))
        expiry = self.limits_policy.resolve_expiry(now, expiry_hours)
        max_views = self.limits_policy.resolve_max_views(max_views)

        paste_id = self.id_generator.next_id()
        token = next_token()
        planned = [
            _PlannedDocument(self.id_generator.next_id(), d.name, d.type, d.size, d.content)
            for d in documents
        ]

        txn = self._blob_transaction()
        sizes = txn.write_all(self._pending_blobs(paste_id, planned))

        txn.begin_commit()
        try:
            with self._session_scope("create_paste") as session:
                paste = PasteRepository(session).insert(
                    Paste(id=paste_id, creation=now, expiry=expiry, views=0, max_views=max_views, version=1)
                )
                PasteTokenRepository(session).insert(paste_id, token)
                rows = [
                    Document(
                        id=d.id,
                        paste_id=paste_id,
                        type=d.type,
                        name=d.name,
                        size=sizes[document_key(paste_id, d.id)],
                    )
                    for d in planned
                ]
                DocumentRepository(session).insert_many(rows)
                view = self._paste_view(paste, rows)
        except Exception as e:
            txn.compensate()
            raise MetadataCommitFailed(cause=e, paste_id=paste_id) from e
        txn.claim()

        self.logger.info(
            "Created paste",
            extra={"paste_id": paste_id, "documents": len(planned), "expiry": expiry, "max_views": max_views},
        )
        return CreatedPaste(paste=view, token=token)

    # ==================== READ ====================

    @operation()
    @handle_repository_errors("get_paste")
    def get_paste(self, paste_id: int, include_content: bool = False) -> PasteView:
        """
        Fetch a paste and count one view.

        The view that reaches ``max_views`` is still served; the sweeper
        removes the paste on its next cycle.

        Raises:
            NotFound: Unknown or expired paste
        """
        now = self.clock()
        with self._session_scope("get_paste") as session:
            repository = PasteRepository(session)
            if repository.add_view(paste_id, now) is None:
                raise NotFound(f"Paste not found: {paste_id}", paste_id=paste_id)
            paste = repository.get(paste_id)
            if paste is None:
                raise NotFound(f"Paste not found: {paste_id}", paste_id=paste_id)
            view = self._paste_view(paste, paste.documents)

        if include_content:
            self._attach_contents(view)
        return view

    @operation()
    @handle_repository_errors("get_pastes")
    def get_pastes(self, paste_ids: Iterable[int], include_content: bool = False) -> List[PasteView]:
        """Fetch several pastes without counting views. Unknown and expired ids are skipped."""
        now = self.clock()
        with self._session_scope("get_pastes") as session:
            views = [
                self._paste_view(paste, paste.documents)
                for paste in PasteRepository(session).get_many(paste_ids, now)
            ]

        if include_content:
            for view in views:
                self._attach_contents(view)
        return views

    @operation()
    @handle_repository_errors("get_document")
    def get_document(self, paste_id: int, document_id: int) -> DocumentView:
        """
        Fetch one document with its content.

        Raises:
            NotFound: Unknown document, or its paste is expired or gone
        """
        with self._session_scope("get_document") as session:
            document = DocumentRepository(session).get(paste_id, document_id, now=self.clock())
            if document is None:
                raise NotFound(
                    f"Document not found: {paste_id}/{document_id}",
                    paste_id=paste_id,
                    document_id=document_id,
                )
            view = DocumentView.model_validate(document)

        view.content = self._bounded(self.object_store.get, document_key(paste_id, document_id))
        return view

    # ==================== PATCH ====================

    @operation()
    def patch_paste(self, paste_id: int, token: str, changes: PastePatch) -> PasteView:
        """
        Apply document and policy changes to a paste in one commit.

        Content replacement writes a new blob under a new document id; the
        previous blob is removed only after the commit succeeds. Documents the
        patch does not touch are never written or deleted.

        Raises:
            Unauthorized: Token missing or not bound to the paste
            NotFound: Unknown, expired or concurrently deleted paste
            ValidationRejected: The resulting paste would violate a limit
            Conflict: Another patch committed first; retry against the new state
            ObjectStoreWriteFailed / MetadataCommitFailed: Store failure; prior state intact
        """
        if not token:
            raise Unauthorized(paste_id=paste_id)
        if changes.is_empty():
            raise ValidationRejected("Patch contains no changes", field="patch")

        now = self.clock()
        paste, current = self._load_for_update(paste_id, token, now)

        plan = self._plan_patch(paste_id, current, changes)
        if changes.changes_documents:
            self.limits_policy.validate_documents(
                DocumentDraft(name=d.name, type=d.type, size=d.size) for d in plan.resulting
            )

        field_updates = {"edited": now}
        if changes.sets_expiry:
            field_updates["expiry"] = self._patched_expiry(now, changes.expiry_hours)
        if changes.sets_max_views:
            field_updates["max_views"] = changes.max_views

        new_documents = [d for d in plan.resulting if d.new_content is not None]
        txn = self._blob_transaction()
        sizes = txn.write_all(self._pending_blobs(paste_id, new_documents))

        txn.begin_commit()
        try:
            with self._session_scope("patch_paste") as session:
                pastes = PasteRepository(session)
                if not pastes.compare_and_bump_version(paste_id, paste.version, **field_updates):
                    if pastes.state_of(paste_id) is PasteState.ACTIVE:
                        raise Conflict(paste_id=paste_id, expected_version=paste.version)
                    raise NotFound(f"Paste not found: {paste_id}", paste_id=paste_id)

                documents = DocumentRepository(session)
                # Names are released before they are taken: dropped rows first,
                # then renamed rows, then new rows
                documents.delete_many(paste_id, plan.dropped_ids)
                documents.rewrite_many(
                    paste_id,
                    (
                        Document(id=d.id, paste_id=paste_id, type=d.type, name=d.name, size=d.size)
                        for d in plan.rewritten
                    ),
                )
                documents.insert_many(
                    Document(
                        id=d.id,
                        paste_id=paste_id,
                        type=d.type,
                        name=d.name,
                        size=sizes[document_key(paste_id, d.id)],
                    )
                    for d in new_documents
                )

                view = self._paste_view(pastes.get(paste_id), documents.list_for_paste(paste_id))
        except (Conflict, NotFound):
            txn.compensate()
            raise
        except Exception as e:
            txn.compensate()
            raise MetadataCommitFailed(cause=e, paste_id=paste_id) from e
        txn.claim()

        self._delete_blobs([document_key(paste_id, document_id) for document_id in plan.dropped_ids])
        self.logger.info(
            "Patched paste",
            extra={
                "paste_id": paste_id,
                "version": paste.version + 1,
                "added": len(plan.added),
                "written": len(new_documents),
                "dropped": len(plan.dropped_ids),
            },
        )
        return view

    @handle_repository_errors("load_paste")
    def _load_for_update(self, paste_id: int, token: str, now: datetime):
        with self._session_scope("load_paste") as session:
            tokens = PasteTokenRepository(session)
            if tokens.get_token(paste_id) is None:
                raise NotFound(f"Paste not found: {paste_id}", paste_id=paste_id)
            if not tokens.matches(paste_id, token):
                raise Unauthorized(paste_id=paste_id)

            paste = PasteRepository(session).get(paste_id, now)
            if paste is None or paste.state != PasteState.ACTIVE.value:
                raise NotFound(f"Paste not found: {paste_id}", paste_id=paste_id)
            current = [
                _PlannedDocument(d.id, d.name, d.type, d.size) for d in paste.documents
            ]
        return paste, current

    def _plan_patch(
        self, paste_id: int, current: List[_PlannedDocument], changes: PastePatch
    ) -> _PatchPlan:
        by_id = {d.id: d for d in current}
        plan = _PatchPlan()

        removed = set()
        for document_id in changes.remove:
            if document_id not in by_id:
                raise UnknownDocument(
                    f"Paste {paste_id} has no document {document_id}",
                    field="remove",
                    actual=document_id,
                )
            removed.add(document_id)

        replacements = {}
        for replacement in changes.replace:
            if replacement.document_id not in by_id or replacement.document_id in removed:
                raise UnknownDocument(
                    f"Paste {paste_id} has no document {replacement.document_id}",
                    field="replace",
                    actual=replacement.document_id,
                )
            replacements[replacement.document_id] = replacement

        for document in current:
            if document.id in removed:
                plan.dropped_ids.append(document.id)
                continue

            replacement = replacements.get(document.id)
            if replacement is None:
                plan.kept.append(document)
                continue

            name = replacement.name if replacement.name is not None else document.name
            type_ = replacement.type if replacement.type is not None else document.type
            if replacement.content is not None:
                plan.dropped_ids.append(document.id)
                plan.kept.append(
                    _PlannedDocument(
                        self.id_generator.next_id(), name, type_, len(replacement.content), replacement.content
                    )
                )
            else:
                kept = _PlannedDocument(document.id, name, type_, document.size)
                plan.kept.append(kept)
                if (name, type_) != (document.name, document.type):
                    plan.rewritten.append(kept)

        for upload in changes.add:
            plan.added.append(
                _PlannedDocument(self.id_generator.next_id(), upload.name, upload.type, upload.size, upload.content)
            )
        return plan

    def _patched_expiry(self, now: datetime, hours: Optional[int]) -> Optional[datetime]:
        """New expiry counted from the patch time; None clears it."""
        if hours is None:
            return None
        self.limits_policy.validate_expiry_hours(hours)
        return now + timedelta(hours=hours)

    # ==================== DELETE ====================

    @operation()
    @handle_repository_errors("delete_paste")
    def delete_paste(self, paste_id: int, token: str) -> None:
        """
        Delete a paste on behalf of its owner.

        Raises:
            Unauthorized: Token missing or not bound to the paste
            NotFound: Unknown or already deleted paste
        """
        if not token:
            raise Unauthorized(paste_id=paste_id)

        with self._session_scope("authorize_delete") as session:
            tokens = PasteTokenRepository(session)
            if tokens.get_token(paste_id) is None:
                raise NotFound(f"Paste not found: {paste_id}", paste_id=paste_id)
            if not tokens.matches(paste_id, token):
                raise Unauthorized(paste_id=paste_id)

        self._delete(paste_id)

    @operation()
    @handle_repository_errors("expire_paste")
    def expire_paste(self, paste_id: int) -> bool:
        """
        Delete a paste without a token. Only the expiry sweeper calls this.

        Eligibility is checked again at claim time, so a paste a patch revived
        after it was listed is left alone.

        Returns:
            True if the paste was deleted, False if it is no longer eligible

        Raises:
            NotFound: The paste is already gone or another deleter owns it
        """
        return self._delete(paste_id, now=self.clock())

    @handle_repository_errors("find_expired")
    def find_expired(self, limit: int = 100) -> List[int]:
        """Ids of pastes past their expiry or view cap, or left mid-deletion, oldest first."""
        with self._session_scope("find_expired") as session:
            return PasteRepository(session).find_expired(self.clock(), limit=limit)

    def _delete(self, paste_id: int, now: Optional[datetime] = None) -> bool:
        with self._session_scope("claim_paste") as session:
            pastes = PasteRepository(session)
            if not pastes.claim_for_deletion(paste_id, now):
                # Another deleter owns it, or the sweeper's paste is no longer eligible
                if now is None or pastes.state_of(paste_id) is None:
                    raise NotFound(f"Paste not found: {paste_id}", paste_id=paste_id)
                self.logger.info("Paste no longer eligible for expiry", extra={"paste_id": paste_id})
                return False
            document_ids = [d.id for d in DocumentRepository(session).list_for_paste(paste_id)]

        state = PasteState.DELETING
        self.logger.info(
            "Deleting paste",
            extra={"paste_id": paste_id, "state": state.value, "documents": len(document_ids)},
        )
        failed = self._delete_blobs([document_key(paste_id, d) for d in document_ids])

        with self._session_scope("delete_paste_rows") as session:
            if not PasteRepository(session).delete(paste_id):
                raise NotFound(f"Paste not found: {paste_id}", paste_id=paste_id)
        state = PasteState.GONE

        self.logger.info(
            "Paste deleted",
            extra={"paste_id": paste_id, "state": state.value, "orphaned_blobs": len(failed)},
        )
        return True

    # ==================== HELPERS ====================

    def _blob_transaction(self) -> BlobTransaction:
        return BlobTransaction(self.object_store, timeout=self.store_timeout, max_workers=self.max_blob_workers)

    @staticmethod
    def _pending_blobs(paste_id: int, documents: Iterable[_PlannedDocument]) -> List[PendingBlob]:
        return [
            PendingBlob(document_key(paste_id, d.id), d.new_content, d.type)
            for d in documents
            if d.new_content is not None
        ]

    def _bounded(self, func, *args):
        """Run one object store call with the configured timeout."""
        future = self._executor.submit(func, *args)
        try:
            return future.result(timeout=self.store_timeout)
        except FutureTimeout as e:
            future.cancel()
            raise StoreUnavailable(
                f"Object store call timed out after {self.store_timeout}s",
                service_name="object_store",
                cause=e,
                operation=getattr(func, "__name__", "call"),
            ) from e
        except BaseError:
            raise
        except Exception as e:
            raise StoreUnavailable(
                f"Object store call failed: {e}",
                service_name="object_store",
                cause=e,
                operation=getattr(func, "__name__", "call"),
            ) from e

    def _delete_blobs(self, keys: List[str]) -> List[str]:
        """Best-effort blob removal. Returns the keys that could not be deleted."""
        failed = []
        for key in keys:
            try:
                self._bounded(self.object_store.delete, key)
            except BaseError as e:
                failed.append(key)
                self.logger.warning(
                    "Blob delete failed, left for cleanup",
                    extra={"key": key, "error_code": e.error_code.value, "error_id": e.error_id},
                )
        return failed

    def _attach_contents(self, view: PasteView) -> None:
        for document in view.documents:
            document.content = self._bounded(self.object_store.get, document_key(view.id, document.id))

    @staticmethod
    def _paste_view(paste: Paste, documents: Iterable[Document]) -> PasteView:
        return PasteView(
            id=paste.id,
            creation=paste.creation,
            edited=paste.edited,
            expiry=paste.expiry,
            views=paste.views,
            max_views=paste.max_views,
            documents=[DocumentView.model_validate(d) for d in documents],
        )
