"""
Limits policy for proposed pastes.

A pure evaluator over SizeLimitConfig: it touches no store, holds no state
and raises the first violated bound as a typed ValidationRejected. The
coordinator calls it before minting ids or writing any blob.
"""

from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Sequence

from ..config import SizeLimitConfig
from ..constants import Limits
from ..exceptions import (
    DocumentTooLarge,
    DocumentTooSmall,
    DuplicateDocumentName,
    ExpiryOutOfRange,
    NameTooLong,
    NameTooShort,
    PasteTooLarge,
    PasteTooSmall,
    TooFewDocuments,
    TooManyDocuments,
    TypeTooLong,
    UnsupportedDocumentType,
    ValidationRejected,
)
from ..schemas.paste_schemas import DocumentDraft, LimitDefaults, LimitsView
from ..utils.mime_utils import UNSUPPORTED_MIMES, contains_mime


class LimitsPolicy:
    """Validates document sets, expiry requests and view caps against configured bounds."""

    def __init__(self, limits: SizeLimitConfig, unsupported_types: Sequence[str] = tuple(UNSUPPORTED_MIMES)):
        self.limits = limits
        self.unsupported_types = list(unsupported_types)

    def validate_documents(self, documents: Iterable[DocumentDraft]) -> None:
        """
        Check a complete document set, as it would exist after the write.

        Checks run in a fixed order (count, per-document size, total size,
        name length, name uniqueness, then type length and support) and stop
        at the first violation.

        Raises:
            ValidationRejected: The specific subclass for the violated bound
        """
        documents = list(documents)
        limits = self.limits

        count = len(documents)
        if count > limits.maximum_total_document_count:
            raise TooManyDocuments(
                f"A paste may hold at most {limits.maximum_total_document_count} documents",
                field="documents",
                limit=limits.maximum_total_document_count,
                actual=count,
            )
        if count < limits.minimum_total_document_count:
            raise TooFewDocuments(
                f"A paste needs at least {limits.minimum_total_document_count} documents",
                field="documents",
                limit=limits.minimum_total_document_count,
                actual=count,
            )

        for document in documents:
            if document.size > limits.maximum_document_size:
                raise DocumentTooLarge(
                    f"Document '{document.name}' exceeds {limits.maximum_document_size} bytes",
                    field="content",
                    limit=limits.maximum_document_size,
                    actual=document.size,
                    document_name=document.name,
                )
            if document.size < limits.minimum_document_size:
                raise DocumentTooSmall(
                    f"Document '{document.name}' is smaller than {limits.minimum_document_size} bytes",
                    field="content",
                    limit=limits.minimum_document_size,
                    actual=document.size,
                    document_name=document.name,
                )

        total = sum(document.size for document in documents)
        if total > limits.maximum_total_document_size:
            raise PasteTooLarge(
                f"Paste exceeds {limits.maximum_total_document_size} bytes in total",
                field="documents",
                limit=limits.maximum_total_document_size,
                actual=total,
            )
        if total < limits.minimum_total_document_size:
            raise PasteTooSmall(
                f"Paste is smaller than {limits.minimum_total_document_size} bytes in total",
                field="documents",
                limit=limits.minimum_total_document_size,
                actual=total,
            )

        for document in documents:
            length = len(document.name)
            if length < limits.minimum_document_name_size:
                raise NameTooShort(
                    f"Document name '{document.name}' is shorter than "
                    f"{limits.minimum_document_name_size} characters",
                    field="name",
                    limit=limits.minimum_document_name_size,
                    actual=length,
                )
            if length > limits.maximum_document_name_size:
                raise NameTooLong(
                    f"Document name is longer than {limits.maximum_document_name_size} characters",
                    field="name",
                    limit=limits.maximum_document_name_size,
                    actual=length,
                )

        seen = set()
        for document in documents:
            if document.name in seen:
                raise DuplicateDocumentName(
                    f"Document name '{document.name}' is used more than once",
                    field="name",
                    actual=document.name,
                )
            seen.add(document.name)

        for document in documents:
            if len(document.type) > Limits.DOCUMENT_TYPE_LENGTH:
                raise TypeTooLong(
                    f"Document type is longer than {Limits.DOCUMENT_TYPE_LENGTH} characters",
                    field="type",
                    limit=Limits.DOCUMENT_TYPE_LENGTH,
                    actual=len(document.type),
                    document_name=document.name,
                )
            if contains_mime(self.unsupported_types, document.type):
                raise UnsupportedDocumentType(
                    f"Unsupported document type: {document.type}",
                    field="type",
                    limit=self.unsupported_types,
                    actual=document.type,
                )

    def validate_expiry_hours(self, hours: int) -> None:
        """
        Raises:
            ExpiryOutOfRange: If ``hours`` is not positive or falls outside the configured range
        """
        minimum = self.limits.minimum_expiry_hours
        maximum = self.limits.maximum_expiry_hours
        if hours < 1 or (minimum is not None and hours < minimum):
            raise ExpiryOutOfRange(
                f"Expiry of {hours}h is below the minimum of {minimum or 1}h",
                field="expiry_hours",
                limit=minimum or 1,
                actual=hours,
            )
        if maximum is not None and hours > maximum:
            raise ExpiryOutOfRange(
                f"Expiry of {hours}h exceeds the maximum of {maximum}h",
                field="expiry_hours",
                limit=maximum,
                actual=hours,
            )

    def resolve_expiry(self, now: datetime, requested_hours: Optional[int]) -> Optional[datetime]:
        """Validated expiry timestamp for a new paste, falling back to the configured default."""
        hours = requested_hours if requested_hours is not None else self.limits.default_expiry_hours
        if hours is None:
            return None
        self.validate_expiry_hours(hours)
        return now + timedelta(hours=hours)

    def resolve_max_views(self, requested: Optional[int]) -> Optional[int]:
        if requested is not None:
            if requested < 1:
                raise ValidationRejected(
                    "max_views must be at least 1", field="max_views", limit=1, actual=requested
                )
            return requested
        return self.limits.default_maximum_views

    def describe(self) -> LimitsView:
        return LimitsView(
            defaults=LimitDefaults(
                expiry_hours=self.limits.default_expiry_hours,
                maximum_views=self.limits.default_maximum_views,
            ),
            size_limits=self.limits.model_copy(),
        )


def drafts_from(documents) -> List[DocumentDraft]:
    """Project uploads or stored documents onto what the policy checks."""
    return [DocumentDraft(name=d.name, type=d.type, size=d.size) for d in documents]
