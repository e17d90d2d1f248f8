"""
Pydantic schemas for paste requests and responses.

Request schemas only check shape. Size, count, name length and type bounds
are enforced by LimitsPolicy so every violation surfaces as a typed
ValidationRejected rather than a pydantic error.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..config import SizeLimitConfig
from ..utils.mime_utils import DEFAULT_MIME


class DocumentUpload(BaseModel):
    """One document submitted at creation or added by a patch."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    name: str = Field(..., description="Display name, unique within the paste")
    type: str = Field(default=DEFAULT_MIME, description="Content type")
    content: bytes = Field(..., description="Raw document body")

    @field_validator("type", mode="before")
    @classmethod
    def default_type(cls, v):
        """Missing or blank content types fall back to plain text."""
        if v is None or (isinstance(v, str) and not v.strip()):
            return DEFAULT_MIME
        return v

    @property
    def size(self) -> int:
        return len(self.content)


class DocumentReplace(BaseModel):
    """Changes to an existing document. Omitted fields keep their current value."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    document_id: int
    name: Optional[str] = None
    type: Optional[str] = None
    content: Optional[bytes] = None


class PastePatch(BaseModel):
    """
    A set of changes applied to a paste in one commit.

    ``expiry_hours`` and ``max_views`` distinguish "not sent" from "sent as
    null": an explicit null clears the value, omission leaves it alone. Use
    ``sets_expiry``/``sets_max_views`` to tell them apart.
    """

    model_config = ConfigDict(extra="forbid")

    add: List[DocumentUpload] = Field(default_factory=list)
    replace: List[DocumentReplace] = Field(default_factory=list)
    remove: List[int] = Field(default_factory=list)
    expiry_hours: Optional[int] = None
    max_views: Optional[int] = Field(default=None, ge=1)

    @property
    def sets_expiry(self) -> bool:
        return "expiry_hours" in self.model_fields_set

    @property
    def sets_max_views(self) -> bool:
        return "max_views" in self.model_fields_set

    @property
    def changes_documents(self) -> bool:
        return bool(self.add or self.replace or self.remove)

    def is_empty(self) -> bool:
        return not (self.changes_documents or self.sets_expiry or self.sets_max_views)


class DocumentDraft(BaseModel):
    """A document as the limits policy sees it: metadata plus byte size."""

    name: str
    type: str
    size: int


class DocumentView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    paste_id: int
    type: str
    name: str
    size: int
    content: Optional[bytes] = None


class PasteView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    creation: datetime
    edited: Optional[datetime] = None
    expiry: Optional[datetime] = None
    views: int
    max_views: Optional[int] = None
    documents: List[DocumentView] = Field(default_factory=list)

    @property
    def document_ids(self) -> List[int]:
        return [document.id for document in self.documents]


class CreatedPaste(BaseModel):
    """Result of a create: the paste and the only copy of its owner token."""

    paste: PasteView
    token: str


class LimitDefaults(BaseModel):
    expiry_hours: Optional[int] = None
    maximum_views: Optional[int] = None


class LimitsView(BaseModel):
    """What a client needs to build a request that will be accepted."""

    defaults: LimitDefaults
    size_limits: SizeLimitConfig
