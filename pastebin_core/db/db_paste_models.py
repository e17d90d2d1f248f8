"""
Paste, document and token tables.

Document bodies are not stored here; a document row records the metadata of a
blob held in the object store under ``"{paste_id}/{id}"``.
"""

from sqlalchemy import BigInteger, Column, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from ..constants import Limits
from ..enums import PasteState
from .db_base import UTCDateTime, utc_now
from .db_config import Base


class Paste(Base):
    """A bundle of documents with its view and expiry policy."""

    __tablename__ = "pastes"

    id = Column(BigInteger, primary_key=True, autoincrement=False)
    creation = Column(UTCDateTime, nullable=False, default=utc_now)
    edited = Column(UTCDateTime, nullable=True)
    expiry = Column(UTCDateTime, nullable=True, index=True)
    views = Column(Integer, nullable=False, default=0)
    max_views = Column(Integer, nullable=True)

    # Bumped by every committed patch; the check-and-set guard for writers
    version = Column(Integer, nullable=False, default=1)
    # ACTIVE until a deleter claims the paste; never returns to ACTIVE
    state = Column(String(16), nullable=False, default=PasteState.ACTIVE.value)

    documents = relationship(
        "Document",
        back_populates="paste",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Document.id",
    )
    token = relationship(
        "PasteToken",
        back_populates="paste",
        uselist=False,
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class PasteToken(Base):
    """The bearer credential bound to one paste."""

    __tablename__ = "paste_tokens"

    paste_id = Column(BigInteger, ForeignKey("pastes.id", ondelete="CASCADE"), primary_key=True)
    token = Column(String(Limits.TOKEN_LENGTH), nullable=False, unique=True)

    paste = relationship("Paste", back_populates="token")


class Document(Base):
    """Metadata for one document blob."""

    __tablename__ = "documents"

    id = Column(BigInteger, primary_key=True, autoincrement=False)
    paste_id = Column(
        BigInteger, ForeignKey("pastes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type = Column(String(Limits.DOCUMENT_TYPE_LENGTH), nullable=False)
    name = Column(String(Limits.DOCUMENT_NAME_LENGTH), nullable=False)
    size = Column(BigInteger, nullable=False)

    paste = relationship("Paste", back_populates="documents")

    __table_args__ = (UniqueConstraint("paste_id", "name", name="uq_documents_paste_name"),)
