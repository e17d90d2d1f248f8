"""Lifecycle enums for pastes and in-flight blob transactions."""

from enum import Enum


class OperationStage(str, Enum):
    """Stage of a create or patch spanning both stores.

    Blobs written during WRITING are provisional until the metadata commit
    claims them. Any failure before COMMITTED moves the transaction to
    COMPENSATING, which removes every provisional blob.
    """

    WRITING = "writing"
    COMMITTING = "committing"
    COMPENSATING = "compensating"
    COMMITTED = "committed"
    ABORTED = "aborted"


class PasteState(str, Enum):
    """Per-paste state during deletion. Transitions only move forward."""

    ACTIVE = "active"
    DELETING = "deleting"
    GONE = "gone"
