"""Tests for the limits policy."""

from datetime import datetime, timedelta, timezone

import pytest

from pastebin_core.config import SizeLimitConfig
from pastebin_core.constants import Limits
from pastebin_core.exceptions import (
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
from pastebin_core.processing.limits_policy import LimitsPolicy, drafts_from
from pastebin_core.schemas.paste_schemas import DocumentDraft
from paste_doubles import make_documents

NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)


def draft(name="notes.txt", size=10, type="text/plain"):
    return DocumentDraft(name=name, type=type, size=size)


@pytest.fixture
def policy():
    return LimitsPolicy(
        SizeLimitConfig(
            minimum_total_document_count=1,
            maximum_total_document_count=3,
            minimum_document_size=2,
            maximum_document_size=100,
            minimum_total_document_size=5,
            maximum_total_document_size=150,
            minimum_document_name_size=3,
            maximum_document_name_size=12,
            minimum_expiry_hours=1,
            maximum_expiry_hours=48,
            default_expiry_hours=24,
            default_maximum_views=None,
        )
    )


class TestValidateDocuments:
    def test_accepts_valid_set(self, policy):
        policy.validate_documents([draft("a.txt", 50), draft("b.txt", 50)])

    def test_accepts_exact_bounds(self, policy):
        policy.validate_documents([draft("abc", 100), draft("twelve_chars", 50)])

    def test_too_many_documents(self, policy):
        with pytest.raises(TooManyDocuments) as exc_info:
            policy.validate_documents([draft(f"doc{i}", 10) for i in range(4)])

        assert exc_info.value.limit == 3
        assert exc_info.value.actual == 4

    def test_too_few_documents(self, policy):
        with pytest.raises(TooFewDocuments):
            policy.validate_documents([])

    def test_document_too_large(self, policy):
        with pytest.raises(DocumentTooLarge) as exc_info:
            policy.validate_documents([draft(size=101)])

        assert exc_info.value.limit == 100
        assert exc_info.value.actual == 101

    def test_document_too_small(self, policy):
        with pytest.raises(DocumentTooSmall):
            policy.validate_documents([draft("a.txt", 1), draft("b.txt", 10)])

    def test_paste_too_large(self, policy):
        with pytest.raises(PasteTooLarge) as exc_info:
            policy.validate_documents([draft("a.txt", 100), draft("b.txt", 51)])

        assert exc_info.value.actual == 151

    def test_paste_too_small(self, policy):
        with pytest.raises(PasteTooSmall):
            policy.validate_documents([draft(size=4)])

    def test_name_too_short(self, policy):
        with pytest.raises(NameTooShort):
            policy.validate_documents([draft(name="ab")])

    def test_name_too_long(self, policy):
        with pytest.raises(NameTooLong):
            policy.validate_documents([draft(name="thirteen_char")])

    def test_duplicate_names(self, policy):
        with pytest.raises(DuplicateDocumentName):
            policy.validate_documents([draft("same.txt"), draft("same.txt")])

    def test_unsupported_type(self, policy):
        with pytest.raises(UnsupportedDocumentType) as exc_info:
            policy.validate_documents([draft(type="image/png")])

        assert exc_info.value.actual == "image/png"

    def test_type_longer_than_stored_column(self, policy):
        long_type = "text/" + "x" * Limits.DOCUMENT_TYPE_LENGTH

        with pytest.raises(TypeTooLong) as exc_info:
            policy.validate_documents([draft(type=long_type)])

        assert exc_info.value.limit == Limits.DOCUMENT_TYPE_LENGTH
        assert exc_info.value.actual == len(long_type)
        assert exc_info.value.status_code == 400

    def test_type_at_stored_length_accepted(self, policy):
        policy.validate_documents([draft(type="text/" + "x" * (Limits.DOCUMENT_TYPE_LENGTH - 5))])

    def test_first_violation_wins(self, policy):
        # Too many documents and each one too large: count is checked first
        with pytest.raises(TooManyDocuments):
            policy.validate_documents([draft(f"doc{i}", 500) for i in range(4)])

    def test_drafts_from_uploads(self, policy):
        drafts = drafts_from(make_documents("one.txt", "two.txt", content=b"12345"))

        assert [d.size for d in drafts] == [5, 5]
        policy.validate_documents(drafts)


class TestExpiry:
    def test_default_applied(self, policy):
        assert policy.resolve_expiry(NOW, None) == NOW + timedelta(hours=24)

    def test_requested_within_range(self, policy):
        assert policy.resolve_expiry(NOW, 2) == NOW + timedelta(hours=2)

    def test_above_maximum(self, policy):
        with pytest.raises(ExpiryOutOfRange) as exc_info:
            policy.resolve_expiry(NOW, 49)

        assert exc_info.value.limit == 48

    @pytest.mark.parametrize("hours", [0, -3])
    def test_non_positive_rejected(self, policy, hours):
        with pytest.raises(ExpiryOutOfRange):
            policy.resolve_expiry(NOW, hours)

    def test_no_default_means_no_expiry(self):
        assert LimitsPolicy(SizeLimitConfig()).resolve_expiry(NOW, None) is None


class TestMaxViews:
    def test_requested(self, policy):
        assert policy.resolve_max_views(3) == 3

    def test_default(self):
        policy = LimitsPolicy(SizeLimitConfig(default_maximum_views=10))
        assert policy.resolve_max_views(None) == 10

    def test_zero_rejected(self, policy):
        with pytest.raises(ValidationRejected):
            policy.resolve_max_views(0)


class TestDescribe:
    def test_reports_defaults_and_limits(self, policy):
        view = policy.describe()

        assert view.defaults.expiry_hours == 24
        assert view.defaults.maximum_views is None
        assert view.size_limits.maximum_total_document_count == 3
