"""
Fieldbook Backend — Shape Merger & Document Decoding Unit Tests
=================================================================

What:  Tests for decode_document() and merge_record().
How:   Pure functions, no store: StoredRecord instances are built directly.

What we test:
    ✅ Decode tags: structured, serialized (str/bytes), unsupported
    ✅ Non-object JSON and invalid JSON are decode errors
    ✅ Author precedence: by → author → owner-viewer → fallback
    ✅ Defaults only replace absent values (missing, null, "")
    ✅ Present values keep their stored JSON type (numeric dateAdded, object `by`)
    ✅ isPublic always comes from the row; legacy embedded flags overwritten
    ✅ Unknown document fields pass through
"""

from datetime import datetime, timezone

import pytest

from fieldbook.exceptions import CorruptRecordError
from fieldbook.schemas.record import StoredRecord
from fieldbook.services.document_codec import DocumentEncoding, decode_document
from fieldbook.services.shape_merger import merge_record, resolve_author

CREATED = datetime(2024, 5, 1, 9, 30, tzinfo=timezone.utc)


def make_record(document, owner="bob@x.com", is_public=False, created_at=CREATED):
    return StoredRecord(
        identity=1,
        owner_email=owner,
        slug="trip-1",
        is_public=is_public,
        created_at=created_at,
        document=document,
    )


class TestDecodeDocument:
    """Tests for the tagged decode step."""

    def test_structured_document_is_copied(self):
        raw = {"title": "Trip"}
        result = decode_document(raw)
        assert result.encoding is DocumentEncoding.STRUCTURED
        assert result.ok
        assert result.document == raw
        assert result.document is not raw

    def test_serialized_string(self):
        result = decode_document('{"title": "Trip", "tags": ["a"]}')
        assert result.encoding is DocumentEncoding.SERIALIZED
        assert result.document == {"title": "Trip", "tags": ["a"]}

    def test_serialized_bytes(self):
        result = decode_document(b'{"title": "Trip"}')
        assert result.encoding is DocumentEncoding.SERIALIZED
        assert result.document == {"title": "Trip"}

    def test_invalid_json_is_an_error(self):
        result = decode_document("{not json")
        assert not result.ok
        assert result.document is None
        assert result.error.startswith("invalid JSON")

    @pytest.mark.parametrize("raw,type_name", [
        ("[1, 2]", "list"),
        ('"text"', "string"),
        ("42", "number"),
        ("null", "null"),
    ])
    def test_non_object_json_is_an_error(self, raw, type_name):
        result = decode_document(raw)
        assert not result.ok
        assert type_name in result.error

    @pytest.mark.parametrize("raw", [None, 42, ["a"]])
    def test_unsupported_types(self, raw):
        result = decode_document(raw)
        assert result.encoding is DocumentEncoding.UNSUPPORTED
        assert not result.ok


class TestAuthorResolution:
    """Tests for the canonical author precedence."""

    def test_by_wins_over_author(self):
        assert resolve_author({"by": "Alice", "author": "Bob"}, "o@x.com", None, "Anonymous") == "Alice"

    def test_author_used_when_by_absent(self):
        assert resolve_author({"by": "", "author": "Bob"}, "o@x.com", None, "Anonymous") == "Bob"

    def test_owner_viewer_used_when_document_has_no_author(self):
        assert resolve_author({}, "o@x.com", "o@x.com", "Anonymous") == "o@x.com"

    def test_non_owner_viewer_is_never_the_author(self):
        assert resolve_author({}, "o@x.com", "someone@x.com", "Anonymous") == "Anonymous"

    def test_anonymous_viewer_gets_fallback(self):
        assert resolve_author({"author": None}, "o@x.com", None, "Anonymous") == "Anonymous"


class TestMergeRecord:
    """Tests for merge_record() normalization."""

    def test_owner_scenario_defaults(self):
        result = merge_record(make_record('{"title": "Trip"}'), "bob@x.com").to_response()
        assert result["title"] == "Trip"
        assert result["author"] == "bob@x.com"
        assert result["personalNotes"] == ""
        assert result["isFavorite"] is False
        assert result["isPublic"] is False
        assert result["dateAdded"] == CREATED.isoformat()

    def test_present_values_are_kept(self):
        document = {
            "title": "Trip",
            "personalNotes": "bring boots",
            "isFavorite": True,
            "dateAdded": "2023-01-02T03:04:05Z",
        }
        result = merge_record(make_record(document), "bob@x.com").to_response()
        assert result["personalNotes"] == "bring boots"
        assert result["isFavorite"] is True
        assert result["dateAdded"] == "2023-01-02T03:04:05Z"

    def test_explicit_false_favorite_is_not_replaced(self):
        result = merge_record(make_record({"isFavorite": False}), "bob@x.com")
        assert result.is_favorite is False

    def test_null_and_empty_values_get_defaults(self):
        document = {"personalNotes": None, "dateAdded": "", "isFavorite": None}
        result = merge_record(make_record(document), "bob@x.com").to_response()
        assert result["personalNotes"] == ""
        assert result["isFavorite"] is False
        assert result["dateAdded"] == CREATED.isoformat()

    def test_missing_created_at_leaves_date_added_null(self):
        result = merge_record(make_record({}, created_at=None), "bob@x.com")
        assert result.date_added is None

    def test_embedded_is_public_never_leaks(self):
        record = make_record({"isPublic": True, "is_public": True, "public": True})
        result = merge_record(record, "bob@x.com").to_response()
        assert result["isPublic"] is False
        assert result["is_public"] is False
        assert result["public"] is False

    def test_public_column_reported(self):
        result = merge_record(make_record({}, is_public=True), None).to_response()
        assert result["isPublic"] is True
        assert "is_public" not in result

    def test_public_record_without_author_falls_back(self):
        result = merge_record(make_record({"title": "T"}, is_public=True), None)
        assert result.author == "Anonymous"

    def test_configurable_fallback_author(self):
        result = merge_record(make_record({}, is_public=True), None, fallback_author="Unknown")
        assert result.author == "Unknown"

    def test_by_beats_differing_author_field(self):
        result = merge_record(make_record({"by": "Alice", "author": "Bob"}), "bob@x.com").to_response()
        assert result["author"] == "Alice"
        assert result["by"] == "Alice"

    def test_unknown_fields_pass_through(self):
        document = {"slug": "trip-1", "tags": ["hike"], "images": [{"src": "a.jpg"}], "mood": "sunny"}
        result = merge_record(make_record(document), "bob@x.com").to_response()
        for key, value in document.items():
            assert result[key] == value

    def test_malformed_document_raises_corrupt(self):
        with pytest.raises(CorruptRecordError) as exc_info:
            merge_record(make_record("{broken"), "bob@x.com", corrupt_message="Failed to read field note")
        assert exc_info.value.message == "Failed to read field note"
        assert exc_info.value.context["slug"] == "trip-1"
        assert "invalid JSON" in exc_info.value.context["reason"]

    def test_non_object_document_raises_corrupt(self):
        with pytest.raises(CorruptRecordError):
            merge_record(make_record("[1, 2, 3]"), "bob@x.com")

    def test_present_values_keep_their_stored_type(self):
        merged = merge_record(
            make_record({
                "dateAdded": 1714555800000,
                "by": {"name": "Grandma"},
                "personalNotes": {"nested": True},
                "isFavorite": 1,
            }),
            None,
        ).to_response()

        assert merged["dateAdded"] == 1714555800000
        assert merged["author"] == {"name": "Grandma"}
        assert merged["personalNotes"] == {"nested": True}
        assert merged["isFavorite"] == 1
