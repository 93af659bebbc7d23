"""
Tests for the JSON form of result records.
"""

from datetime import datetime, timezone

import pytest

from metalink.models.enums import LinkKind, MetaLinkErrorCode, MetaLinkWarningCode
from metalink.models.errors import MetaLinkError, MetaLinkWarning
from metalink.models.link_metadata import LinkMetadata
from metalink.models.media import ImageCandidate
from metalink.models.result import ExtractionResult


@pytest.mark.unit
class TestLinkMetadataJson:
    def test_empty_record(self):
        metadata = LinkMetadata.empty("https://example.com/")
        assert metadata.is_empty
        assert metadata.resolved_url == "https://example.com/"
        assert metadata.to_json()["kind"] == "unknown"

    def test_camel_case_round_trip(self):
        metadata = LinkMetadata(
            original_url="https://example.com/a",
            resolved_url="https://example.com/b",
            title="Title",
            site_name="Site",
            kind=LinkKind.ARTICLE,
            images=[ImageCandidate("https://example.com/i.png", width=10)],
            published_at=datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
            keywords=["a", "b"],
        )
        data = metadata.to_json()

        assert data["siteName"] == "Site"
        assert data["publishedAt"] == "2024-05-01T12:00:00Z"
        assert "description" not in data
        assert LinkMetadata.from_json(data) == metadata

    def test_from_json_is_lenient(self):
        """Unknown kinds fall back, malformed list items and dates are dropped."""
        metadata = LinkMetadata.from_json(
            {
                "originalUrl": "https://example.com/",
                "resolvedUrl": "https://example.com/",
                "kind": "spaceship",
                "images": [{"url": "https://example.com/i.png"}, "junk"],
                "keywords": ["ok", 3],
                "publishedAt": "yesterday",
            }
        )
        assert metadata.kind is LinkKind.UNKNOWN
        assert len(metadata.images) == 1
        assert metadata.keywords == ["ok"]
        assert metadata.published_at is None

    def test_urls_are_required(self):
        with pytest.raises(ValueError):
            LinkMetadata.from_json({"originalUrl": "https://example.com/"})


@pytest.mark.unit
class TestResultJson:
    def test_errors_and_warnings(self):
        result = ExtractionResult(
            metadata=LinkMetadata.empty("https://example.com/"),
            warnings=[MetaLinkWarning(MetaLinkWarningCode.TRUNCATED_HTML, "cut")],
            errors=[MetaLinkError(MetaLinkErrorCode.HTTP_STATUS, "HTTP 503", status_code=503)],
        )
        restored = ExtractionResult.from_json(result.to_json())

        assert not restored.is_success
        assert restored.errors[0].status_code == 503
        assert restored.errors[0].is_retryable
        assert restored.warnings[0].code is MetaLinkWarningCode.TRUNCATED_HTML

    def test_unknown_error_code(self):
        error = MetaLinkError.from_json({"code": "meteor", "message": "?"})
        assert error.code is MetaLinkErrorCode.UNKNOWN
        assert not error.is_retryable

    def test_metadata_is_required(self):
        with pytest.raises(ValueError):
            ExtractionResult.from_json({"errors": []})
