"""Tests for filedrop models."""
import pytest

from filedrop.models import BatchOutcome, FileRecord, ItemStatus, UploadConfig


class TestStagedItem:
    def test_new_item_is_pending(self, make_item):
        item = make_item("a.txt")
        assert item.status is ItemStatus.PENDING
        assert item.last_error is None
        assert item.is_eligible is True

    def test_ids_are_unique(self, make_item):
        assert make_item("a.txt").id != make_item("a.txt").id

    def test_error_only_while_failed(self, make_item):
        item = make_item("a.txt")

        item.mark_failed("boom")
        assert item.status is ItemStatus.FAILED
        assert item.last_error == "boom"
        assert item.is_eligible is True

        item.mark_uploading()
        assert item.last_error is None
        assert item.is_eligible is False

        item.mark_uploaded()
        assert item.status is ItemStatus.UPLOADED
        assert item.last_error is None
        assert item.is_eligible is False

    def test_source_is_immutable(self, make_item):
        item = make_item("a.txt")
        with pytest.raises(Exception):
            item.source.name = "b.txt"


class TestBatchOutcome:
    def test_counts(self):
        outcome = BatchOutcome(attempted=3, succeeded=2)
        assert outcome.failed == 1
        assert outcome.success is False
        assert outcome.message == "Successfully processed 2 / 3 file(s)!"

    def test_empty(self):
        outcome = BatchOutcome.empty()
        assert outcome.attempted == 0
        assert outcome.succeeded == 0
        assert outcome.success is True

    def test_join_failed(self):
        outcome = BatchOutcome.join_failed(2, 0, "boom")
        assert outcome.error == "boom"
        assert outcome.success is False
        assert outcome.message == "An unexpected error occurred. Please try again."


class TestFileRecord:
    def test_to_dict_uses_record_field_names(self):
        record = FileRecord(filename="a.pdf", url="https://x/a.pdf", type="application/pdf", createdby="me")
        assert record.to_dict() == {
            "filename": "a.pdf",
            "url": "https://x/a.pdf",
            "type": "application/pdf",
            "createdby": "me",
        }


class TestUploadConfig:
    def test_default_config(self):
        config = UploadConfig()
        assert config.item_timeout == 120.0
        assert config.created_by == "currentUser"
        assert config.fallback_error == "Unknown error"
        assert config.storage_base_url == "https://storage.example.com/files"
