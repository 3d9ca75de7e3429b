"""Tests for the full-replace Meilisearch synchronization."""

import asyncio

import pytest

from meilidown.models.indexed_file import IndexedFile
from meilidown.services.index_sync import (
    ADD_TASK,
    DELETE_TASK,
    SETTINGS_TASK,
    build_index_settings,
    update_index,
)
from meilidown.utils.errors import IndexUnavailableError
from tests.fakes import FakeMeilisearch

DOCUMENTS = [
    IndexedFile(uid="a", name="guide", content="Guide\n", location="docs/guide"),
    IndexedFile(uid="b", name="README", content="Readme\n", location="README"),
]


def _sync(client, **kwargs):
    return asyncio.run(update_index(client, DOCUMENTS, **kwargs))


class TestIndexSettings:

    def test_attribute_lists(self):
        index_settings = build_index_settings()

        assert index_settings.filterable_attributes == ["uid", "name", "location", "content"]
        assert index_settings.sortable_attributes == ["name", "order", "location"]
        assert index_settings.searchable_attributes == ["name", "location", "content"]


class TestUpdateIndex:

    def test_successful_sync(self, fake_meilisearch, log_messages):
        outcomes = _sync(fake_meilisearch, index_name="files")

        assert [o.name for o in outcomes] == [DELETE_TASK, ADD_TASK, SETTINGS_TASK]
        assert all(o.succeeded for o in outcomes)
        assert fake_meilisearch.index_name == "files"
        assert fake_meilisearch.primary_key == "uid"
        assert [d["uid"] for d in fake_meilisearch.documents] == ["a", "b"]
        assert fake_meilisearch.documents[0]["order"] == 0
        assert fake_meilisearch.settings.sortable_attributes == ["name", "order", "location"]
        assert "Meilisearch is available" in log_messages
        assert "Task 'Delete previous index': succeeded" in log_messages
        assert "Task 'Update index settings': succeeded" in log_messages

    def test_failed_task_logs_every_error_and_continues(self, log_messages):
        client = FakeMeilisearch(
            task_errors={
                "add": {
                    "message": "Document identifier `a b` is invalid",
                    "code": "invalid_document_id",
                }
            }
        )

        outcomes = _sync(client)

        add = outcomes[1]
        assert add.status == "failed"
        assert add.errors == [
            "message: Document identifier `a b` is invalid",
            "code: invalid_document_id",
        ]
        assert outcomes[2].succeeded

        failed_at = log_messages.index("Task 'Add new index': failed")
        assert log_messages[failed_at + 1] == "Task 'Add new index' error - message: Document identifier `a b` is invalid"
        assert log_messages[failed_at + 2] == "Task 'Add new index' error - code: invalid_document_id"
        assert log_messages.index("Task 'Update index settings': succeeded") > failed_at + 2

    def test_failed_request_does_not_stop_other_tasks(self):
        client = FakeMeilisearch(failing_requests=("delete",))

        outcomes = _sync(client)

        assert outcomes[0].status == "error"
        assert "delete request refused" in outcomes[0].errors[0]
        assert outcomes[1].succeeded and outcomes[2].succeeded

    def test_transport_error_does_not_stop_other_tasks(self, log_messages):
        client = FakeMeilisearch(
            request_exceptions={"add": ConnectionError("413 Content Too Large")},
        )

        outcomes = _sync(client)

        assert [o.status for o in outcomes] == ["succeeded", "error", "succeeded"]
        assert outcomes[1].errors == ["413 Content Too Large"]
        assert "Task 'Add new index': request failed: 413 Content Too Large" in log_messages
        assert "Task 'Update index settings': succeeded" in log_messages

    def test_transport_error_while_stopping_is_recorded(self):
        client = FakeMeilisearch(request_exceptions={"settings": ConnectionError("502 Bad Gateway")})
        stopping = asyncio.Event()
        stopping.set()

        outcomes = _sync(client, stopping=stopping)

        assert [o.status for o in outcomes] == ["skipped", "skipped", "error"]

    def test_all_requests_issued_before_waiting(self, fake_meilisearch):
        _sync(fake_meilisearch)

        assert sorted(fake_meilisearch.requests) == ["add", "delete", "settings"]
        assert len(fake_meilisearch.waited) == 3

    def test_unhealthy_index_logged_and_sync_proceeds(self, log_messages):
        client = FakeMeilisearch(health_status="unavailable")

        outcomes = _sync(client)

        assert "Meilisearch is unavailable" in log_messages
        assert len(outcomes) == 3

    def test_unhealthy_index_aborts_when_required(self):
        client = FakeMeilisearch(health_status="unavailable")

        with pytest.raises(IndexUnavailableError):
            _sync(client, require_healthy=True)
        assert client.requests == []

    def test_stopping_skips_polling(self, fake_meilisearch):
        stopping = asyncio.Event()
        stopping.set()

        outcomes = _sync(fake_meilisearch, stopping=stopping)

        assert [o.status for o in outcomes] == ["skipped"] * 3
        assert fake_meilisearch.waited == []
