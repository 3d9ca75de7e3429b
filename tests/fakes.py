"""In-memory stand-ins for the Meilisearch client and repository files."""

from types import SimpleNamespace
from typing import Dict, List, Optional

from meilisearch_python_sdk.errors import MeilisearchError

from meilidown.models.repository_file import RepositoryFile


def make_file(relative_path: str = "docs/guide.md", absolute_path: str = "/tmp/guide.md") -> RepositoryFile:
    stem = relative_path.rsplit("/", 1)[-1].rsplit(".", 1)[0]
    return RepositoryFile(
        uid=f"uid-{stem}",
        name=stem,
        relative_path=relative_path,
        absolute_path=absolute_path,
        location=relative_path.rsplit(".", 1)[0],
    )


class FakeIndex:
    def __init__(self, client: "FakeMeilisearch", name: str):
        self.client = client
        self.name = name

    async def delete_all_documents(self):
        return self.client.enqueue("delete")

    async def add_documents(self, documents, primary_key=None):
        self.client.documents = list(documents)
        self.client.primary_key = primary_key
        return self.client.enqueue("add")

    async def update_settings(self, body):
        self.client.settings = body
        return self.client.enqueue("settings")


class FakeMeilisearch:
    """Stands in for ``AsyncClient``; every task succeeds unless told otherwise."""

    def __init__(
        self,
        health_status: str = "available",
        task_errors: Optional[Dict[str, dict]] = None,
        failing_requests: tuple = (),
        health_error: Optional[Exception] = None,
        request_exceptions: Optional[Dict[str, Exception]] = None,
    ):
        self.health_status = health_status
        self.health_error = health_error
        self.task_errors = task_errors or {}
        self.failing_requests = failing_requests
        self.request_exceptions = request_exceptions or {}
        self.documents = None
        self.primary_key = None
        self.settings = None
        self.index_name = None
        self.requests: List[str] = []
        self.waited: List[int] = []
        self.closed = False
        self._kinds: Dict[int, str] = {}

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        self.closed = True

    async def health(self):
        if self.health_error is not None:
            raise self.health_error
        return SimpleNamespace(status=self.health_status)

    def index(self, name: str) -> FakeIndex:
        self.index_name = name
        return FakeIndex(self, name)

    def enqueue(self, kind: str):
        self.requests.append(kind)
        if kind in self.failing_requests:
            raise MeilisearchError(f"{kind} request refused")
        if kind in self.request_exceptions:
            raise self.request_exceptions[kind]
        task_uid = len(self._kinds) + 1
        self._kinds[task_uid] = kind
        return SimpleNamespace(task_uid=task_uid)

    async def wait_for_task(self, task_uid, timeout_in_ms=None):
        self.waited.append(task_uid)
        kind = self._kinds[task_uid]
        error = self.task_errors.get(kind)
        return SimpleNamespace(uid=task_uid, status="failed" if error else "succeeded", error=error)
