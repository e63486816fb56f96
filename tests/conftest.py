import itertools

import httpx
import pytest
from fastapi.testclient import TestClient

from plotdesk.api.main import app
from plotdesk.config import GEMINI_KEY_SLOTS
from plotdesk.services.gemini_proxy import GeminiProxy, get_gemini_proxy
from plotdesk.services.story_store import StoryStore, get_story_store


# ---------------------------------------------------------------------------
# Fake Gemini upstream
# ---------------------------------------------------------------------------

class FakeGemini:
    """MockTransport handler answering per key; records the key of every call.

    `replies` maps key -> (status, json_body) | httpx.Response | Exception.
    Unlisted keys answer 200 with a one-candidate body.
    """

    def __init__(self, replies=None):
        self.replies = dict(replies or {})
        self.calls = []
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        key = request.url.params["key"]
        self.calls.append(key)
        self.requests.append(request)
        reply = self.replies.get(key)
        if reply is None:
            return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": key}]}}]})
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, httpx.Response):
            return reply
        status, body = reply
        return httpx.Response(status, json=body)


def make_proxy(upstream, keys=("K1", "K2", "K3"), base_url="https://gemini.test/v1beta/models"):
    client = httpx.Client(transport=httpx.MockTransport(upstream))
    return GeminiProxy(list(keys), base_url=base_url, http_client=client)


@pytest.fixture
def upstream():
    return FakeGemini()


# ---------------------------------------------------------------------------
# Fake Supabase
# ---------------------------------------------------------------------------

class FakeResult:
    def __init__(self, data):
        self.data = data


class FakeQuery:
    """Just enough of the PostgREST query builder for StoryStore."""

    def __init__(self, db, table):
        self.db = db
        self.table = table
        self.op = "select"
        self.columns = "*"
        self.payload = None
        self.filters = []
        self.order_by = None
        self.descending = False
        self.row_limit = None

    def select(self, columns="*"):
        self.op, self.columns = "select", columns
        return self

    def insert(self, data):
        self.op, self.payload = "insert", data
        return self

    def update(self, data):
        self.op, self.payload = "update", data
        return self

    def delete(self):
        self.op = "delete"
        return self

    def eq(self, column, value):
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def lt(self, column, value):
        self.filters.append(lambda row: row.get(column) is not None and row[column] < value)
        return self

    def order(self, column, desc=False):
        self.order_by, self.descending = column, desc
        return self

    def limit(self, count):
        self.row_limit = count
        return self

    def _project(self, row):
        if self.columns.strip() == "*":
            return dict(row)
        out = {}
        for column in (c.strip() for c in self.columns.split(",")):
            alias, _, source = column.partition(":")
            out[alias] = row.get(source or alias)
        return out

    def execute(self):
        if self.db.fail:
            raise RuntimeError("connection refused")
        rows = self.db.tables.setdefault(self.table, [])

        if self.op == "insert":
            items = self.payload if isinstance(self.payload, list) else [self.payload]
            inserted = []
            for item in items:
                tick = next(self.db.clock)
                row = {"created_at": f"2000-01-01T00:00:{tick:02d}", "updated_at": f"2000-01-01T00:00:{tick:02d}"}
                row.update(item)
                row["id"] = next(self.db.ids)
                rows.append(row)
                inserted.append(dict(row))
            return FakeResult(inserted)

        matched = [row for row in rows if all(f(row) for f in self.filters)]

        if self.op == "update":
            for row in matched:
                row.update(self.payload)
            return FakeResult([dict(row) for row in matched])

        if self.op == "delete":
            self.db.tables[self.table] = [row for row in rows if row not in matched]
            return FakeResult([dict(row) for row in matched])

        if self.order_by:
            matched = sorted(matched, key=lambda row: row[self.order_by], reverse=self.descending)
        if self.row_limit is not None:
            matched = matched[: self.row_limit]
        return FakeResult([self._project(row) for row in matched])


class FakeSupabase:
    def __init__(self):
        self.tables = {}
        self.ids = itertools.count(1)
        self.clock = itertools.count(1)
        self.fail = False

    def table(self, name):
        return FakeQuery(self, name)


@pytest.fixture
def supabase():
    return FakeSupabase()


@pytest.fixture
def store(supabase):
    return StoryStore(supabase)


# ---------------------------------------------------------------------------
# App client
# ---------------------------------------------------------------------------

@pytest.fixture
def client(store, upstream):
    proxy = make_proxy(upstream)
    app.dependency_overrides[get_story_store] = lambda: store
    app.dependency_overrides[get_gemini_proxy] = lambda: proxy
    yield TestClient(app)
    app.dependency_overrides.clear()
    proxy.close()


@pytest.fixture
def clean_gemini_env(monkeypatch):
    for name in GEMINI_KEY_SLOTS + ("gemini_api_url", "gemini_timeout_seconds"):
        monkeypatch.delenv(name.upper(), raising=False)
