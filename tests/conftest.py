"""Shared fixtures: an in-memory stand-in for the Supabase query builder."""

import threading

import pytest

from profile_review import ProfileListController
from profile_store import ProfileStore
from tag_manager import TagManager


class FakeResult:
    def __init__(self, data, count=None):
        self.data = data
        self.count = count


class FakeBackendError(Exception):
    """Raised by the fake client for injected failures."""


class FakeQuery:
    """Records filters and runs them against FakeSupabaseClient tables."""

    def __init__(self, client, table, op, payload=None, columns='*', count=None, head=False):
        self.client = client
        self.table_name = table
        self.op = op
        self.payload = payload
        self.columns = columns
        self.count = count
        self.head = head
        self.filters = []
        self.row_range = None
        self.order_by = None

    def eq(self, column, value):
        self.filters.append((column, value))
        return self

    def range(self, start, end):
        self.row_range = (start, end)
        return self

    def order(self, column, desc=False):
        self.order_by = (column, desc)
        return self

    def _matches(self, row):
        return all(row.get(column) == value for column, value in self.filters)

    def execute(self):
        return self.client._execute(self)


class FakeTable:
    def __init__(self, client, name):
        self.client = client
        self.name = name

    def select(self, *columns, count=None, head=None):
        return FakeQuery(self.client, self.name, 'select',
                         columns=','.join(columns) or '*', count=count, head=bool(head))

    def insert(self, payload):
        return FakeQuery(self.client, self.name, 'insert', payload=payload)

    def update(self, payload):
        return FakeQuery(self.client, self.name, 'update', payload=payload)

    def delete(self):
        return FakeQuery(self.client, self.name, 'delete')


class FakeSupabaseClient:
    """Just enough of supabase.Client for ProfileStore and TagManager."""

    def __init__(self):
        self.tables = {'profiled': [], 'tags': [], 'profiledtags': []}
        self.calls = []
        self.failures = []
        self._lock = threading.Lock()

    def table(self, name):
        return FakeTable(self, name)

    def fail(self, table, op, value=None):
        """Make matching operations raise FakeBackendError.

        If value is given, only operations filtering on or inserting that
        value fail.
        """
        self.failures.append((table, op, value))

    def calls_for(self, table, op):
        return [call for call in self.calls if call[0] == table and call[1] == op]

    def _should_fail(self, query):
        for table, op, value in self.failures:
            if table != query.table_name or op != query.op:
                continue
            if value is None:
                return True
            values = [v for _, v in query.filters]
            if isinstance(query.payload, dict):
                values.extend(query.payload.values())
            if value in values:
                return True
        return False

    def _execute(self, query):
        with self._lock:
            self.calls.append((query.table_name, query.op, dict(query.filters), query.payload))
            if self._should_fail(query):
                raise FakeBackendError(f"{query.op} on {query.table_name} failed")
            handler = getattr(self, f"_{query.op}")
            return handler(query)

    def _select(self, query):
        rows = [row for row in self.tables[query.table_name] if query._matches(row)]
        count = len(rows) if query.count == 'exact' else None
        if query.head:
            return FakeResult([], count)

        if query.order_by:
            column, desc = query.order_by
            rows = sorted(rows, key=lambda row: row[column], reverse=desc)
        if query.row_range:
            start, end = query.row_range
            rows = rows[start:end + 1]

        rows = [dict(row) for row in rows]
        if 'profiledtags(' in query.columns:
            for row in rows:
                row['profiledtags'] = self._embedded_links(row['id'])
        return FakeResult(rows, count)

    def _embedded_links(self, profile_id):
        tags_by_id = {tag['id']: tag for tag in self.tables['tags']}
        links = []
        for link in self.tables['profiledtags']:
            if link['profileid'] == profile_id:
                tag = tags_by_id.get(link['tagid'])
                links.append({'tagid': link['tagid'], 'tags': {'tag': tag['tag']} if tag else None})
        return links

    def _insert(self, query):
        payload = query.payload if isinstance(query.payload, list) else [query.payload]
        rows = self.tables[query.table_name]
        inserted = []
        for item in payload:
            row = dict(item)
            if query.table_name != 'profiledtags':
                row['id'] = max((r['id'] for r in rows), default=0) + 1
            rows.append(row)
            inserted.append(dict(row))
        return FakeResult(inserted)

    def _update(self, query):
        updated = []
        for row in self.tables[query.table_name]:
            if query._matches(row):
                row.update(query.payload)
                updated.append(dict(row))
        return FakeResult(updated)

    def _delete(self, query):
        rows = self.tables[query.table_name]
        deleted = [row for row in rows if query._matches(row)]
        self.tables[query.table_name] = [row for row in rows if not query._matches(row)]
        return FakeResult(deleted)

    def links_for(self, profile_id):
        return sorted(link['tagid'] for link in self.tables['profiledtags'] if link['profileid'] == profile_id)

    def tag_id(self, label):
        for tag in self.tables['tags']:
            if tag['tag'] == label:
                return tag['id']
        return None


@pytest.fixture
def fake_client():
    """25 profiles with statuses cycling 2, 3, 4, 1 and a small tag dictionary."""
    client = FakeSupabaseClient()
    client.tables['profiled'] = [
        {
            'id': profile_id,
            'url': f"https://example.com/page/{profile_id}",
            'title': f"Title {profile_id}",
            'name': f"Name {profile_id}",
            'description': f"Description {profile_id}",
            'Status': (profile_id % 4) + 1,
        }
        for profile_id in range(1, 26)
    ]
    client.tables['tags'] = [
        {'id': 7, 'tag': 'news'},
        {'id': 8, 'tag': 'tech'},
    ]
    client.tables['profiledtags'] = [
        {'profileid': 1, 'tagid': 7},
        {'profileid': 1, 'tagid': 8},
        {'profileid': 3, 'tagid': 7},
    ]
    return client


@pytest.fixture
def profile_store(fake_client):
    return ProfileStore(client=fake_client)


@pytest.fixture
def tag_manager(fake_client):
    return TagManager(client=fake_client)


@pytest.fixture
def controller(profile_store, tag_manager):
    return ProfileListController(profile_store=profile_store, tag_manager=tag_manager)
