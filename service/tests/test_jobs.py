"""
Tests for sync_jobs tracking against a recording Supabase client.
"""

from kue.services.jobs import SYNC_JOBS_TABLE, JobTracker


class FakeQuery:
    def __init__(self, client, table, op, payload=None):
        self.client = client
        self.table = table
        self.op = op
        self.payload = payload
        self.filters = {}

    def eq(self, column, value):
        self.filters[column] = value
        return self

    def execute(self):
        if self.client.error:
            raise self.client.error
        self.client.writes.append((self.table, self.op, self.payload, dict(self.filters)))
        return type("Result", (), {"data": [{"id": "job-1"}]})()


class FakeTable:
    def __init__(self, client, name):
        self.client = client
        self.name = name

    def insert(self, payload):
        return FakeQuery(self.client, self.name, "insert", payload)

    def update(self, payload):
        return FakeQuery(self.client, self.name, "update", payload)


class FakeClient:
    def __init__(self, error=None):
        self.writes = []
        self.error = error

    def table(self, name):
        return FakeTable(self, name)


class TestJobTracker:
    def test_start_returns_row_id(self):
        client = FakeClient()
        job_id = JobTracker(client).start("user-1", "full_sync", total_items=3)

        assert job_id == "job-1"
        table, op, payload, _ = client.writes[0]
        assert (table, op) == (SYNC_JOBS_TABLE, "insert")
        assert payload["status"] == "running"
        assert payload["total_items"] == 3

    def test_progress_percent(self):
        client = FakeClient()
        JobTracker(client).progress("job-1", 2, 3)

        _, op, payload, filters = client.writes[0]
        assert op == "update"
        assert filters == {"id": "job-1"}
        assert payload == {"progress": 66, "processed_items": 2, "total_items": 3}

    def test_progress_without_total(self):
        client = FakeClient()
        JobTracker(client).progress("job-1", 5, 0)
        assert client.writes[0][2]["progress"] == 0

    def test_missing_job_id_writes_nothing(self):
        client = FakeClient()
        tracker = JobTracker(client)

        tracker.progress(None, 1, 3)
        tracker.complete(None)
        tracker.fail(None, "boom")

        assert client.writes == []

    def test_failed_write_is_swallowed(self):
        """Bookkeeping errors never reach the tracked operation."""
        tracker = JobTracker(FakeClient(error=RuntimeError("down")))

        assert tracker.start("user-1", "full_sync") is None
        tracker.progress("job-1", 1, 3)
        tracker.complete("job-1")
