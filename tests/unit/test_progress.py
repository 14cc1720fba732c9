"""Unit tests for progress fan-out and history."""

from __future__ import annotations

from plugndump.core.progress import ProgressReporter
from plugndump.models.progress import Status, Step


class TestProgressReporter:
    def test_listeners_receive_events_in_order(self):
        reporter = ProgressReporter()
        seen = []
        reporter.subscribe(seen.append)

        reporter.report(Step.CONNECT, Status.ACTIVE, "Connecting to FC on COM5...")
        reporter.report(Step.CONNECT, Status.COMPLETED, "Connection established")

        assert [(e.seq, e.step, e.status) for e in seen] == [
            (1, Step.CONNECT, Status.ACTIVE),
            (2, Step.CONNECT, Status.COMPLETED),
        ]

    def test_unsubscribe(self):
        reporter = ProgressReporter()
        seen = []
        unsubscribe = reporter.subscribe(seen.append)
        unsubscribe()
        unsubscribe()

        reporter.report(Step.CLI, Status.ACTIVE)

        assert seen == []

    def test_failing_listener_does_not_stop_others(self):
        reporter = ProgressReporter()
        seen = []

        def broken(event):
            raise RuntimeError("window closed")

        reporter.subscribe(broken)
        reporter.subscribe(seen.append)

        event = reporter.report(Step.DUMP, Status.ACTIVE, "Extracting configuration dump...")

        assert seen == [event]

    def test_completion_records_backup_path(self):
        reporter = ProgressReporter()
        reporter.report(Step.COPY, Status.COMPLETED, backupPath="/ignored")
        assert reporter.last_backup_path is None

        reporter.report(Step.COMPLETE, Status.COMPLETED, "done", backupPath="/backups/a")
        assert reporter.last_backup_path == "/backups/a"

    def test_history_is_bounded(self):
        reporter = ProgressReporter(history=3)
        for _ in range(5):
            reporter.report(Step.COPY, Status.ACTIVE)

        assert [e.seq for e in reporter.since()] == [3, 4, 5]
        assert [e.seq for e in reporter.since(4)] == [5]

    def test_data_payload(self):
        reporter = ProgressReporter()
        event = reporter.report(Step.COPY, Status.ACTIVE, "Copied: LOG1.BBL", copied=1, total=3)
        assert event.data == {"copied": 1, "total": 3}
