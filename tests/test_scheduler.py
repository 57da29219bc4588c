"""Tests for the cycle scheduler"""

import time
from datetime import datetime, timedelta

import pytest

from sysalert.alerts.alert_evaluator import Outcome, RuleEvaluator
from sysalert.alerts.alert_rule import AlertRule
from sysalert.alerts.alert_tracker import AlertStateTracker
from sysalert.alerts.channels.base_channel import BaseChannel
from sysalert.alerts.dispatcher import NotifierDispatcher
from sysalert.alerts.events import AlertState
from sysalert.alerts.storage.base_storage import EventRecord
from sysalert.alerts.storage.sqlite_storage import SQLiteStorage
from sysalert.collectors.snapshot import MetricSnapshot
from sysalert.collectors.source import MetricSource
from sysalert.config.settings import get_default_config
from sysalert.errors import CollectionError, DispatchError
from sysalert.exporters.prometheus_exporter import PrometheusExporter
from sysalert.scheduler import Scheduler
from sysalert import scheduler as scheduler_module


class ScriptedSource(MetricSource):
    """Replays a list of value dicts; None means the cycle's collection fails"""

    def __init__(self, script):
        self.script = list(script)
        self.clock = 1000.0
        self.last_failures = []

    def collect(self):
        self.clock += 60
        values = self.script.pop(0) if self.script else {}
        if values is None:
            self.last_failures = ['cpu']
            raise CollectionError("All collectors failed: cpu")
        self.last_failures = []
        return MetricSnapshot.from_values(values, timestamp=self.clock)


class RecordingChannel(BaseChannel):
    def __init__(self):
        super().__init__({})
        self.sent = []

    def send(self, event):
        self.sent.append(event)


class BrokenChannel(BaseChannel):
    def send(self, event):
        raise DispatchError('broken', 'HTTP 502')


def build_scheduler(script, rules=None, channels=None, history=None, exporter=None, interval=0):
    rules = rules or [
        AlertRule(name='load_1', metric='load_1', operator='>', threshold=4, channels=['console']),
    ]
    channels = channels or {'console': RecordingChannel()}
    return Scheduler(
        ScriptedSource(script),
        RuleEvaluator(rules),
        AlertStateTracker(rules),
        NotifierDispatcher(channels, timeout=1),
        interval=interval,
        history=history,
        exporter=exporter,
    )


class TestRunCycle:
    """Test a single collect -> evaluate -> track -> dispatch pass"""

    def test_firing_and_resolution_dispatched(self):
        scheduler = build_scheduler([{'load_1': 6.0}, {'load_1': 6.0}, {'load_1': 1.0}])
        channel = scheduler.dispatcher.channels['console']

        first = scheduler.run_cycle()
        second = scheduler.run_cycle()
        third = scheduler.run_cycle()

        assert first.number == 1
        assert first.count(Outcome.VIOLATING) == 1
        assert [e.state for e in first.events] == [AlertState.FIRING]
        assert second.events == []
        assert [e.state for e in third.events] == [AlertState.RESOLVED]
        assert [e.state for e in channel.sent] == [AlertState.FIRING, AlertState.RESOLVED]
        assert first.dispatch.successes == 1

    def test_collection_failure_contained(self):
        scheduler = build_scheduler([None, {'load_1': 6.0}])

        failed = scheduler.run_cycle()
        recovered = scheduler.run_cycle()

        assert failed.snapshot is None
        assert 'All collectors failed' in failed.error
        assert failed.failed_collectors == ['cpu']
        assert failed.events == []
        assert recovered.error is None
        assert len(recovered.events) == 1

    def test_missing_metric_not_evaluable(self):
        scheduler = build_scheduler([{'load_5': 1.0}])

        report = scheduler.run_cycle()

        assert report.count(Outcome.NOT_EVALUABLE) == 1
        assert scheduler.tracker.get_state('load_1').state == AlertState.OK

    def test_dispatch_failure_does_not_stop_cycle(self):
        rules = [AlertRule(name='load_1', metric='load_1', operator='>', threshold=4,
                           channels=['broken', 'console'])]
        channels = {'broken': BrokenChannel({}), 'console': RecordingChannel()}
        scheduler = build_scheduler([{'load_1': 6.0}], rules=rules, channels=channels)

        report = scheduler.run_cycle()

        assert report.error is None
        assert report.dispatch.successes == 1
        assert [r.channel for r in report.dispatch.failed] == ['broken']
        assert len(channels['console'].sent) == 1

    def test_unexpected_error_contained(self):
        scheduler = build_scheduler([{'load_1': 6.0}])

        def explode(snapshot):
            raise RuntimeError("boom")

        scheduler.evaluator.evaluate = explode
        report = scheduler.run_cycle()

        assert report.error == "boom"

    def test_history_recorded(self):
        history = SQLiteStorage({'sqlite_path': ':memory:'})
        scheduler = build_scheduler([{'load_1': 6.0}, {'load_1': 1.0}], history=history)
        try:
            scheduler.run_cycle()
            scheduler.run_cycle()

            records = history.get_events_by_rule('load_1')
            assert [r.state for r in records] == [AlertState.RESOLVED, AlertState.FIRING]
            assert records[1].deliveries == {'console': None}
        finally:
            history.close()

    def test_exporter_updated(self):
        exporter = PrometheusExporter(get_default_config())
        scheduler = build_scheduler([{'load_1': 6.0}], exporter=exporter)

        scheduler.run_cycle()

        output = exporter.render().decode()
        assert 'sysalert_cycles_total 1.0' in output
        assert 'sysalert_rule_state{rule="load_1"} 2.0' in output
        assert 'sysalert_metric_value{metric="load_1"} 6.0' in output
        assert 'sysalert_alerts_firing{severity="warning"} 1.0' in output
        assert 'sysalert_dispatch_total{channel="console",result="success"} 1.0' in output


class TestRunForever:
    def test_max_cycles(self):
        scheduler = build_scheduler([{'load_1': 1.0}] * 5)

        scheduler.run_forever(max_cycles=3)

        assert scheduler.cycle_count == 3

    def test_stop_before_start(self):
        scheduler = build_scheduler([{'load_1': 1.0}])
        scheduler.stop()

        scheduler.run_forever(max_cycles=3)

        assert scheduler.cycle_count == 0

    def test_interval_spacing(self):
        scheduler = build_scheduler([{'load_1': 1.0}] * 3, interval=0.05)

        started = time.monotonic()
        scheduler.run_forever(max_cycles=3)
        elapsed = time.monotonic() - started

        assert scheduler.cycle_count == 3
        assert elapsed >= 0.1

    def test_cycle_errors_do_not_stop_loop(self):
        scheduler = build_scheduler([None, None, {'load_1': 6.0}])

        scheduler.run_forever(max_cycles=3)

        assert scheduler.cycle_count == 3
        assert scheduler.tracker.get_state('load_1').state == AlertState.FIRING

    def test_history_cleanup(self, monkeypatch):
        monkeypatch.setattr(scheduler_module, 'CLEANUP_EVERY_CYCLES', 1)
        history = SQLiteStorage({'sqlite_path': ':memory:', 'retention_days': 30})
        history.save_event(EventRecord(
            rule_name='load_1', state=AlertState.FIRING, severity='warning',
            metric_name='load_1', metric_value=6.0, threshold=4.0,
            occurred_at=datetime.now() - timedelta(days=45),
        ))
        scheduler = build_scheduler([{'load_1': 1.0}], history=history)
        try:
            scheduler.run_forever(max_cycles=1)

            assert history.get_recent_events() == []
        finally:
            history.close()

    def test_no_cleanup_between_intervals(self, monkeypatch):
        monkeypatch.setattr(scheduler_module, 'CLEANUP_EVERY_CYCLES', 2)
        history = SQLiteStorage({'sqlite_path': ':memory:', 'retention_days': 30})
        history.save_event(EventRecord(
            rule_name='load_1', state=AlertState.FIRING, severity='warning',
            metric_name='load_1', metric_value=6.0, threshold=4.0,
            occurred_at=datetime.now() - timedelta(days=45),
        ))
        scheduler = build_scheduler([{'load_1': 1.0}], history=history)
        try:
            scheduler.run_forever(max_cycles=1)

            assert len(history.get_recent_events()) == 1
        finally:
            history.close()
