"""Cycle scheduler: collect -> evaluate -> track -> dispatch"""

import threading
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from sysalert.alerts.alert_evaluator import Outcome, RuleEvaluator, RuleResult
from sysalert.alerts.alert_tracker import AlertStateTracker
from sysalert.alerts.dispatcher import DispatchReport, NotifierDispatcher
from sysalert.alerts.events import AlertEvent
from sysalert.alerts.storage.base_storage import BaseStorage, EventRecord
from sysalert.collectors.snapshot import MetricSnapshot
from sysalert.collectors.source import MetricSource
from sysalert.errors import CollectionError
from sysalert.utils.logger import get_logger

CLEANUP_EVERY_CYCLES = 100


@dataclass
class CycleReport:
    """What happened during one cycle"""
    number: int
    snapshot: Optional[MetricSnapshot] = None
    results: Dict[str, RuleResult] = field(default_factory=dict)
    events: List[AlertEvent] = field(default_factory=list)
    dispatch: DispatchReport = field(default_factory=DispatchReport)
    failed_collectors: List[str] = field(default_factory=list)
    error: Optional[str] = None
    duration: float = 0.0

    def count(self, outcome: str) -> int:
        return sum(1 for r in self.results.values() if r.outcome == outcome)

    def summary(self) -> str:
        return (
            f"cycle {self.number}: {len(self.snapshot) if self.snapshot else 0} metrics, "
            f"{self.count(Outcome.VIOLATING)} violating, "
            f"{self.count(Outcome.NOT_EVALUABLE)} not evaluable, "
            f"{len(self.events)} events, "
            f"{self.dispatch.successes} sent, {self.dispatch.failures} failed "
            f"in {self.duration:.2f}s"
        )


class Scheduler:
    """
    Runs cycles one after another at a fixed interval.

    A cycle always completes before the next begins. When a cycle takes
    longer than the interval the next one starts late instead of
    overlapping. Errors inside a cycle are logged and never stop the loop.
    """

    def __init__(self, source: MetricSource, evaluator: RuleEvaluator,
                 tracker: AlertStateTracker, dispatcher: NotifierDispatcher,
                 interval: float, history: Optional[BaseStorage] = None,
                 exporter=None):
        self.source = source
        self.evaluator = evaluator
        self.tracker = tracker
        self.dispatcher = dispatcher
        self.interval = interval
        self.history = history
        self.exporter = exporter

        self.logger = get_logger(self.__class__.__name__)
        self.cycle_count = 0
        self._stop_event = threading.Event()

    def run_cycle(self) -> CycleReport:
        """Run one complete cycle; never raises for per-cycle failures"""
        self.cycle_count += 1
        report = CycleReport(number=self.cycle_count)
        started = time.monotonic()

        try:
            snapshot = self.source.collect()
            report.snapshot = snapshot
            report.failed_collectors = list(getattr(self.source, 'last_failures', []))

            report.results = self.evaluator.evaluate(snapshot)
            report.events = self.tracker.update(report.results, snapshot.timestamp)

            if report.events:
                report.dispatch = self.dispatcher.dispatch_all(report.events)
                self._record_history(report.dispatch)

        except CollectionError as e:
            report.failed_collectors = list(getattr(self.source, 'last_failures', []))
            report.error = str(e)
            self.logger.warning(f"Cycle {report.number}: collection failed, skipping evaluation: {e}")
        except Exception as e:
            report.error = str(e)
            self.logger.error(f"Cycle {report.number} failed: {e}", exc_info=True)

        report.duration = time.monotonic() - started

        for failed in report.dispatch.failed:
            self.logger.warning(f"Delivery via {failed.channel} failed: {failed.error}")

        self.logger.debug(report.summary())

        if self.exporter is not None:
            try:
                self.exporter.record_cycle(report, self.tracker)
            except Exception as e:
                self.logger.error(f"Failed to update self metrics: {e}")

        return report

    def _record_history(self, dispatch: DispatchReport) -> None:
        if self.history is None:
            return
        for event, results in dispatch.deliveries:
            try:
                self.history.save_event(EventRecord.from_event(event, results))
            except Exception as e:
                self.logger.error(f"Failed to record {event.state} event for {event.rule_name}: {e}")

    def _cleanup_history(self) -> None:
        if self.history is None or self.cycle_count % CLEANUP_EVERY_CYCLES != 0:
            return
        try:
            self.history.cleanup_old_events(self.history.retention_days)
        except Exception as e:
            self.logger.error(f"Failed to cleanup old events: {e}")

    def run_forever(self, max_cycles: Optional[int] = None) -> None:
        """
        Run cycles until stop() is called.

        Args:
            max_cycles: Stop after this many cycles (None = unlimited)
        """
        self.logger.debug(f"Starting cycle loop (interval: {self.interval}s)")
        cycles = 0

        while not self._stop_event.is_set():
            started = time.monotonic()
            self.run_cycle()
            self._cleanup_history()

            cycles += 1
            if max_cycles is not None and cycles >= max_cycles:
                break

            elapsed = time.monotonic() - started
            if elapsed > self.interval:
                self.logger.warning(
                    f"Cycle took {elapsed:.2f}s, longer than the {self.interval}s interval"
                )
            self._stop_event.wait(max(self.interval - elapsed, 0.0))

        self.logger.debug("Cycle loop stopped")

    def stop(self) -> None:
        """Ask the loop to exit after the current cycle"""
        self._stop_event.set()
