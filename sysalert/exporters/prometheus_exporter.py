"""Prometheus exporter for the agent's own metrics"""

from prometheus_client import start_http_server, Gauge, Counter, Histogram, generate_latest
from prometheus_client.core import CollectorRegistry

from sysalert.alerts.alert_rule import VALID_SEVERITIES
from sysalert.alerts.events import AlertState
from sysalert.utils.logger import get_logger

STATE_VALUES = {
    AlertState.OK: 0,
    AlertState.PENDING: 1,
    AlertState.FIRING: 2,
}


class PrometheusExporter:
    """Self-monitoring metrics, optionally served over HTTP"""

    def __init__(self, config):
        """
        Initialize Prometheus exporter

        Args:
            config: Configuration dictionary
        """
        self.config = config
        self.logger = get_logger(self.__class__.__name__)

        prometheus_config = config.get('prometheus', {})
        self.enabled = prometheus_config.get('enabled', False)
        self.host = prometheus_config.get('host', '0.0.0.0')
        self.port = prometheus_config.get('port', 9101)

        self.registry = CollectorRegistry()
        self.running = False

        self._setup_metrics()

    def _setup_metrics(self):
        """Setup agent self-monitoring metrics"""
        self.agent_info = Gauge(
            'sysalert_info',
            'Agent information',
            ['version', 'hostname'],
            registry=self.registry
        )

        self.cycles_total = Counter(
            'sysalert_cycles_total',
            'Number of evaluation cycles run',
            registry=self.registry
        )

        self.cycle_errors_total = Counter(
            'sysalert_cycle_errors_total',
            'Number of cycles that ended with an error',
            registry=self.registry
        )

        self.cycle_duration = Histogram(
            'sysalert_cycle_duration_seconds',
            'Duration of an evaluation cycle',
            registry=self.registry
        )

        self.collector_errors_total = Counter(
            'sysalert_collector_errors_total',
            'Total number of collection errors',
            ['collector'],
            registry=self.registry
        )

        self.metric_value = Gauge(
            'sysalert_metric_value',
            'Last collected value of a monitored metric',
            ['metric'],
            registry=self.registry
        )

        self.rule_state = Gauge(
            'sysalert_rule_state',
            'Rule lifecycle state (0=ok, 1=pending, 2=firing)',
            ['rule'],
            registry=self.registry
        )

        self.alerts_firing = Gauge(
            'sysalert_alerts_firing',
            'Number of firing alerts by severity',
            ['severity'],
            registry=self.registry
        )

        self.alert_events_total = Counter(
            'sysalert_alert_events_total',
            'Alert events emitted',
            ['rule', 'state'],
            registry=self.registry
        )

        self.dispatch_total = Counter(
            'sysalert_dispatch_total',
            'Notification deliveries by channel and result',
            ['channel', 'result'],
            registry=self.registry
        )

    def start(self):
        """Start HTTP server (when enabled)"""
        if not self.enabled:
            self.logger.debug("Prometheus endpoint disabled")
            return

        self.logger.info(f"Starting Prometheus HTTP server on {self.host}:{self.port}")
        start_http_server(self.port, addr=self.host, registry=self.registry)
        self.running = True
        self.logger.info(f"Metrics available at http://{self.host}:{self.port}/metrics")

    def stop(self):
        """Stop HTTP server"""
        if self.running:
            self.running = False
            self.logger.info("Prometheus HTTP server stopped")

    def set_info(self, version, hostname):
        self.agent_info.labels(version=version, hostname=hostname).set(1)

    def record_cycle(self, report, tracker):
        """
        Update metrics from a finished cycle

        Args:
            report: CycleReport of the cycle
            tracker: AlertStateTracker holding the rule states
        """
        self.cycles_total.inc()
        self.cycle_duration.observe(report.duration)

        if report.error:
            self.cycle_errors_total.inc()

        for collector_name in report.failed_collectors:
            self.collector_errors_total.labels(collector=collector_name).inc()

        if report.snapshot is not None:
            for key, value in report.snapshot.values().items():
                self.metric_value.labels(metric=key).set(value)

        for event in report.events:
            self.alert_events_total.labels(rule=event.rule_name, state=event.state).inc()

        for result in report.dispatch.results:
            outcome = 'success' if result.success else 'failure'
            self.dispatch_total.labels(channel=result.channel, result=outcome).inc()

        for rule_name, state in tracker.states.items():
            self.rule_state.labels(rule=rule_name).set(STATE_VALUES.get(state.state, 0))

        firing = tracker.get_firing_by_severity()
        for severity in VALID_SEVERITIES:
            self.alerts_firing.labels(severity=severity).set(firing.get(severity, 0))

    def render(self) -> bytes:
        """Current metrics in the text exposition format"""
        return generate_latest(self.registry)
