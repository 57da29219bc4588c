"""Main agent orchestration"""

import signal
from typing import Any, Dict, List, Optional

import psutil

from sysalert import __version__
from sysalert.alerts.alert_evaluator import RuleEvaluator
from sysalert.alerts.alert_rule import AlertRule, load_alert_rules, parse_rules
from sysalert.alerts.alert_tracker import AlertStateTracker
from sysalert.alerts.default_rules import build_default_rules, merge_rules
from sysalert.alerts.dispatcher import NotifierDispatcher, create_channels
from sysalert.collectors.source import MetricSource, SystemMetricSource, create_collectors
from sysalert.errors import ConfigurationError
from sysalert.exporters.prometheus_exporter import PrometheusExporter
from sysalert.scheduler import CycleReport, Scheduler
from sysalert.utils.helpers import get_hostname
from sysalert.utils.logger import get_logger


class Agent:
    """Builds the monitoring pipeline from configuration and runs it"""

    def __init__(self, config: Dict[str, Any], source: Optional[MetricSource] = None,
                 channels: Optional[Dict] = None):
        """
        Initialize agent

        Args:
            config: Validated configuration dictionary
            source: Metric source to use instead of the configured collectors
            channels: Channels to use instead of the configured ones

        Raises:
            ConfigurationError: If rules, channels or collectors are unusable
        """
        self.config = config
        self.logger = get_logger(self.__class__.__name__)
        self.history = None

        # Setup hostname
        if config['agent']['hostname'] == 'auto':
            self.hostname = get_hostname()
        else:
            self.hostname = config['agent']['hostname']

        self.logger.info(f"Initializing agent for host: {self.hostname}")

        # Metric source
        if source is None:
            source = SystemMetricSource(create_collectors(config['collectors']))
        self.source = source

        # Notification channels
        if channels is None:
            channels = create_channels(config['channels'], hostname=self.hostname)
        self.channels = channels

        # Rules
        self.rules = self._load_rules()
        self._check_rule_channels(self.rules)
        self.unavailable_rules = self._check_rule_metrics(self.rules)
        self.evaluator = RuleEvaluator(self.rules)
        self.tracker = AlertStateTracker(self.rules)

        self.dispatcher = NotifierDispatcher(
            self.channels,
            timeout=config['alerting']['dispatch_timeout'],
            max_workers=config['alerting']['max_workers'],
        )

        # Optional event history
        if config['history'].get('enabled', False):
            from sysalert.alerts.storage.sqlite_storage import SQLiteStorage
            self.history = SQLiteStorage(config['history'])

        self.exporter = PrometheusExporter(config)

        self.scheduler = Scheduler(
            self.source,
            self.evaluator,
            self.tracker,
            self.dispatcher,
            interval=config['agent']['interval'],
            history=self.history,
            exporter=self.exporter,
        )

        self.logger.info(
            f"Agent initialized with {len(self.rules)} rules and "
            f"{len(self.channels)} channels ({', '.join(self.channels) or 'none'})"
        )

    def _default_channels(self) -> List[str]:
        configured = self.config['alerting'].get('default_channels') or []
        if configured:
            return list(configured)
        return list(self.channels)

    def _load_rules(self) -> List[AlertRule]:
        """Built-in checks merged with configured and file-based rules"""
        default_channels = self._default_channels()

        builtin = build_default_rules(
            self.config['checks'],
            default_channels,
            cpu_count=psutil.cpu_count() or 1,
        )

        user_rules = parse_rules(self.config.get('rules', []), default_channels)

        rules_file = self.config['alerting'].get('rules_file')
        if rules_file:
            try:
                user_rules += load_alert_rules(rules_file, default_channels)
            except FileNotFoundError:
                raise ConfigurationError(f"Alert rules file not found: {rules_file}")

        rules = merge_rules(builtin, user_rules)
        if not rules:
            self.logger.warning("No alert rules configured")
        return rules

    def _check_rule_channels(self, rules: List[AlertRule]) -> None:
        for rule in rules:
            for channel in rule.channels:
                if channel not in self.channels:
                    raise ConfigurationError(
                        f"Rule {rule.name} uses channel {channel!r}, which is not enabled"
                    )

    def _check_rule_metrics(self, rules: List[AlertRule]) -> List[str]:
        """Warn about rules whose metric no enabled collector reports"""
        available = self.source.metric_keys()
        if available is None:
            return []

        unavailable = []
        for rule in rules:
            if not rule.enabled or rule.metric in available:
                continue
            unavailable.append(rule.name)
            self.logger.warning(
                f"Rule {rule.name} watches {rule.metric}, which no enabled collector reports; "
                f"it will never be evaluated"
            )
        return unavailable

    def _setup_signal_handlers(self):
        """Setup signal handlers for graceful shutdown"""
        def signal_handler(signum, frame):
            self.logger.info(f"Received signal {signum}, initiating graceful shutdown...")
            self.scheduler.stop()

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

    def start(self):
        """Run cycles until a shutdown signal arrives"""
        self.logger.info("Starting agent...")
        self._setup_signal_handlers()

        try:
            self.exporter.start()
            self.exporter.set_info(__version__, self.hostname)

            self.logger.info(f"Monitoring every {self.config['agent']['interval']}s")
            self.scheduler.run_forever()
        finally:
            self.stop()

    def run_once(self) -> CycleReport:
        """Run a single cycle and release resources"""
        try:
            report = self.scheduler.run_cycle()
            self.logger.info(report.summary())
            return report
        finally:
            self.stop()

    def stop(self):
        """Stop the agent"""
        self.scheduler.stop()

        if self.history:
            self.history.close()
            self.history = None

        self.exporter.stop()
        self.logger.info("Agent stopped")
