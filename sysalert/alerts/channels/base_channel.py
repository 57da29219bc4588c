"""
Base notification channel interface.
"""

from abc import ABC, abstractmethod
from typing import Dict, Optional
import logging

from sysalert.alerts.events import AlertEvent, AlertState
from sysalert.utils.helpers import format_duration

logger = logging.getLogger(__name__)

STATE_EMOJI = {
    AlertState.FIRING: '\U0001F6A8',    # rotating light
    AlertState.RESOLVED: '✅',      # check mark
}


def format_value(metric: str, value: Optional[float]) -> str:
    """Render a metric value for humans based on its name"""
    if value is None:
        return 'n/a'
    name = metric.split(':', 1)[0]
    if name.endswith('_seconds'):
        return format_duration(value)
    if name.endswith('_ratio'):
        return f"{value * 100:.1f}%"
    if name.endswith('_percent'):
        return f"{value:.1f}%"
    return f"{value:.2f}"


class BaseChannel(ABC):
    """Abstract base class for notification channels"""

    def __init__(self, config: Dict, hostname: str = 'unknown'):
        self.config = config
        self.hostname = hostname
        self.timeout = config.get('timeout', 10)

    @property
    def name(self) -> str:
        return self.__class__.__name__.replace('Channel', '').lower()

    @abstractmethod
    def send(self, event: AlertEvent) -> None:
        """
        Deliver one alert event.

        Args:
            event: Event to deliver

        Raises:
            DispatchError: If delivery failed
        """
        pass

    def format_message(self, event: AlertEvent) -> Dict[str, str]:
        """
        Format alert message from rule annotations.

        Args:
            event: Alert event

        Returns:
            Dict with 'summary' and 'description' keys
        """
        rule = event.rule
        annotations = rule.annotations or {}

        if event.firing:
            prefix = "Still firing" if event.repeat else "Firing"
            default_summary = f"{prefix}: {rule.name}"
            default_description = rule.description or rule.describe_condition()
        else:
            default_summary = f"Resolved: {rule.name}"
            default_description = f"{rule.metric} back to normal"

        summary_key = 'summary' if event.firing else 'resolved_summary'
        description_key = 'description' if event.firing else 'resolved_description'

        summary = self._substitute_template(annotations.get(summary_key, default_summary), event)
        description = self._substitute_template(
            annotations.get(description_key, default_description), event
        )

        return {
            'summary': summary,
            'description': description,
        }

    def format_text(self, event: AlertEvent) -> str:
        """Single-line plain text rendering"""
        message = self.format_message(event)
        emoji = STATE_EMOJI.get(event.state, '')
        return (
            f"{emoji} [{event.severity.upper()}] {self.hostname}: {message['summary']} - "
            f"{message['description']} (value {format_value(event.rule.metric, event.value)})"
        ).strip()

    def _substitute_template(self, template: str, event: AlertEvent) -> str:
        """
        Substitute template variables.

        Supports:
            {{ value }} - Current metric value
            {{ threshold }} - Alert threshold
            {{ metric }} - Metric key
            {{ rule }} - Rule name
            {{ state }} - firing / resolved
            {{ hostname }} - Host name
        """
        rule = event.rule
        replacements = {
            'value': format_value(rule.metric, event.value),
            'threshold': format_value(rule.metric, rule.threshold),
            'metric': rule.metric,
            'rule': rule.name,
            'state': event.state,
            'hostname': self.hostname,
        }

        result = template
        for key, val in replacements.items():
            result = result.replace(f'{{{{ {key} }}}}', str(val))
        return result
