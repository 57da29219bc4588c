"""
Slack notification channel using webhooks.
"""

import logging
from typing import Dict

import requests

from sysalert.alerts.channels.base_channel import BaseChannel, format_value
from sysalert.alerts.events import AlertEvent, AlertState
from sysalert.errors import DispatchError

logger = logging.getLogger(__name__)

SEVERITY_COLORS = {
    'info': '#0066cc',
    'warning': '#ff9900',
    'critical': '#cc0000',
}
RESOLVED_COLOR = '#2eb886'


class SlackChannel(BaseChannel):
    """Slack notification channel via webhooks"""

    def __init__(self, config: Dict, hostname: str = 'unknown'):
        """
        Initialize Slack channel.

        Args:
            config: Slack configuration dict with webhook_url
            hostname: Host name shown in the message footer
        """
        super().__init__(config, hostname)
        self.webhook_url = config['webhook_url']
        self.channel = config.get('channel', '#alerts')
        self.username = config.get('username', 'sysalert')
        self.icon_emoji = config.get('icon_emoji', ':rotating_light:')

        logger.info(f"Slack channel initialized (channel: {self.channel})")

    def send(self, event: AlertEvent) -> None:
        """Send Slack notification"""
        payload = self._create_slack_payload(event)

        try:
            response = requests.post(
                self.webhook_url,
                json=payload,
                headers={'Content-Type': 'application/json'},
                timeout=self.timeout
            )
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise DispatchError(self.name, str(e))

        logger.debug(f"Slack notification sent for alert: {event.rule_name}")

    def _create_slack_payload(self, event: AlertEvent) -> Dict:
        """Create Slack webhook payload"""
        rule = event.rule
        message_content = self.format_message(event)

        if event.state == AlertState.RESOLVED:
            color = RESOLVED_COLOR
        else:
            color = SEVERITY_COLORS.get(rule.severity, '#666666')

        fields = [
            {
                "title": "Severity",
                "value": rule.severity.upper(),
                "short": True
            },
            {
                "title": "Current Value",
                "value": format_value(rule.metric, event.value),
                "short": True
            },
            {
                "title": "Threshold",
                "value": f"{rule.operator} {format_value(rule.metric, rule.threshold)}",
                "short": True
            },
            {
                "title": "Metric",
                "value": rule.metric,
                "short": True
            },
        ]

        attachment = {
            "color": color,
            "title": message_content['summary'],
            "text": message_content['description'],
            "fields": fields,
            "footer": f"sysalert on {self.hostname}",
            "ts": int(event.timestamp),
        }

        # Add @channel mention for new critical alerts
        text = ""
        if event.firing and rule.severity == 'critical' and not event.repeat:
            text = "<!channel> Critical Alert"

        return {
            "channel": self.channel,
            "username": self.username,
            "icon_emoji": self.icon_emoji,
            "text": text,
            "attachments": [attachment]
        }
