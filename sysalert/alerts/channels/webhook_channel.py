"""
Custom webhook notification channel.
"""

import logging
from typing import Dict

import requests

from sysalert.alerts.channels.base_channel import BaseChannel
from sysalert.alerts.events import AlertEvent
from sysalert.errors import DispatchError

logger = logging.getLogger(__name__)


class WebhookChannel(BaseChannel):
    """Custom webhook notification channel"""

    def __init__(self, config: Dict, hostname: str = 'unknown'):
        """
        Initialize webhook channel.

        Args:
            config: Webhook configuration dict with url, method, headers
            hostname: Host name included in the payload
        """
        super().__init__(config, hostname)
        self.url = config['url']
        self.method = config.get('method', 'POST').upper()
        self.headers = dict(config.get('headers') or {})

        # Ensure Content-Type is set
        if 'Content-Type' not in self.headers:
            self.headers['Content-Type'] = 'application/json'

        logger.info(f"Webhook channel initialized (url: {self.url}, method: {self.method})")

    def send(self, event: AlertEvent) -> None:
        """Send webhook notification"""
        payload = self._create_webhook_payload(event)

        try:
            response = requests.request(
                self.method,
                self.url,
                json=payload,
                headers=self.headers,
                timeout=self.timeout
            )
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise DispatchError(self.name, str(e))

        logger.debug(f"Webhook notification sent for alert: {event.rule_name}")

    def _create_webhook_payload(self, event: AlertEvent) -> Dict:
        """Create webhook payload"""
        message_content = self.format_message(event)
        data = event.to_dict()

        return {
            "alert": {
                "name": data['rule'],
                "severity": data['severity'],
                "status": data['state'],
                "repeat": data['repeat'],
                "timestamp": data['timestamp'],
            },
            "metric": {
                "name": data['metric'],
                "value": data['value'],
                "threshold": data['threshold'],
                "operator": data['operator'],
            },
            "host": self.hostname,
            "annotations": {
                "summary": message_content['summary'],
                "description": message_content['description'],
            }
        }
