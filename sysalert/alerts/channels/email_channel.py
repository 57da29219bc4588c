"""
Email notification channel over SMTP.
"""

import logging
import smtplib
from email.message import EmailMessage
from typing import Dict

from sysalert.alerts.channels.base_channel import BaseChannel, format_value
from sysalert.alerts.events import AlertEvent
from sysalert.errors import DispatchError

logger = logging.getLogger(__name__)


class EmailChannel(BaseChannel):
    """Email notification channel"""

    def __init__(self, config: Dict, hostname: str = 'unknown'):
        super().__init__(config, hostname)
        self.smtp_host = config['smtp_host']
        self.smtp_port = config.get('smtp_port', 587)
        self.smtp_user = config.get('smtp_user', '')
        self.smtp_password = config.get('smtp_password', '')
        self.use_tls = config.get('use_tls', True)
        self.from_address = config['from_address']
        self.to_addresses = list(config['to_addresses'])

        logger.info(f"Email channel initialized ({len(self.to_addresses)} recipients via {self.smtp_host})")

    def send(self, event: AlertEvent) -> None:
        message = self.build_message(event)

        try:
            with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=self.timeout) as smtp:
                if self.use_tls:
                    smtp.starttls()
                if self.smtp_user:
                    smtp.login(self.smtp_user, self.smtp_password)
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            raise DispatchError(self.name, str(e))

        logger.debug(f"Email notification sent for alert: {event.rule_name}")

    def build_message(self, event: AlertEvent) -> EmailMessage:
        rule = event.rule
        content = self.format_message(event)

        message = EmailMessage()
        message['Subject'] = f"[{rule.severity.upper()}] {self.hostname}: {content['summary']}"
        message['From'] = self.from_address
        message['To'] = ', '.join(self.to_addresses)
        message.set_content(
            f"{content['description']}\n\n"
            f"Host:      {self.hostname}\n"
            f"Rule:      {rule.name}\n"
            f"State:     {event.state}\n"
            f"Metric:    {rule.metric}\n"
            f"Value:     {format_value(rule.metric, event.value)}\n"
            f"Threshold: {rule.operator} {format_value(rule.metric, rule.threshold)}\n"
            f"Time:      {event.occurred_at.isoformat()}\n"
        )
        return message
