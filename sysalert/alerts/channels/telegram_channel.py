"""
Telegram Bot API notification channel.
"""

import logging
import re
from typing import Dict

import requests

from sysalert.alerts.channels.base_channel import STATE_EMOJI, BaseChannel, format_value
from sysalert.alerts.events import AlertEvent
from sysalert.errors import DispatchError
from sysalert.utils.helpers import get_public_ipv4

logger = logging.getLogger(__name__)

API_URL = "https://api.telegram.org/bot{token}/sendMessage"

_MARKDOWN_SPECIAL = re.compile(r'([_*\[\]()~`>#+\-=|{}.!\\])')
_CODE_SPECIAL = re.compile(r'([`\\])')


def escape_markdown(text: str) -> str:
    """Escape text for Telegram MarkdownV2 outside code spans"""
    return _MARKDOWN_SPECIAL.sub(r'\\\1', text)


def escape_code(text: str) -> str:
    """Escape text for use inside a MarkdownV2 code span"""
    return _CODE_SPECIAL.sub(r'\\\1', text)


class TelegramChannel(BaseChannel):
    """Sends MarkdownV2 messages through a Telegram bot"""

    def __init__(self, config: Dict, hostname: str = 'unknown'):
        super().__init__(config, hostname)
        self.url = API_URL.format(token=config['token'])
        self.chat_id = str(config['chat_id'])
        self.ip_address = config.get('ip_address') or get_public_ipv4()

        logger.info(f"Telegram channel initialized (chat: {self.chat_id})")

    def send(self, event: AlertEvent) -> None:
        payload = {
            'chat_id': self.chat_id,
            'parse_mode': 'MarkdownV2',
            'text': self.format_telegram(event),
        }

        try:
            response = requests.post(self.url, json=payload, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise DispatchError(self.name, str(e))

        if response.status_code != 200:
            raise DispatchError(self.name, f"HTTP {response.status_code}: {response.text[:200]}")

        logger.debug(f"Telegram notification sent for alert: {event.rule_name}")

    def format_telegram(self, event: AlertEvent) -> str:
        """Header with host and address, then summary and the condition"""
        rule = event.rule
        message = self.format_message(event)
        emoji = STATE_EMOJI.get(event.state, '')

        condition = (
            f"{rule.metric}: {format_value(rule.metric, event.value)} "
            f"{rule.operator} {format_value(rule.metric, rule.threshold)}"
        )

        return (
            f"{emoji} `{escape_code(self.hostname)}` \\- `{escape_code(self.ip_address)}`\n"
            f"*{escape_markdown(message['summary'])}*\n"
            f"{escape_markdown(message['description'])}\n"
            f"`{escape_code(condition)}`"
        )
