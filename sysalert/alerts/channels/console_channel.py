"""
Console notification channel.
"""

import logging
import sys
from typing import Dict

from sysalert.alerts.channels.base_channel import BaseChannel
from sysalert.alerts.events import AlertEvent
from sysalert.errors import DispatchError

logger = logging.getLogger(__name__)


class ConsoleChannel(BaseChannel):
    """Writes one line per event to stdout or stderr"""

    def __init__(self, config: Dict, hostname: str = 'unknown', stream=None):
        super().__init__(config, hostname)
        if stream is None:
            stream = sys.stderr if config.get('stream') == 'stderr' else sys.stdout
        self.stream = stream

    def send(self, event: AlertEvent) -> None:
        try:
            print(self.format_text(event), file=self.stream, flush=True)
        except (OSError, ValueError) as e:
            raise DispatchError(self.name, f"write failed: {e}")
