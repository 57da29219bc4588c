"""
Notifier dispatch: fans an alert event out to its channels.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from sysalert.alerts.channels.base_channel import BaseChannel
from sysalert.alerts.events import AlertEvent
from sysalert.errors import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DispatchResult:
    """Outcome of delivering one event to one channel"""
    channel: str
    success: bool
    error: Optional[str] = None
    elapsed: float = 0.0


@dataclass
class DispatchReport:
    """Aggregated outcome of dispatching a cycle's events"""
    results: List[DispatchResult] = field(default_factory=list)
    deliveries: List[Tuple[AlertEvent, Dict[str, DispatchResult]]] = field(default_factory=list)

    def add(self, event: AlertEvent, results: Dict[str, DispatchResult]) -> None:
        self.deliveries.append((event, results))
        self.results.extend(results.values())

    @property
    def successes(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failures(self) -> int:
        return sum(1 for r in self.results if not r.success)

    @property
    def failed(self) -> List[DispatchResult]:
        return [r for r in self.results if not r.success]


def create_channels(channels_config: Dict, hostname: str = 'unknown') -> Dict[str, BaseChannel]:
    """
    Initialize notification channels based on config

    Raises:
        ConfigurationError: If an enabled channel cannot be constructed
    """
    from sysalert.alerts.channels.console_channel import ConsoleChannel
    from sysalert.alerts.channels.email_channel import EmailChannel
    from sysalert.alerts.channels.slack_channel import SlackChannel
    from sysalert.alerts.channels.telegram_channel import TelegramChannel
    from sysalert.alerts.channels.webhook_channel import WebhookChannel

    channel_classes = {
        'console': ConsoleChannel,
        'webhook': WebhookChannel,
        'slack': SlackChannel,
        'telegram': TelegramChannel,
        'email': EmailChannel,
    }

    channels = {}
    for name, channel_class in channel_classes.items():
        channel_config = channels_config.get(name, {})
        if not channel_config.get('enabled', False):
            continue
        try:
            channels[name] = channel_class(channel_config, hostname=hostname)
        except KeyError as e:
            raise ConfigurationError(f"Channel {name}: missing setting {e}")
        logger.info(f"{name} channel initialized")

    if not channels:
        logger.warning("No notification channels enabled")

    return channels


class NotifierDispatcher:
    """
    Routes events to channels.

    Sends for one event run concurrently on a thread pool and are joined
    before dispatch returns. A send that exceeds ``timeout`` seconds is
    recorded as failed; its thread is abandoned, not waited for.

    Abandoned workers are not daemon threads, so interpreter exit still
    joins them. Each channel's own I/O timeout is therefore capped at
    ``timeout``, which bounds how long a hung send can delay shutdown.
    """

    def __init__(self, channels: Dict[str, BaseChannel], timeout: float = 10.0,
                 max_workers: int = 4):
        self.channels = channels
        self.timeout = timeout
        self.max_workers = max_workers

        for channel_id, channel in channels.items():
            if channel.timeout > timeout:
                logger.debug(f"Capping {channel_id} timeout at {timeout}s")
                channel.timeout = timeout

    def dispatch(self, event: AlertEvent, channel_ids: Iterable[str]) -> Dict[str, DispatchResult]:
        """
        Deliver an event to each listed channel.

        A failing channel never prevents delivery to the others and nothing
        is raised; failures are reported in the returned mapping.

        Returns:
            Mapping of channel id to DispatchResult
        """
        results: Dict[str, DispatchResult] = {}
        targets = []

        for channel_id in dict.fromkeys(channel_ids):
            if channel_id in self.channels:
                targets.append(channel_id)
            else:
                logger.warning(f"Channel {channel_id} not available")
                results[channel_id] = DispatchResult(channel_id, False, "unknown channel")

        if not targets:
            return results

        executor = ThreadPoolExecutor(
            max_workers=min(self.max_workers, len(targets)),
            thread_name_prefix='dispatch'
        )
        try:
            started = time.monotonic()
            futures = {
                channel_id: executor.submit(self._send, channel_id, event)
                for channel_id in targets
            }
            deadline = started + self.timeout

            for channel_id, future in futures.items():
                remaining = max(deadline - time.monotonic(), 0.0)
                try:
                    results[channel_id] = future.result(timeout=remaining)
                except FutureTimeoutError:
                    future.cancel()
                    logger.error(
                        f"Notification via {channel_id} for {event.rule_name} "
                        f"timed out after {self.timeout}s"
                    )
                    results[channel_id] = DispatchResult(
                        channel_id, False, f"timed out after {self.timeout}s",
                        time.monotonic() - started
                    )
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        return results

    def _send(self, channel_id: str, event: AlertEvent) -> DispatchResult:
        channel = self.channels[channel_id]
        started = time.monotonic()
        try:
            channel.send(event)
        except Exception as e:
            elapsed = time.monotonic() - started
            logger.error(f"Failed to send notification via {channel_id} for {event.rule_name}: {e}")
            return DispatchResult(channel_id, False, str(e), elapsed)

        elapsed = time.monotonic() - started
        logger.info(f"Sent {event.state} notification via {channel_id} for {event.rule_name}")
        return DispatchResult(channel_id, True, None, elapsed)

    def dispatch_all(self, events: Iterable[AlertEvent]) -> DispatchReport:
        """Dispatch every event of a cycle to its rule's channels"""
        report = DispatchReport()
        for event in events:
            report.add(event, self.dispatch(event, event.rule.channels))
        return report
