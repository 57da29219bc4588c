"""
Base storage interface for alert event history.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional
import json

from sysalert.alerts.dispatcher import DispatchResult
from sysalert.alerts.events import AlertEvent


@dataclass
class EventRecord:
    """A dispatched alert event and how each channel handled it"""
    rule_name: str
    state: str
    severity: str
    metric_name: str
    metric_value: float
    threshold: float
    occurred_at: datetime
    repeat: bool = False
    deliveries: Dict[str, Optional[str]] = field(default_factory=dict)  # channel -> error or None
    id: Optional[int] = None

    @classmethod
    def from_event(cls, event: AlertEvent, results: Dict[str, DispatchResult]) -> 'EventRecord':
        return cls(
            rule_name=event.rule.name,
            state=event.state,
            severity=event.rule.severity,
            metric_name=event.rule.metric,
            metric_value=event.value,
            threshold=event.rule.threshold,
            occurred_at=event.occurred_at,
            repeat=event.repeat,
            deliveries={name: (None if r.success else r.error) for name, r in results.items()},
        )

    @property
    def delivered(self) -> bool:
        """True if at least one channel accepted the event"""
        return any(error is None for error in self.deliveries.values())

    def to_dict(self) -> Dict:
        """Convert to dictionary for storage"""
        return {
            'rule_name': self.rule_name,
            'state': self.state,
            'severity': self.severity,
            'metric_name': self.metric_name,
            'metric_value': self.metric_value,
            'threshold': self.threshold,
            'occurred_at': self.occurred_at.isoformat(),
            'repeat': int(self.repeat),
            'deliveries': json.dumps(self.deliveries),
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'EventRecord':
        """Create EventRecord from a storage row"""
        deliveries = data.get('deliveries') or {}
        occurred_at = data['occurred_at']
        return cls(
            id=data.get('id'),
            rule_name=data['rule_name'],
            state=data['state'],
            severity=data['severity'],
            metric_name=data['metric_name'],
            metric_value=data['metric_value'],
            threshold=data['threshold'],
            occurred_at=datetime.fromisoformat(occurred_at) if isinstance(occurred_at, str) else occurred_at,
            repeat=bool(data.get('repeat', 0)),
            deliveries=json.loads(deliveries) if isinstance(deliveries, str) else deliveries,
        )


class BaseStorage(ABC):
    """Abstract base class for event history backends"""

    retention_days: int = 30

    @abstractmethod
    def save_event(self, record: EventRecord) -> int:
        """
        Append an event to the history.

        Args:
            record: Event record to save

        Returns:
            Identifier of the stored record
        """
        pass

    @abstractmethod
    def get_event(self, event_id: int) -> Optional[EventRecord]:
        """
        Retrieve an event by identifier.

        Returns:
            EventRecord or None if not found
        """
        pass

    @abstractmethod
    def get_events_by_rule(self, rule_name: str, limit: int = 100) -> List[EventRecord]:
        """
        Get recent events for a specific rule, newest first.

        Args:
            rule_name: Name of the alert rule
            limit: Maximum number of events to return
        """
        pass

    @abstractmethod
    def get_recent_events(self, limit: int = 100) -> List[EventRecord]:
        """Get the most recent events across all rules, newest first"""
        pass

    @abstractmethod
    def cleanup_old_events(self, days: int) -> int:
        """
        Delete events older than specified days.

        Returns:
            Number of events deleted
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Close storage connection and cleanup resources"""
        pass
