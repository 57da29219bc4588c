"""
Alert lifecycle states and the events emitted on notifying transitions.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict

from sysalert.alerts.alert_rule import AlertRule


class AlertState:
    """Alert lifecycle state constants"""
    OK = 'ok'              # Condition not met
    PENDING = 'pending'    # Condition met, waiting for for_count violations
    FIRING = 'firing'      # Notified, condition still met
    RESOLVED = 'resolved'  # Transient: was firing, condition cleared

    ALL = (OK, PENDING, FIRING, RESOLVED)


@dataclass(frozen=True)
class AlertEvent:
    """A notification that is due, produced by the tracker"""
    rule: AlertRule
    state: str  # AlertState.FIRING or AlertState.RESOLVED
    value: float
    timestamp: float
    repeat: bool = False

    @property
    def rule_name(self) -> str:
        return self.rule.name

    @property
    def severity(self) -> str:
        return self.rule.severity

    @property
    def firing(self) -> bool:
        return self.state == AlertState.FIRING

    @property
    def occurred_at(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp)

    def to_dict(self) -> Dict[str, Any]:
        """Serializable view used by webhook payloads and history"""
        return {
            'rule': self.rule.name,
            'state': self.state,
            'severity': self.rule.severity,
            'repeat': self.repeat,
            'metric': self.rule.metric,
            'operator': self.rule.operator,
            'threshold': self.rule.threshold,
            'value': self.value,
            'timestamp': self.occurred_at.isoformat(),
        }
