"""
Alert state tracker: per-rule lifecycle, debounce and re-notify decisions.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from sysalert.alerts.alert_evaluator import Outcome, RuleResult
from sysalert.alerts.alert_rule import AlertRule
from sysalert.alerts.events import AlertEvent, AlertState

logger = logging.getLogger(__name__)


@dataclass
class RuleState:
    """Tracks state for one rule across evaluation cycles"""
    state: str = AlertState.OK
    violations: int = 0       # consecutive violating observations
    ok_count: int = 0         # consecutive non-violating observations
    last_transition_at: Optional[float] = None
    last_notified_at: Optional[float] = None
    last_value: Optional[float] = None
    notification_count: int = 0


class AlertStateTracker:
    """
    Owns one RuleState per rule and turns evaluation results into events.

    The tracker does no I/O. Time comes from the caller (the snapshot
    timestamp) so a sequence of updates is fully deterministic.

    Transitions::

        OK --violation--> PENDING --for_count reached--> FIRING
        OK --for_count reached (for_count == 1)--> FIRING
        PENDING --ok--> OK
        FIRING --ok--> RESOLVED --> OK   (one resolution event)
    """

    def __init__(self, rules: Iterable[AlertRule]):
        self.rules: Dict[str, AlertRule] = {rule.name: rule for rule in rules}
        self.states: Dict[str, RuleState] = {name: RuleState() for name in self.rules}

        logger.info(f"Alert state tracker initialized for {len(self.states)} rules")

    def update(self, results: Dict[str, RuleResult], now: float) -> List[AlertEvent]:
        """
        Apply one cycle of evaluation results.

        Args:
            results: Rule name to RuleResult, as produced by the evaluator
            now: Cycle timestamp (epoch seconds)

        Returns:
            Events that must be dispatched, in rule order
        """
        for name in results:
            if name not in self.rules:
                logger.warning(f"Ignoring result for unknown rule: {name}")

        events = []
        for name, rule in self.rules.items():
            result = results.get(name)
            if result is None:
                continue

            event = self._apply(rule, self.states[name], result, now)
            if event is not None:
                events.append(event)

        return events

    def _apply(self, rule: AlertRule, state: RuleState, result: RuleResult,
               now: float) -> Optional[AlertEvent]:
        if result.outcome == Outcome.NOT_EVALUABLE:
            # Skipped cycle: no counter or state change
            logger.debug(f"Rule {rule.name}: not evaluable, state stays {state.state}")
            return None

        state.last_value = result.value

        if result.outcome == Outcome.VIOLATING:
            return self._on_violation(rule, state, result.value, now)
        return self._on_ok(rule, state, result.value, now)

    def _on_violation(self, rule: AlertRule, state: RuleState, value: float,
                      now: float) -> Optional[AlertEvent]:
        state.violations += 1
        state.ok_count = 0

        if state.state in (AlertState.OK, AlertState.PENDING):
            if state.violations >= rule.for_count:
                self._transition(rule, state, AlertState.FIRING, now)
                return self._notify(rule, state, value, now, repeat=False)

            if state.state == AlertState.OK:
                self._transition(rule, state, AlertState.PENDING, now)
            logger.debug(f"Rule {rule.name}: pending ({state.violations}/{rule.for_count})")
            return None

        # Already firing
        if rule.re_notify_after and state.last_notified_at is not None:
            if now - state.last_notified_at >= rule.re_notify_after:
                logger.info(f"Rule {rule.name}: still firing, re-notifying")
                return self._notify(rule, state, value, now, repeat=True)
        return None

    def _on_ok(self, rule: AlertRule, state: RuleState, value: float,
               now: float) -> Optional[AlertEvent]:
        state.violations = 0
        state.ok_count += 1

        if state.state == AlertState.PENDING:
            self._transition(rule, state, AlertState.OK, now)
            return None

        if state.state == AlertState.FIRING:
            # FIRING -> RESOLVED -> OK within one cycle
            self._transition(rule, state, AlertState.OK, now)
            logger.info(f"Alert resolved: {rule.name} (value {value})")
            event = AlertEvent(rule=rule, state=AlertState.RESOLVED, value=value, timestamp=now)
            state.last_notified_at = now
            state.notification_count += 1
            return event

        return None

    def _transition(self, rule: AlertRule, state: RuleState, new_state: str, now: float) -> None:
        logger.debug(f"Rule {rule.name}: {state.state} -> {new_state}")
        state.state = new_state
        state.last_transition_at = now

    def _notify(self, rule: AlertRule, state: RuleState, value: float, now: float,
                repeat: bool) -> AlertEvent:
        if not repeat:
            logger.info(f"Alert firing: {rule.name} ({rule.describe_condition()}, value {value})")
        state.last_notified_at = now
        state.notification_count += 1
        return AlertEvent(rule=rule, state=AlertState.FIRING, value=value, timestamp=now, repeat=repeat)

    def get_state(self, rule_name: str) -> RuleState:
        """State record for a rule (KeyError if the rule is unknown)"""
        return self.states[rule_name]

    def get_firing_count(self) -> int:
        """Get count of currently firing alerts"""
        return sum(1 for s in self.states.values() if s.state == AlertState.FIRING)

    def get_firing_by_severity(self) -> Dict[str, int]:
        """Get firing alert counts by severity"""
        counts: Dict[str, int] = {}
        for name, s in self.states.items():
            if s.state == AlertState.FIRING:
                severity = self.rules[name].severity
                counts[severity] = counts.get(severity, 0) + 1
        return counts
