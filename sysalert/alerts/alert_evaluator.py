"""
Rule evaluator: checks rule conditions against a metric snapshot.
"""

import logging
import math
import operator
from typing import Dict, Iterable, List, NamedTuple, Optional

from sysalert.alerts.alert_rule import AlertRule
from sysalert.collectors.snapshot import MetricSnapshot
from sysalert.errors import ConfigurationError

logger = logging.getLogger(__name__)

OPERATORS = {
    '>': operator.gt,
    '>=': operator.ge,
    '<': operator.lt,
    '<=': operator.le,
    '==': operator.eq,
    '!=': operator.ne,
}


class Outcome:
    """Evaluation outcome constants"""
    VIOLATING = 'violating'
    OK = 'ok'
    NOT_EVALUABLE = 'not_evaluable'


class RuleResult(NamedTuple):
    """Result of evaluating one rule against one snapshot"""
    outcome: str
    value: Optional[float] = None

    @property
    def violating(self) -> bool:
        return self.outcome == Outcome.VIOLATING

    @property
    def evaluable(self) -> bool:
        return self.outcome != Outcome.NOT_EVALUABLE


def evaluate_condition(rule: AlertRule, value: float) -> bool:
    """
    Evaluate rule condition against metric value.

    Args:
        rule: Alert rule with operator and threshold
        value: Current metric value

    Returns:
        True if the condition holds (the rule is violated)
    """
    return OPERATORS[rule.operator](float(value), rule.threshold)


def evaluate_rule(snapshot: MetricSnapshot, rule: AlertRule) -> RuleResult:
    """Evaluate a single rule; a missing or non-finite metric is not evaluable"""
    value = snapshot.value(rule.metric)

    if value is None or not math.isfinite(value):
        logger.debug(f"Rule {rule.name} not evaluable: no value for {rule.metric}")
        return RuleResult(Outcome.NOT_EVALUABLE, None)

    if evaluate_condition(rule, value):
        logger.debug(f"Rule {rule.name} condition met: {value} {rule.operator} {rule.threshold}")
        return RuleResult(Outcome.VIOLATING, value)

    logger.debug(f"Rule {rule.name} condition not met: {value} {rule.operator} {rule.threshold}")
    return RuleResult(Outcome.OK, value)


def evaluate(snapshot: MetricSnapshot, rules: Iterable[AlertRule]) -> Dict[str, RuleResult]:
    """
    Evaluate every enabled rule against a snapshot.

    Pure function of its inputs. Disabled rules are left out of the result.

    Returns:
        Mapping of rule name to RuleResult
    """
    return {
        rule.name: evaluate_rule(snapshot, rule)
        for rule in rules
        if rule.enabled
    }


class RuleEvaluator:
    """Holds the validated rule set for a run and evaluates it"""

    def __init__(self, rules: List[AlertRule]):
        """
        Initialize rule evaluator.

        Args:
            rules: Alert rules to evaluate

        Raises:
            ConfigurationError: On duplicate names or malformed rules
        """
        seen = set()
        for rule in rules:
            if rule.name in seen:
                raise ConfigurationError(f"Duplicate rule name: {rule.name}")
            seen.add(rule.name)

            if rule.operator not in OPERATORS:
                raise ConfigurationError(f"Rule {rule.name}: unknown operator {rule.operator!r}")
            if rule.for_count <= 0:
                raise ConfigurationError(f"Rule {rule.name}: for_count must be >= 1")

        self.rules = tuple(rules)

        logger.info(
            f"Rule evaluator initialized with {len(self.rules)} rules "
            f"({self.get_enabled_rule_count()} enabled)"
        )

    def evaluate(self, snapshot: MetricSnapshot) -> Dict[str, RuleResult]:
        """Evaluate the configured rules against a snapshot"""
        return evaluate(snapshot, self.rules)

    def get_rule(self, rule_name: str) -> Optional[AlertRule]:
        for rule in self.rules:
            if rule.name == rule_name:
                return rule
        return None

    def get_rule_count(self) -> int:
        """Get total number of rules"""
        return len(self.rules)

    def get_enabled_rule_count(self) -> int:
        """Get number of enabled rules"""
        return sum(1 for rule in self.rules if rule.enabled)
