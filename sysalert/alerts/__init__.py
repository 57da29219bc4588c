"""
Alert system: rules, evaluation, state tracking and dispatch.
"""

from sysalert.alerts.alert_rule import AlertRule, load_alert_rules, parse_rules
from sysalert.alerts.alert_evaluator import Outcome, RuleEvaluator, RuleResult, evaluate
from sysalert.alerts.alert_tracker import AlertStateTracker, RuleState
from sysalert.alerts.events import AlertEvent, AlertState
from sysalert.alerts.dispatcher import DispatchReport, DispatchResult, NotifierDispatcher

__all__ = [
    'AlertRule',
    'load_alert_rules',
    'parse_rules',
    'Outcome',
    'RuleEvaluator',
    'RuleResult',
    'evaluate',
    'AlertStateTracker',
    'RuleState',
    'AlertEvent',
    'AlertState',
    'DispatchReport',
    'DispatchResult',
    'NotifierDispatcher',
]
