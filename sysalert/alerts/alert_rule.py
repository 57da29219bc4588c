"""
Alert rule data structures and loading utilities.
"""

import yaml
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
import logging

from sysalert.errors import ConfigurationError

logger = logging.getLogger(__name__)

VALID_OPERATORS = ('>', '>=', '<', '<=', '==', '!=')
VALID_SEVERITIES = ('info', 'warning', 'critical')

RULE_FIELDS = (
    'name', 'metric', 'operator', 'threshold', 'for_count', 're_notify_after',
    'channels', 'severity', 'description', 'annotations', 'enabled',
)


@dataclass(frozen=True)
class AlertRule:
    """Alert rule definition"""
    name: str
    metric: str
    operator: str  # >, >=, <, <=, ==, !=
    threshold: float
    channels: Tuple[str, ...]
    for_count: int = 1
    re_notify_after: Optional[float] = None  # seconds, None = never repeat
    severity: str = 'warning'  # info, warning, critical
    description: str = ""
    annotations: Dict[str, str] = field(default_factory=dict, compare=False, hash=False)
    enabled: bool = True

    def __post_init__(self):
        """Validate rule configuration"""
        if not self.name:
            raise ConfigurationError("Rule name must not be empty")

        object.__setattr__(self, 'channels', tuple(self.channels))
        try:
            object.__setattr__(self, 'threshold', float(self.threshold))
        except (TypeError, ValueError):
            raise ConfigurationError(f"Rule {self.name}: threshold must be numeric, got {self.threshold!r}")

        if not self.metric:
            raise ConfigurationError(f"Rule {self.name}: metric must not be empty")

        # Validate operator
        if self.operator not in VALID_OPERATORS:
            raise ConfigurationError(
                f"Rule {self.name}: invalid operator {self.operator!r}. Must be one of {list(VALID_OPERATORS)}"
            )

        # Validate severity
        if self.severity not in VALID_SEVERITIES:
            raise ConfigurationError(
                f"Rule {self.name}: invalid severity {self.severity!r}. Must be one of {list(VALID_SEVERITIES)}"
            )

        # Validate consecutive count
        if isinstance(self.for_count, bool) or not isinstance(self.for_count, int) or self.for_count <= 0:
            raise ConfigurationError(f"Rule {self.name}: for_count must be an integer >= 1, got {self.for_count!r}")

        # Validate re-notify interval
        if self.re_notify_after is not None and self.re_notify_after <= 0:
            raise ConfigurationError(
                f"Rule {self.name}: re_notify_after must be > 0 seconds, got {self.re_notify_after}"
            )

        # Validate channels
        if not self.channels:
            raise ConfigurationError(f"Rule {self.name}: at least one channel must be specified")

    @classmethod
    def from_dict(cls, data: Dict[str, Any], default_channels: Optional[List[str]] = None) -> 'AlertRule':
        """
        Build a rule from its configuration mapping.

        Args:
            data: ``{name, metric, operator, threshold, for_count,
                  re_notify_after, channels, ...}``
            default_channels: Channels used when the rule lists none

        Raises:
            ConfigurationError: If a field is missing, unknown or invalid
        """
        if not isinstance(data, dict):
            raise ConfigurationError(f"Rule definition must be a mapping, got {type(data).__name__}")

        name = data.get('name', 'unknown')
        unknown = set(data) - set(RULE_FIELDS)
        if unknown:
            raise ConfigurationError(f"Rule {name}: unknown fields {sorted(unknown)}")

        for required in ('name', 'metric', 'operator', 'threshold'):
            if required not in data:
                raise ConfigurationError(f"Rule {name}: missing required field {required!r}")

        try:
            threshold = float(data['threshold'])
        except (TypeError, ValueError):
            raise ConfigurationError(f"Rule {name}: threshold must be numeric, got {data['threshold']!r}")

        re_notify_after = data.get('re_notify_after')
        if re_notify_after is not None:
            try:
                re_notify_after = float(re_notify_after)
            except (TypeError, ValueError):
                raise ConfigurationError(f"Rule {name}: re_notify_after must be numeric")

        channels = data.get('channels') or default_channels or []
        if isinstance(channels, str):
            channels = [channels]

        return cls(
            name=str(data['name']),
            metric=str(data['metric']),
            operator=str(data['operator']),
            threshold=threshold,
            channels=tuple(channels),
            for_count=data.get('for_count', 1),
            re_notify_after=re_notify_after,
            severity=data.get('severity', 'warning'),
            description=data.get('description', ''),
            annotations=dict(data.get('annotations') or {}),
            enabled=bool(data.get('enabled', True)),
        )

    def describe_condition(self) -> str:
        """Human readable condition, e.g. ``load_1 > 4``"""
        return f"{self.metric} {self.operator} {self.threshold:g}"


def parse_rules(rule_configs: List[Dict[str, Any]],
                default_channels: Optional[List[str]] = None) -> List[AlertRule]:
    """
    Build rules from a list of mappings, failing on the first bad one.

    Raises:
        ConfigurationError: If any rule is invalid
    """
    rules = []
    for rule_config in rule_configs or []:
        rule = AlertRule.from_dict(rule_config, default_channels)
        rules.append(rule)
        logger.debug(f"Loaded alert rule: {rule.name}")
    return rules


def load_alert_rules(rules_file: str, default_channels: Optional[List[str]] = None) -> List[AlertRule]:
    """
    Load alert rules from YAML file.

    Args:
        rules_file: Path to YAML file with a ``rules`` (or ``alert_rules``) list
        default_channels: Channels for rules that list none

    Returns:
        List of AlertRule objects

    Raises:
        FileNotFoundError: If rules file doesn't exist
        ConfigurationError: If rules file has invalid format or an invalid rule
    """
    try:
        with open(rules_file, 'r') as f:
            config = yaml.safe_load(f)
    except FileNotFoundError:
        logger.error(f"Alert rules file not found: {rules_file}")
        raise
    except yaml.YAMLError as e:
        logger.error(f"Failed to parse YAML file {rules_file}: {e}")
        raise ConfigurationError(f"Invalid YAML format: {e}")

    if not config:
        logger.warning(f"No rules found in {rules_file}")
        return []

    rule_configs = config.get('rules', config.get('alert_rules')) if isinstance(config, dict) else None
    if rule_configs is None:
        logger.warning(f"No rules found in {rules_file}")
        return []
    if not isinstance(rule_configs, list):
        raise ConfigurationError(f"{rules_file}: rules must be a list")

    rules = parse_rules(rule_configs, default_channels)
    logger.info(f"Loaded {len(rules)} alert rules from {rules_file}")
    return rules
