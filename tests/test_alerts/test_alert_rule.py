"""Tests for AlertRule data class and loading"""

import pytest
import tempfile
import os

from sysalert.alerts.alert_rule import AlertRule, load_alert_rules, parse_rules
from sysalert.errors import ConfigurationError


class TestAlertRule:
    """Test AlertRule data class"""

    def test_create_valid_rule(self):
        """Test creating a valid alert rule"""
        rule = AlertRule(
            name="test_rule",
            metric="cpu_usage_percent",
            operator=">",
            threshold=80,
            channels=["console"],
            for_count=3,
        )

        assert rule.name == "test_rule"
        assert rule.metric == "cpu_usage_percent"
        assert rule.operator == ">"
        assert rule.threshold == 80.0
        assert isinstance(rule.threshold, float)
        assert rule.channels == ("console",)
        assert rule.for_count == 3
        assert rule.re_notify_after is None
        assert rule.severity == "warning"
        assert rule.enabled is True

    def test_rule_is_immutable(self):
        """Rules cannot be changed during a run"""
        rule = AlertRule(name="r", metric="m", operator=">", threshold=1, channels=["console"])
        with pytest.raises(AttributeError):
            rule.threshold = 5

    def test_invalid_operator(self):
        """Test that invalid operator raises error"""
        with pytest.raises(ConfigurationError, match="invalid operator"):
            AlertRule(name="test", metric="m", operator="??", threshold=80.0, channels=["console"])

    def test_invalid_severity(self):
        """Test that invalid severity raises error"""
        with pytest.raises(ConfigurationError, match="invalid severity"):
            AlertRule(name="test", metric="m", operator=">", threshold=80.0,
                      channels=["console"], severity="extreme")

    @pytest.mark.parametrize("for_count", [0, -1, 1.5, True])
    def test_invalid_for_count(self, for_count):
        """for_count must be a positive integer"""
        with pytest.raises(ConfigurationError, match="for_count"):
            AlertRule(name="test", metric="m", operator=">", threshold=80.0,
                      channels=["console"], for_count=for_count)

    def test_invalid_re_notify_after(self):
        with pytest.raises(ConfigurationError, match="re_notify_after"):
            AlertRule(name="test", metric="m", operator=">", threshold=80.0,
                      channels=["console"], re_notify_after=0)

    def test_non_numeric_threshold(self):
        with pytest.raises(ConfigurationError, match="threshold"):
            AlertRule(name="test", metric="m", operator=">", threshold="high", channels=["console"])

    def test_no_channels(self):
        """Test that empty channels list raises error"""
        with pytest.raises(ConfigurationError, match="at least one channel"):
            AlertRule(name="test", metric="m", operator=">", threshold=80.0, channels=[])

    def test_configuration_error_is_value_error(self):
        with pytest.raises(ValueError):
            AlertRule(name="", metric="m", operator=">", threshold=1, channels=["console"])

    def test_describe_condition(self):
        rule = AlertRule(name="r", metric="cpu_load", operator=">", threshold=0.9, channels=["console"])
        assert rule.describe_condition() == "cpu_load > 0.9"


class TestFromDict:
    """Test building rules from configuration mappings"""

    def test_full_definition(self):
        rule = AlertRule.from_dict({
            'name': 'cpu_high',
            'metric': 'cpu_load',
            'operator': '>',
            'threshold': '0.9',
            'for_count': 3,
            're_notify_after': 600,
            'channels': ['console'],
        })
        assert rule.threshold == 0.9
        assert rule.for_count == 3
        assert rule.re_notify_after == 600.0

    def test_default_channels_used_when_missing(self):
        rule = AlertRule.from_dict(
            {'name': 'r', 'metric': 'm', 'operator': '<', 'threshold': 1},
            default_channels=['console', 'telegram'],
        )
        assert rule.channels == ('console', 'telegram')

    def test_single_channel_string(self):
        rule = AlertRule.from_dict(
            {'name': 'r', 'metric': 'm', 'operator': '<', 'threshold': 1, 'channels': 'console'}
        )
        assert rule.channels == ('console',)

    def test_missing_field(self):
        with pytest.raises(ConfigurationError, match="missing required field 'metric'"):
            AlertRule.from_dict({'name': 'r', 'operator': '>', 'threshold': 1, 'channels': ['c']})

    def test_unknown_field(self):
        with pytest.raises(ConfigurationError, match="unknown fields"):
            AlertRule.from_dict({'name': 'r', 'metric': 'm', 'operator': '>', 'threshold': 1,
                                 'channels': ['c'], 'for_duration': 5})

    def test_parse_rules_fails_fast(self):
        with pytest.raises(ConfigurationError):
            parse_rules([
                {'name': 'ok', 'metric': 'm', 'operator': '>', 'threshold': 1, 'channels': ['c']},
                {'name': 'bad', 'metric': 'm', 'operator': '>', 'threshold': 1, 'channels': ['c'],
                 'for_count': 0},
            ])


class TestLoadAlertRules:
    """Test loading alert rules from YAML"""

    def _write(self, content):
        with tempfile.NamedTemporaryFile(mode='w', suffix='.yaml', delete=False) as f:
            f.write(content)
            return f.name

    def test_load_valid_rules(self):
        """Test loading valid alert rules from YAML"""
        temp_file = self._write("""
rules:
  - name: "test_rule"
    metric: "cpu_usage_percent"
    operator: ">"
    threshold: 80.0
    for_count: 5
    severity: "warning"
    channels:
      - console
""")
        try:
            rules = load_alert_rules(temp_file)
            assert len(rules) == 1
            assert rules[0].name == "test_rule"
            assert rules[0].metric == "cpu_usage_percent"
            assert rules[0].operator == ">"
            assert rules[0].threshold == 80.0
            assert rules[0].for_count == 5
        finally:
            os.unlink(temp_file)

    def test_load_alert_rules_key(self):
        """The alert_rules key is accepted as well"""
        temp_file = self._write("""
alert_rules:
  - {name: r1, metric: m, operator: "<", threshold: 1, channels: [console]}
""")
        try:
            assert [r.name for r in load_alert_rules(temp_file)] == ["r1"]
        finally:
            os.unlink(temp_file)

    def test_load_empty_file(self):
        """Test loading empty YAML file"""
        temp_file = self._write("")
        try:
            assert load_alert_rules(temp_file) == []
        finally:
            os.unlink(temp_file)

    def test_load_missing_file(self):
        """Test loading non-existent file"""
        with pytest.raises(FileNotFoundError):
            load_alert_rules("/nonexistent/file.yaml")

    def test_load_invalid_yaml(self):
        """Test loading invalid YAML"""
        temp_file = self._write("invalid: yaml: content: [")
        try:
            with pytest.raises(ConfigurationError, match="Invalid YAML"):
                load_alert_rules(temp_file)
        finally:
            os.unlink(temp_file)

    def test_invalid_rule_rejected(self):
        """A malformed rule stops loading instead of being skipped"""
        temp_file = self._write("""
rules:
  - {name: r1, metric: m, operator: "<", threshold: 1, channels: [console]}
  - {name: r2, metric: m, operator: "~", threshold: 1, channels: [console]}
""")
        try:
            with pytest.raises(ConfigurationError, match="r2"):
                load_alert_rules(temp_file)
        finally:
            os.unlink(temp_file)

    def test_load_multiple_rules(self):
        """Test loading multiple rules"""
        temp_file = self._write("""
rules:
  - name: "rule1"
    metric: "cpu_usage_percent"
    operator: ">"
    threshold: 80
    channels: [console]
  - name: "rule2"
    metric: "memory_usage_percent"
    operator: ">"
    threshold: 90
    for_count: 2
    severity: "critical"
""")
        try:
            rules = load_alert_rules(temp_file, default_channels=['telegram'])
            assert len(rules) == 2
            assert rules[0].name == "rule1"
            assert rules[1].name == "rule2"
            assert rules[1].channels == ('telegram',)
        finally:
            os.unlink(temp_file)
