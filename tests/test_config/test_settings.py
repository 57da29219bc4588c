"""Tests for configuration loading"""

import pytest

from sysalert.config import settings
from sysalert.config.settings import (
    get_default_config,
    load_config,
    merge_configs,
    resolve_config_path,
    validate_config,
)
from sysalert.errors import ConfigurationError

ENV_KEYS = [
    'CONFIG', 'AGENT_HOSTNAME', 'SYSALERT_INTERVAL', 'LOG_LEVEL', 'LOG_FILE', 'LOG_FORMAT',
    'PROMETHEUS_ENABLED', 'PROMETHEUS_PORT', 'PROMETHEUS_HOST', 'TELEGRAM_TOKEN', 'TELEGRAM_CHAT_ID',
] + [f'COLLECTOR_{name.upper()}_ENABLED' for name in settings.COLLECTOR_TYPES]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def write_config(tmp_path):
    def write(text):
        path = tmp_path / 'sysalert.yaml'
        path.write_text(text)
        return str(path)
    return write


class TestLoadConfig:
    """Test loading and merging"""

    def test_defaults_without_file(self):
        config = load_config(None)

        assert config == get_default_config()
        assert config['agent']['interval'] == 60
        assert config['channels']['console']['enabled'] is True

    def test_file_overrides_defaults(self, write_config):
        path = write_config("""
agent:
  interval: 30
collectors:
  disk:
    mount_points: ['/', '/var']
channels:
  slack:
    enabled: true
    webhook_url: https://hooks.slack.com/services/x
""")
        config = load_config(path)

        assert config['agent']['interval'] == 30
        assert config['agent']['log_level'] == 'INFO'
        assert config['collectors']['disk']['mount_points'] == ['/', '/var']
        assert config['collectors']['disk']['exclude_mount_points'] == ['/snap']
        assert config['channels']['slack']['enabled'] is True
        assert config['channels']['slack']['channel'] == '#alerts'

    def test_empty_file(self, write_config):
        assert load_config(write_config("")) == get_default_config()

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match='not found'):
            load_config(str(tmp_path / 'nope.yaml'))

    def test_invalid_yaml(self, write_config):
        with pytest.raises(ConfigurationError, match='Failed to load'):
            load_config(write_config("agent: [unclosed"))

    def test_not_a_mapping(self, write_config):
        with pytest.raises(ConfigurationError, match='mapping'):
            load_config(write_config("- a\n- b\n"))

    @pytest.mark.parametrize("text,message", [
        ("bogus: 1\n", "Unknown configuration section"),
        ("agent:\n  intervall: 5\n", "Unknown key in agent"),
        ("channels:\n  pager:\n    enabled: true\n", "Unknown channel type"),
        ("collectors:\n  gpu:\n    enabled: true\n", "Unknown collector type"),
    ])
    def test_unknown_keys_rejected(self, write_config, text, message):
        with pytest.raises(ConfigurationError, match=message):
            load_config(write_config(text))


class TestEnvironmentOverrides:
    def test_overrides(self, monkeypatch):
        monkeypatch.setenv('SYSALERT_INTERVAL', '15')
        monkeypatch.setenv('LOG_LEVEL', 'debug')
        monkeypatch.setenv('AGENT_HOSTNAME', 'db1')
        monkeypatch.setenv('PROMETHEUS_ENABLED', 'true')
        monkeypatch.setenv('PROMETHEUS_PORT', '9200')
        monkeypatch.setenv('COLLECTOR_PROCESS_ENABLED', 'false')

        config = load_config(None)

        assert config['agent']['interval'] == 15
        assert config['agent']['log_level'] == 'DEBUG'
        assert config['agent']['hostname'] == 'db1'
        assert config['prometheus']['enabled'] is True
        assert config['prometheus']['port'] == 9200
        assert config['collectors']['process']['enabled'] is False

    def test_telegram_credentials(self, monkeypatch, write_config):
        monkeypatch.setenv('TELEGRAM_TOKEN', '123:abc')
        monkeypatch.setenv('TELEGRAM_CHAT_ID', '-100200')

        config = load_config(write_config("channels:\n  telegram:\n    enabled: true\n"))

        assert config['channels']['telegram']['token'] == '123:abc'
        assert config['channels']['telegram']['chat_id'] == '-100200'

    def test_non_numeric_interval(self, monkeypatch):
        monkeypatch.setenv('SYSALERT_INTERVAL', 'soon')
        with pytest.raises(ConfigurationError, match='SYSALERT_INTERVAL'):
            load_config(None)


class TestResolveConfigPath:
    def test_explicit_path_wins(self, monkeypatch):
        monkeypatch.setenv('CONFIG', '/etc/other.yaml')
        assert resolve_config_path('/etc/sysalert.yaml') == '/etc/sysalert.yaml'

    def test_config_env(self, monkeypatch):
        monkeypatch.setenv('CONFIG', '/etc/other.yaml')
        assert resolve_config_path() == '/etc/other.yaml'

    def test_local_file(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        assert resolve_config_path() is None

        (tmp_path / 'sysalert.yaml').write_text("agent:\n  interval: 5\n")
        assert resolve_config_path() == 'sysalert.yaml'


class TestValidateConfig:
    """Test validation of individual values"""

    @pytest.mark.parametrize("section,key,value", [
        ('agent', 'interval', 0),
        ('agent', 'interval', 'often'),
        ('agent', 'log_level', 'LOUD'),
        ('agent', 'log_format', 'xml'),
        ('prometheus', 'port', 70000),
        ('alerting', 'dispatch_timeout', 0),
        ('alerting', 'max_workers', 0),
        ('alerting', 'default_channels', ['slack']),
        ('rules', None, {'name': 'x'}),
    ])
    def test_invalid_values(self, section, key, value):
        config = get_default_config()
        if key is None:
            config[section] = value
        else:
            config[section][key] = value

        with pytest.raises(ConfigurationError):
            validate_config(config)

    def test_no_collectors(self):
        config = get_default_config()
        for collector in config['collectors'].values():
            collector['enabled'] = False

        with pytest.raises(ConfigurationError, match='No collectors'):
            validate_config(config)

    def test_invalid_check_thresholds(self):
        config = get_default_config()
        config['checks']['disks']['minimum'] = 5
        with pytest.raises(ConfigurationError, match='disks.minimum'):
            validate_config(config)

    def test_invalid_process_group(self):
        config = get_default_config()
        config['collectors']['process']['groups']['redis'] = {'names': ['redis-server'], 'match': 'regex'}
        with pytest.raises(ConfigurationError, match='redis'):
            validate_config(config)

    @pytest.mark.parametrize("channel,message", [
        ('webhook', 'url'),
        ('slack', 'webhook_url'),
        ('telegram', 'token'),
        ('email', 'from_address'),
    ])
    def test_enabled_channel_requires_settings(self, channel, message):
        config = get_default_config()
        config['channels'][channel]['enabled'] = True

        with pytest.raises(ConfigurationError, match=message):
            validate_config(config)

    def test_no_channels_warns(self):
        config = get_default_config()
        config['channels']['console']['enabled'] = False

        with pytest.warns(UserWarning, match='No notification channels'):
            validate_config(config)


def test_merge_configs_is_recursive():
    base = {'a': {'b': 1, 'c': 2}, 'd': [1]}
    merged = merge_configs(base, {'a': {'c': 3}, 'd': [2]})

    assert merged == {'a': {'b': 1, 'c': 3}, 'd': [2]}
    assert base == {'a': {'b': 1, 'c': 2}, 'd': [1]}


class TestMalformedConfig:
    """Wrong types and misspelled keys are configuration errors"""

    @pytest.mark.parametrize("text,message", [
        ("checks:\n  process_checks:\n    disable_mysql_chek: true\n", "Unknown key in checks.process_checks"),
        ("checks:\n  heartbeat:\n    max_age: 60\n", "Unknown key in checks.heartbeat"),
        ("channels:\n  slack:\n    webhook: https://hooks.slack.com/x\n", "Unknown key in channels.slack"),
        ("collectors:\n  disk:\n    mountpoints: ['/']\n", "Unknown key in collectors.disk"),
        ("agent:\n", "'agent' must be a mapping"),
        ("checks:\n  memory: 0.1\n", "'checks.memory' must be a mapping"),
    ])
    def test_rejected_structure(self, write_config, text, message):
        with pytest.raises(ConfigurationError, match=message):
            load_config(write_config(text))

    def test_free_form_mappings_accepted(self, write_config):
        config = load_config(write_config("""
collectors:
  process:
    groups:
      redis: {names: [redis-server]}
  file:
    files:
      nightly: /var/run/nightly.heartbeat
channels:
  webhook:
    headers:
      X-Api-Key: secret
"""))

        assert config['collectors']['process']['groups']['redis'] == {'names': ['redis-server']}
        assert config['collectors']['file']['files']['nightly'] == '/var/run/nightly.heartbeat'
        assert config['channels']['webhook']['headers'] == {'X-Api-Key': 'secret'}

    @pytest.mark.parametrize("text,message", [
        ("alerting:\n  dispatch_timeout: 10s\n", "dispatch_timeout must be a number"),
        ("checks:\n  memory:\n    minimum: low\n", "memory.minimum must be a number"),
        ("checks:\n  load_average:\n    one: high\n", "load_average.one must be a number"),
        ("checks:\n  reboot:\n    window_seconds: '600'\n", "reboot.window_seconds must be a number"),
        ("history:\n  enabled: true\n  retention_days: month\n", "retention_days must be a number"),
        ("alerting:\n  default_channels: console\n", "default_channels must be a list"),
    ])
    def test_wrong_types(self, write_config, text, message):
        with pytest.raises(ConfigurationError, match=message):
            load_config(write_config(text))

    def test_leftover_type_errors_wrapped(self):
        config = get_default_config()
        config['agent'] = None

        with pytest.raises(ConfigurationError, match='Invalid configuration'):
            validate_config(config)
