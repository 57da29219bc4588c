"""Configuration management"""

import os
import warnings
import yaml
from pathlib import Path
from typing import Dict, Any, Optional, Tuple

from sysalert.errors import ConfigurationError

DEFAULT_CONFIG_FILE = 'sysalert.yaml'

CHANNEL_TYPES = ('console', 'webhook', 'slack', 'telegram', 'email')
COLLECTOR_TYPES = ('cpu', 'memory', 'disk', 'process', 'system', 'file')

# Free-form mappings whose keys are user-chosen names
OPEN_MAPPINGS = {
    ('collectors', 'process', 'groups'),
    ('collectors', 'file', 'files'),
    ('channels', 'webhook', 'headers'),
}


def get_default_config() -> Dict[str, Any]:
    """Get default configuration"""
    return {
        'agent': {
            'hostname': 'auto',
            'interval': 60,
            'log_level': 'INFO',
            'log_file': None,
            'log_format': 'text',
        },
        'prometheus': {
            'enabled': False,
            'port': 9101,
            'host': '0.0.0.0',
        },
        'collectors': {
            'cpu': {
                'enabled': True,
                'sample_interval': 0.1,
            },
            'memory': {
                'enabled': True,
            },
            'disk': {
                'enabled': True,
                'mount_points': [],
                'exclude_filesystems': ['tmpfs', 'devtmpfs', 'squashfs', 'overlay'],
                'exclude_mount_points': ['/snap'],
            },
            'process': {
                'enabled': True,
                'groups': {
                    'web_server': {'names': ['apache2', 'nginx'], 'match': 'exact'},
                    'mysql': {'names': ['mariadbd', 'mysqld'], 'match': 'exact'},
                    'b2': {'names': ['b2'], 'match': 'contains'},
                },
            },
            'system': {
                'enabled': True,
            },
            'file': {
                'enabled': True,
                'files': {
                    'backup': '/tmp/backup.heartbeat',
                },
            },
        },
        'checks': {
            'enabled': True,
            'load_average': {
                'one': None,
                'five': None,
                'fifteen': None,
            },
            'disks': {
                'mount_points': ['/'],
                'minimum': 0.05,
            },
            'memory': {
                'minimum': 0.05,
            },
            'process_checks': {
                'disable_web_server_check': False,
                'disable_mysql_check': False,
                'disable_mysql_memory_check': False,
                'disable_duplicate_backup_check': False,
                'mysql_memory_maximum': 0.75,
            },
            'heartbeat': {
                'enabled': True,
                'file': 'backup',
                'max_age_seconds': 24 * 60 * 60 + 15 * 60,
            },
            'reboot': {
                'enabled': True,
                'window_seconds': 600,
            },
        },
        'channels': {
            'console': {
                'enabled': True,
                'stream': 'stdout',
            },
            'webhook': {
                'enabled': False,
                'url': '',
                'method': 'POST',
                'headers': {},
                'timeout': 10,
            },
            'slack': {
                'enabled': False,
                'webhook_url': '',
                'channel': '#alerts',
                'username': 'sysalert',
                'icon_emoji': ':rotating_light:',
                'timeout': 10,
            },
            'telegram': {
                'enabled': False,
                'token': '',
                'chat_id': '',
                'ip_address': '',
                'timeout': 10,
            },
            'email': {
                'enabled': False,
                'smtp_host': 'localhost',
                'smtp_port': 587,
                'smtp_user': '',
                'smtp_password': '',
                'use_tls': True,
                'from_address': '',
                'to_addresses': [],
                'timeout': 10,
            },
        },
        'alerting': {
            'dispatch_timeout': 10,
            'max_workers': 4,
            'default_channels': [],
            'rules_file': None,
        },
        'rules': [],
        'history': {
            'enabled': False,
            'sqlite_path': './data/sysalert.db',
            'retention_days': 30,
        },
    }


def resolve_config_path(config_path: Optional[str] = None) -> Optional[str]:
    """
    Pick the configuration file to load.

    Explicit path first, then the CONFIG environment variable, then
    ./sysalert.yaml if it exists. None means "defaults only".
    """
    if config_path:
        return config_path
    if os.environ.get('CONFIG'):
        return os.environ['CONFIG']
    if Path(DEFAULT_CONFIG_FILE).exists():
        return DEFAULT_CONFIG_FILE
    return None


def load_config(config_path: str = None) -> Dict[str, Any]:
    """
    Load configuration from file and environment variables

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Configuration dictionary

    Raises:
        ConfigurationError: If the file cannot be read or the result is invalid
    """
    # Start with defaults
    config = get_default_config()

    # Load from YAML file if provided
    if config_path:
        if not Path(config_path).exists():
            raise ConfigurationError(f"Config file not found: {config_path}")
        try:
            with open(config_path, 'r') as f:
                yaml_config = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Failed to load config from {config_path}: {e}")

        if yaml_config:
            if not isinstance(yaml_config, dict):
                raise ConfigurationError(f"Config file {config_path} must contain a mapping")
            check_unknown_keys(yaml_config)
            config = merge_configs(config, yaml_config)

    # Override with environment variables
    config = override_from_env(config)

    # Validate configuration
    validate_config(config)

    return config


def check_unknown_keys(user_config: Dict):
    """
    Reject unknown keys at any depth, and scalars where a mapping belongs

    Raises:
        ConfigurationError: On the first unknown key or misplaced value
    """
    _check_keys(user_config, get_default_config(), ())


def _check_keys(user: Dict, defaults: Dict, path: Tuple[str, ...]):
    for key, value in user.items():
        if key not in defaults:
            raise ConfigurationError(_unknown_key_message(path, key))

        key_path = path + (key,)
        if not isinstance(defaults[key], dict):
            continue

        if not isinstance(value, dict):
            raise ConfigurationError(
                f"'{'.'.join(key_path)}' must be a mapping, got {type(value).__name__}"
            )
        if key_path not in OPEN_MAPPINGS:
            _check_keys(value, defaults[key], key_path)


def _unknown_key_message(path: Tuple[str, ...], key: str) -> str:
    if not path:
        return f"Unknown configuration section: {key}"
    if path == ('channels',):
        return f"Unknown channel type: {key}"
    if path == ('collectors',):
        return f"Unknown collector type: {key}"
    return f"Unknown key in {'.'.join(path)}: {key}"


def merge_configs(base: Dict, override: Dict) -> Dict:
    """Recursively merge two configuration dictionaries"""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = merge_configs(result[key], value)
        else:
            result[key] = value
    return result


def override_from_env(config: Dict) -> Dict:
    """Override configuration from environment variables"""

    # Agent settings
    if 'AGENT_HOSTNAME' in os.environ:
        config['agent']['hostname'] = os.environ['AGENT_HOSTNAME']
    if 'SYSALERT_INTERVAL' in os.environ:
        config['agent']['interval'] = _env_number('SYSALERT_INTERVAL')
    if 'LOG_LEVEL' in os.environ:
        config['agent']['log_level'] = os.environ['LOG_LEVEL'].upper()
    if 'LOG_FILE' in os.environ:
        config['agent']['log_file'] = os.environ['LOG_FILE']
    if 'LOG_FORMAT' in os.environ:
        config['agent']['log_format'] = os.environ['LOG_FORMAT'].lower()

    # Prometheus settings
    if 'PROMETHEUS_ENABLED' in os.environ:
        config['prometheus']['enabled'] = os.environ['PROMETHEUS_ENABLED'].lower() == 'true'
    if 'PROMETHEUS_PORT' in os.environ:
        config['prometheus']['port'] = int(_env_number('PROMETHEUS_PORT'))
    if 'PROMETHEUS_HOST' in os.environ:
        config['prometheus']['host'] = os.environ['PROMETHEUS_HOST']

    # Telegram credentials are usually kept out of the config file
    if 'TELEGRAM_TOKEN' in os.environ:
        config['channels']['telegram']['token'] = os.environ['TELEGRAM_TOKEN']
    if 'TELEGRAM_CHAT_ID' in os.environ:
        config['channels']['telegram']['chat_id'] = os.environ['TELEGRAM_CHAT_ID']

    # Collector enabled flags
    for collector in COLLECTOR_TYPES:
        enabled_key = f'COLLECTOR_{collector.upper()}_ENABLED'
        if enabled_key in os.environ:
            config['collectors'][collector]['enabled'] = os.environ[enabled_key].lower() == 'true'

    return config


def _env_number(key: str) -> float:
    value = os.environ[key]
    try:
        number = float(value)
    except ValueError:
        raise ConfigurationError(f"Environment variable {key} must be numeric, got {value!r}")
    return int(number) if number.is_integer() else number


def enabled_channel_names(config: Dict) -> list:
    """Names of channels switched on in the configuration"""
    return [
        name for name, channel_config in config.get('channels', {}).items()
        if channel_config.get('enabled', False)
    ]


def validate_config(config: Dict):
    """
    Validate configuration values

    Raises:
        ConfigurationError: If configuration is invalid
    """
    try:
        _validate_values(config)
    except (TypeError, KeyError, AttributeError) as e:
        raise ConfigurationError(f"Invalid configuration: {type(e).__name__}: {e}") from e


def _require_number(value, name: str):
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigurationError(f"{name} must be a number, got {value!r}")
    return value


def _validate_values(config: Dict):
    # Validate interval
    interval = config['agent']['interval']
    if not isinstance(interval, (int, float)) or interval <= 0:
        raise ConfigurationError(f"Invalid agent interval: {interval}. Must be > 0")
    if interval < 1:
        warnings.warn(f"Evaluation interval is very aggressive: {interval}s")

    # Validate log level
    valid_log_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
    log_level = str(config['agent']['log_level']).upper()
    if log_level not in valid_log_levels:
        raise ConfigurationError(f"Invalid log level: {log_level}. Must be one of {valid_log_levels}")

    valid_log_formats = ['text', 'json']
    if config['agent']['log_format'] not in valid_log_formats:
        raise ConfigurationError(
            f"Invalid log format: {config['agent']['log_format']}. Must be one of {valid_log_formats}"
        )

    # Validate Prometheus port
    port = config['prometheus']['port']
    if not isinstance(port, int) or not (1 <= port <= 65535):
        raise ConfigurationError(f"Invalid Prometheus port: {port}. Must be between 1 and 65535")

    # At least one collector
    if not any(c.get('enabled', False) for c in config['collectors'].values()):
        raise ConfigurationError("No collectors enabled! Check your configuration.")

    # Validate process groups
    for group, group_config in config['collectors']['process'].get('groups', {}).items():
        if not isinstance(group_config, dict) or not group_config.get('names'):
            raise ConfigurationError(f"Process group {group} must define a non-empty 'names' list")
        if group_config.get('match', 'exact') not in ('exact', 'contains'):
            raise ConfigurationError(f"Process group {group}: match must be 'exact' or 'contains'")

    _validate_checks(config['checks'])

    # Validate alerting
    alerting = config['alerting']
    if _require_number(alerting['dispatch_timeout'], 'dispatch_timeout') <= 0:
        raise ConfigurationError(f"Invalid dispatch_timeout: {alerting['dispatch_timeout']}. Must be > 0")
    if not isinstance(alerting['max_workers'], int) or alerting['max_workers'] < 1:
        raise ConfigurationError(f"Invalid max_workers: {alerting['max_workers']}. Must be >= 1")

    if not isinstance(alerting['default_channels'], list):
        raise ConfigurationError("alerting.default_channels must be a list of channel names")

    _validate_channels(config)

    if not isinstance(config['rules'], list):
        raise ConfigurationError("'rules' must be a list of rule definitions")

    # Validate history
    history = config['history']
    if history.get('enabled') and _require_number(history.get('retention_days', 30), 'retention_days') < 1:
        raise ConfigurationError(f"Invalid retention_days: {history['retention_days']}. Must be >= 1")


def _validate_checks(checks: Dict):
    """Validate the built-in checks section"""
    for key in ('one', 'five', 'fifteen'):
        value = checks['load_average'].get(key)
        if value is not None and _require_number(value, f'load_average.{key}') <= 0:
            raise ConfigurationError(f"Invalid load_average.{key}: {value}. Must be > 0")

    for section in ('disks', 'memory'):
        minimum = _require_number(checks[section]['minimum'], f'{section}.minimum')
        if not (0 < minimum < 1):
            raise ConfigurationError(f"Invalid {section}.minimum: {minimum}. Must be between 0 and 1")

    maximum = _require_number(checks['process_checks']['mysql_memory_maximum'], 'mysql_memory_maximum')
    if not (0 < maximum <= 1):
        raise ConfigurationError(f"Invalid mysql_memory_maximum: {maximum}. Must be between 0 and 1")

    for section, key in (('heartbeat', 'max_age_seconds'), ('reboot', 'window_seconds')):
        if _require_number(checks[section][key], f'{section}.{key}') <= 0:
            raise ConfigurationError(f"Invalid {section}.{key}: {checks[section][key]}. Must be > 0")

    if not isinstance(checks['disks']['mount_points'], list):
        raise ConfigurationError("disks.mount_points must be a list")


def _validate_channels(config: Dict):
    """Validate channel sections and the default channel list"""
    channels = config['channels']
    enabled = enabled_channel_names(config)

    if not enabled:
        warnings.warn("No notification channels enabled")

    if channels['webhook'].get('enabled'):
        if not channels['webhook'].get('url'):
            raise ConfigurationError("Webhook channel enabled but url not set")
        if str(channels['webhook'].get('method', 'POST')).upper() not in ('POST', 'PUT'):
            raise ConfigurationError("Webhook channel: method must be POST or PUT")

    if channels['slack'].get('enabled'):
        if not channels['slack'].get('webhook_url'):
            raise ConfigurationError("Slack channel enabled but webhook_url not set")

    if channels['telegram'].get('enabled'):
        for field in ('token', 'chat_id'):
            if not channels['telegram'].get(field):
                raise ConfigurationError(f"Telegram channel enabled but {field} not set")

    if channels['email'].get('enabled'):
        email = channels['email']
        for field in ('smtp_host', 'from_address', 'to_addresses'):
            if not email.get(field):
                raise ConfigurationError(f"Email channel enabled but {field} not set")
        if not isinstance(email['to_addresses'], list):
            raise ConfigurationError("Email channel: to_addresses must be a non-empty list")

    for name in config['alerting']['default_channels']:
        if name not in enabled:
            raise ConfigurationError(f"Default channel {name} is not an enabled channel")
