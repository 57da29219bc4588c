"""
Built-in host checks expressed as ordinary alert rules.
"""

import logging
from typing import Any, Dict, List

from sysalert.alerts.alert_rule import AlertRule

logger = logging.getLogger(__name__)


def build_default_rules(checks: Dict[str, Any], channels: List[str], cpu_count: int) -> List[AlertRule]:
    """
    Build the stock rules from the ``checks`` config section.

    Args:
        checks: The ``checks`` configuration section
        channels: Channels every built-in rule notifies
        cpu_count: Number of CPUs, the default load threshold

    Returns:
        List of rules (empty when checks are disabled or no channel exists)
    """
    if not checks.get('enabled', True):
        return []
    if not channels:
        logger.warning("Built-in checks skipped: no notification channel available")
        return []

    rules = []

    def add(name, metric, op, threshold, severity='warning', description=''):
        rules.append(AlertRule(
            name=name,
            metric=metric,
            operator=op,
            threshold=threshold,
            channels=tuple(channels),
            severity=severity,
            description=description,
        ))

    # Load averages, defaulting to one per CPU; the 1 minute figure is
    # allowed to spike to twice that
    load = checks.get('load_average', {})
    load_one = load.get('one') or cpu_count
    add('load_1', 'load_1', '>', load_one * 2, 'critical', '1 minute load average is high')
    add('load_5', 'load_5', '>', load.get('five') or cpu_count,
        description='5 minute load average is high')
    add('load_15', 'load_15', '>', load.get('fifteen') or cpu_count,
        description='15 minute load average is high')

    disks = checks.get('disks', {})
    for mount_point in disks.get('mount_points', []):
        add(f'disk_free:{mount_point}', f'disk_free_ratio:{mount_point}', '<',
            disks.get('minimum', 0.05), 'critical', f'Free space on {mount_point} is low')

    memory = checks.get('memory', {})
    add('memory_free', 'memory_available_ratio', '<', memory.get('minimum', 0.05), 'critical',
        'Available memory is low')

    process_checks = checks.get('process_checks', {})
    if not process_checks.get('disable_web_server_check', False):
        add('web_server_running', 'process_count:web_server', '==', 0, 'critical',
            'apache2, nginx is not running')
    if not process_checks.get('disable_mysql_check', False):
        add('mysql_running', 'process_count:mysql', '==', 0, 'critical',
            'mariadbd, mysqld is not running')
    if not process_checks.get('disable_mysql_memory_check', False):
        add('mysql_memory', 'process_memory_ratio:mysql', '>',
            process_checks.get('mysql_memory_maximum', 0.75),
            description='MySQL is using most of the memory')
    if not process_checks.get('disable_duplicate_backup_check', False):
        add('backup_duplicate', 'process_count:b2', '>', 1,
            description='More than one backup process is running')

    heartbeat = checks.get('heartbeat', {})
    if heartbeat.get('enabled', True):
        name = heartbeat.get('file', 'backup')
        add('heartbeat_missing', f'file_exists:{name}', '==', 0,
            description=f'Heartbeat file {name} is missing')
        add('heartbeat_expired', f'file_age_seconds:{name}', '>',
            heartbeat.get('max_age_seconds', 87300),
            description=f'Heartbeat file {name} has expired')

    reboot = checks.get('reboot', {})
    if reboot.get('enabled', True):
        add('rebooted', 'uptime_seconds', '<', reboot.get('window_seconds', 600), 'info',
            'Host rebooted recently')

    return rules


def merge_rules(builtin: List[AlertRule], user: List[AlertRule]) -> List[AlertRule]:
    """User rules replace built-in rules of the same name"""
    user_names = {rule.name for rule in user}
    merged = [rule for rule in builtin if rule.name not in user_names]
    overridden = len(builtin) - len(merged)
    if overridden:
        logger.info(f"{overridden} built-in rules overridden by configured rules")
    return merged + list(user)
