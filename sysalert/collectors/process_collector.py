"""Process metrics collector"""

import psutil
from sysalert.collectors.base import BaseCollector
from sysalert.utils.helpers import safe_divide


class ProcessCollector(BaseCollector):
    """
    Collector for named process groups.

    Each group lists process names and a match mode (``exact`` or
    ``contains``) and yields ``process_count:<group>`` and
    ``process_memory_ratio:<group>`` (largest RSS of any matching
    process over total memory).
    """

    def metric_keys(self):
        keys = []
        for group in self.config.get('groups', {}):
            keys += [f'process_count:{group}', f'process_memory_ratio:{group}']
        return keys

    def collect(self):
        """Collect process metrics"""
        groups = self.config.get('groups', {})
        counts = {group: 0 for group in groups}
        max_rss = {group: 0 for group in groups}

        for proc in psutil.process_iter(['name', 'memory_info']):
            try:
                info = proc.info
                name = info['name'] or ''
                rss = info['memory_info'].rss if info['memory_info'] else 0
            except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
                # Process terminated or access denied, skip it
                continue

            for group, group_config in groups.items():
                if self._matches(name, group_config):
                    counts[group] += 1
                    max_rss[group] = max(max_rss[group], rss)

        total_memory = psutil.virtual_memory().total

        values = {}
        for group in groups:
            values[f'process_count:{group}'] = counts[group]
            values[f'process_memory_ratio:{group}'] = safe_divide(max_rss[group], total_memory)

        self.logger.debug(f"Collected process counts: {counts}")
        return values

    @staticmethod
    def _matches(name, group_config):
        names = group_config.get('names', [])
        if group_config.get('match', 'exact') == 'contains':
            return any(candidate in name for candidate in names)
        return name in names
