"""CPU metrics collector"""

import psutil
from sysalert.collectors.base import BaseCollector


class CPUCollector(BaseCollector):
    """Collector for CPU usage and load averages"""

    def metric_keys(self):
        return ['cpu_usage_percent', 'cpu_count', 'load_1', 'load_5', 'load_15']

    def collect(self):
        """Collect CPU metrics"""
        values = {}

        values['cpu_usage_percent'] = psutil.cpu_percent(
            interval=self.config.get('sample_interval', 0.1)
        )
        values['cpu_count'] = psutil.cpu_count() or 1

        # Load averages (emulated on Windows by psutil)
        try:
            load1, load5, load15 = psutil.getloadavg()
            values['load_1'] = load1
            values['load_5'] = load5
            values['load_15'] = load15
        except (AttributeError, OSError):
            self.logger.debug("Load average not available on this platform")

        self.logger.debug(f"Collected CPU metrics: {values['cpu_usage_percent']:.1f}% used")
        return values
