"""Host-level metrics collector"""

import time

import psutil
from sysalert.collectors.base import BaseCollector


class SystemCollector(BaseCollector):
    """Collector for uptime"""

    def metric_keys(self):
        return ['uptime_seconds']

    def collect(self):
        uptime = time.time() - psutil.boot_time()
        return {'uptime_seconds': max(uptime, 0.0)}
