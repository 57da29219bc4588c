"""Memory metrics collector"""

import psutil
from sysalert.collectors.base import BaseCollector
from sysalert.errors import CollectionError
from sysalert.utils.helpers import safe_divide


class MemoryCollector(BaseCollector):
    """Collector for memory and swap usage"""

    def metric_keys(self):
        return ['memory_usage_percent', 'memory_available_ratio', 'swap_usage_percent']

    def collect(self):
        """Collect memory metrics"""
        vm = psutil.virtual_memory()
        if not vm.total:
            raise CollectionError("Total memory reported as zero")

        # Some kernels report no 'available'; fall back to total - used
        available = vm.available or (vm.total - vm.used)

        values = {
            'memory_usage_percent': vm.percent,
            'memory_available_ratio': safe_divide(available, vm.total),
        }

        swap = psutil.swap_memory()
        values['swap_usage_percent'] = swap.percent

        self.logger.debug(
            f"Collected memory metrics: {vm.percent:.1f}% used, "
            f"swap {swap.percent:.1f}% used"
        )
        return values
