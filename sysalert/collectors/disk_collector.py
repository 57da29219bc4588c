"""Disk metrics collector"""

import psutil
from sysalert.collectors.base import BaseCollector
from sysalert.errors import CollectionError
from sysalert.utils.helpers import safe_divide


class DiskCollector(BaseCollector):
    """Collector for per-mount disk usage"""

    def metric_keys(self):
        keys = []
        for mount_point in self._mount_points():
            keys += [f'disk_usage_percent:{mount_point}', f'disk_free_ratio:{mount_point}']
        return keys

    def collect(self):
        """Collect disk usage for configured (or discovered) mount points"""
        values = {}
        mount_points = self._mount_points()

        for mount_point in mount_points:
            try:
                usage = psutil.disk_usage(mount_point)
            except (PermissionError, OSError) as e:
                self.logger.warning(f"Cannot stat {mount_point}: {e}")
                continue

            values[f'disk_usage_percent:{mount_point}'] = usage.percent
            values[f'disk_free_ratio:{mount_point}'] = safe_divide(usage.free, usage.total)

        if mount_points and not values:
            raise CollectionError(f"No mount point could be read ({', '.join(mount_points)})")

        self.logger.debug(f"Collected disk metrics for {len(values) // 2} mount points")
        return values

    def _mount_points(self):
        """Configured mount points, or every partition not excluded"""
        configured = self.config.get('mount_points') or []
        if configured:
            return list(configured)

        exclude_fs = self.config.get('exclude_filesystems', [])
        exclude_mounts = self.config.get('exclude_mount_points', [])

        mount_points = []
        for partition in psutil.disk_partitions(all=False):
            # Filter out excluded filesystems
            if partition.fstype in exclude_fs:
                continue

            # Filter out excluded mount points
            if any(partition.mountpoint.startswith(mp) for mp in exclude_mounts):
                continue

            mount_points.append(partition.mountpoint)
        return mount_points
