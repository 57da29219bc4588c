"""File heartbeat collector"""

import os
import time

from sysalert.collectors.base import BaseCollector
from sysalert.errors import CollectionError


class FileCollector(BaseCollector):
    """
    Collector for heartbeat files.

    For each configured ``name: path`` pair reports ``file_exists:<name>``
    and, when the file exists, ``file_age_seconds:<name>`` measured from
    its modification time.
    """

    def metric_keys(self):
        keys = []
        for name in self.config.get('files', {}):
            keys += [f'file_exists:{name}', f'file_age_seconds:{name}']
        return keys

    def collect(self):
        values = {}
        errors = []

        for name, path in self.config.get('files', {}).items():
            try:
                mtime = os.stat(path).st_mtime
            except FileNotFoundError:
                values[f'file_exists:{name}'] = 0
                continue
            except OSError as e:
                errors.append(f"{path}: {e}")
                continue

            values[f'file_exists:{name}'] = 1
            values[f'file_age_seconds:{name}'] = max(time.time() - mtime, 0.0)

        if errors and not values:
            raise CollectionError(f"Heartbeat files unreadable: {'; '.join(errors)}")
        for error in errors:
            self.logger.warning(f"Cannot stat heartbeat file {error}")

        return values
