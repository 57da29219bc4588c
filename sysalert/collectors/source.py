"""Metric sources: anything that can produce a MetricSnapshot"""

import time
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Set

from sysalert.collectors.base import BaseCollector
from sysalert.collectors.cpu_collector import CPUCollector
from sysalert.collectors.disk_collector import DiskCollector
from sysalert.collectors.file_collector import FileCollector
from sysalert.collectors.memory_collector import MemoryCollector
from sysalert.collectors.process_collector import ProcessCollector
from sysalert.collectors.snapshot import MetricSample, MetricSnapshot, is_valid_value
from sysalert.collectors.system_collector import SystemCollector
from sysalert.errors import CollectionError, ConfigurationError
from sysalert.utils.logger import get_logger

COLLECTOR_CLASSES = {
    'cpu': CPUCollector,
    'memory': MemoryCollector,
    'disk': DiskCollector,
    'process': ProcessCollector,
    'system': SystemCollector,
    'file': FileCollector,
}


class MetricSource(ABC):
    """Produces point-in-time snapshots"""

    @abstractmethod
    def collect(self) -> MetricSnapshot:
        """
        Take a snapshot.

        Raises:
            CollectionError: If no metric at all could be produced
        """
        pass

    def metric_keys(self) -> Optional[Set[str]]:
        """Keys this source can report, or None when not known up front"""
        return None


class SystemMetricSource(MetricSource):
    """
    Runs a set of collectors and merges their output.

    A failing collector is logged and skipped; the rest of the snapshot is
    still returned. Only a cycle in which every collector fails raises.
    """

    def __init__(self, collectors: List[BaseCollector]):
        if not collectors:
            raise ConfigurationError("No collectors enabled! Check your configuration.")
        self.collectors = collectors
        self.logger = get_logger(self.__class__.__name__)
        self.last_failures: List[str] = []

    def metric_keys(self) -> Set[str]:
        keys = set()
        for collector in self.collectors:
            keys.update(collector.metric_keys())
        return keys

    def collect(self) -> MetricSnapshot:
        samples: Dict[str, MetricSample] = {}
        failures = []

        for collector in self.collectors:
            try:
                values = collector.run_collection()
            except CollectionError:
                failures.append(collector.get_name())
                if not collector.is_healthy():
                    self.logger.warning(
                        f"{collector.get_name()} collector is unhealthy "
                        f"(failed {collector.error_count} consecutive times)"
                    )
                continue

            captured_at = collector.last_success or time.time()
            for key, value in values.items():
                if not is_valid_value(value):
                    self.logger.debug(f"Dropping non-finite value for {key}: {value!r}")
                    continue
                samples[key] = MetricSample(float(value), captured_at)

        self.last_failures = failures

        if len(failures) == len(self.collectors):
            raise CollectionError(f"All collectors failed: {', '.join(failures)}")

        return MetricSnapshot(timestamp=time.time(), samples=samples)


def create_collectors(collectors_config: Dict[str, Any]) -> List[BaseCollector]:
    """Instantiate every enabled collector"""
    logger = get_logger('collectors')
    collectors = []

    for collector_name, collector_class in COLLECTOR_CLASSES.items():
        collector_config = collectors_config.get(collector_name, {})

        if collector_config.get('enabled', False):
            collectors.append(collector_class(collector_config))
            logger.info(f"Initialized {collector_name} collector")

    return collectors
