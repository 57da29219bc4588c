"""Base collector abstract class"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List
import time

from sysalert.errors import CollectionError
from sysalert.utils.logger import get_logger


class BaseCollector(ABC):
    """Abstract base class for metric collectors"""

    def __init__(self, config: Dict[str, Any]):
        """
        Initialize collector

        Args:
            config: Collector configuration
        """
        self.config = config
        self.logger = get_logger(self.__class__.__name__)
        self.error_count = 0
        self.last_success = None
        self.last_collection_duration = 0

    @abstractmethod
    def collect(self) -> Dict[str, float]:
        """
        Take one set of measurements

        Returns:
            Mapping of metric key to value. Keys that cannot be measured
            are left out.

        Raises:
            CollectionError: If the underlying probe is unavailable
        """
        pass

    def metric_keys(self) -> List[str]:
        """Keys a successful collection is expected to report"""
        return []

    def run_collection(self) -> Dict[str, float]:
        """
        Run collection with timing and error accounting

        Returns:
            Collected values

        Raises:
            CollectionError: If collection failed for any reason
        """
        start_time = time.time()

        try:
            values = self.collect()
        except CollectionError as e:
            self.error_count += 1
            self.logger.warning(f"Collection failed (error #{self.error_count}): {e}")
            raise
        except Exception as e:
            self.error_count += 1
            self.logger.error(
                f"Collection failed (error #{self.error_count}): {e}",
                exc_info=True
            )
            raise CollectionError(f"{self.get_name()} collector failed: {e}") from e

        self.last_success = time.time()
        self.last_collection_duration = self.last_success - start_time
        self.error_count = 0

        self.logger.debug(
            f"Collected {len(values)} values in {self.last_collection_duration:.3f}s"
        )
        return values

    def is_healthy(self) -> bool:
        """
        Check if collector is healthy

        Returns:
            True if healthy, False otherwise
        """
        # Collector is unhealthy if it has failed 3 consecutive times
        return self.error_count < 3

    def get_name(self) -> str:
        """
        Get collector name

        Returns:
            Collector name
        """
        return self.__class__.__name__.replace('Collector', '').lower()
