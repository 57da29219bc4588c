"""Point-in-time metric snapshot"""

import math
import time
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterator, Mapping, NamedTuple, Optional


class MetricSample(NamedTuple):
    """One measured value and when it was captured"""
    value: float
    timestamp: float


@dataclass(frozen=True)
class MetricSnapshot:
    """
    Immutable mapping of metric key to sample.

    Keys are either a bare metric name (``load_1``) or ``name:instance``
    (``disk_free_ratio:/``).
    """
    timestamp: float
    samples: Mapping[str, MetricSample] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, 'samples', MappingProxyType(dict(self.samples)))

    @classmethod
    def from_values(cls, values: Dict[str, float], timestamp: Optional[float] = None) -> 'MetricSnapshot':
        """Build a snapshot where every sample shares one capture time"""
        if timestamp is None:
            timestamp = time.time()
        return cls(
            timestamp=timestamp,
            samples={key: MetricSample(float(value), timestamp) for key, value in values.items()},
        )

    def get(self, key: str) -> Optional[MetricSample]:
        return self.samples.get(key)

    def value(self, key: str) -> Optional[float]:
        sample = self.samples.get(key)
        return sample.value if sample is not None else None

    def values(self) -> Dict[str, float]:
        return {key: sample.value for key, sample in self.samples.items()}

    def __contains__(self, key) -> bool:
        return key in self.samples

    def __len__(self) -> int:
        return len(self.samples)

    def __iter__(self) -> Iterator[str]:
        return iter(self.samples)


def is_valid_value(value) -> bool:
    """True for finite numbers (bools count as 0/1)"""
    try:
        return math.isfinite(float(value))
    except (TypeError, ValueError):
        return False
