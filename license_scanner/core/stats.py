import threading
import time
from dataclasses import dataclass
from dataclasses import field


@dataclass
class ScanStats:
    """Counters shared by the worker threads of one scan run."""
    repositories: int = 0
    failed: int = 0
    packages: int = 0
    registry_lookups: int = 0
    unknown: int = 0
    start_time: float = field(default_factory=time.time)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def inc_repositories(self, count: int = 1):
        with self._lock:
            self.repositories += count

    def inc_failed(self, count: int = 1):
        with self._lock:
            self.failed += count

    def inc_packages(self, count: int = 1):
        with self._lock:
            self.packages += count

    def inc_registry_lookups(self, count: int = 1):
        with self._lock:
            self.registry_lookups += count

    def inc_unknown(self, count: int = 1):
        with self._lock:
            self.unknown += count

    @property
    def elapsed_time(self) -> float:
        return time.time() - self.start_time
