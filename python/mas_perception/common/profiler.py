import logging
import time

logger = logging.getLogger(__name__)


class ScopedTimer:
    def __init__(self, name, min_ms=1.0):
        self.name = name
        self.min_ms = min_ms
        self.start = 0
        self.elapsed_ms = 0.0

    def __enter__(self):
        self.start = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.elapsed_ms = (time.perf_counter() - self.start) * 1000
        # only report steps that take longer than min_ms, to avoid log spam
        if self.elapsed_ms > self.min_ms:
            logger.debug("[TIME] %s: %.2f ms", self.name, self.elapsed_ms)
