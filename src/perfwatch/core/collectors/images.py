"""Image load collector."""

import logging
import time
from dataclasses import dataclass

from perfwatch.adapters.storage.ring_buffer import BoundedBuffer
from perfwatch.core.aggregation import mean
from perfwatch.core.clock import Clock, now_ms
from perfwatch.core.logs import contained
from perfwatch.core.models import Dimensions, ImageLoadMetric

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_CAPACITY = 100
SLOW_IMAGE_MS = 2000.0
LARGE_IMAGE_BYTES = 1024 * 1024


@dataclass(frozen=True)
class ImageStats:
    total_images: int
    avg_load_time: float
    avg_size: float
    slow_images: int
    large_images: int


def is_slow(metric: ImageLoadMetric) -> bool:
    return metric.load_time_ms > SLOW_IMAGE_MS


def is_large(metric: ImageLoadMetric) -> bool:
    return metric.size_bytes > LARGE_IMAGE_BYTES


class ImageLoadCollector:
    """Tracks image load timings and flags slow or heavy images.

    Args:
        capacity: Number of samples kept before the oldest is evicted.
        clock: Epoch-seconds clock used for sample timestamps.
    """

    def __init__(
        self, capacity: int = DEFAULT_IMAGE_CAPACITY, clock: Clock = time.time
    ) -> None:
        self._buffer: BoundedBuffer[ImageLoadMetric] = BoundedBuffer(capacity)
        self._clock = clock

    def track_load(
        self,
        src: str,
        load_time_ms: float,
        size_bytes: int,
        format: str,
        dimensions: Dimensions,
    ) -> None:
        """Record one image load.

        The slow and large checks are independent: a single image may
        trigger both warnings.
        """
        with contained("Failed to record image load", src=src):
            metric = ImageLoadMetric(
                src=src,
                load_time_ms=load_time_ms,
                size_bytes=size_bytes,
                format=format,
                dimensions=dimensions,
                timestamp_ms=now_ms(self._clock),
            )
            self._buffer.append(metric)
            if is_slow(metric):
                logger.warning(
                    "Slow image load detected: %s (%sms)",
                    src,
                    load_time_ms,
                    extra={"src": src, "load_time_ms": load_time_ms},
                )
            if is_large(metric):
                logger.warning(
                    "Large image detected: %s (%.2fMB)",
                    src,
                    size_bytes / LARGE_IMAGE_BYTES,
                    extra={"src": src, "size_bytes": size_bytes},
                )

    def get_metrics(self, limit: int | None = None) -> list[ImageLoadMetric]:
        """Return samples newest first."""
        return self._buffer.snapshot(limit=limit)

    def get_stats(self) -> ImageStats:
        metrics = self._buffer.items()
        return ImageStats(
            total_images=len(metrics),
            avg_load_time=mean([m.load_time_ms for m in metrics]),
            avg_size=mean([m.size_bytes for m in metrics]),
            slow_images=sum(1 for m in metrics if is_slow(m)),
            large_images=sum(1 for m in metrics if is_large(m)),
        )

    def clear(self) -> None:
        self._buffer.clear()
