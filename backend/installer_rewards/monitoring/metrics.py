"""
Application Metrics and Monitoring
"""

import time
from functools import wraps
from typing import Any, Callable, Dict, Optional
from datetime import datetime, timezone
import structlog

logger = structlog.get_logger()


class MetricsCollector:
    """Collect promotion lifecycle metrics"""

    def __init__(self):
        self.metrics = {
            "promotions_created": 0,
            "promotions_deleted": 0,
            "promotion_joins": 0,
            "promotion_join_rejections": 0,
            "progress_refreshes": 0,
            "participations_completed": 0,
            "completion_regressions": 0,
            "reward_updates": 0,
            "errors": 0
        }

        self.timing_metrics = {}
        self.error_counts = {}
        self.labelled_counts: Dict[str, Dict[str, int]] = {}

    def increment_counter(self, metric_name: str, value: int = 1, label: Optional[str] = None):
        """Increment a counter metric, optionally broken down by label (promotion type, rule, reward status)"""
        if metric_name in self.metrics:
            self.metrics[metric_name] += value
        else:
            self.metrics[metric_name] = value

        if label is not None:
            breakdown = self.labelled_counts.setdefault(metric_name, {})
            breakdown[label] = breakdown.get(label, 0) + value

        logger.debug("Metric incremented", metric=metric_name, value=value, label=label)

    def record_timing(self, operation: str, duration_ms: float):
        """Record operation timing"""
        if operation not in self.timing_metrics:
            self.timing_metrics[operation] = []

        self.timing_metrics[operation].append(duration_ms)

        # Keep only last 1000 measurements
        if len(self.timing_metrics[operation]) > 1000:
            self.timing_metrics[operation] = self.timing_metrics[operation][-1000:]

    def record_error(self, error_type: str, error_message: str):
        """Record error occurrence"""
        if error_type not in self.error_counts:
            self.error_counts[error_type] = 0

        self.error_counts[error_type] += 1
        self.metrics["errors"] += 1

        logger.warning("Error recorded",
                       error_type=error_type,
                       error_message=error_message,
                       count=self.error_counts[error_type])

    def get_metrics_summary(self) -> Dict[str, Any]:
        """Get metrics summary"""
        timing_stats = {}

        for operation, timings in self.timing_metrics.items():
            if timings:
                timing_stats[operation] = {
                    "count": len(timings),
                    "avg_ms": sum(timings) / len(timings),
                    "min_ms": min(timings),
                    "max_ms": max(timings),
                    "p95_ms": sorted(timings)[int(len(timings) * 0.95)] if len(timings) > 1 else timings[0]
                }

        return {
            "counters": dict(self.metrics),
            "timing_stats": timing_stats,
            "error_counts": dict(self.error_counts),
            "by_label": {name: dict(counts) for name, counts in self.labelled_counts.items()},
            "collected_at": datetime.now(timezone.utc).isoformat()
        }

    def reset(self):
        self.__init__()


# Global metrics collector
metrics_collector = MetricsCollector()


def track_timing(operation_name: str):
    """Decorator to track operation timing"""
    def decorator(func: Callable):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            start_time = time.time()
            try:
                result = await func(*args, **kwargs)
                duration_ms = (time.time() - start_time) * 1000
                metrics_collector.record_timing(operation_name, duration_ms)
                return result
            except Exception as e:
                duration_ms = (time.time() - start_time) * 1000
                metrics_collector.record_timing(f"{operation_name}_failed", duration_ms)
                metrics_collector.record_error(type(e).__name__, str(e))
                raise
        return wrapper
    return decorator
