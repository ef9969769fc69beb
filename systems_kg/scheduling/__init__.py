"""
Scheduling

Admission control and bounded caching for processing work.

Modules:
    scheduler: JobScheduler - priority queue with concurrency/memory admission
    cache: BoundedCache - byte-budgeted, TTL-aware result cache
    strategy: get_optimal_processing_strategy - size-based processing plan
"""

from systems_kg.scheduling.cache import MISSING, BoundedCache, estimate_size, hash_key
from systems_kg.scheduling.scheduler import JobScheduler, build_request, estimate_duration_ms
from systems_kg.scheduling.strategy import get_optimal_processing_strategy

__all__ = [
    "JobScheduler",
    "estimate_duration_ms",
    "build_request",
    "BoundedCache",
    "MISSING",
    "estimate_size",
    "hash_key",
    "get_optimal_processing_strategy",
]
