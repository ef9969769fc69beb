"""Size-based processing strategy for incoming payloads."""

from __future__ import annotations

from systems_kg.types import ProcessingStrategy

_MB = 1024 * 1024


def get_optimal_processing_strategy(size_bytes: int) -> ProcessingStrategy:
    """
    Pick how a payload of ``size_bytes`` should be processed.

    Small payloads run immediately at high priority; large ones are queued at
    lower priority, chunked, or deferred to manual handling.
    """
    if size_bytes < 0:
        raise ValueError("size_bytes must be non-negative")

    if size_bytes < 1 * _MB:
        return ProcessingStrategy(strategy="immediate", priority="high")

    if size_bytes < 5 * _MB:
        return ProcessingStrategy(strategy="queued", priority="medium")

    if size_bytes < 25 * _MB:
        return ProcessingStrategy(
            strategy="queued",
            priority="low",
            warnings=["Large file may take several minutes to process"],
        )

    if size_bytes < 50 * _MB:
        return ProcessingStrategy(
            strategy="chunked",
            priority="low",
            chunk_size=5 * _MB,
            warnings=[
                "Very large file will be processed in chunks",
                "Processing may take 10+ minutes",
                "Consider splitting document manually for better performance",
            ],
        )

    return ProcessingStrategy(
        strategy="deferred",
        priority="low",
        warnings=[
            "Extremely large file detected",
            "Manual processing recommended",
            "Consider reducing file size or splitting into smaller documents",
            "Automatic processing may fail due to memory constraints",
        ],
    )
