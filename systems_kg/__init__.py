"""
SystemsKG - Embedded Systems Knowledge Base

A pip-installable Python library that turns documents into a reviewable map
of services, themes, outcomes and factors, and the relationships between them.

Example:
    >>> from systems_kg import SystemsKG
    >>> async with SystemsKG("./my_kb") as skg:
    ...     job_id = await skg.submit_job(data, filename="plan.txt")
    ...     await skg.wait_for_job(job_id)
    ...     report = await skg.get_corpus_quality()

Main Classes:
    SystemsKG: Primary entry point for all operations
    SKGConfig: Configuration management
"""

__version__ = "0.1.0"


# Public API - lazy imports to avoid loading optional dependencies
def __getattr__(name: str):
    """Lazy import public API components."""

    if name == "SystemsKG":
        from systems_kg.api.systems_kg import SystemsKG
        return SystemsKG

    if name == "SKGConfig":
        from systems_kg.config.settings import SKGConfig
        return SKGConfig

    # Types
    if name in (
        "Job",
        "Document",
        "SystemsMap",
        "DuplicateCandidate",
        "DocumentQualityReport",
        "CorpusQualityReport",
    ):
        from systems_kg import types
        return getattr(types, name)

    raise AttributeError(f"module 'systems_kg' has no attribute {name!r}")


__all__ = [
    # Main classes
    "SystemsKG",
    "SKGConfig",

    # Types
    "Job",
    "Document",
    "SystemsMap",
    "DuplicateCandidate",
    "DocumentQualityReport",
    "CorpusQualityReport",

    # Version
    "__version__",
]
