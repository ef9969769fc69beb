"""
Public API

Modules:
    systems_kg: The SystemsKG facade
"""

from systems_kg.api.systems_kg import SystemsKG

__all__ = ["SystemsKG"]
