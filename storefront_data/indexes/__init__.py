"""
Index Management Module

Declares the indexes each collection needs and ensures them at startup.
"""

from .manager import IndexRegistrar, IndexReport
from .specs import INDEX_SPECS, IndexSpec

__all__ = [
    "INDEX_SPECS",
    "IndexSpec",
    "IndexRegistrar",
    "IndexReport",
]
