"""
Utility functions and helpers for STOREFRONT_DATA.
"""

from .mongo import clean_mongo_doc, clean_mongo_docs, json_default

__all__ = ["clean_mongo_doc", "clean_mongo_docs", "json_default"]
