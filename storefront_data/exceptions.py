"""
Custom exceptions for STOREFRONT_DATA.

Store-layer errors propagate to callers as these typed failures. Cache-layer
errors are defined here for completeness but never escape the cache store.
"""

from typing import Any, Dict, Optional
from urllib.parse import urlsplit, urlunsplit


def redact_uri(uri: Optional[str]) -> Optional[str]:
    """Strip the password from a connection URI so it is safe to log."""
    if not uri:
        return uri
    try:
        parts = urlsplit(uri)
    except ValueError:
        return "<unparseable uri>"
    if parts.password is None:
        return uri
    netloc = parts.netloc.replace(f":{parts.password}@", ":***@", 1)
    return urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment))


class DataLayerError(RuntimeError):
    """
    Base exception for data access layer errors.

    Attributes:
        message: Error message
        context: Optional dictionary with additional context (collection,
                 index name, etc.)
    """

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        """Return formatted error message with context if available."""
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} (context: {context_str})"
        return self.message


class ConfigurationError(DataLayerError):
    """
    Raised when configuration is invalid or missing.

    Attributes:
        config_key: Configuration key that caused the error (if available)
        config_value: Configuration value that caused the error (if available)
    """

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_value: Optional[Any] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if config_key:
            context["config_key"] = config_key
        if config_value is not None:
            context["config_value"] = config_value
        super().__init__(message, context=context)
        self.config_key = config_key
        self.config_value = config_value


class StoreConnectionError(DataLayerError):
    """
    Raised when the connection pool to the document store cannot be
    established (timeout, authentication, DNS).

    The URI is stored with its password redacted.
    """

    def __init__(
        self,
        message: str,
        mongo_uri: Optional[str] = None,
        db_name: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        mongo_uri = redact_uri(mongo_uri)
        if mongo_uri:
            context["mongo_uri"] = mongo_uri
        if db_name:
            context["db_name"] = db_name
        super().__init__(message, context=context)
        self.mongo_uri = mongo_uri
        self.db_name = db_name


class NotConnectedError(DataLayerError):
    """Raised when a store operation is attempted before a successful connect."""

    def __init__(
        self,
        message: str = "Database not connected. Call connect() first.",
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, context=context)


class TransientStoreError(DataLayerError):
    """
    Raised when a network error persists after the driver's automatic retry.

    Attributes:
        operation: Name of the facade operation that failed
    """

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if operation:
            context["operation"] = operation
        super().__init__(message, context=context)
        self.operation = operation


class IndexCreationError(DataLayerError):
    """
    Describes an index that could not be created. Collected by the index
    registrar and reported, never raised out of ``ensure_indexes``.
    """

    def __init__(
        self,
        message: str,
        collection: Optional[str] = None,
        index_names: Optional[list] = None,
        code: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if collection:
            context["collection"] = collection
        if index_names:
            context["index_names"] = index_names
        if code is not None:
            context["code"] = code
        super().__init__(message, context=context)
        self.collection = collection
        self.index_names = index_names or []
        self.code = code


class CacheUnavailableError(DataLayerError):
    """The cache backend could not be reached. Collapses to a miss or no-op."""


class SerializationError(DataLayerError):
    """A cached value could not be encoded or decoded as JSON."""

    def __init__(
        self,
        message: str,
        key: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if key:
            context["key"] = key
        super().__init__(message, context=context)
        self.key = key
