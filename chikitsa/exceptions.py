"""
Exception hierarchy for chikitsa

Every error carries a request id, a UTC timestamp, structured context and a
message that is safe to show to the user, and logs itself when created.

Where they come from:
- Persistence gateways raise PersistenceError subclasses. GamificationService
  catches these and reports them instead of raising.
- The Gemini client raises GeminiAPIError; parsing raises ResponseParseError.
- config.py raises ConfigurationError.
"""

from datetime import datetime, timezone
from typing import Optional, Dict, Any
from uuid import uuid4
import logging

logger = logging.getLogger(__name__)

DEFAULT_USER_MESSAGE = "An error occurred. Please try again."


class ChikitsaError(Exception):
    """
    Root of all chikitsa errors

    Example:
        raise ChikitsaError(
            message="Failed to save pet state",
            user_id="uid-123",
            operation="save_entity",
            context={"entity_type": "pet_state"}
        )
    """

    def __init__(
        self,
        message: str,
        user_id: Optional[str] = None,
        request_id: Optional[str] = None,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        user_message: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.user_id = user_id
        self.operation = operation
        self.context = dict(context or {})
        self.cause = cause
        self.user_message = user_message or DEFAULT_USER_MESSAGE
        self.request_id = request_id or str(uuid4())
        self.timestamp = datetime.now(timezone.utc)

        self._log_error()

    def _log_error(self) -> None:
        # LogRecord reserves 'message', so the text goes under error_message
        extra = {
            "error_type": type(self).__name__,
            "error_message": self.message,
            "request_id": self.request_id,
            "user_id": self.user_id,
            "operation": self.operation,
            "error_context": self.context,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.cause is not None:
            extra["cause"] = repr(self.cause)

        logger.error(
            f"{type(self).__name__}: {self.message}",
            extra=extra,
            exc_info=self.cause
        )

    def to_dict(self) -> Dict[str, Any]:
        """Public fields for error payloads"""
        return {
            "error": type(self).__name__,
            "message": self.message,
            "user_message": self.user_message,
            "request_id": self.request_id,
            "timestamp": self.timestamp.isoformat(),
        }


def _with_context(kwargs: Dict[str, Any], **defaults: Any) -> Dict[str, Any]:
    """Merge subclass context fields under any context the caller passed"""
    context = {**defaults, **(kwargs.pop("context", None) or {})}
    kwargs["context"] = context
    return kwargs


# ==========================================
# Input
# ==========================================

class ValidationError(ChikitsaError):
    """
    User input was rejected

    Example:
        raise ValidationError(
            message="Unknown meal type: brunch",
            field="meal_type",
            value="brunch",
            user_id="uid-123"
        )
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        **kwargs
    ):
        self.field = field
        self.value = value
        kwargs.setdefault("user_message", f"Invalid {field}: {message}" if field else message)
        super().__init__(message=message, **_with_context(kwargs, field=field, value=value))


# ==========================================
# Persistence
# ==========================================

class PersistenceError(ChikitsaError):
    """
    A gateway could not read or write a document

    GamificationService keeps its in-memory state and reports these through
    on_persist_error.
    """

    def __init__(
        self,
        message: str,
        entity_type: Optional[str] = None,
        **kwargs
    ):
        self.entity_type = entity_type
        kwargs.setdefault("user_message", "We couldn't save your progress. It will be retried on your next action.")
        if "context" not in kwargs or kwargs["context"] is None:
            kwargs["context"] = {"entity_type": entity_type}
        super().__init__(message=message, **kwargs)


class ConnectionError(PersistenceError):
    """Could not reach the document store"""

    def __init__(self, message: str = "Database connection failed", **kwargs):
        kwargs.setdefault("user_message", "We're having trouble reaching our servers. Please try again in a moment.")
        super().__init__(message=message, **kwargs)


class QueryError(PersistenceError):
    """Document store rejected a statement"""

    def __init__(self, message: str, query: Optional[str] = None, **kwargs):
        self.query = query
        if "context" not in kwargs or kwargs["context"] is None:
            kwargs["context"] = {"query": query}
        super().__init__(message=message, **kwargs)


class RecordNotFoundError(PersistenceError):
    """A document that should exist is missing"""

    def __init__(
        self,
        message: str,
        record_type: Optional[str] = None,
        record_id: Optional[str] = None,
        **kwargs
    ):
        self.record_type = record_type
        self.record_id = record_id
        kwargs.setdefault("user_message", f"{record_type or 'Record'} not found.")
        super().__init__(
            message=message,
            **_with_context(kwargs, record_type=record_type, record_id=record_id)
        )


# ==========================================
# External services
# ==========================================

class ExternalAPIError(ChikitsaError):
    """A third-party API call failed"""

    def __init__(
        self,
        message: str,
        service: Optional[str] = None,
        status_code: Optional[int] = None,
        **kwargs
    ):
        self.service = service
        self.status_code = status_code
        kwargs.setdefault(
            "user_message",
            f"{service or 'An external service'} is not responding right now. Please try again later."
        )
        super().__init__(
            message=message,
            **_with_context(kwargs, service=service, status_code=status_code)
        )


class GeminiAPIError(ExternalAPIError):
    """Generative Language API call failed"""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("service", "Gemini")
        super().__init__(message=message, **kwargs)


class ResponseParseError(ChikitsaError):
    """Model output did not contain the expected JSON"""

    RAW_PREVIEW_CHARS = 200

    def __init__(
        self,
        message: str,
        raw_text: Optional[str] = None,
        expected: Optional[str] = None,
        **kwargs
    ):
        self.raw_text = raw_text
        self.expected = expected
        kwargs.setdefault("user_message", "Could not generate meals. Please try again.")
        super().__init__(
            message=message,
            **_with_context(
                kwargs,
                expected=expected,
                raw_preview=(raw_text or "")[:self.RAW_PREVIEW_CHARS]
            )
        )


# ==========================================
# Configuration
# ==========================================

class ConfigurationError(ChikitsaError):
    """Required setting is missing or invalid"""

    def __init__(self, message: str, config_key: Optional[str] = None, **kwargs):
        self.config_key = config_key
        kwargs.setdefault("user_message", "The app is not configured correctly. Please contact support.")
        super().__init__(message=message, **_with_context(kwargs, config_key=config_key))


# ==========================================
# Wrapping third-party errors
# ==========================================

def wrap_external_exception(
    error: Exception,
    operation: str,
    user_id: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None
) -> ChikitsaError:
    """
    Translate a psycopg or httpx exception into a ChikitsaError

    Args:
        error: Original exception
        operation: Operation that failed (save_entity, gemini_generate_content, ...)
        user_id: User the operation ran for
        context: Extra structured context

    Returns:
        ConnectionError / QueryError for psycopg, GeminiAPIError for httpx,
        plain ChikitsaError for anything else

    Example:
        try:
            await cur.execute(query, params)
        except psycopg.Error as e:
            raise wrap_external_exception(e, operation="save_entity", user_id=user_id)
    """
    # Lazy imports: config imports this module before any driver is needed
    import httpx
    import psycopg

    common = {"user_id": user_id, "operation": operation, "context": context, "cause": error}
    entity_type = (context or {}).get("entity_type")

    if isinstance(error, psycopg.OperationalError):
        return ConnectionError(f"Database connection failed: {error}", entity_type=entity_type, **common)
    if isinstance(error, psycopg.Error):
        return QueryError(f"Database query failed: {error}", entity_type=entity_type, **common)

    if isinstance(error, httpx.HTTPStatusError):
        status = error.response.status_code
        return GeminiAPIError(f"Gemini returned HTTP {status}", status_code=status, **common)
    if isinstance(error, httpx.TimeoutException):
        return GeminiAPIError(f"Gemini request timed out: {error}", **common)
    if isinstance(error, httpx.HTTPError):
        return GeminiAPIError(f"Gemini request failed: {error}", **common)

    return ChikitsaError(f"{operation} failed: {error}", **common)
