"""
Custom Exception Classes for the Resume Search Agent
"""
from typing import Dict, Any
from fastapi import HTTPException


class AIAgentBaseException(Exception):
    """Base exception for the resume search agent"""

    def __init__(
        self,
        message: str,
        error_code: str = None,
        details: Dict[str, Any] = None,
        cause: Exception = None
    ):
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        self.cause = cause
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/response"""
        result = {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details
        }
        if self.cause:
            result["cause"] = str(self.cause)
        return result


class ValidationError(AIAgentBaseException):
    """Raised when a query or its parameters are malformed"""

    def __init__(self, message: str, field: str = None, value: Any = None, **kwargs):
        details = kwargs.pop('details', {})
        if field:
            details['field'] = field
        if value is not None:
            details['invalid_value'] = str(value)
        super().__init__(message, error_code="VALIDATION_ERROR", details=details, **kwargs)


class NotInitializedError(AIAgentBaseException):
    """Raised when the retrieval pipeline is used before its dependencies are wired"""

    def __init__(self, message: str = "Retrieval pipeline not initialized", component: str = None, **kwargs):
        details = kwargs.pop('details', {})
        if component:
            details['component'] = component
        super().__init__(message, error_code="NOT_INITIALIZED", details=details, **kwargs)


class SearchError(AIAgentBaseException):
    """Raised when a search engine's store, index or embedding call fails"""

    def __init__(self, message: str, query: str = None, search_type: str = None, **kwargs):
        details = kwargs.pop('details', {})
        if query is not None:
            details['query'] = query
        if search_type:
            details['search_type'] = search_type
        super().__init__(message, error_code="SEARCH_ERROR", details=details, **kwargs)


class NotFoundError(AIAgentBaseException):
    """Raised when an operation references an unknown resource"""

    def __init__(self, message: str, resource: str = None, resource_id: str = None, **kwargs):
        details = kwargs.pop('details', {})
        if resource:
            details['resource'] = resource
        if resource_id:
            details['resource_id'] = resource_id
        super().__init__(message, error_code="NOT_FOUND", details=details, **kwargs)


class DatabaseError(AIAgentBaseException):
    """Raised when database operations fail"""

    def __init__(self, message: str, operation: str = None, collection: str = None, **kwargs):
        details = kwargs.pop('details', {})
        if operation:
            details['operation'] = operation
        if collection:
            details['collection'] = collection
        super().__init__(message, error_code="DATABASE_ERROR", details=details, **kwargs)


class ModelError(AIAgentBaseException):
    """Raised when AI model operations fail"""

    def __init__(self, message: str, model_name: str = None, model_type: str = None, **kwargs):
        details = kwargs.pop('details', {})
        if model_name:
            details['model_name'] = model_name
        if model_type:
            details['model_type'] = model_type
        super().__init__(message, error_code="MODEL_ERROR", details=details, **kwargs)


class ConfigurationError(AIAgentBaseException):
    """Raised when configuration is invalid or missing"""

    def __init__(self, message: str, config_key: str = None, config_value: Any = None, **kwargs):
        details = kwargs.pop('details', {})
        if config_key:
            details['config_key'] = config_key
        if config_value is not None:
            details['config_value'] = str(config_value)
        super().__init__(message, error_code="CONFIGURATION_ERROR", details=details, **kwargs)


class ExternalServiceError(AIAgentBaseException):
    """Raised when external service calls fail"""

    def __init__(self, message: str, service_name: str = None, status_code: int = None, **kwargs):
        details = kwargs.pop('details', {})
        if service_name:
            details['service_name'] = service_name
        if status_code:
            details['status_code'] = status_code
        super().__init__(message, error_code="EXTERNAL_SERVICE_ERROR", details=details, **kwargs)


# HTTP Exception Mapping
def map_to_http_exception(exc: AIAgentBaseException) -> HTTPException:
    """Map custom exceptions to HTTP exceptions"""

    status_code_mapping = {
        ValidationError: 400,
        ConfigurationError: 400,
        NotFoundError: 404,
        DatabaseError: 500,
        NotInitializedError: 503,
        SearchError: 502,
        ModelError: 502,
        ExternalServiceError: 502,
    }

    status_code = status_code_mapping.get(type(exc), 500)

    detail = {
        "error": exc.to_dict(),
        "message": exc.message
    }

    return HTTPException(status_code=status_code, detail=detail)


# Exception context manager for better error handling
class ExceptionContext:
    """Context manager that wraps foreign exceptions with operation context"""

    def __init__(self, operation: str, logger=None, wrap_as=None, **context):
        self.operation = operation
        self.logger = logger
        self.wrap_as = wrap_as
        self.context = context

    def __enter__(self):
        if self.logger:
            self.logger.debug(f"Starting operation: {self.operation}", extra=self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is not None:
            if self.logger:
                self.logger.error(
                    f"Operation failed: {self.operation} - {exc_val}",
                    extra={**self.context, "exception_type": exc_type.__name__}
                )

            # Re-raise custom exceptions as-is
            if isinstance(exc_val, AIAgentBaseException):
                return False

            # Cancellation must propagate untouched
            if not isinstance(exc_val, Exception):
                return False

            if self.wrap_as is not None:
                wrapped_exc = self.wrap_as(
                    f"{self.operation} failed: {str(exc_val)}",
                    details=dict(self.context),
                    cause=exc_val
                )
                raise wrapped_exc from exc_val
            elif "database" in str(exc_val).lower() or "mongo" in str(exc_val).lower():
                wrapped_exc = DatabaseError(
                    f"Database error in {self.operation}: {str(exc_val)}",
                    operation=self.operation,
                    details=dict(self.context),
                    cause=exc_val
                )
                raise wrapped_exc from exc_val
            else:
                wrapped_exc = ExternalServiceError(
                    f"Upstream error in {self.operation}: {str(exc_val)}",
                    details=dict(self.context),
                    cause=exc_val
                )
                raise wrapped_exc from exc_val
        else:
            if self.logger:
                self.logger.debug(f"Operation completed: {self.operation}", extra=self.context)

        return False
