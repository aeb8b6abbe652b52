"""
Custom Exception Classes for the Resume Matcher API
"""
from typing import Dict, Any, Type
from fastapi import HTTPException


class ResumeMatcherError(Exception):
    """Base exception for Resume Matcher API"""

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


class ValidationError(ResumeMatcherError):
    """Raised when request data validation fails"""

    def __init__(self, message: str, field: str = None, value: Any = None, **kwargs):
        details = kwargs.pop('details', {})
        if field:
            details['field'] = field
        if value is not None:
            details['invalid_value'] = str(value)
        super().__init__(message, error_code="VALIDATION_ERROR", details=details, **kwargs)


class ExtractionFailure(ResumeMatcherError):
    """Raised when a document cannot be converted to text"""

    def __init__(self, message: str, filename: str = None, **kwargs):
        details = kwargs.pop('details', {})
        if filename:
            details['filename'] = filename
        super().__init__(message, error_code="EXTRACTION_FAILURE", details=details, **kwargs)


class ProviderError(ResumeMatcherError):
    """Raised when the LLM provider returns a non-success status or cannot be reached"""

    def __init__(self, message: str, provider: str = None, status_code: int = None, **kwargs):
        details = kwargs.pop('details', {})
        if provider:
            details['provider'] = provider
        if status_code:
            details['status_code'] = status_code
        error_code = kwargs.pop('error_code', "PROVIDER_ERROR")
        super().__init__(message, error_code=error_code, details=details, **kwargs)


class MalformedResponse(ProviderError):
    """Raised when the provider reply holds no parseable JSON object"""

    def __init__(self, message: str = "LLM did not return valid JSON", reply: str = None, **kwargs):
        details = kwargs.pop('details', {})
        if reply is not None:
            details['reply_excerpt'] = reply[:200]
        super().__init__(message, error_code="MALFORMED_RESPONSE", details=details, **kwargs)


class ConfigurationError(ResumeMatcherError):
    """Raised when configuration is invalid or missing"""

    def __init__(self, message: str, config_key: str = None, config_value: Any = None, **kwargs):
        details = kwargs.pop('details', {})
        if config_key:
            details['config_key'] = config_key
        if config_value is not None:
            details['config_value'] = str(config_value)
        super().__init__(message, error_code="CONFIGURATION_ERROR", details=details, **kwargs)


# HTTP Exception Mapping
def map_to_http_exception(exc: ResumeMatcherError) -> HTTPException:
    """Map custom exceptions to HTTP exceptions"""

    status_code_mapping = {
        ValidationError: 400,
        ExtractionFailure: 422,
        ProviderError: 502,
        MalformedResponse: 502,
        ConfigurationError: 500,
    }

    status_code = status_code_mapping.get(type(exc), 500)

    detail = {
        "error": exc.to_dict(),
        "message": exc.message
    }

    return HTTPException(status_code=status_code, detail=detail)


class ExceptionContext:
    """Context manager that logs an operation and wraps foreign exceptions in a domain error"""

    def __init__(self, operation: str, logger=None, wrap_as: Type[ResumeMatcherError] = ResumeMatcherError, **context):
        self.operation = operation
        self.logger = logger
        self.wrap_as = wrap_as
        self.context = context

    def __enter__(self):
        if self.logger:
            self.logger.debug(f"Starting operation: {self.operation}", extra=self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            if self.logger:
                self.logger.debug(f"Operation completed: {self.operation}", extra=self.context)
            return False

        if self.logger:
            self.logger.error(
                f"Operation failed: {self.operation} - {exc_val}",
                extra={**self.context, "exception_type": exc_type.__name__}
            )

        # Re-raise custom exceptions as-is
        if isinstance(exc_val, ResumeMatcherError) or not isinstance(exc_val, Exception):
            return False

        wrapped_exc = self.wrap_as(
            f"{self.operation} failed: {exc_val}",
            details=dict(self.context),
            cause=exc_val
        )
        raise wrapped_exc from exc_val
