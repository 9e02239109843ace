# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Error handling with RFC 7807 problem responses.
Provides the application exception hierarchy and its Flask handlers.
"""

from flask import Flask, request, jsonify
from pydantic import ValidationError
from pymongo.errors import ConnectionFailure
from werkzeug.exceptions import HTTPException
from opentelemetry import trace
import logging

from ..domain.authorization import AuthorizationResult
from ..models.enums import DenyReason
from ..services.hal import HalFormatter

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

PROBLEM_CONTENT_TYPE = "application/problem+json"
FORBIDDEN_MESSAGE = "You are not allowed to perform this action"
AUTHENTICATION_MESSAGE = "Authentication required"


class CustomException(Exception):
    """Base class for custom application exceptions."""

    def __init__(self, message: str, status_code: int = 500, error_type: str = "application-error"):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_type = error_type


class ValidationException(CustomException):
    """Exception for validation errors."""

    def __init__(self, message: str, validation_errors: list = None):
        super().__init__(message, 400, "validation-error")
        self.validation_errors = validation_errors or []


class AuthenticationException(CustomException):
    """Exception for authentication errors."""

    def __init__(self, message: str = AUTHENTICATION_MESSAGE):
        super().__init__(message, 401, "authentication-required")


class AuthorizationException(CustomException):
    """Exception for authorization errors. The message never names the failed check."""

    def __init__(self, message: str = FORBIDDEN_MESSAGE):
        super().__init__(message, 403, "forbidden")


class NotFoundException(CustomException):
    """Exception for resource not found errors."""

    def __init__(self, message: str):
        super().__init__(message, 404, "resource-not-found")


class ConflictException(CustomException):
    """Exception for resource conflict errors."""

    def __init__(self, message: str):
        super().__init__(message, 409, "resource-conflict")


class ServiceUnavailableException(CustomException):
    """Exception for service unavailable errors."""

    def __init__(self, message: str):
        super().__init__(message, 503, "service-unavailable")


def raise_for_denial(reason: DenyReason) -> None:
    """Translate a deny reason into the matching HTTP exception."""
    if reason == DenyReason.AUTHENTICATION_REQUIRED:
        raise AuthenticationException()
    raise AuthorizationException()


def ensure_allowed(result: AuthorizationResult) -> None:
    """Raise unless an authorization decision allows the action."""
    if not result.allowed:
        raise_for_denial(result.reason)


def format_pydantic_errors(validation_error: ValidationError) -> list:
    """Format Pydantic validation errors as field/message/type entries."""
    return [
        {
            "field": ".".join(str(loc) for loc in error["loc"]) or "body",
            "message": error["msg"],
            "type": error["type"]
        }
        for error in validation_error.errors()
    ]


def _problem(body: dict, status: int):
    response = jsonify(body)
    response.status_code = status
    response.content_type = PROBLEM_CONTENT_TYPE
    return response


def register_error_handlers(app: Flask, hal_formatter: HalFormatter) -> None:
    """
    Register handlers for application, validation, HTTP and unexpected errors.

    Args:
        app: Flask application
        hal_formatter: HAL formatter instance
    """

    @app.errorhandler(CustomException)
    def handle_custom_exception(error: CustomException):
        with tracer.start_as_current_span("error_handler.custom_exception") as span:
            span.set_attributes({
                "error.type": error.error_type,
                "error.status": error.status_code,
                "http.method": request.method,
                "http.path": request.path
            })

            logger.warning(
                f"Custom exception: {error.error_type}",
                extra={"extra_fields": {
                    "error_type": error.error_type,
                    "status_code": error.status_code,
                    "error_message": error.message,
                    "path": request.path,
                    "method": request.method
                }}
            )

            if isinstance(error, ValidationException):
                body = hal_formatter.format_validation_error(
                    error.message, request.path, error.validation_errors
                )
            elif isinstance(error, AuthenticationException):
                body = hal_formatter.format_authentication_error(error.message, request.path)
            elif isinstance(error, AuthorizationException):
                body = hal_formatter.format_authorization_error(error.message, request.path)
            elif isinstance(error, NotFoundException):
                body = hal_formatter.format_not_found_error(error.message, request.path)
            elif isinstance(error, ConflictException):
                body = hal_formatter.format_conflict_error(error.message, request.path)
            else:
                body = hal_formatter.format_server_error(
                    error.message, request.path, error.status_code, error.error_type,
                    "Service Unavailable" if error.status_code == 503 else "Internal Server Error"
                )

            return _problem(body, error.status_code)

    @app.errorhandler(ConnectionFailure)
    def handle_database_unavailable(error: ConnectionFailure):
        logger.error(
            "MongoDB unavailable",
            extra={"extra_fields": {"error_message": str(error), "path": request.path}}
        )
        return handle_custom_exception(ServiceUnavailableException("Database is temporarily unavailable"))

    @app.errorhandler(ValidationError)
    def handle_pydantic_error(error: ValidationError):
        errors = format_pydantic_errors(error)
        logger.warning(
            "Request validation failed",
            extra={"extra_fields": {"path": request.path, "errors": errors}}
        )
        body = hal_formatter.format_validation_error("Request validation failed", request.path, errors)
        return _problem(body, 400)

    @app.errorhandler(HTTPException)
    def handle_http_exception(error: HTTPException):
        title = error.name
        error_type = title.lower().replace(" ", "-")
        body = hal_formatter.builder.build_error_response(
            error_type, title, error.code, error.description or title, request.path
        )
        return _problem(body, error.code)

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        with tracer.start_as_current_span("error_handler.unexpected_error") as span:
            span.set_attributes({
                "error.type": "unexpected-error",
                "error.class": error.__class__.__name__,
                "http.method": request.method,
                "http.path": request.path
            })
            span.record_exception(error)

            logger.error(
                f"Unexpected error: {error.__class__.__name__}",
                extra={"extra_fields": {
                    "error_class": error.__class__.__name__,
                    "error_message": str(error),
                    "path": request.path,
                    "method": request.method
                }},
                exc_info=True
            )

            detail = "An unexpected error occurred"
            if app.config.get('ENVIRONMENT') == 'development':
                detail = f"{error.__class__.__name__}: {str(error)}"

            return _problem(hal_formatter.format_server_error(detail, request.path), 500)
