# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Request validation using Pydantic models.
Validated models are passed to the route handler as its first argument.
"""

from functools import wraps
from flask import request
from typing import Type, Callable
from pydantic import BaseModel, ValidationError
from opentelemetry import trace
import logging

from .error_handler import ValidationException, format_pydantic_errors

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


def parse_json_body(model_class: Type[BaseModel]) -> BaseModel:
    """
    Validate the JSON request body against a Pydantic model.

    Raises:
        ValidationException: Body missing, not JSON, or invalid for the model
    """
    with tracer.start_as_current_span("validation.validate_json_body") as span:
        span.set_attributes({
            "validation.model": model_class.__name__,
            "http.method": request.method,
            "http.path": request.path
        })

        json_data = request.get_json(silent=True)
        if not isinstance(json_data, dict):
            span.set_attribute("validation.result", "invalid_json")
            raise ValidationException(
                "Request body must be a JSON object",
                [{"field": "body", "message": "Expected a JSON object", "type": "json_error"}]
            )

        try:
            validated = model_class.model_validate(json_data)
        except ValidationError as e:
            span.set_attribute("validation.result", "validation_error")
            raise ValidationException(
                f"Request validation failed for {model_class.__name__}",
                format_pydantic_errors(e)
            )

        span.set_attribute("validation.result", "success")
        return validated


def parse_query_params(model_class: Type[BaseModel]) -> BaseModel:
    """
    Validate query parameters against a Pydantic model. Empty values are ignored.

    Raises:
        ValidationException: Parameters invalid for the model
    """
    query_data = {key: value for key, value in request.args.items() if value != ""}
    try:
        return model_class.model_validate(query_data)
    except ValidationError as e:
        raise ValidationException(
            f"Query parameter validation failed for {model_class.__name__}",
            format_pydantic_errors(e)
        )


def validate_json(model_class: Type[BaseModel]) -> Callable:
    """Decorator passing the validated JSON body to the route handler."""
    def decorator(f: Callable) -> Callable:
        @wraps(f)
        def decorated_function(*args, **kwargs):
            return f(parse_json_body(model_class), *args, **kwargs)
        return decorated_function
    return decorator


def validate_query(model_class: Type[BaseModel]) -> Callable:
    """Decorator passing validated query parameters to the route handler."""
    def decorator(f: Callable) -> Callable:
        @wraps(f)
        def decorated_function(*args, **kwargs):
            return f(parse_query_params(model_class), *args, **kwargs)
        return decorated_function
    return decorator
