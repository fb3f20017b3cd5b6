# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Request validation middleware using Pydantic models.

flask-openapi3 parses the ``path``, ``query`` and ``body`` models declared on
each view. Its validation failures are routed through
``validation_error_callback``, which raises ``ValidationException`` so they
are rendered like every other problem document.
"""

from flask import request
from typing import Dict, Any, List
from pydantic import ValidationError
from opentelemetry import trace
import logging

from domain.errors import ValidationException

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

VALIDATION_ERROR_STATUS = 400


def format_validation_errors(validation_error: ValidationError) -> List[Dict[str, Any]]:
    """
    Format Pydantic validation errors for API response.

    Args:
        validation_error: Pydantic ValidationError

    Returns:
        List of formatted error dictionaries
    """
    errors = []

    for error in validation_error.errors():
        # A body that is not a JSON object fails at the model root
        field_path = ".".join(str(loc) for loc in error["loc"]) or "body"
        errors.append({
            "field": field_path,
            "message": error["msg"],
            "type": error["type"]
        })

    return errors


def validation_error_callback(validation_error: ValidationError):
    """
    Turn a request validation failure into a ``ValidationException``.

    Args:
        validation_error: Error raised while parsing the view's declared models

    Raises:
        ValidationException: Always
    """
    validation_errors = format_validation_errors(validation_error)

    span = trace.get_current_span()
    span.set_attributes({
        "validation.result": "validation_error",
        "validation.model": validation_error.title
    })

    logger.warning(
        "Request validation failed",
        extra={
            "model": validation_error.title,
            "path": request.path,
            "method": request.method,
            "errors": validation_errors
        }
    )
    raise ValidationException(
        f"Request validation failed for {validation_error.title}",
        validation_errors
    ) from validation_error
