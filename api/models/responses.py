# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Response models for API endpoints with HAL support.
"""

from typing import List, Optional, Dict, Any
from pydantic import BaseModel, Field


class HalLink(BaseModel):
    """HAL link representation."""

    href: str = Field(..., description="Link URL")
    method: Optional[str] = Field(None, description="HTTP method")
    type: Optional[str] = Field(None, description="Content type")
    title: Optional[str] = Field(None, description="Link title")
    templated: Optional[bool] = Field(None, description="Whether URL is templated")


class OutcomeResponse(BaseModel):
    """Response for idempotent inserts (votes and attendance)."""

    outcome: str = Field(..., description="recorded, duplicate or already_registered")
    message: str = Field(..., description="Human-readable outcome")
    resource_id: Optional[str] = Field(None, serialization_alias="resourceId", description="Created record ID")


class ErrorResponse(BaseModel):
    """Error response model following RFC 7807."""

    type: str = Field(..., description="Error type URI")
    title: str = Field(..., description="Error title")
    status: int = Field(..., description="HTTP status code")
    detail: str = Field(..., description="Error detail")
    instance: str = Field(..., description="Request instance")
    errors: Optional[List[Dict[str, Any]]] = Field(None, description="Validation errors")


class HealthCheckResponse(BaseModel):
    """Health check response model."""

    service: str = Field(..., description="Service name")
    status: str = Field(..., description="Overall health status")
    version: str = Field(..., description="Application version")
    environment: str = Field(..., description="Environment name")
    timestamp: str = Field(..., description="Check timestamp")
    dependencies: Dict[str, Dict[str, Any]] = Field(default_factory=dict, description="Dependency health")
