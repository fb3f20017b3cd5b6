# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Models package - Pydantic schemas and data models for the assembly governance platform.
"""

# Base models
from .base import BaseEntity, generate_object_id

# Enumerations
from .enums import (
    AssemblyStatus,
    AgendaItemStatus,
    VotingMode,
    Outcome
)

# Core entities
from .entities import (
    Assembly,
    AgendaItem,
    AttendanceRecord,
    Ballot,
    AttendanceEntry,
    AttendanceResult,
    VoteResult,
    OptionResult,
    VotingResults,
    UserContext
)

# Request models
from .requests import (
    AssemblyPath,
    AgendaItemPath,
    DeleteQuery,
    CreateAssemblyRequest,
    UpdateAssemblyRequest,
    SetAssemblyStatusRequest,
    CreateAgendaItemRequest,
    CastVoteRequest
)

# Response models
from .responses import (
    HalLink,
    OutcomeResponse,
    ErrorResponse,
    HealthCheckResponse
)

__all__ = [
    # Base models
    "BaseEntity",
    "generate_object_id",

    # Enumerations
    "AssemblyStatus",
    "AgendaItemStatus",
    "VotingMode",
    "Outcome",

    # Core entities
    "Assembly",
    "AgendaItem",
    "AttendanceRecord",
    "Ballot",
    "AttendanceEntry",
    "AttendanceResult",
    "VoteResult",
    "OptionResult",
    "VotingResults",
    "UserContext",

    # Request models
    "AssemblyPath",
    "AgendaItemPath",
    "DeleteQuery",
    "CreateAssemblyRequest",
    "UpdateAssemblyRequest",
    "SetAssemblyStatusRequest",
    "CreateAgendaItemRequest",
    "CastVoteRequest",

    # Response models
    "HalLink",
    "OutcomeResponse",
    "ErrorResponse",
    "HealthCheckResponse"
]
