# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Core entity models for the assembly governance platform.
"""

import re
from datetime import datetime
from typing import List, Optional, Dict, Any
from pydantic import BaseModel, Field, field_validator, model_validator, ConfigDict
from pydantic.alias_generators import to_camel
from .base import BaseEntity
from .enums import AssemblyStatus, AgendaItemStatus, VotingMode, Outcome


URL_PATTERN = r'^https?://[^\s/$.?#].[^\s]*$'

# Read models are serialized with camelCase keys, like stored documents
READ_MODEL_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True, use_enum_values=True)


def _validate_doc_ref(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    if not re.match(URL_PATTERN, v):
        raise ValueError('Document reference must be an http(s) URL')
    return v


class Assembly(BaseEntity):
    """Condominium general meeting with a status lifecycle."""

    title: str = Field(..., min_length=1, max_length=200, description="Assembly title")
    scheduled_at: datetime = Field(..., description="Scheduled date and time")
    status: AssemblyStatus = Field(default=AssemblyStatus.SCHEDULED, description="Lifecycle status")
    agenda_doc_topics: List[str] = Field(default_factory=list, description="Call notice (edital) topics")
    agenda_doc_ref: Optional[str] = Field(None, description="Call notice document URL")
    minutes_topics: List[str] = Field(default_factory=list, description="Minutes (ata) topics")
    minutes_doc_ref: Optional[str] = Field(None, description="Minutes document URL")
    started_at: Optional[datetime] = Field(None, description="Start timestamp")
    ended_at: Optional[datetime] = Field(None, description="Close or cancellation timestamp")

    @field_validator('title')
    @classmethod
    def validate_title(cls, v):
        """Validate assembly title."""
        if not v.strip():
            raise ValueError('Assembly title cannot be empty')
        return v.strip()

    @field_validator('agenda_doc_ref', 'minutes_doc_ref')
    @classmethod
    def validate_doc_ref(cls, v):
        return _validate_doc_ref(v)

    def is_terminal(self) -> bool:
        """Check if the assembly reached a terminal status."""
        return self.status in (AssemblyStatus.CLOSED, AssemblyStatus.CANCELLED)


class AgendaItem(BaseEntity):
    """Single motion put to a vote within an assembly (pauta)."""

    assembly_id: str = Field(..., description="Owning assembly ID")
    title: str = Field(..., min_length=1, max_length=200, description="Agenda item title")
    description: str = Field(default="", max_length=5000, description="Agenda item description")
    display_order: int = Field(default=1, description="Display position within the assembly")
    voting_mode: VotingMode = Field(default=VotingMode.OPEN, description="Voting display mode")
    options: List[str] = Field(..., description="Ballot options in declared order")
    status: AgendaItemStatus = Field(default=AgendaItemStatus.PENDING, description="Voting status")
    voting_opened_at: Optional[datetime] = Field(None, description="Voting opening timestamp")
    voting_closed_at: Optional[datetime] = Field(None, description="Voting closing timestamp")

    @field_validator('title')
    @classmethod
    def validate_title(cls, v):
        """Validate agenda item title."""
        if not v.strip():
            raise ValueError('Agenda item title cannot be empty')
        return v.strip()

    @field_validator('options')
    @classmethod
    def validate_options(cls, v):
        """Validate ballot options."""
        if len(v) < 2:
            raise ValueError('At least two options are required')
        if any(not option.strip() for option in v):
            raise ValueError('Options cannot be empty')
        if len(set(v)) != len(v):
            raise ValueError('Options must be distinct')
        return v

    def is_voting_open(self) -> bool:
        """Check if ballots are currently accepted."""
        return self.status == AgendaItemStatus.VOTING


class AttendanceRecord(BaseEntity):
    """Proof that a user checked in to an assembly."""

    assembly_id: str = Field(..., description="Assembly ID")
    user_id: str = Field(..., description="Attending user ID")
    registered_at: datetime = Field(default_factory=datetime.utcnow, description="Check-in timestamp")


class Ballot(BaseEntity):
    """One user's recorded choice for one agenda item."""

    pauta_id: str = Field(..., description="Agenda item ID")
    assembly_id: str = Field(..., description="Assembly ID of the agenda item")
    user_id: str = Field(..., description="Voting user ID")
    choice: str = Field(..., min_length=1, description="Chosen option")
    cast_at: datetime = Field(default_factory=datetime.utcnow, description="Cast timestamp")


class AttendanceEntry(BaseModel):
    """Attendance record joined with the attendee's display fields."""

    model_config = READ_MODEL_CONFIG

    id: str
    assembly_id: str
    user_id: str
    registered_at: datetime
    full_name: Optional[str] = None
    unit_number: Optional[str] = None


class AttendanceResult(BaseModel):
    """Outcome of an attendance registration."""

    model_config = READ_MODEL_CONFIG

    outcome: Outcome
    assembly_id: str
    user_id: str
    record_id: Optional[str] = None

    @property
    def already_registered(self) -> bool:
        return self.outcome == Outcome.ALREADY_REGISTERED


class VoteResult(BaseModel):
    """Outcome of a ballot cast."""

    model_config = READ_MODEL_CONFIG

    outcome: Outcome
    pauta_id: str
    user_id: str
    ballot_id: Optional[str] = None

    @property
    def duplicate(self) -> bool:
        return self.outcome == Outcome.DUPLICATE


class OptionResult(BaseModel):
    """Tally for a single option."""

    model_config = READ_MODEL_CONFIG

    option: str
    votes: int
    percentage: float


class VotingResults(BaseModel):
    """Aggregated tally for an agenda item."""

    model_config = READ_MODEL_CONFIG

    pauta_id: str
    title: str
    status: AgendaItemStatus
    voting_mode: VotingMode = VotingMode.OPEN
    total_votes: int
    per_option: List[OptionResult]
    winner: Optional[str] = None


class UserContext(BaseModel):
    """User context for request processing with authentication and authorization data."""

    user_id: str = Field(..., description="Authenticated user ID")
    condominium_id: str = Field(..., description="User's condominium ID")
    email: Optional[str] = Field(None, description="User email")
    name: Optional[str] = Field(None, description="User display name")
    role: Optional[str] = Field(None, description="User role in the condominium")
    permissions: List[str] = Field(default_factory=list, description="User's effective permissions")
    token_payload: Optional[Dict[str, Any]] = Field(None, description="Original JWT payload")
    ip_address: Optional[str] = Field(None, description="Client IP address")
    user_agent: Optional[str] = Field(None, description="Client user agent")

    @model_validator(mode='after')
    def validate_identity(self):
        """Validate that identity fields are present."""
        if not self.user_id.strip():
            raise ValueError('user_id cannot be empty')
        if not self.condominium_id.strip():
            raise ValueError('condominium_id cannot be empty')
        return self

    def has_permission(self, permission: str) -> bool:
        """Check if user has a specific permission."""
        return permission in self.permissions
