# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Request models for API endpoints.

Business rules (non-empty titles, option counts, status gating) are enforced
by the service layer; these models only describe the wire shape.
"""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field

from .enums import AssemblyStatus, VotingMode


class AssemblyPath(BaseModel):
    """Path parameters for assembly routes."""

    assembly_id: str = Field(..., description="Assembly identifier")


class AgendaItemPath(BaseModel):
    """Path parameters for agenda item routes."""

    pauta_id: str = Field(..., description="Agenda item identifier")


class DeleteQuery(BaseModel):
    """Query parameters for cascading deletes."""

    force: bool = Field(default=False, description="Delete even when ballots exist")


class CreateAssemblyRequest(BaseModel):
    """Request model for creating an assembly."""

    title: str = Field(..., max_length=200, description="Assembly title")
    scheduled_at: Optional[datetime] = Field(None, description="Scheduled date and time")
    agenda_doc_topics: List[str] = Field(default_factory=list, description="Call notice topics")
    agenda_doc_ref: Optional[str] = Field(None, description="Call notice document URL")


class UpdateAssemblyRequest(BaseModel):
    """Request model for patching an assembly. Only set fields are applied."""

    title: Optional[str] = Field(None, max_length=200, description="Assembly title")
    scheduled_at: Optional[datetime] = Field(None, description="Scheduled date and time")
    agenda_doc_topics: Optional[List[str]] = Field(None, description="Call notice topics")
    agenda_doc_ref: Optional[str] = Field(None, description="Call notice document URL")
    minutes_topics: Optional[List[str]] = Field(None, description="Minutes topics")
    minutes_doc_ref: Optional[str] = Field(None, description="Minutes document URL")


class SetAssemblyStatusRequest(BaseModel):
    """Request model for an assembly status transition."""

    status: AssemblyStatus = Field(..., description="Target status")


class CreateAgendaItemRequest(BaseModel):
    """Request model for adding an agenda item to an assembly."""

    title: str = Field(..., max_length=200, description="Agenda item title")
    description: str = Field(default="", max_length=5000, description="Agenda item description")
    display_order: int = Field(default=1, description="Display position")
    voting_mode: VotingMode = Field(default=VotingMode.OPEN, description="Voting display mode")
    options: List[str] = Field(..., description="Ballot options in declared order")


class CastVoteRequest(BaseModel):
    """Request model for casting a ballot."""

    choice: str = Field(..., description="Chosen option")
