# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Enumeration types for the assembly governance platform.
"""

from enum import Enum


class AssemblyStatus(str, Enum):
    """Assembly lifecycle status enumeration."""
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    CLOSED = "closed"
    CANCELLED = "cancelled"


class AgendaItemStatus(str, Enum):
    """Agenda item (pauta) voting status enumeration."""
    PENDING = "pending"
    VOTING = "voting"
    CLOSED = "closed"


class VotingMode(str, Enum):
    """Voting display mode. Secret only changes how results are presented."""
    OPEN = "open"
    SECRET = "secret"


class Outcome(str, Enum):
    """Result of an idempotent insert (ballot or attendance)."""
    RECORDED = "recorded"
    DUPLICATE = "duplicate"
    ALREADY_REGISTERED = "already_registered"

