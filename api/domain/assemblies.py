# SPDX-License-Identifier: Apache-2.0

"""
Assembly domain logic for lifecycle management.

This module contains pure functions for assembly validation, status
transitions and patch rules. Persistence lives in ``services.assemblies``.
"""

from typing import List, Dict, Any, Optional, Iterable
from dataclasses import dataclass, field
from datetime import datetime

from models.enums import AssemblyStatus


# Initial status is SCHEDULED; CLOSED and CANCELLED are terminal.
ASSEMBLY_TRANSITIONS: Dict[AssemblyStatus, List[AssemblyStatus]] = {
    AssemblyStatus.SCHEDULED: [AssemblyStatus.IN_PROGRESS, AssemblyStatus.CANCELLED],
    AssemblyStatus.IN_PROGRESS: [AssemblyStatus.CLOSED, AssemblyStatus.CANCELLED],
    AssemblyStatus.CLOSED: [],
    AssemblyStatus.CANCELLED: [],
}

TERMINAL_STATUSES = (AssemblyStatus.CLOSED, AssemblyStatus.CANCELLED)

AGENDA_FIELDS = ("title", "scheduled_at", "agenda_doc_topics", "agenda_doc_ref")
MINUTES_FIELDS = ("minutes_topics", "minutes_doc_ref")


@dataclass
class ValidationResult:
    """Result of a domain validation."""
    is_valid: bool
    errors: List[str]
    warnings: List[str] = field(default_factory=list)
    conflicts: List[str] = field(default_factory=list)


def normalize_topics(topics: Optional[Iterable[str]]) -> List[str]:
    """
    Strip topics and drop blank lines, keeping declared order.

    Args:
        topics: Raw topic strings, typically one per form line

    Returns:
        Cleaned list of topics
    """
    if not topics:
        return []
    return [topic.strip() for topic in topics if topic and topic.strip()]


def validate_new_assembly(title: Optional[str], scheduled_at: Optional[datetime]) -> ValidationResult:
    """
    Validate assembly creation input.

    Args:
        title: Assembly title
        scheduled_at: Scheduled date and time

    Returns:
        ValidationResult with validation status and errors
    """
    errors = []

    if not title or not title.strip():
        errors.append("Assembly title cannot be empty")
    elif len(title.strip()) > 200:
        errors.append("Assembly title cannot exceed 200 characters")

    if scheduled_at is None:
        errors.append("Assembly scheduled date is required")

    return ValidationResult(is_valid=len(errors) == 0, errors=errors)


def validate_status_transition(
    current_status: AssemblyStatus,
    new_status: AssemblyStatus
) -> ValidationResult:
    """
    Validate assembly status transition against the transition table.

    Args:
        current_status: Current assembly status
        new_status: Desired new status

    Returns:
        ValidationResult with validation status and errors
    """
    errors = []
    current = AssemblyStatus(current_status)
    target = AssemblyStatus(new_status)

    if target not in ASSEMBLY_TRANSITIONS.get(current, []):
        errors.append(
            f"Invalid status transition from {current.value} to {target.value}"
        )

    return ValidationResult(is_valid=len(errors) == 0, errors=errors)


def transition_timestamps(new_status: AssemblyStatus, now: datetime) -> Dict[str, Any]:
    """Fields stamped alongside a status change."""
    target = AssemblyStatus(new_status)
    if target == AssemblyStatus.IN_PROGRESS:
        return {"started_at": now}
    if target in TERMINAL_STATUSES:
        return {"ended_at": now}
    return {}


def validate_patch(current_status: AssemblyStatus, patch: Dict[str, Any]) -> ValidationResult:
    """
    Validate which fields an assembly patch may touch in its current status.

    Agenda fields are editable while the assembly is not terminal. Minutes
    fields stay editable after closing, so only a cancelled assembly refuses them.

    Args:
        current_status: Current assembly status
        patch: Field names to new values (only fields being changed)

    Returns:
        ValidationResult with validation status and errors
    """
    errors = []
    conflicts = []
    status = AssemblyStatus(current_status)

    if not patch:
        errors.append("Patch must change at least one field")
        return ValidationResult(is_valid=False, errors=errors)

    unknown = [name for name in patch if name not in AGENDA_FIELDS + MINUTES_FIELDS]
    for name in unknown:
        errors.append(f"Field '{name}' cannot be updated")

    touches_agenda = any(name in AGENDA_FIELDS for name in patch)
    touches_minutes = any(name in MINUTES_FIELDS for name in patch)

    if touches_agenda and status in TERMINAL_STATUSES:
        conflicts.append(f"Assembly cannot be edited (current status: {status.value})")

    if touches_minutes and status == AssemblyStatus.CANCELLED:
        conflicts.append("Minutes cannot be recorded for a cancelled assembly")

    if "title" in patch and (not patch["title"] or not str(patch["title"]).strip()):
        errors.append("Assembly title cannot be empty")

    if "scheduled_at" in patch and patch["scheduled_at"] is None:
        errors.append("Assembly scheduled date is required")

    return ValidationResult(
        is_valid=len(errors) == 0 and len(conflicts) == 0,
        errors=errors,
        conflicts=conflicts
    )
