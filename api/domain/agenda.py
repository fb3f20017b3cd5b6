# SPDX-License-Identifier: Apache-2.0

"""
Agenda item (pauta) domain logic.

The voting state machine is strictly linear and irreversible:
pending -> voting -> closed.
"""

from typing import List, Dict, Optional, Iterable

from models.enums import AgendaItemStatus
from .assemblies import ValidationResult


AGENDA_ITEM_TRANSITIONS: Dict[AgendaItemStatus, List[AgendaItemStatus]] = {
    AgendaItemStatus.PENDING: [AgendaItemStatus.VOTING],
    AgendaItemStatus.VOTING: [AgendaItemStatus.CLOSED],
    AgendaItemStatus.CLOSED: [],
}

MIN_OPTIONS = 2


def normalize_options(options: Optional[Iterable[str]]) -> List[str]:
    """Strip surrounding whitespace from each option, keeping order and blanks."""
    if not options:
        return []
    return [str(option).strip() for option in options]


def validate_agenda_item(title: Optional[str], options: List[str]) -> ValidationResult:
    """
    Validate agenda item creation input.

    Args:
        title: Agenda item title
        options: Normalized ballot options

    Returns:
        ValidationResult with validation status and errors
    """
    errors = []

    if not title or not title.strip():
        errors.append("Agenda item title cannot be empty")

    if len(options) < MIN_OPTIONS:
        errors.append(f"At least {MIN_OPTIONS} options are required")

    if any(not option for option in options):
        errors.append("Options cannot be empty")

    seen = set()
    duplicates = []
    for option in options:
        if option and option in seen and option not in duplicates:
            duplicates.append(option)
        seen.add(option)
    if duplicates:
        errors.append(f"Options must be distinct (repeated: {', '.join(duplicates)})")

    return ValidationResult(is_valid=len(errors) == 0, errors=errors)


def validate_voting_transition(
    current_status: AgendaItemStatus,
    new_status: AgendaItemStatus
) -> ValidationResult:
    """
    Validate agenda item status transition.

    Args:
        current_status: Current agenda item status
        new_status: Desired new status

    Returns:
        ValidationResult with validation status and errors
    """
    errors = []
    current = AgendaItemStatus(current_status)
    target = AgendaItemStatus(new_status)

    if target not in AGENDA_ITEM_TRANSITIONS.get(current, []):
        errors.append(
            f"Invalid voting transition from {current.value} to {target.value}"
        )

    return ValidationResult(is_valid=len(errors) == 0, errors=errors)


def validate_choice(status: AgendaItemStatus, options: List[str], choice: Optional[str]) -> ValidationResult:
    """
    Validate a ballot against the agenda item state.

    Status problems are reported as conflicts, bad choices as errors.
    """
    errors = []
    conflicts = []

    if AgendaItemStatus(status) != AgendaItemStatus.VOTING:
        conflicts.append("Voting not open for this agenda item")
    elif choice is None or choice not in options:
        errors.append(f"Invalid choice: {choice!r}")

    return ValidationResult(
        is_valid=len(errors) == 0 and len(conflicts) == 0,
        errors=errors,
        conflicts=conflicts
    )
