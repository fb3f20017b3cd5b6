# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for the pure domain rules: lifecycles, patch rules and tallying.
"""

import pytest
from datetime import datetime

from domain.assemblies import (
    normalize_topics,
    validate_new_assembly,
    validate_status_transition,
    validate_patch,
    transition_timestamps
)
from domain.agenda import normalize_options, validate_agenda_item, validate_voting_transition, validate_choice
from domain.authorization import effective_permissions, check_permission, can_manage_assemblies, MANAGE_PERMISSION
from domain.results import tally_votes
from models.entities import UserContext
from models.enums import AssemblyStatus, AgendaItemStatus


class TestAssemblyLifecycle:
    """Assembly status transition table."""

    @pytest.mark.parametrize("current,target", [
        (AssemblyStatus.SCHEDULED, AssemblyStatus.IN_PROGRESS),
        (AssemblyStatus.SCHEDULED, AssemblyStatus.CANCELLED),
        (AssemblyStatus.IN_PROGRESS, AssemblyStatus.CLOSED),
        (AssemblyStatus.IN_PROGRESS, AssemblyStatus.CANCELLED),
    ])
    def test_allowed_transitions(self, current, target):
        assert validate_status_transition(current, target).is_valid

    @pytest.mark.parametrize("current,target", [
        (AssemblyStatus.SCHEDULED, AssemblyStatus.CLOSED),
        (AssemblyStatus.IN_PROGRESS, AssemblyStatus.SCHEDULED),
        (AssemblyStatus.CLOSED, AssemblyStatus.IN_PROGRESS),
        (AssemblyStatus.CLOSED, AssemblyStatus.CANCELLED),
        (AssemblyStatus.CANCELLED, AssemblyStatus.SCHEDULED),
        (AssemblyStatus.SCHEDULED, AssemblyStatus.SCHEDULED),
    ])
    def test_rejected_transitions(self, current, target):
        result = validate_status_transition(current, target)

        assert not result.is_valid
        assert f"from {current.value} to {target.value}" in result.errors[0]

    def test_transition_accepts_raw_values(self):
        assert validate_status_transition("scheduled", "in_progress").is_valid

    def test_transition_timestamps(self):
        now = datetime(2025, 3, 15, 19, 5)

        assert transition_timestamps(AssemblyStatus.IN_PROGRESS, now) == {"started_at": now}
        assert transition_timestamps(AssemblyStatus.CLOSED, now) == {"ended_at": now}
        assert transition_timestamps(AssemblyStatus.CANCELLED, now) == {"ended_at": now}


class TestAssemblyValidation:
    """Assembly creation and patch rules."""

    def test_new_assembly_requires_title_and_date(self):
        result = validate_new_assembly("   ", None)

        assert not result.is_valid
        assert "Assembly title cannot be empty" in result.errors
        assert "Assembly scheduled date is required" in result.errors

    def test_new_assembly_valid(self):
        assert validate_new_assembly("AGO 2025", datetime(2025, 3, 15)).is_valid

    def test_normalize_topics_drops_blank_lines(self):
        assert normalize_topics(["  Contas 2024 ", "", "   ", "Eleição do síndico"]) == [
            "Contas 2024", "Eleição do síndico"
        ]
        assert normalize_topics(None) == []

    def test_agenda_fields_editable_while_scheduled(self):
        result = validate_patch(AssemblyStatus.SCHEDULED, {"title": "AGE Fachada"})

        assert result.is_valid

    def test_agenda_fields_frozen_once_closed(self):
        result = validate_patch(AssemblyStatus.CLOSED, {"title": "Renamed"})

        assert not result.is_valid
        assert result.errors == []
        assert "cannot be edited" in result.conflicts[0]

    @pytest.mark.parametrize("status", [
        AssemblyStatus.SCHEDULED, AssemblyStatus.IN_PROGRESS, AssemblyStatus.CLOSED
    ])
    def test_minutes_editable_unless_cancelled(self, status):
        result = validate_patch(status, {"minutes_topics": ["Aprovadas as contas"]})

        assert result.is_valid

    def test_cancelled_assembly_has_no_minutes(self):
        result = validate_patch(AssemblyStatus.CANCELLED, {"minutes_doc_ref": "https://docs.example.com/ata.pdf"})

        assert result.conflicts

    def test_empty_patch_and_unknown_fields(self):
        assert validate_patch(AssemblyStatus.SCHEDULED, {}).errors == ["Patch must change at least one field"]

        result = validate_patch(AssemblyStatus.SCHEDULED, {"status": "closed"})
        assert "Field 'status' cannot be updated" in result.errors

    def test_blank_title_in_patch(self):
        result = validate_patch(AssemblyStatus.SCHEDULED, {"title": "  "})

        assert "Assembly title cannot be empty" in result.errors


class TestAgendaItemRules:
    """Agenda item validation and voting state machine."""

    def test_options_are_trimmed(self):
        assert normalize_options([" Sim", "Não ", "Abstenção"]) == ["Sim", "Não", "Abstenção"]

    def test_valid_agenda_item(self):
        assert validate_agenda_item("Aprovação das contas", ["Sim", "Não"]).is_valid

    def test_single_option_rejected(self):
        result = validate_agenda_item("Aprovação das contas", ["Sim"])

        assert "At least 2 options are required" in result.errors

    def test_blank_and_repeated_options_rejected(self):
        result = validate_agenda_item("Pintura", ["Sim", "", "Sim"])

        assert "Options cannot be empty" in result.errors
        assert any("repeated: Sim" in error for error in result.errors)

    def test_blank_title_rejected(self):
        assert not validate_agenda_item("", ["Sim", "Não"]).is_valid

    def test_voting_moves_forward_only(self):
        assert validate_voting_transition(AgendaItemStatus.PENDING, AgendaItemStatus.VOTING).is_valid
        assert validate_voting_transition(AgendaItemStatus.VOTING, AgendaItemStatus.CLOSED).is_valid

        assert not validate_voting_transition(AgendaItemStatus.PENDING, AgendaItemStatus.CLOSED).is_valid
        assert not validate_voting_transition(AgendaItemStatus.CLOSED, AgendaItemStatus.VOTING).is_valid
        assert not validate_voting_transition(AgendaItemStatus.VOTING, AgendaItemStatus.VOTING).is_valid

    def test_choice_outside_voting_is_a_conflict(self):
        result = validate_choice(AgendaItemStatus.PENDING, ["Sim", "Não"], "Sim")

        assert result.conflicts == ["Voting not open for this agenda item"]
        assert result.errors == []

    def test_unknown_choice_is_an_error(self):
        result = validate_choice(AgendaItemStatus.VOTING, ["Sim", "Não"], "Talvez")

        assert result.conflicts == []
        assert result.errors

    def test_choice_is_case_sensitive(self):
        assert not validate_choice(AgendaItemStatus.VOTING, ["Sim", "Não"], "sim").is_valid


class TestTally:
    """Vote aggregation."""

    def test_tally_with_votes(self):
        total, per_option, winner = tally_votes(["Sim", "Não", "Abstenção"], ["Sim", "Não", "Sim"])

        assert total == 3
        assert [result.option for result in per_option] == ["Sim", "Não", "Abstenção"]
        assert [result.votes for result in per_option] == [2, 1, 0]
        assert per_option[0].percentage == pytest.approx(66.67, abs=0.01)
        assert per_option[1].percentage == pytest.approx(33.33, abs=0.01)
        assert per_option[2].percentage == 0
        assert winner == "Sim"

    def test_tally_without_votes(self):
        total, per_option, winner = tally_votes(["Sim", "Não"], [])

        assert total == 0
        assert all(result.votes == 0 and result.percentage == 0 for result in per_option)
        assert winner is None

    def test_tie_goes_to_first_declared_option(self):
        _, _, winner = tally_votes(["Sim", "Não"], ["Não", "Sim"])

        assert winner == "Sim"

    def test_percentages_sum_to_one_hundred(self):
        _, per_option, _ = tally_votes(["A", "B", "C"], ["A", "B", "C"])

        assert sum(result.percentage for result in per_option) == pytest.approx(100)


class TestAuthorizationRules:
    """Role and permission checks."""

    def test_sindico_role_implies_manage(self):
        assert MANAGE_PERMISSION in effective_permissions("sindico", [])
        assert MANAGE_PERMISSION in effective_permissions("Admin", None)

    def test_resident_cannot_manage(self):
        context = UserContext(user_id="u1", condominium_id="c1", role="morador")

        result = check_permission(context, MANAGE_PERMISSION)

        assert not result.allowed
        assert result.missing_permissions == [MANAGE_PERMISSION]
        assert not can_manage_assemblies(context)

    def test_explicit_permission_grants_manage(self):
        context = UserContext(user_id="u1", condominium_id="c1", permissions=[MANAGE_PERMISSION])

        assert can_manage_assemblies(context)
