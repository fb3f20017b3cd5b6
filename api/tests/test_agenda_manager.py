# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for agenda items and their voting state machine.
"""

import pytest
from bson import ObjectId

from domain.errors import ValidationException, NotFoundException, StateConflictException
from models.enums import AgendaItemStatus, VotingMode


@pytest.fixture
def assembly(registry, scheduled_at):
    return registry.create("AGO 2025", scheduled_at)


class TestAddAgendaItem:
    """Agenda item creation."""

    def test_add_agenda_item(self, registry, assembly):
        """Test agenda items start pending with trimmed options."""
        item = registry.agenda.add_agenda_item(
            assembly.id,
            "Aprovação das contas 2024",
            [" Sim", "Não ", "Abstenção"],
            description="Balancete anual apresentado pelo conselho fiscal",
            voting_mode=VotingMode.SECRET
        )

        stored = registry.agenda.get(item.id)
        assert stored.status == AgendaItemStatus.PENDING.value
        assert stored.options == ["Sim", "Não", "Abstenção"]
        assert stored.voting_mode == VotingMode.SECRET.value
        assert stored.assembly_id == assembly.id

    def test_unknown_assembly(self, registry):
        with pytest.raises(NotFoundException):
            registry.agenda.add_agenda_item(str(ObjectId()), "Pintura", ["Sim", "Não"])

    @pytest.mark.parametrize("title,options", [
        ("", ["Sim", "Não"]),
        ("Pintura", ["Sim"]),
        ("Pintura", ["Sim", "  "]),
        ("Pintura", ["Sim", "Sim "]),
    ])
    def test_invalid_agenda_item(self, registry, assembly, title, options):
        with pytest.raises(ValidationException):
            registry.agenda.add_agenda_item(assembly.id, title, options)

        assert registry.agenda.list(assembly.id) == []

    def test_overlong_title_is_a_validation_error(self, registry, assembly):
        with pytest.raises(ValidationException) as exc_info:
            registry.agenda.add_agenda_item(assembly.id, "x" * 201, ["A", "B"])

        assert exc_info.value.validation_errors[0]["field"] == "title"
        assert registry.agenda.list(assembly.id) == []

    def test_list_by_display_order_then_creation(self, registry, assembly):
        agenda = registry.agenda
        agenda.add_agenda_item(assembly.id, "Eleição do síndico", ["Ana", "Bruno"], display_order=2)
        agenda.add_agenda_item(assembly.id, "Aprovação das contas", ["Sim", "Não"], display_order=1)
        agenda.add_agenda_item(assembly.id, "Obras na fachada", ["Sim", "Não"], display_order=2)

        titles = [item.title for item in agenda.list(assembly.id)]

        assert titles == ["Aprovação das contas", "Eleição do síndico", "Obras na fachada"]


class TestVotingStateMachine:
    """Open and close voting."""

    def test_open_then_close(self, registry, assembly):
        item = registry.agenda.add_agenda_item(assembly.id, "Pintura", ["Sim", "Não"])

        opened = registry.agenda.open_voting(item.id)
        assert opened.status == AgendaItemStatus.VOTING.value
        assert opened.voting_opened_at is not None

        closed = registry.agenda.close_voting(item.id)
        assert closed.status == AgendaItemStatus.CLOSED.value
        assert closed.voting_closed_at is not None

    def test_cannot_close_pending_item(self, registry, assembly):
        item = registry.agenda.add_agenda_item(assembly.id, "Pintura", ["Sim", "Não"])

        with pytest.raises(StateConflictException) as exc_info:
            registry.agenda.close_voting(item.id)

        assert exc_info.value.current_status == "pending"

    def test_cannot_reopen(self, registry, assembly):
        item = registry.agenda.add_agenda_item(assembly.id, "Pintura", ["Sim", "Não"])
        registry.agenda.open_voting(item.id)
        registry.agenda.close_voting(item.id)

        with pytest.raises(StateConflictException):
            registry.agenda.open_voting(item.id)

    def test_open_twice_is_a_conflict(self, registry, assembly):
        item = registry.agenda.add_agenda_item(assembly.id, "Pintura", ["Sim", "Não"])
        registry.agenda.open_voting(item.id)

        with pytest.raises(StateConflictException):
            registry.agenda.open_voting(item.id)

    def test_missing_item(self, registry):
        with pytest.raises(NotFoundException):
            registry.agenda.open_voting(str(ObjectId()))


class TestDeleteAgendaItem:
    """Agenda item deletion."""

    def test_delete_pending_item(self, registry, assembly):
        item = registry.agenda.add_agenda_item(assembly.id, "Pintura", ["Sim", "Não"])

        registry.agenda.delete(item.id)

        with pytest.raises(NotFoundException):
            registry.agenda.get(item.id)

    def test_delete_with_ballots_requires_force(self, registry, assembly, resident_context):
        agenda = registry.agenda
        item = agenda.add_agenda_item(assembly.id, "Pintura", ["Sim", "Não"])
        agenda.open_voting(item.id)
        agenda.ballots.cast_vote(item.id, resident_context.user_id, "Não")

        with pytest.raises(StateConflictException):
            agenda.delete(item.id)

        agenda.delete(item.id, force=True)
        assert agenda.ballots.count_for_pauta(item.id) == 0
        assert agenda.find_assembly_id(item.id) is None

    def test_item_removed_before_its_ballots(self, registry, assembly, monkeypatch):
        """Test a vote racing the delete finds no item instead of leaving an orphan ballot."""
        agenda = registry.agenda
        item = agenda.add_agenda_item(assembly.id, "Pintura", ["Sim", "Não"])
        item_present = []
        delete_ballots = agenda.ballots.delete_for_pauta

        def recording_delete(pauta_id):
            item_present.append(agenda.find_assembly_id(pauta_id) is not None)
            return delete_ballots(pauta_id)

        monkeypatch.setattr(agenda.ballots, "delete_for_pauta", recording_delete)

        agenda.delete(item.id)

        assert item_present == [False]
