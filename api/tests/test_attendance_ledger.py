# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for assembly check-ins.
"""

import pytest
from bson import ObjectId

from domain.errors import ValidationException, NotFoundException, StateConflictException
from models.enums import AssemblyStatus, Outcome
from services.mongodb import PROFILES


@pytest.fixture
def assembly(registry, scheduled_at):
    return registry.create("AGO 2025", scheduled_at)


class TestRegisterAttendance:
    """Check-in outcomes."""

    def test_first_check_in_is_recorded(self, registry, assembly, resident_context):
        result = registry.attendance.register_attendance(assembly.id, resident_context.user_id)

        assert result.outcome == Outcome.RECORDED.value
        assert result.record_id is not None
        assert not result.already_registered
        assert registry.attendance.count(assembly.id) == 1

    def test_second_check_in_is_already_registered(self, registry, assembly, resident_context):
        """Test scanning the QR code twice keeps a single record."""
        registry.attendance.register_attendance(assembly.id, resident_context.user_id)

        result = registry.attendance.register_attendance(assembly.id, resident_context.user_id)

        assert result.outcome == Outcome.ALREADY_REGISTERED.value
        assert result.already_registered
        assert result.record_id is None
        assert registry.attendance.count(assembly.id) == 1

    def test_check_in_during_assembly(self, registry, assembly, resident_context):
        registry.set_status(assembly.id, AssemblyStatus.IN_PROGRESS)

        result = registry.attendance.register_attendance(assembly.id, resident_context.user_id)

        assert result.outcome == Outcome.RECORDED.value

    @pytest.mark.parametrize("final_status", [AssemblyStatus.CANCELLED, AssemblyStatus.CLOSED])
    def test_check_in_refused_after_assembly_ends(self, registry, assembly, resident_context, final_status):
        if final_status == AssemblyStatus.CLOSED:
            registry.set_status(assembly.id, AssemblyStatus.IN_PROGRESS)
        registry.set_status(assembly.id, final_status)

        with pytest.raises(StateConflictException) as exc_info:
            registry.attendance.register_attendance(assembly.id, resident_context.user_id)

        assert exc_info.value.current_status == final_status.value

    def test_missing_user(self, registry, assembly):
        with pytest.raises(ValidationException):
            registry.attendance.register_attendance(assembly.id, None)

    def test_unknown_assembly(self, registry, resident_context):
        with pytest.raises(NotFoundException):
            registry.attendance.register_attendance(str(ObjectId()), resident_context.user_id)


class TestListAttendance:
    """Attendance listing with profile display fields."""

    def test_list_joins_profiles(self, registry, mongodb_service, assembly, resident_context, manager_context):
        mongodb_service.get_collection(PROFILES).insert_one({
            "_id": resident_context.user_id,
            "condominiumId": resident_context.condominium_id,
            "fullName": "Maria Souza",
            "unitNumber": "101"
        })
        registry.attendance.register_attendance(assembly.id, resident_context.user_id)
        registry.attendance.register_attendance(assembly.id, manager_context.user_id)

        entries = registry.attendance.list(assembly.id)

        assert [entry.user_id for entry in entries] == [resident_context.user_id, manager_context.user_id]
        assert entries[0].full_name == "Maria Souza"
        assert entries[0].unit_number == "101"
        assert entries[1].full_name is None

    def test_list_is_per_assembly(self, registry, assembly, scheduled_at, resident_context):
        other = registry.create("AGE Fachada", scheduled_at)
        registry.attendance.register_attendance(other.id, resident_context.user_id)

        assert registry.attendance.list(assembly.id) == []
