# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Attendance ledger: check-ins for assemblies, one per user.

Repeated check-ins (a QR code scanned twice) hit the unique
``(assemblyId, userId)`` index and come back as ``already_registered``.
"""

import logging
from typing import List, Optional
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from .mongodb import MongoDBService, DuplicateRecordError, ASSEMBLIES, ATTENDANCE_RECORDS, PROFILES
from domain.assemblies import TERMINAL_STATUSES
from domain.errors import ValidationException, NotFoundException, StateConflictException
from models.entities import AttendanceRecord, AttendanceEntry, AttendanceResult, UserContext
from models.enums import AssemblyStatus, Outcome

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

ATTENDANCE_KEY = ("assemblyId", "userId")


class AttendanceLedger:
    """Writes and reads attendance records within the caller's condominium."""

    def __init__(self, mongo_service: MongoDBService, user_context: UserContext):
        self.mongo_service = mongo_service
        self.user_context = user_context
        self.collection_name = ATTENDANCE_RECORDS

    @property
    def condominium_id(self) -> str:
        return self.user_context.condominium_id

    def register_attendance(self, assembly_id: str, user_id: Optional[str]) -> AttendanceResult:
        """
        Register a user's presence at an assembly.

        Args:
            assembly_id: Assembly ID
            user_id: Attending user ID (from the authenticated token)

        Returns:
            AttendanceResult with outcome ``recorded`` or ``already_registered``

        Raises:
            ValidationException: Missing user
            NotFoundException: Assembly does not exist
            StateConflictException: Assembly is closed or cancelled
        """
        with tracer.start_as_current_span(
            "attendance.register",
            attributes={"assembly.id": assembly_id, "condominium.id": self.condominium_id}
        ) as span:
            if not user_id:
                raise ValidationException("User not authenticated")

            assembly = self.mongo_service.find_one(ASSEMBLIES, self.condominium_id, assembly_id)
            if assembly is None:
                raise NotFoundException(f"Assembly {assembly_id} not found")

            status = AssemblyStatus(assembly["status"])
            if status in TERMINAL_STATUSES:
                raise StateConflictException(
                    f"Attendance is closed for this assembly (current status: {status.value})",
                    current_status=status.value
                )

            record = AttendanceRecord(
                condominium_id=self.condominium_id,
                assembly_id=assembly_id,
                user_id=user_id,
                created_by=user_id,
                updated_by=user_id
            )

            try:
                record_id = self.mongo_service.create(self.collection_name, record.to_document(), user_id)
            except DuplicateRecordError as e:
                if not e.violates(ATTENDANCE_KEY):
                    raise
                span.set_attribute("attendance.outcome", Outcome.ALREADY_REGISTERED.value)
                logger.info(
                    "Attendance already registered",
                    extra={"assembly_id": assembly_id, "user_id": user_id}
                )
                return AttendanceResult(
                    outcome=Outcome.ALREADY_REGISTERED,
                    assembly_id=assembly_id,
                    user_id=user_id
                )

            span.set_attribute("attendance.outcome", Outcome.RECORDED.value)
            span.set_status(Status(StatusCode.OK))
            logger.info(
                "Attendance registered",
                extra={"assembly_id": assembly_id, "user_id": user_id, "record_id": record_id}
            )
            return AttendanceResult(
                outcome=Outcome.RECORDED,
                assembly_id=assembly_id,
                user_id=user_id,
                record_id=record_id
            )

    def list(self, assembly_id: str) -> List[AttendanceEntry]:
        """
        Attendance of an assembly by check-in time, with attendee display fields.

        Display fields come from the ``profiles`` collection keyed by user ID;
        attendees without a profile keep them empty.
        """
        pipeline = [
            {"$match": {"assemblyId": assembly_id}},
            {"$sort": {"registeredAt": 1, "_id": 1}},
            {"$lookup": {
                "from": PROFILES,
                "localField": "userId",
                "foreignField": "_id",
                "as": "profile"
            }},
        ]
        entries = []
        for document in self.mongo_service.aggregate(self.collection_name, self.condominium_id, pipeline):
            profile = document["profile"][0] if document.get("profile") else {}
            entries.append(AttendanceEntry(
                id=str(document["_id"]),
                assembly_id=document["assemblyId"],
                user_id=document["userId"],
                registered_at=document["registeredAt"],
                full_name=profile.get("fullName"),
                unit_number=profile.get("unitNumber")
            ))
        return entries

    def count(self, assembly_id: str) -> int:
        return self.mongo_service.count(self.collection_name, self.condominium_id, {"assemblyId": assembly_id})

    def delete_for_assembly(self, assembly_id: str) -> int:
        return self.mongo_service.delete_many(
            self.collection_name, self.condominium_id, {"assemblyId": assembly_id}
        )
