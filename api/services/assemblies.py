# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Assembly registry: lifecycle of condominium assemblies.

The registry is the entry point for a request's assembly operations. It
owns the agenda manager and attendance ledger, so cascading deletes go
through the component that writes each collection.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode
from pydantic import ValidationError
from pydantic.alias_generators import to_camel
from pymongo import DESCENDING

from .mongodb import MongoDBService, ASSEMBLIES
from .agenda import AgendaManager
from .attendance import AttendanceLedger
from domain.assemblies import (
    normalize_topics,
    validate_new_assembly,
    validate_status_transition,
    validate_patch,
    transition_timestamps
)
from domain.errors import ValidationException, NotFoundException, StateConflictException
from models.entities import Assembly, UserContext
from models.enums import AssemblyStatus

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class AssemblyRegistry:
    """Creates, edits, transitions and deletes assemblies."""

    def __init__(self, mongo_service: MongoDBService, user_context: UserContext):
        self.mongo_service = mongo_service
        self.user_context = user_context
        self.collection_name = ASSEMBLIES
        self.agenda = AgendaManager(mongo_service, user_context)
        self.attendance = AttendanceLedger(mongo_service, user_context)

    @property
    def condominium_id(self) -> str:
        return self.user_context.condominium_id

    def create(
        self,
        title: Optional[str],
        scheduled_at: Optional[datetime],
        agenda_doc_topics: Optional[List[str]] = None,
        agenda_doc_ref: Optional[str] = None
    ) -> Assembly:
        """
        Create an assembly in ``scheduled`` status.

        Raises:
            ValidationException: Blank title, missing date or malformed document URL
        """
        with tracer.start_as_current_span(
            "assemblies.create",
            attributes={"condominium.id": self.condominium_id}
        ) as span:
            validation = validate_new_assembly(title, scheduled_at)
            if not validation.is_valid:
                raise ValidationException(
                    "; ".join(validation.errors),
                    [{"field": "assembly", "message": error} for error in validation.errors]
                )

            try:
                assembly = Assembly(
                    condominium_id=self.condominium_id,
                    title=title,
                    scheduled_at=scheduled_at,
                    agenda_doc_topics=normalize_topics(agenda_doc_topics),
                    agenda_doc_ref=agenda_doc_ref,
                    created_by=self.user_context.user_id,
                    updated_by=self.user_context.user_id
                )
            except ValidationError as e:
                raise ValidationException.from_pydantic("Invalid assembly", e) from e

            self.mongo_service.create(self.collection_name, assembly.to_document(), self.user_context.user_id)

            span.set_attribute("assembly.id", assembly.id)
            span.set_status(Status(StatusCode.OK))
            logger.info(
                "Assembly created",
                extra={"assembly_id": assembly.id, "condominium_id": self.condominium_id}
            )
            return assembly

    def get(self, assembly_id: str) -> Assembly:
        """Get an assembly or raise NotFoundException."""
        document = self.mongo_service.find_one(self.collection_name, self.condominium_id, assembly_id)
        if document is None:
            raise NotFoundException(f"Assembly {assembly_id} not found")
        return Assembly.from_document(document)

    def list(self) -> List[Assembly]:
        """Assemblies of the condominium, most recently scheduled first."""
        documents = self.mongo_service.find(
            self.collection_name,
            self.condominium_id,
            sort=[("scheduledAt", DESCENDING), ("_id", DESCENDING)]
        )
        return [Assembly.from_document(document) for document in documents]

    def update(self, assembly_id: str, patch: Dict[str, Any]) -> Assembly:
        """
        Apply a partial update.

        Agenda fields (title, date, call notice) are editable until the
        assembly ends. Minutes fields are editable unless it was cancelled.

        Args:
            assembly_id: Assembly ID
            patch: Snake-case field names to new values, only the fields being changed

        Raises:
            ValidationException: Empty patch, unknown field or invalid value
            StateConflictException: Fields not editable in the current status
        """
        with tracer.start_as_current_span(
            "assemblies.update",
            attributes={"assembly.id": assembly_id, "patch.fields": ",".join(sorted(patch or {}))}
        ) as span:
            current = self.get(assembly_id)

            validation = validate_patch(current.status, patch or {})
            if validation.errors:
                raise ValidationException(
                    "; ".join(validation.errors),
                    [{"field": "patch", "message": error} for error in validation.errors]
                )
            if validation.conflicts:
                raise StateConflictException(validation.conflicts[0], current_status=current.status)

            changes = dict(patch)
            for topics_field in ("agenda_doc_topics", "minutes_topics"):
                if topics_field in changes:
                    changes[topics_field] = normalize_topics(changes[topics_field])

            try:
                updated = Assembly.model_validate({**current.model_dump(), **changes})
            except ValidationError as e:
                raise ValidationException.from_pydantic("Invalid assembly update", e) from e

            document = updated.to_document()
            fields = {to_camel(name): document[to_camel(name)] for name in changes}

            applied = self.mongo_service.update(
                self.collection_name,
                self.condominium_id,
                assembly_id,
                fields,
                self.user_context.user_id,
                expected={"status": current.status}
            )
            if not applied:
                raise StateConflictException(
                    "Assembly status changed concurrently",
                    current_status=current.status
                )

            span.set_status(Status(StatusCode.OK))
            logger.info(
                "Assembly updated",
                extra={"assembly_id": assembly_id, "fields": sorted(changes)}
            )
            return self.get(assembly_id)

    def set_status(self, assembly_id: str, target: AssemblyStatus) -> Assembly:
        """
        Transition an assembly, stamping started_at or ended_at.

        Raises:
            ValidationException: Unknown target status
            NotFoundException: Assembly does not exist
            StateConflictException: Transition not allowed, or lost to a
                concurrent writer
        """
        try:
            target = AssemblyStatus(target)
        except ValueError as e:
            allowed = ", ".join(status.value for status in AssemblyStatus)
            raise ValidationException(
                f"Unknown assembly status: {target}",
                [{"field": "status", "message": f"Must be one of: {allowed}"}]
            ) from e

        with tracer.start_as_current_span(
            "assemblies.set_status",
            attributes={"assembly.id": assembly_id, "assembly.target_status": target.value}
        ) as span:
            current = self.get(assembly_id)

            validation = validate_status_transition(current.status, target)
            if not validation.is_valid:
                raise StateConflictException(
                    validation.errors[0],
                    current_status=current.status,
                    target_status=target.value
                )

            fields = {"status": target.value}
            for name, value in transition_timestamps(target, datetime.utcnow()).items():
                fields[to_camel(name)] = value

            applied = self.mongo_service.update(
                self.collection_name,
                self.condominium_id,
                assembly_id,
                fields,
                self.user_context.user_id,
                expected={"status": current.status}
            )
            if not applied:
                raise StateConflictException(
                    "Assembly status changed concurrently",
                    current_status=current.status,
                    target_status=target.value
                )

            span.set_status(Status(StatusCode.OK))
            logger.info(
                "Assembly status changed",
                extra={"assembly_id": assembly_id, "from_status": current.status, "to_status": target.value}
            )
            return self.get(assembly_id)

    def delete(self, assembly_id: str, force: bool = False) -> None:
        """
        Delete an assembly with its agenda items, ballots and attendance.

        Raises:
            NotFoundException: Assembly does not exist
            StateConflictException: Ballots exist and ``force`` is not set
        """
        with tracer.start_as_current_span(
            "assemblies.delete",
            attributes={"assembly.id": assembly_id, "force": force}
        ):
            self.get(assembly_id)

            if self.agenda.has_ballots(assembly_id) and not force:
                raise StateConflictException(
                    "Assembly has recorded ballots; delete with force to discard them"
                )

            # Parent first, then agenda items before their ballots
            self.mongo_service.delete_one(self.collection_name, self.condominium_id, assembly_id)
            items = self.agenda.delete_for_assembly(assembly_id)
            attendance = self.attendance.delete_for_assembly(assembly_id)

            logger.warning(
                "Assembly deleted",
                extra={"assembly_id": assembly_id, "agenda_items_removed": items, "attendance_removed": attendance}
            )
