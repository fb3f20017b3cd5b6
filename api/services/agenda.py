# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Agenda manager: creates agenda items (pautas) and drives their voting state.
"""

import logging
from datetime import datetime
from typing import List, Optional
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode
from pydantic import ValidationError
from pymongo import ASCENDING

from .mongodb import MongoDBService, ASSEMBLIES, AGENDA_ITEMS
from .ballots import BallotBox
from .results import ResultsCalculator
from domain.agenda import normalize_options, validate_agenda_item, validate_voting_transition
from domain.errors import ValidationException, NotFoundException, StateConflictException
from models.entities import AgendaItem, UserContext
from models.enums import AgendaItemStatus, VotingMode

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class AgendaManager:
    """Owns agenda items and, through the ballot box, their ballots."""

    def __init__(self, mongo_service: MongoDBService, user_context: UserContext):
        self.mongo_service = mongo_service
        self.user_context = user_context
        self.collection_name = AGENDA_ITEMS
        self.ballots = BallotBox(mongo_service, user_context)
        self.results = ResultsCalculator(mongo_service, user_context, self.ballots)

    @property
    def condominium_id(self) -> str:
        return self.user_context.condominium_id

    def add_agenda_item(
        self,
        assembly_id: str,
        title: str,
        options: List[str],
        description: str = "",
        display_order: int = 1,
        voting_mode: VotingMode = VotingMode.OPEN
    ) -> AgendaItem:
        """
        Add an agenda item to an assembly, created in ``pending``.

        Args:
            assembly_id: Owning assembly ID
            title: Agenda item title
            options: Ballot options in declared order
            description: Free text description
            display_order: Display position, ties allowed
            voting_mode: open or secret

        Returns:
            The created AgendaItem

        Raises:
            NotFoundException: Assembly does not exist
            ValidationException: Empty title, fewer than two options, blank
                or repeated options
        """
        with tracer.start_as_current_span(
            "agenda.add_item",
            attributes={"assembly.id": assembly_id, "condominium.id": self.condominium_id}
        ) as span:
            if self.mongo_service.find_one(ASSEMBLIES, self.condominium_id, assembly_id) is None:
                raise NotFoundException(f"Assembly {assembly_id} not found")

            options = normalize_options(options)
            validation = validate_agenda_item(title, options)
            if not validation.is_valid:
                raise ValidationException(
                    "; ".join(validation.errors),
                    [{"field": "agenda_item", "message": error} for error in validation.errors]
                )

            try:
                item = AgendaItem(
                    condominium_id=self.condominium_id,
                    assembly_id=assembly_id,
                    title=title,
                    description=description or "",
                    display_order=display_order,
                    voting_mode=voting_mode,
                    options=options,
                    created_by=self.user_context.user_id,
                    updated_by=self.user_context.user_id
                )
            except ValidationError as e:
                raise ValidationException.from_pydantic("Invalid agenda item", e) from e

            self.mongo_service.create(self.collection_name, item.to_document(), self.user_context.user_id)

            span.set_attribute("pauta.id", item.id)
            span.set_status(Status(StatusCode.OK))
            logger.info(
                "Agenda item created",
                extra={"assembly_id": assembly_id, "pauta_id": item.id, "options": len(options)}
            )
            return item

    def get(self, pauta_id: str) -> AgendaItem:
        """Get an agenda item or raise NotFoundException."""
        document = self.mongo_service.find_one(self.collection_name, self.condominium_id, pauta_id)
        if document is None:
            raise NotFoundException(f"Agenda item {pauta_id} not found")
        return AgendaItem.from_document(document)

    def list(self, assembly_id: str) -> List[AgendaItem]:
        """Agenda items of an assembly by display order, ties by creation."""
        documents = self.mongo_service.find(
            self.collection_name,
            self.condominium_id,
            {"assemblyId": assembly_id},
            sort=[("displayOrder", ASCENDING), ("createdAt", ASCENDING), ("_id", ASCENDING)]
        )
        return [AgendaItem.from_document(document) for document in documents]

    def open_voting(self, pauta_id: str) -> AgendaItem:
        """Move an agenda item from ``pending`` to ``voting``."""
        return self._transition(pauta_id, AgendaItemStatus.VOTING, "votingOpenedAt")

    def close_voting(self, pauta_id: str) -> AgendaItem:
        """Move an agenda item from ``voting`` to ``closed``."""
        return self._transition(pauta_id, AgendaItemStatus.CLOSED, "votingClosedAt")

    def _transition(self, pauta_id: str, target: AgendaItemStatus, stamp_field: str) -> AgendaItem:
        with tracer.start_as_current_span(
            "agenda.transition",
            attributes={"pauta.id": pauta_id, "pauta.target_status": target.value}
        ) as span:
            item = self.get(pauta_id)

            validation = validate_voting_transition(item.status, target)
            if not validation.is_valid:
                raise StateConflictException(
                    validation.errors[0],
                    current_status=item.status,
                    target_status=target.value
                )

            applied = self.mongo_service.update(
                self.collection_name,
                self.condominium_id,
                pauta_id,
                {"status": target.value, stamp_field: datetime.utcnow()},
                self.user_context.user_id,
                expected={"status": item.status}
            )
            if not applied:
                raise StateConflictException(
                    "Agenda item status changed concurrently",
                    current_status=item.status,
                    target_status=target.value
                )

            span.set_status(Status(StatusCode.OK))
            logger.info(
                "Agenda item status changed",
                extra={"pauta_id": pauta_id, "from_status": item.status, "to_status": target.value}
            )
            return self.get(pauta_id)

    def delete(self, pauta_id: str, force: bool = False) -> None:
        """
        Delete an agenda item and its ballots.

        Raises:
            NotFoundException: Agenda item does not exist
            StateConflictException: Ballots exist and ``force`` is not set
        """
        with tracer.start_as_current_span("agenda.delete", attributes={"pauta.id": pauta_id, "force": force}):
            self.get(pauta_id)

            ballots = self.ballots.count_for_pauta(pauta_id)
            if ballots and not force:
                raise StateConflictException(
                    f"Agenda item has {ballots} recorded ballots; delete with force to discard them"
                )

            # Parent first: once it is gone, new ballots are rejected as not found
            self.mongo_service.delete_one(self.collection_name, self.condominium_id, pauta_id)
            removed = self.ballots.delete_for_pauta(pauta_id)
            logger.warning(
                "Agenda item deleted",
                extra={"pauta_id": pauta_id, "ballots_removed": removed}
            )

    def delete_for_assembly(self, assembly_id: str) -> int:
        """Remove every agenda item of an assembly along with their ballots."""
        removed = self.mongo_service.delete_many(
            self.collection_name, self.condominium_id, {"assemblyId": assembly_id}
        )
        self.ballots.delete_for_assembly(assembly_id)
        return removed

    def has_ballots(self, assembly_id: str) -> bool:
        return self.ballots.count_for_assembly(assembly_id) > 0

    def find_assembly_id(self, pauta_id: str) -> Optional[str]:
        document = self.mongo_service.find_one(self.collection_name, self.condominium_id, pauta_id)
        return document["assemblyId"] if document else None
