# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Ballot box: records one ballot per user per agenda item.

The single-ballot rule is enforced by the unique ``(pautaId, userId)`` index;
a rejected insert is reported as the ``duplicate`` outcome rather than an
error. Existence is never checked before inserting.
"""

import logging
from typing import List, Optional
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from .mongodb import MongoDBService, DuplicateRecordError, AGENDA_ITEMS, BALLOTS
from domain.agenda import validate_choice
from domain.errors import ValidationException, NotFoundException, StateConflictException
from models.entities import AgendaItem, Ballot, VoteResult, UserContext
from models.enums import Outcome

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

BALLOT_KEY = ("pautaId", "userId")


class BallotBox:
    """Writes and reads ballots within the caller's condominium."""

    def __init__(self, mongo_service: MongoDBService, user_context: UserContext):
        self.mongo_service = mongo_service
        self.user_context = user_context
        self.collection_name = BALLOTS

    @property
    def condominium_id(self) -> str:
        return self.user_context.condominium_id

    def cast_vote(self, pauta_id: str, user_id: Optional[str], choice: Optional[str]) -> VoteResult:
        """
        Record a ballot for an agenda item.

        Args:
            pauta_id: Agenda item ID
            user_id: Voting user ID (from the authenticated token)
            choice: One of the agenda item's options

        Returns:
            VoteResult with outcome ``recorded`` or ``duplicate``

        Raises:
            ValidationException: Missing user or choice outside the options
            NotFoundException: Agenda item does not exist
            StateConflictException: Voting is not open for the agenda item
        """
        with tracer.start_as_current_span(
            "ballots.cast_vote",
            attributes={"pauta.id": pauta_id, "condominium.id": self.condominium_id}
        ) as span:
            if not user_id:
                raise ValidationException("User not authenticated")

            document = self.mongo_service.find_one(AGENDA_ITEMS, self.condominium_id, pauta_id)
            if document is None:
                raise NotFoundException(f"Agenda item {pauta_id} not found")
            item = AgendaItem.from_document(document)

            result = validate_choice(item.status, item.options, choice)
            if result.conflicts:
                raise StateConflictException(
                    "Voting not open for this agenda item",
                    current_status=item.status
                )
            if not result.is_valid:
                raise ValidationException(
                    result.errors[0],
                    [{"field": "choice", "message": error} for error in result.errors]
                )

            ballot = Ballot(
                condominium_id=self.condominium_id,
                pauta_id=item.id,
                assembly_id=item.assembly_id,
                user_id=user_id,
                choice=choice,
                created_by=user_id,
                updated_by=user_id
            )

            try:
                ballot_id = self.mongo_service.create(self.collection_name, ballot.to_document(), user_id)
            except DuplicateRecordError as e:
                if not e.violates(BALLOT_KEY):
                    raise
                span.set_attribute("vote.outcome", Outcome.DUPLICATE.value)
                logger.info(
                    "Duplicate ballot rejected",
                    extra={"pauta_id": pauta_id, "user_id": user_id}
                )
                return VoteResult(outcome=Outcome.DUPLICATE, pauta_id=pauta_id, user_id=user_id)

            span.set_attribute("vote.outcome", Outcome.RECORDED.value)
            span.set_status(Status(StatusCode.OK))
            logger.info(
                "Ballot recorded",
                extra={"pauta_id": pauta_id, "user_id": user_id, "ballot_id": ballot_id}
            )
            return VoteResult(
                outcome=Outcome.RECORDED,
                pauta_id=pauta_id,
                user_id=user_id,
                ballot_id=ballot_id
            )

    def list(self, pauta_id: str) -> List[str]:
        """Return the raw choices recorded for an agenda item."""
        documents = self.mongo_service.find(
            self.collection_name, self.condominium_id, {"pautaId": pauta_id}
        )
        return [document["choice"] for document in documents]

    def has_voted(self, pauta_id: str, user_id: str) -> bool:
        """Whether ``user_id`` already has a ballot on the agenda item."""
        return self.mongo_service.exists(
            self.collection_name, self.condominium_id, {"pautaId": pauta_id, "userId": user_id}
        )

    def count_for_pauta(self, pauta_id: str) -> int:
        return self.mongo_service.count(self.collection_name, self.condominium_id, {"pautaId": pauta_id})

    def count_for_assembly(self, assembly_id: str) -> int:
        return self.mongo_service.count(self.collection_name, self.condominium_id, {"assemblyId": assembly_id})

    def delete_for_pauta(self, pauta_id: str) -> int:
        return self.mongo_service.delete_many(self.collection_name, self.condominium_id, {"pautaId": pauta_id})

    def delete_for_assembly(self, assembly_id: str) -> int:
        return self.mongo_service.delete_many(
            self.collection_name, self.condominium_id, {"assemblyId": assembly_id}
        )
