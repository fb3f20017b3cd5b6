# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Results calculator: reads an agenda item and its ballots, tallies them.
"""

import logging
from opentelemetry import trace

from .mongodb import MongoDBService, AGENDA_ITEMS
from .ballots import BallotBox
from domain.errors import NotFoundException
from domain.results import tally_votes
from models.entities import AgendaItem, VotingResults, UserContext

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class ResultsCalculator:
    """Computes voting results for agenda items."""

    def __init__(self, mongo_service: MongoDBService, user_context: UserContext, ballot_box: BallotBox):
        self.mongo_service = mongo_service
        self.user_context = user_context
        self.ballot_box = ballot_box

    def compute_results(self, pauta_id: str) -> VotingResults:
        """
        Tally the ballots of an agenda item.

        Results may be computed in any status; while voting is open they
        reflect the ballots recorded so far.
        """
        with tracer.start_as_current_span(
            "results.compute",
            attributes={"pauta.id": pauta_id, "condominium.id": self.user_context.condominium_id}
        ) as span:
            document = self.mongo_service.find_one(AGENDA_ITEMS, self.user_context.condominium_id, pauta_id)
            if document is None:
                raise NotFoundException(f"Agenda item {pauta_id} not found")
            item = AgendaItem.from_document(document)

            total_votes, per_option, winner = tally_votes(item.options, self.ballot_box.list(item.id))
            span.set_attribute("results.total_votes", total_votes)

            logger.debug(
                "Computed voting results",
                extra={"pauta_id": pauta_id, "total_votes": total_votes, "winner": winner}
            )

            return VotingResults(
                pauta_id=item.id,
                title=item.title,
                status=item.status,
                voting_mode=item.voting_mode,
                total_votes=total_votes,
                per_option=per_option,
                winner=winner
            )
