# SPDX-License-Identifier: Apache-2.0

"""
Agenda item (pauta) endpoints: voting state, ballots and results.
"""

from flask import jsonify, current_app, g
from flask_openapi3 import APIBlueprint, Tag
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode
import logging

from domain.authorization import MANAGE_PERMISSION, can_manage_assemblies
from middleware.auth import require_auth, require_permission
from models.requests import AgendaItemPath, CastVoteRequest, DeleteQuery
from models.responses import OutcomeResponse
from services.agenda import AgendaManager

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

agenda_items_tag = Tag(name="Agenda Items", description="Voting, ballots and results of agenda items")
agenda_items_bp = APIBlueprint(
    'agenda_items',
    __name__,
    url_prefix='/api/agenda-items',
    abp_tags=[agenda_items_tag]
)


def _agenda() -> AgendaManager:
    return AgendaManager(current_app.mongodb_service, g.user_context)


def _agenda_item_json(item, has_voted=None):
    data = item.model_dump(mode="json", by_alias=True)
    if has_voted is not None:
        data['hasVoted'] = has_voted
    return current_app.hal_formatter.format_agenda_item(data, can_manage_assemblies(g.user_context))


@agenda_items_bp.get('/<pauta_id>', summary="Get an agenda item")
@require_auth
def get_agenda_item(path: AgendaItemPath):
    """Get an agenda item, including whether the caller already voted."""
    with tracer.start_as_current_span("agenda.get", attributes={"pauta.id": path.pauta_id}):
        agenda = _agenda()
        item = agenda.get(path.pauta_id)
        has_voted = agenda.ballots.has_voted(path.pauta_id, g.user_context.user_id)
        return jsonify(_agenda_item_json(item, has_voted)), 200


@agenda_items_bp.delete('/<pauta_id>', summary="Delete an agenda item")
@require_permission(MANAGE_PERMISSION)
def delete_agenda_item(path: AgendaItemPath, query: DeleteQuery):
    """Delete an agenda item; ``force=true`` is required once ballots exist."""
    with tracer.start_as_current_span(
        "agenda.delete",
        attributes={"pauta.id": path.pauta_id, "force": query.force}
    ):
        _agenda().delete(path.pauta_id, force=query.force)
        return '', 204


@agenda_items_bp.post('/<pauta_id>/open', summary="Open voting")
@require_permission(MANAGE_PERMISSION)
def open_voting(path: AgendaItemPath):
    """Open voting on a pending agenda item."""
    with tracer.start_as_current_span("agenda.open_voting", attributes={"pauta.id": path.pauta_id}) as span:
        item = _agenda().open_voting(path.pauta_id)
        span.set_status(Status(StatusCode.OK))
        return jsonify(_agenda_item_json(item)), 200


@agenda_items_bp.post('/<pauta_id>/close', summary="Close voting")
@require_permission(MANAGE_PERMISSION)
def close_voting(path: AgendaItemPath):
    """Close voting on an agenda item."""
    with tracer.start_as_current_span("agenda.close_voting", attributes={"pauta.id": path.pauta_id}) as span:
        item = _agenda().close_voting(path.pauta_id)
        span.set_status(Status(StatusCode.OK))
        return jsonify(_agenda_item_json(item)), 200


@agenda_items_bp.post('/<pauta_id>/votes', summary="Cast a ballot")
@require_auth
def cast_vote(path: AgendaItemPath, body: CastVoteRequest):
    """
    Cast the caller's ballot.

    A second ballot from the same user is not an error: it answers 200 with
    the ``duplicate`` outcome and the first ballot stands.
    """
    user_context = g.user_context
    with tracer.start_as_current_span(
        "vote.cast",
        attributes={"pauta.id": path.pauta_id, "user.id": user_context.user_id}
    ) as span:
        result = _agenda().ballots.cast_vote(path.pauta_id, user_context.user_id, body.choice)
        span.set_attribute("vote.outcome", result.outcome)

        if result.duplicate:
            response = OutcomeResponse(outcome=result.outcome, message="User already voted on this agenda item")
            return jsonify(response.model_dump(by_alias=True, exclude_none=True)), 200

        response = OutcomeResponse(outcome=result.outcome, message="Vote recorded", resource_id=result.ballot_id)
        return jsonify(response.model_dump(by_alias=True, exclude_none=True)), 201


@agenda_items_bp.get('/<pauta_id>/results', summary="Voting results")
@require_auth
def get_results(path: AgendaItemPath):
    """Tally of an agenda item; live while voting is open."""
    with tracer.start_as_current_span("results.get", attributes={"pauta.id": path.pauta_id}):
        results = _agenda().results.compute_results(path.pauta_id)
        response = current_app.hal_formatter.format_results(results.model_dump(mode="json", by_alias=True))
        return jsonify(response), 200
