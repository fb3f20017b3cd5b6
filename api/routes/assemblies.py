# SPDX-License-Identifier: Apache-2.0

"""
Assembly endpoints.

Lifecycle management of assemblies plus the agenda and attendance
sub-resources. Routes only dispatch to the service layer and format HAL
responses; every rule lives in ``services`` and ``domain``. Path, query and
body models are parsed by flask-openapi3 from the view annotations.
"""

from flask import jsonify, current_app, g
from flask_openapi3 import APIBlueprint, Tag
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode
import logging

from domain.authorization import MANAGE_PERMISSION, can_manage_assemblies
from middleware.auth import require_auth, require_permission
from models.requests import (
    AssemblyPath,
    CreateAssemblyRequest,
    UpdateAssemblyRequest,
    SetAssemblyStatusRequest,
    CreateAgendaItemRequest,
    DeleteQuery
)
from models.responses import OutcomeResponse
from services.assemblies import AssemblyRegistry

# Set up logging and tracing
logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

# Create API blueprint
assemblies_tag = Tag(name="Assemblies", description="Assembly lifecycle, agenda and attendance")
assemblies_bp = APIBlueprint(
    'assemblies',
    __name__,
    url_prefix='/api/assemblies',
    abp_tags=[assemblies_tag]
)


def _registry() -> AssemblyRegistry:
    return AssemblyRegistry(current_app.mongodb_service, g.user_context)


def _assembly_json(assembly):
    return current_app.hal_formatter.format_assembly(
        assembly.model_dump(mode="json", by_alias=True),
        can_manage_assemblies(g.user_context)
    )


def _agenda_item_json(item):
    return current_app.hal_formatter.format_agenda_item(
        item.model_dump(mode="json", by_alias=True),
        can_manage_assemblies(g.user_context)
    )


@assemblies_bp.get('', summary="List assemblies")
@require_auth
def list_assemblies():
    """List the condominium's assemblies, most recently scheduled first."""
    user_context = g.user_context
    with tracer.start_as_current_span(
        "assembly.list",
        attributes={"user.id": user_context.user_id, "condominium.id": user_context.condominium_id}
    ) as span:
        assemblies = _registry().list()
        span.set_attribute("assembly.count", len(assemblies))

        response = current_app.hal_formatter.format_assembly_collection(
            [assembly.model_dump(mode="json", by_alias=True) for assembly in assemblies],
            can_manage_assemblies(user_context)
        )
        return jsonify(response), 200


@assemblies_bp.post('', summary="Create an assembly")
@require_permission(MANAGE_PERMISSION)
def create_assembly(body: CreateAssemblyRequest):
    """Create an assembly in scheduled status."""
    with tracer.start_as_current_span("assembly.create") as span:
        assembly = _registry().create(
            title=body.title,
            scheduled_at=body.scheduled_at,
            agenda_doc_topics=body.agenda_doc_topics,
            agenda_doc_ref=body.agenda_doc_ref
        )
        span.set_status(Status(StatusCode.OK))

        response = jsonify(_assembly_json(assembly))
        response.headers['Location'] = f"/api/assemblies/{assembly.id}"
        return response, 201


@assemblies_bp.get('/<assembly_id>', summary="Get an assembly")
@require_auth
def get_assembly(path: AssemblyPath):
    """Get assembly detail with status-dependent action links."""
    with tracer.start_as_current_span("assembly.get", attributes={"assembly.id": path.assembly_id}):
        return jsonify(_assembly_json(_registry().get(path.assembly_id))), 200


@assemblies_bp.patch('/<assembly_id>', summary="Edit an assembly or record its minutes")
@require_permission(MANAGE_PERMISSION)
def update_assembly(path: AssemblyPath, body: UpdateAssemblyRequest):
    """Edit the agenda fields or minutes of an assembly that is not cancelled."""
    with tracer.start_as_current_span("assembly.update", attributes={"assembly.id": path.assembly_id}):
        assembly = _registry().update(path.assembly_id, body.model_dump(exclude_unset=True))
        return jsonify(_assembly_json(assembly)), 200


@assemblies_bp.delete('/<assembly_id>', summary="Delete an assembly")
@require_permission(MANAGE_PERMISSION)
def delete_assembly(path: AssemblyPath, query: DeleteQuery):
    """Delete an assembly; ``force=true`` is required once ballots exist."""
    with tracer.start_as_current_span(
        "assembly.delete",
        attributes={"assembly.id": path.assembly_id, "force": query.force}
    ):
        _registry().delete(path.assembly_id, force=query.force)
        logger.info(
            "Assembly deleted via API",
            extra={"assembly_id": path.assembly_id, "user_id": g.user_context.user_id}
        )
        return '', 204


@assemblies_bp.post('/<assembly_id>/status', summary="Start, end or cancel an assembly")
@require_permission(MANAGE_PERMISSION)
def set_assembly_status(path: AssemblyPath, body: SetAssemblyStatusRequest):
    """Start, end or cancel an assembly."""
    with tracer.start_as_current_span(
        "assembly.set_status",
        attributes={"assembly.id": path.assembly_id, "assembly.target_status": body.status.value}
    ):
        assembly = _registry().set_status(path.assembly_id, body.status)
        return jsonify(_assembly_json(assembly)), 200


@assemblies_bp.get('/<assembly_id>/agenda-items', summary="List the agenda")
@require_auth
def list_agenda_items(path: AssemblyPath):
    """List the agenda of an assembly in display order."""
    with tracer.start_as_current_span("agenda.list", attributes={"assembly.id": path.assembly_id}):
        registry = _registry()
        registry.get(path.assembly_id)
        items = registry.agenda.list(path.assembly_id)

        response = current_app.hal_formatter.format_agenda_item_collection(
            [item.model_dump(mode="json", by_alias=True) for item in items],
            path.assembly_id,
            can_manage_assemblies(g.user_context)
        )
        return jsonify(response), 200


@assemblies_bp.post('/<assembly_id>/agenda-items', summary="Add an agenda item")
@require_permission(MANAGE_PERMISSION)
def add_agenda_item(path: AssemblyPath, body: CreateAgendaItemRequest):
    """Add an agenda item (pauta) to an assembly."""
    with tracer.start_as_current_span("agenda.add_item", attributes={"assembly.id": path.assembly_id}):
        item = _registry().agenda.add_agenda_item(
            path.assembly_id,
            title=body.title,
            options=body.options,
            description=body.description,
            display_order=body.display_order,
            voting_mode=body.voting_mode
        )

        response = jsonify(_agenda_item_json(item))
        response.headers['Location'] = f"/api/agenda-items/{item.id}"
        return response, 201


@assemblies_bp.get('/<assembly_id>/attendance', summary="List attendance")
@require_auth
def list_attendance(path: AssemblyPath):
    """List who checked in, with names and unit numbers."""
    with tracer.start_as_current_span("attendance.list", attributes={"assembly.id": path.assembly_id}):
        registry = _registry()
        registry.get(path.assembly_id)
        entries = registry.attendance.list(path.assembly_id)

        response = current_app.hal_formatter.format_attendance_collection(
            [entry.model_dump(mode="json", by_alias=True) for entry in entries],
            path.assembly_id
        )
        return jsonify(response), 200


@assemblies_bp.post('/<assembly_id>/attendance', summary="Check in to an assembly")
@require_auth
def register_attendance(path: AssemblyPath):
    """
    Check the caller in to an assembly.

    This is the target of the assembly's QR code. Scanning twice is
    harmless: the second call answers 200 with ``already_registered``.
    """
    user_context = g.user_context
    with tracer.start_as_current_span(
        "attendance.register",
        attributes={"assembly.id": path.assembly_id, "user.id": user_context.user_id}
    ) as span:
        result = _registry().attendance.register_attendance(path.assembly_id, user_context.user_id)
        span.set_attribute("attendance.outcome", result.outcome)

        if result.already_registered:
            body = OutcomeResponse(outcome=result.outcome, message="Attendance already registered")
            return jsonify(body.model_dump(by_alias=True, exclude_none=True)), 200

        body = OutcomeResponse(
            outcome=result.outcome,
            message="Attendance registered",
            resource_id=result.record_id
        )
        return jsonify(body.model_dump(by_alias=True, exclude_none=True)), 201
