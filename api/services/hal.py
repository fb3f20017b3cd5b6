# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
HAL (Hypertext Application Language) response formatting utilities.
Implements HATEOAS Level-3 API responses with conditional affordance links:
a link is only offered when the caller may follow it in the resource's
current status.
"""

from typing import Dict, List, Any, Optional
from urllib.parse import urljoin

from models.enums import AssemblyStatus, AgendaItemStatus
from models.responses import HalLink, ErrorResponse


class HalLinkBuilder:
    """Builder for HAL links with proper URL construction."""

    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip('/') + '/'

    def build_link(
        self,
        path: str,
        method: str = "GET",
        content_type: Optional[str] = None,
        title: Optional[str] = None,
        templated: bool = False
    ) -> HalLink:
        """Build a HAL link with proper URL construction."""
        href = urljoin(self.base_url, path.lstrip('/'))

        return HalLink(
            href=href,
            method=method,
            type=content_type,
            title=title,
            templated=templated or None
        )

    def build_self_link(self, resource_path: str) -> HalLink:
        """Build self link for a resource."""
        return self.build_link(resource_path, title="Self")

    def build_collection_link(self, collection_path: str) -> HalLink:
        """Build link to parent collection."""
        return self.build_link(collection_path, title="Collection")

    def build_action_link(
        self,
        resource_path: str,
        action: str,
        method: str = "POST",
        title: Optional[str] = None
    ) -> HalLink:
        """Build action link for a resource."""
        action_path = f"{resource_path}/{action}"
        return self.build_link(
            action_path,
            method=method,
            content_type="application/json",
            title=title or action.title()
        )


class AffordanceLinkBuilder:
    """Builder for conditional affordance links based on permissions and state."""

    def __init__(self, base_url: str):
        self.link_builder = HalLinkBuilder(base_url)

    def build_assembly_affordances(
        self,
        assembly_id: str,
        status: str,
        can_manage: bool
    ) -> Dict[str, HalLink]:
        """Build conditional affordance links for assemblies."""
        links = {}
        base_path = f"/api/assemblies/{assembly_id}"
        status = AssemblyStatus(status)

        links['self'] = self.link_builder.build_self_link(base_path)
        links['collection'] = self.link_builder.build_collection_link("/api/assemblies")
        links['agenda-items'] = self.link_builder.build_link(f"{base_path}/agenda-items", title="Agenda items")
        links['attendance'] = self.link_builder.build_link(f"{base_path}/attendance", title="Attendance")

        if status not in (AssemblyStatus.CLOSED, AssemblyStatus.CANCELLED):
            links['check-in'] = self.link_builder.build_action_link(
                base_path, "attendance", title="Register attendance"
            )

        if not can_manage:
            return links

        status_path = f"{base_path}/status"
        if status == AssemblyStatus.SCHEDULED:
            links['start'] = self.link_builder.build_link(
                status_path, method="POST", content_type="application/json", title="Start assembly"
            )
        if status == AssemblyStatus.IN_PROGRESS:
            links['end'] = self.link_builder.build_link(
                status_path, method="POST", content_type="application/json", title="End assembly"
            )
        if status in (AssemblyStatus.SCHEDULED, AssemblyStatus.IN_PROGRESS):
            links['cancel'] = self.link_builder.build_link(
                status_path, method="POST", content_type="application/json", title="Cancel assembly"
            )
            links['edit'] = self.link_builder.build_link(
                base_path, method="PATCH", content_type="application/json", title="Edit assembly"
            )
            links['add-agenda-item'] = self.link_builder.build_action_link(
                base_path, "agenda-items", title="Add agenda item"
            )
        if status == AssemblyStatus.CLOSED:
            links['record-minutes'] = self.link_builder.build_link(
                base_path, method="PATCH", content_type="application/json", title="Record minutes"
            )

        links['delete'] = self.link_builder.build_link(base_path, method="DELETE", title="Delete assembly")
        return links

    def build_agenda_item_affordances(
        self,
        pauta_id: str,
        assembly_id: str,
        status: str,
        can_manage: bool
    ) -> Dict[str, HalLink]:
        """Build conditional affordance links for agenda items."""
        links = {}
        base_path = f"/api/agenda-items/{pauta_id}"
        status = AgendaItemStatus(status)

        links['self'] = self.link_builder.build_self_link(base_path)
        links['assembly'] = self.link_builder.build_link(f"/api/assemblies/{assembly_id}", title="Assembly")
        links['results'] = self.link_builder.build_link(f"{base_path}/results", title="Results")

        if status == AgendaItemStatus.VOTING:
            links['vote'] = self.link_builder.build_action_link(base_path, "votes", title="Cast vote")

        if can_manage:
            if status == AgendaItemStatus.PENDING:
                links['open'] = self.link_builder.build_action_link(base_path, "open", title="Open voting")
            if status == AgendaItemStatus.VOTING:
                links['close'] = self.link_builder.build_action_link(base_path, "close", title="Close voting")
            links['delete'] = self.link_builder.build_link(base_path, method="DELETE", title="Delete agenda item")

        return links


class HalResponseBuilder:
    """Main HAL response builder."""

    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip('/')
        self.link_builder = HalLinkBuilder(base_url)
        self.affordance_builder = AffordanceLinkBuilder(base_url)

    @staticmethod
    def _dump_links(links: Dict[str, HalLink]) -> Dict[str, Dict[str, Any]]:
        return {rel: link.model_dump(exclude_none=True) for rel, link in links.items()}

    def build_resource_response(self, data: Dict[str, Any], links: Dict[str, HalLink]) -> Dict[str, Any]:
        """Attach ``_links`` to a resource representation."""
        response = dict(data)
        response['_links'] = self._dump_links(links)
        return response

    def build_collection_response(
        self,
        items: List[Dict[str, Any]],
        collection_path: str,
        embedded_name: str = "items",
        extra_links: Optional[Dict[str, HalLink]] = None
    ) -> Dict[str, Any]:
        """Build a HAL collection response."""
        links = {'self': self.link_builder.build_self_link(collection_path)}
        links.update(extra_links or {})

        return {
            'total': len(items),
            '_links': self._dump_links(links),
            '_embedded': {
                embedded_name: items
            }
        }

    def build_error_response(
        self,
        error_type: str,
        title: str,
        status: int,
        detail: str,
        instance: str,
        validation_errors: Optional[List[Dict[str, Any]]] = None
    ) -> Dict[str, Any]:
        """Build RFC 7807 compliant error response with HAL links."""
        error_response = ErrorResponse(
            type=f"https://api.assembleias.app/problems/{error_type}",
            title=title,
            status=status,
            detail=detail,
            instance=instance,
            errors=validation_errors or None
        ).model_dump(exclude_none=True)

        links = {
            'help': self.link_builder.build_link(
                f"/docs/errors#{error_type}",
                title="Error documentation"
            )
        }
        if error_type == "authentication-required":
            links['login'] = self.link_builder.build_link("/auth/login", title="Identity provider login")

        error_response['_links'] = self._dump_links(links)
        return error_response


class HalFormatter:
    """High-level HAL formatter with convenience methods."""

    ERROR_TITLES = {
        "validation-error": "Validation Error",
        "authentication-required": "Authentication Required",
        "insufficient-permissions": "Insufficient Permissions",
        "resource-not-found": "Resource Not Found",
        "state-conflict": "State Conflict",
        "persistence-error": "Persistence Error",
        "internal-server-error": "Internal Server Error",
    }

    def __init__(self, base_url: str):
        self.builder = HalResponseBuilder(base_url)

    def format_assembly(self, assembly: Dict[str, Any], can_manage: bool) -> Dict[str, Any]:
        """Format an assembly with HAL links."""
        links = self.builder.affordance_builder.build_assembly_affordances(
            assembly['id'], assembly['status'], can_manage
        )
        return self.builder.build_resource_response(assembly, links)

    def format_assembly_collection(self, assemblies: List[Dict[str, Any]], can_manage: bool) -> Dict[str, Any]:
        """Format a collection of assemblies with HAL links."""
        items = [self.format_assembly(assembly, can_manage) for assembly in assemblies]
        extra = {}
        if can_manage:
            extra['create'] = self.builder.link_builder.build_link(
                "/api/assemblies", method="POST", content_type="application/json", title="Create assembly"
            )
        return self.builder.build_collection_response(items, "/api/assemblies", "assemblies", extra)

    def format_agenda_item(self, item: Dict[str, Any], can_manage: bool) -> Dict[str, Any]:
        """Format an agenda item with HAL links."""
        links = self.builder.affordance_builder.build_agenda_item_affordances(
            item['id'], item['assemblyId'], item['status'], can_manage
        )
        return self.builder.build_resource_response(item, links)

    def format_agenda_item_collection(
        self,
        items: List[Dict[str, Any]],
        assembly_id: str,
        can_manage: bool
    ) -> Dict[str, Any]:
        """Format the agenda of an assembly."""
        formatted = [self.format_agenda_item(item, can_manage) for item in items]
        extra = {'assembly': self.builder.link_builder.build_link(f"/api/assemblies/{assembly_id}", title="Assembly")}
        return self.builder.build_collection_response(
            formatted, f"/api/assemblies/{assembly_id}/agenda-items", "agendaItems", extra
        )

    def format_attendance_collection(self, entries: List[Dict[str, Any]], assembly_id: str) -> Dict[str, Any]:
        """Format the attendance list of an assembly."""
        extra = {'assembly': self.builder.link_builder.build_link(f"/api/assemblies/{assembly_id}", title="Assembly")}
        return self.builder.build_collection_response(
            entries, f"/api/assemblies/{assembly_id}/attendance", "attendance", extra
        )

    def format_results(self, results: Dict[str, Any]) -> Dict[str, Any]:
        """Format voting results with links back to the agenda item."""
        pauta_path = f"/api/agenda-items/{results['pautaId']}"
        links = {
            'self': self.builder.link_builder.build_self_link(f"{pauta_path}/results"),
            'agenda-item': self.builder.link_builder.build_link(pauta_path, title="Agenda item")
        }
        return self.builder.build_resource_response(results, links)

    def format_error(
        self,
        error_type: str,
        status: int,
        detail: str,
        instance: str,
        validation_errors: Optional[List[Dict[str, Any]]] = None
    ) -> Dict[str, Any]:
        """Format an error response."""
        return self.builder.build_error_response(
            error_type,
            self.ERROR_TITLES.get(error_type, error_type.replace('-', ' ').title()),
            status,
            detail,
            instance,
            validation_errors
        )


# Convenience function for creating HAL formatter
def create_hal_formatter(base_url: str) -> HalFormatter:
    """Create a HAL formatter instance."""
    return HalFormatter(base_url)
