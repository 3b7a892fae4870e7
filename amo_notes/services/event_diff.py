# amo_notes/services/event_diff.py
"""
Turns an amoCRM event (audit-log entry) into human-readable change lines.

An event carries value_before / value_after snapshots: a list, or a mapping
keyed by position, of {field_type: field_data}. Field-level differences are
reported first, then a narrative for special event types (creation,
linking and unlinking of related objects).
"""

import json
from types import MappingProxyType
from typing import Any, Dict, List, Optional

from amo_notes.core.logger import logger
from amo_notes.models.events import ChangeKind, FieldChange
from amo_notes.services.amocrm import AmoApiClient
from amo_notes.utils.fallback import best_effort

IGNORED_FIELD_TYPES = frozenset({"note"})

FIELD_LABELS = MappingProxyType({
    "lead_status": "Status",
    "sale_field_value": "Amount",
    "name_field_value": "Name",
    "responsible_user": "Responsible",
    "custom_fields": "Custom field",
    "link": "Link",
})

ENTITY_PLURALS = MappingProxyType({
    "contact": "contacts",
    "contacts": "contacts",
    "lead": "leads",
    "leads": "leads",
    "company": "companies",
    "companies": "companies",
    "customer": "customers",
    "customers": "customers",
    "task": "tasks",
    "tasks": "tasks",
    "catalog": "catalogs",
    "catalogs": "catalogs",
})

ENTITY_TYPE_LABELS = MappingProxyType({
    "contacts": "Contacts",
    "leads": "Leads",
    "companies": "Companies",
    "customers": "Customers",
    "catalogs": "Catalog elements",
    "tasks": "Tasks",
    "contact": "Contact",
    "lead": "Lead",
    "company": "Company",
    "customer": "Customer",
    "catalog": "Catalog element",
    "task": "Task",
})

UNKNOWN = "unknown"
UNNAMED = "unnamed"

DEAL_CREATED = "Deal created"


def field_label(field_type: str) -> str:
    return FIELD_LABELS.get(field_type, field_type)


def pluralize_entity_type(entity_type: str) -> str:
    return ENTITY_PLURALS.get(entity_type.lower(), entity_type)


def entity_type_label(entity_type: str) -> str:
    return ENTITY_TYPE_LABELS.get(entity_type, entity_type)


def _present(data: Any, key: str) -> bool:
    return isinstance(data, dict) and data.get(key) is not None


def render_value(field_data: Any) -> str:
    """
    Precedence: "sale" as is, then "name" in single quotes, then "id",
    otherwise the whole structure as compact JSON.
    """
    if _present(field_data, "sale"):
        return str(field_data["sale"])
    if _present(field_data, "name"):
        return f"'{field_data['name']}'"
    if _present(field_data, "id"):
        return str(field_data["id"])
    return json.dumps(field_data, ensure_ascii=False, separators=(",", ":"))


def as_indexed(snapshot: Any) -> Optional[Dict[str, Any]]:
    """Normalize a value_before/value_after snapshot to {index: entry}; None if malformed."""
    if isinstance(snapshot, list):
        return {str(i): entry for i, entry in enumerate(snapshot)}
    if isinstance(snapshot, dict):
        return {str(k): entry for k, entry in snapshot.items()}
    return None


def _entry(snapshot: Optional[Dict[str, Any]], index: str) -> dict:
    if not snapshot:
        return {}
    entry = snapshot.get(index)
    return entry if isinstance(entry, dict) else {}


class LinkedObjectNameResolver:
    """Display name of an object referenced by a link/unlink event."""

    EXTRACTORS = MappingProxyType({
        "contacts": lambda data: data.get("name"),
        "leads": lambda data: data.get("name"),
        "companies": lambda data: data.get("name"),
        "customers": lambda data: data.get("name"),
        "catalogs": lambda data: data.get("name"),
        "tasks": lambda data: data.get("text"),
    })

    def __init__(self, api: AmoApiClient):
        self.api = api

    def resolve(self, entity_type: str, entity_id: Any) -> str:
        if entity_type in ("", "?") or entity_id in (None, "", "?"):
            return UNKNOWN

        data = best_effort(
            lambda: self.api.get_entity(entity_type, entity_id),
            None,
            f"Linked object fetch {entity_type}#{entity_id}",
        )
        if not isinstance(data, dict):
            return UNKNOWN

        extractor = self.EXTRACTORS.get(entity_type.lower(), _default_name)
        name = extractor(data)
        return str(name) if name not in (None, "") else UNNAMED


def _default_name(data: dict) -> Any:
    return data.get("name") or data.get("title")


class EventDiffEngine:
    def __init__(self, name_resolver: LinkedObjectNameResolver):
        self.name_resolver = name_resolver

    def changes(self, event: dict) -> List[FieldChange]:
        before = as_indexed(event.get("value_before"))
        after = as_indexed(event.get("value_after"))
        if before is None or after is None:
            return []

        indices = list(after)
        indices += [index for index in before if index not in after]

        result: List[FieldChange] = []
        for index in indices:
            after_data = _entry(after, index)
            before_data = _entry(before, index)

            for field_type, field_data in after_data.items():
                if field_type in IGNORED_FIELD_TYPES or field_data is None:
                    continue
                if before_data.get(field_type) is None:
                    result.append(FieldChange(
                        kind=ChangeKind.ADDED,
                        field_label=field_label(field_type),
                        new_value=render_value(field_data),
                    ))

            for field_type, before_value in before_data.items():
                if field_type in IGNORED_FIELD_TYPES or before_value is None:
                    continue
                after_value = after_data.get(field_type)
                if after_value is None:
                    result.append(FieldChange(
                        kind=ChangeKind.REMOVED,
                        field_label=field_label(field_type),
                        old_value=render_value(before_value),
                    ))
                    continue

                old, new = render_value(before_value), render_value(after_value)
                if old != new:
                    result.append(FieldChange(
                        kind=ChangeKind.MODIFIED,
                        field_label=field_label(field_type),
                        old_value=old,
                        new_value=new,
                    ))
        return result

    def narrative(self, event: dict) -> Optional[str]:
        event_type = event.get("type") or ""

        if event_type == "lead_added":
            return DEAL_CREATED
        if event_type == "entity_linked":
            return f"Linked object: {self._linked_object(event.get('value_after'))}"
        if event_type == "entity_unlinked":
            return f"Unlinked object: {self._linked_object(event.get('value_before'))}"
        return None

    def describe(self, event: dict) -> List[str]:
        logger.debug(f"Diffing event: {event}")
        lines = [change.render() for change in self.changes(event)]
        story = self.narrative(event)
        if story:
            lines.append(story)
        return lines

    def _linked_object(self, snapshot: Any) -> str:
        link_entity = _entry(as_indexed(snapshot), "0").get("link")
        link_entity = link_entity.get("entity") if isinstance(link_entity, dict) else None
        if not isinstance(link_entity, dict):
            link_entity = {}

        entity_type = str(link_entity.get("type") or "?")
        entity_id = link_entity.get("id")

        object_name = self.name_resolver.resolve(pluralize_entity_type(entity_type), entity_id)
        return f"{entity_type_label(entity_type)}:{object_name}"
