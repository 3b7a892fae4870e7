# amo_notes/services/webhook_dispatcher.py

import time
from typing import Any, Optional

from amo_notes.core.logger import logger
from amo_notes.models.events import DispatchResult, Note
from amo_notes.services.amocrm import ENTITY_CONTACTS, ENTITY_LEADS, AmoApiClient
from amo_notes.services.dedup import Deduplicator
from amo_notes.services.event_diff import EventDiffEngine
from amo_notes.utils.fallback import best_effort
from amo_notes.utils.formatting import format_timestamp

ACTIONS = ("add", "update")

SENT = "sent"
SKIPPED = "skipped"
FAILED = "failed"

UNTITLED_LEAD = "(untitled)"
UNKNOWN_RESPONSIBLE = "unknown"
UNKNOWN_DATE = "unknown"
NO_CONTACT = "no contact"
UNNAMED_CONTACT = "unnamed"


def _as_id(value: Any) -> Optional[int]:
    """Webhook ids arrive as ints or numeric strings; anything else is None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, str) and value.strip().isdigit():
        number = int(value.strip())
        return number if number > 0 else None
    return None


class WebhookDispatcher:
    """
    Entry point for amoCRM webhooks: writes a note for every added lead and
    a changelog note for every updated lead. Lookups are best-effort, so a
    failure degrades one note instead of aborting the batch.
    """

    def __init__(
        self,
        api: AmoApiClient,
        dedup: Deduplicator,
        diff_engine: EventDiffEngine,
        timezone: str = "UTC",
    ):
        self.api = api
        self.dedup = dedup
        self.diff_engine = diff_engine
        self.timezone = timezone

    def handle_webhook(self, payload: dict) -> DispatchResult:
        logger.debug(f"Webhook payload: {payload}")
        result = DispatchResult()

        leads = payload.get(ENTITY_LEADS)
        if isinstance(leads, dict):
            self.process_leads(leads, result)

        contacts = payload.get(ENTITY_CONTACTS)
        if isinstance(contacts, dict):
            # Contact changes are not turned into notes yet.
            for action in ACTIONS:
                if contacts.get(action):
                    result.unsupported.append(f"{ENTITY_CONTACTS}.{action}")
                    logger.info(f"Skipping {ENTITY_CONTACTS}.{action}: contact processing is not implemented")

        return result

    def process_leads(self, leads_data: dict, result: DispatchResult) -> None:
        for action in ACTIONS:
            records = leads_data.get(action)
            if not records:
                continue
            if isinstance(records, dict):
                records = list(records.values())
            if not isinstance(records, list):
                logger.warning(f"Ignoring malformed {ENTITY_LEADS}.{action} group: {records!r}")
                continue

            for lead in records:
                if not isinstance(lead, dict):
                    logger.warning(f"Ignoring malformed {ENTITY_LEADS}.{action} record: {lead!r}")
                    continue
                lead_id = _as_id(lead.get("id"))
                if lead_id is None:
                    logger.warning(f"Ignoring {ENTITY_LEADS}.{action} record without id: {lead!r}")
                    continue

                try:
                    if action == "add":
                        outcome = self.process_added_lead(lead_id, lead)
                    else:
                        outcome = self.process_updated_lead(lead_id, lead)
                except Exception:
                    logger.exception(f"Unexpected error while processing lead #{lead_id} ({action})")
                    outcome = FAILED

                if outcome == SENT:
                    result.notes_sent.append(lead_id)
                elif outcome == FAILED:
                    result.failed.append(lead_id)
                else:
                    result.skipped.append(lead_id)

    def process_added_lead(self, lead_id: int, lead: dict) -> str:
        lead_name = lead.get("name") or UNTITLED_LEAD
        responsible = self.get_responsible_name(lead.get("responsible_user_id"))
        created_at = self.format_date(lead.get("created_at"))
        contact_name = self.get_primary_contact_name(lead_id)

        text = (
            f"Deal created: '{lead_name}'\n"
            f"Contact: {contact_name}\n"
            f"Created at: {created_at}\n"
            f"Responsible: {responsible}"
        )
        return self.send_note(Note(entity_type=ENTITY_LEADS, entity_id=lead_id, text=text))

    def process_updated_lead(self, lead_id: int, lead: dict) -> str:
        last_event = best_effort(
            lambda: self.api.get_last_lead_event(lead_id), None, f"Event fetch for lead #{lead_id}"
        )
        if not isinstance(last_event, dict) or not last_event:
            return SKIPPED

        event_id = last_event.get("id")
        if event_id is not None and self.dedup.seen(event_id):
            logger.info(f"Event {event_id} for lead #{lead_id} already processed, skipping")
            return SKIPPED

        changes = self.diff_engine.describe(last_event)
        if not changes:
            return SKIPPED

        lead_name = lead.get("name") or UNTITLED_LEAD
        last_modified = self.format_date(lead.get("last_modified") or int(time.time()))

        text = f"Changes in deal '{lead_name}'\nModified at: {last_modified}:\n" + "\n".join(changes)
        return self.send_note(Note(entity_type=ENTITY_LEADS, entity_id=lead_id, text=text))

    # --- Enrichment ---

    def get_responsible_name(self, responsible_user_id: Any) -> str:
        user_id = _as_id(responsible_user_id)
        if user_id is None:
            return UNKNOWN_RESPONSIBLE

        user = best_effort(lambda: self.api.get_user(user_id), {}, f"User fetch #{user_id}")
        name = user.get("name") if isinstance(user, dict) else None
        return name or UNKNOWN_RESPONSIBLE

    def get_primary_contact_name(self, lead_id: int) -> str:
        lead = best_effort(
            lambda: self.api.get_lead(lead_id, with_=ENTITY_CONTACTS), {}, f"Lead fetch #{lead_id}"
        )
        embedded = lead.get("_embedded") if isinstance(lead, dict) else None
        contacts = embedded.get(ENTITY_CONTACTS) if isinstance(embedded, dict) else None
        if not contacts or not isinstance(contacts, list) or not isinstance(contacts[0], dict):
            return NO_CONTACT

        contact_id = _as_id(contacts[0].get("id"))
        if contact_id is None:
            return NO_CONTACT

        contact = best_effort(
            lambda: self.api.get_contact(contact_id), {}, f"Contact fetch #{contact_id}"
        )
        name = contact.get("name") if isinstance(contact, dict) else None
        return name or UNNAMED_CONTACT

    def format_date(self, value: Any) -> str:
        try:
            return format_timestamp(value, self.timezone)
        except (ValueError, OverflowError, OSError) as e:
            logger.error(f"Date formatting error for {value!r}: {e}")
            return UNKNOWN_DATE

    def send_note(self, note: Note) -> str:
        def post() -> str:
            self.api.add_note(note)
            return SENT

        return best_effort(post, FAILED, f"Note add to {note.entity_type}#{note.entity_id}")
