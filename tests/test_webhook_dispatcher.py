# tests/test_webhook_dispatcher.py

from amo_notes.services.dedup import Deduplicator
from amo_notes.services.http_client import HttpResponse
from amo_notes.utils.errors import TransportError


def status_event(event_id="ev-1", before=1, after=2):
    return {
        "id": event_id,
        "type": "lead_status_changed",
        "value_before": [{"lead_status": {"id": before}}],
        "value_after": [{"lead_status": {"id": after}}],
    }


# --- add ---

def test_added_lead_end_to_end(dispatcher, fake_http):
    fake_http.routes[("GET", "users/5")] = {"name": "Alice"}
    fake_http.routes[("GET", "leads/10")] = {"id": 10, "_embedded": {"contacts": []}}
    fake_http.routes[("POST", "leads/10/notes")] = {}

    payload = {"leads": {"add": [
        {"id": 10, "name": "Deal X", "responsible_user_id": 5, "created_at": 1700000000}
    ]}}
    result = dispatcher.handle_webhook(payload)

    assert result.notes_sent == [10]
    notes = fake_http.notes_for(10)
    assert notes == [
        "Deal created: 'Deal X'\n"
        "Contact: no contact\n"
        "Created at: 14.11.2023 22:13:20\n"
        "Responsible: Alice"
    ]
    posted = [c["url"] for c in fake_http.calls if c["method"] == "POST"]
    assert posted == ["https://example.amocrm.ru/api/v4/leads/10/notes"]


def test_added_lead_with_contact(dispatcher, fake_http):
    fake_http.routes[("GET", "users/5")] = {"name": "Alice"}
    fake_http.routes[("GET", "leads/11")] = {"_embedded": {"contacts": [{"id": 300}, {"id": 301}]}}
    fake_http.routes[("GET", "contacts/300")] = {"name": "Ivan Petrov"}
    fake_http.routes[("POST", "leads/11/notes")] = {}

    dispatcher.handle_webhook({"leads": {"add": [{"id": "11", "name": "Deal", "responsible_user_id": "5"}]}})

    note = fake_http.notes_for(11)[0]
    assert "Contact: Ivan Petrov" in note
    assert fake_http.calls_to("GET", "contacts/301") == []


def test_added_lead_contact_without_name(dispatcher, fake_http):
    fake_http.routes[("GET", "leads/11")] = {"_embedded": {"contacts": [{"id": 300}]}}
    fake_http.routes[("GET", "contacts/300")] = {"id": 300}
    fake_http.routes[("POST", "leads/11/notes")] = {}

    dispatcher.handle_webhook({"leads": {"add": [{"id": 11}]}})

    note = fake_http.notes_for(11)[0]
    assert "Deal created: '(untitled)'" in note
    assert "Contact: unnamed" in note


def test_bad_responsible_id_never_raises(dispatcher, fake_http):
    fake_http.routes[("POST", "leads/12/notes")] = {}

    for bad in (None, "", "abc", -3, {"id": 1}):
        dispatcher.handle_webhook({"leads": {"add": [{"id": 12, "name": "D", "responsible_user_id": bad}]}})

    notes = fake_http.notes_for(12)
    assert len(notes) == 5
    assert all("Responsible: unknown" in n for n in notes)
    assert fake_http.calls_to("GET", "users/1") == []


def test_failed_lookups_degrade_note(dispatcher, fake_http):
    fake_http.routes[("GET", "users/5")] = HttpResponse(403, "forbidden")
    fake_http.routes[("GET", "leads/13")] = TransportError("timeout")
    fake_http.routes[("POST", "leads/13/notes")] = {}

    result = dispatcher.handle_webhook({"leads": {"add": [
        {"id": 13, "name": "D", "responsible_user_id": 5, "created_at": "garbage"}
    ]}})

    assert result.notes_sent == [13]
    note = fake_http.notes_for(13)[0]
    assert "Responsible: unknown" in note
    assert "Contact: no contact" in note
    assert "Created at: unknown" in note


def test_failed_note_does_not_stop_batch(dispatcher, fake_http):
    fake_http.routes[("POST", "leads/1/notes")] = HttpResponse(400, "bad")
    fake_http.routes[("POST", "leads/2/notes")] = {}

    result = dispatcher.handle_webhook({"leads": {"add": [{"id": 1}, {"id": 2}]}})

    assert result.failed == [1]
    assert result.notes_sent == [2]


def test_unexpected_error_in_one_lead_does_not_stop_batch(dispatcher, fake_http, monkeypatch):
    fake_http.routes[("POST", "leads/2/notes")] = {}
    real_process = dispatcher.process_added_lead

    def flaky(lead_id, lead):
        if lead_id == 1:
            raise KeyError("surprise")
        return real_process(lead_id, lead)

    monkeypatch.setattr(dispatcher, "process_added_lead", flaky)
    result = dispatcher.handle_webhook({"leads": {"add": [{"id": 1}, {"id": 2}]}})

    assert result.failed == [1]
    assert result.notes_sent == [2]


def test_records_without_id_are_skipped(dispatcher, fake_http):
    result = dispatcher.handle_webhook({"leads": {"add": [{"name": "no id"}, "junk"]}})
    assert result.notes_sent == result.skipped == result.failed == []
    assert fake_http.calls == []


# --- update ---

def test_updated_lead_note(dispatcher, fake_http):
    fake_http.routes[("GET", "events")] = {"_embedded": {"events": [status_event()]}}
    fake_http.routes[("POST", "leads/20/notes")] = {}

    result = dispatcher.handle_webhook({"leads": {"update": [
        {"id": 20, "name": "Deal Y", "last_modified": 1700000000}
    ]}})

    assert result.notes_sent == [20]
    assert fake_http.notes_for(20) == [
        "Changes in deal 'Deal Y'\nModified at: 14.11.2023 22:13:20:\nStatus: was 1 → now 2"
    ]


def test_update_without_event_is_noop(dispatcher, fake_http):
    fake_http.routes[("GET", "events")] = {"_embedded": {"events": []}}
    result = dispatcher.handle_webhook({"leads": {"update": [{"id": 20}]}})

    assert result.skipped == [20]
    assert fake_http.calls_to("POST", "leads/20/notes") == []


def test_update_event_fetch_failure_is_noop(dispatcher, fake_http):
    fake_http.routes[("GET", "events")] = HttpResponse(401, "expired")
    result = dispatcher.handle_webhook({"leads": {"update": [{"id": 20}]}})
    assert result.skipped == [20]


def test_update_without_changes_is_noop(dispatcher, fake_http):
    fake_http.routes[("GET", "events")] = {"_embedded": {"events": [status_event(before=3, after=3)]}}
    dispatcher.handle_webhook({"leads": {"update": [{"id": 20}]}})
    assert fake_http.notes_for(20) == []


def test_duplicate_event_within_ttl_sends_one_note(dispatcher, fake_http, clock):
    fake_http.routes[("GET", "events")] = {"_embedded": {"events": [status_event("ev-9")]}}
    fake_http.routes[("POST", "leads/20/notes")] = {}
    payload = {"leads": {"update": [{"id": 20, "name": "Deal Y"}]}}

    dispatcher.handle_webhook(payload)
    clock.advance(3)
    second = dispatcher.handle_webhook(payload)

    assert second.skipped == [20]
    assert len(fake_http.notes_for(20)) == 1

    clock.advance(10)
    third = dispatcher.handle_webhook(payload)
    assert third.notes_sent == [20]
    assert len(fake_http.notes_for(20)) == 2


def test_update_missing_last_modified_uses_now(dispatcher, fake_http, monkeypatch):
    monkeypatch.setattr("amo_notes.services.webhook_dispatcher.time.time", lambda: 1700000000)
    fake_http.routes[("GET", "events")] = {"_embedded": {"events": [status_event()]}}
    fake_http.routes[("POST", "leads/20/notes")] = {}

    dispatcher.handle_webhook({"leads": {"update": [{"id": 20}]}})

    assert "Modified at: 14.11.2023 22:13:20:" in fake_http.notes_for(20)[0]


def test_update_with_linked_contact(dispatcher, fake_http):
    event = {
        "id": "ev-link",
        "type": "entity_linked",
        "value_before": [],
        "value_after": [{"link": {"entity": {"type": "contact", "id": 77}}}],
    }
    fake_http.routes[("GET", "events")] = {"_embedded": {"events": [event]}}
    fake_http.routes[("GET", "contacts/77")] = {"name": "Jane"}
    fake_http.routes[("POST", "leads/20/notes")] = {}

    dispatcher.handle_webhook({"leads": {"update": [{"id": 20}]}})

    assert fake_http.notes_for(20)[0].endswith("Linked object: Contact:Jane")


def test_timezone_is_applied(api, fake_http):
    from amo_notes.services.event_diff import EventDiffEngine, LinkedObjectNameResolver
    from amo_notes.services.webhook_dispatcher import WebhookDispatcher

    dispatcher = WebhookDispatcher(
        api, Deduplicator(ttl=10), EventDiffEngine(LinkedObjectNameResolver(api)), timezone="Europe/Moscow"
    )
    fake_http.routes[("POST", "leads/10/notes")] = {}
    dispatcher.handle_webhook({"leads": {"add": [{"id": 10, "created_at": 1700000000}]}})

    assert "Created at: 15.11.2023 01:13:20" in fake_http.notes_for(10)[0]


# --- groups ---

def test_add_then_update_in_one_payload(dispatcher, fake_http):
    fake_http.routes[("GET", "events")] = {"_embedded": {"events": [status_event()]}}
    fake_http.routes[("POST", "leads/1/notes")] = {}
    fake_http.routes[("POST", "leads/2/notes")] = {}

    result = dispatcher.handle_webhook({"leads": {"update": [{"id": 2}], "add": [{"id": 1}]}})

    assert result.notes_sent == [1, 2]


def test_form_style_records_are_accepted(dispatcher, fake_http):
    fake_http.routes[("POST", "leads/10/notes")] = {}
    payload = {"leads": {"add": {"0": {"id": "10", "name": "Deal X", "created_at": "1700000000"}}}}

    result = dispatcher.handle_webhook(payload)

    assert result.notes_sent == [10]
    assert "Created at: 14.11.2023 22:13:20" in fake_http.notes_for(10)[0]


def test_malformed_group_does_not_block_other_group(dispatcher, fake_http):
    fake_http.routes[("GET", "events")] = {"_embedded": {"events": [status_event()]}}
    fake_http.routes[("POST", "leads/2/notes")] = {}

    result = dispatcher.handle_webhook({"leads": {"add": 5, "update": [{"id": 2}]}})

    assert result.notes_sent == [2]
    assert result.failed == []


def test_contacts_group_is_recognized_but_not_processed(dispatcher, fake_http):
    result = dispatcher.handle_webhook({"contacts": {"update": [{"id": 5}], "add": [{"id": 6}]}})

    assert result.unsupported == ["contacts.add", "contacts.update"]
    assert fake_http.calls == []
