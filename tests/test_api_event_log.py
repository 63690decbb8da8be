from datetime import datetime, timedelta, timezone

import pytest

from app.core.config import settings
from app.models.campaign import Campaign, CampaignEvent, CampaignLead, LeadEventLog
from app.models.contact import Contact


@pytest.fixture
def campaign(db, editor):
    campaign = Campaign(name="Welcome", created_by=editor.id)
    campaign.events = [
        CampaignEvent(name="Send welcome", type="email.send", event_type="action", order=1),
        CampaignEvent(name="Opened?", type="email.open", event_type="decision", order=2),
    ]
    db.add(campaign)
    db.commit()
    return campaign


@pytest.fixture
def member(db, campaign):
    contact = Contact(email="member@x.com")
    db.add(contact)
    db.commit()
    campaign.memberships.append(CampaignLead(lead_id=contact.id, rotation=2))
    db.commit()
    return contact


@pytest.fixture
def outsider(db):
    contact = Contact(email="outsider@x.com")
    db.add(contact)
    db.commit()
    return contact


def url(event, contact):
    return f"/api/v1/campaigns/events/{event.id}/contact/{contact.id}"


def test_create_then_update_contact_event(client, db, campaign, member, editor, auth_headers):
    event = campaign.events[0]

    created = client.put(
        url(event, member), json={"dateTriggered": "2024-05-01T10:00:00", "metadata": {"a": 1}},
        headers=auth_headers(editor)
    )
    assert created.status_code == 201
    log = created.json()["event"]
    assert log["rotation"] == 2
    assert log["dateTriggered"] == "2024-05-01T10:00:00"

    updated = client.put(
        url(event, member), json={"metadata": {"b": 2}, "systemTriggered": True}, headers=auth_headers(editor)
    )
    assert updated.status_code == 200
    assert updated.json()["event"]["id"] == log["id"]
    assert updated.json()["event"]["metadata"] == {"a": 1, "b": 2}
    assert updated.json()["event"]["systemTriggered"] is True
    assert db.query(LeadEventLog).count() == 1


def test_future_trigger_date_schedules_event(client, campaign, member, editor, auth_headers):
    trigger = (datetime.now(timezone.utc).replace(tzinfo=None) + timedelta(days=2)).replace(microsecond=0).isoformat()

    response = client.put(url(campaign.events[0], member), json={"triggerDate": trigger}, headers=auth_headers(editor))

    assert response.status_code == 201
    assert response.json()["event"]["isScheduled"] is True


def test_invalid_date_is_a_conflict(client, db, campaign, member, editor, auth_headers):
    response = client.put(
        url(campaign.events[0], member), json={"dateTriggered": "yesterday"}, headers=auth_headers(editor)
    )

    assert response.status_code == 409
    assert "dateTriggered" in response.json()["detail"]
    assert db.query(LeadEventLog).count() == 0


def test_contact_outside_campaign_is_a_conflict(client, campaign, outsider, editor, auth_headers):
    response = client.put(url(campaign.events[0], outsider), json={}, headers=auth_headers(editor))

    assert response.status_code == 409
    assert response.json()["detail"] == f"Contact {outsider.id} is not part of campaign {campaign.id}"


def test_manually_removed_contact_is_not_a_member(client, db, campaign, member, editor, auth_headers):
    campaign.memberships[0].manually_removed = True
    db.commit()

    response = client.put(url(campaign.events[0], member), json={}, headers=auth_headers(editor))

    assert response.status_code == 409


def test_missing_event_or_contact(client, campaign, member, editor, auth_headers):
    headers = auth_headers(editor)

    assert client.put(f"/api/v1/campaigns/events/999/contact/{member.id}", json={}, headers=headers).status_code == 404
    assert client.put(
        f"/api/v1/campaigns/events/{campaign.events[0].id}/contact/999", json={}, headers=headers
    ).status_code == 404


def test_edit_requires_campaign_access(client, campaign, member, viewer, auth_headers):
    response = client.put(url(campaign.events[0], member), json={}, headers=auth_headers(viewer))

    assert response.status_code == 403


def test_contact_events_for_campaign(client, db, campaign, member, editor, auth_headers):
    headers = auth_headers(editor)
    client.put(url(campaign.events[1], member), json={"nonActionPathTaken": True}, headers=headers)
    client.put(url(campaign.events[0], member), json={}, headers=headers)

    response = client.get(
        f"/api/v1/campaigns/events/contact/{member.id}", params={"campaign_id": campaign.id}, headers=headers
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["total"] == 2
    assert [event["name"] for event in payload["events"]] == ["Send welcome", "Opened?"]
    assert payload["events"][1]["contactLog"][0]["nonActionPathTaken"] is True
    assert payload["campaign"]["id"] == campaign.id
    assert payload["membership"][0]["rotation"] == 2


def test_contact_events_without_campaign(client, campaign, member, editor, auth_headers):
    client.put(url(campaign.events[0], member), json={}, headers=auth_headers(editor))

    response = client.get(f"/api/v1/campaigns/events/contact/{member.id}", headers=auth_headers(editor))

    assert response.status_code == 200
    assert response.json()["total"] == 1
    assert "campaign" not in response.json()


def test_contact_events_errors(client, campaign, outsider, editor, auth_headers):
    headers = auth_headers(editor)

    assert client.get("/api/v1/campaigns/events/contact/999", headers=headers).status_code == 404
    assert client.get(
        f"/api/v1/campaigns/events/contact/{outsider.id}", params={"campaign_id": 999}, headers=headers
    ).status_code == 404
    response = client.get(
        f"/api/v1/campaigns/events/contact/{outsider.id}", params={"campaign_id": campaign.id}, headers=headers
    )
    assert response.status_code == 409


def test_contact_events_of_someone_elses_contact(client, db, admin, viewer, auth_headers):
    contact = Contact(email="private@x.com", owner_id=admin.id)
    db.add(contact)
    db.commit()

    response = client.get(f"/api/v1/campaigns/events/contact/{contact.id}", headers=auth_headers(viewer))

    assert response.status_code == 403


def test_batch_edit_reports_errors_per_item(client, db, campaign, member, outsider, editor, auth_headers):
    items = [
        {"eventId": campaign.events[0].id, "contactId": member.id, "isScheduled": True},
        {"eventId": 999, "contactId": member.id},
        {"eventId": campaign.events[0].id, "contactId": outsider.id},
        {"contactId": member.id},
        {"eventId": "abc", "contactId": member.id},
    ]

    response = client.put("/api/v1/campaigns/events/batch/edit", json=items, headers=auth_headers(editor))

    assert response.status_code == 200
    payload = response.json()
    assert list(payload["events"]) == ["0"]
    assert payload["events"]["0"]["isScheduled"] is True
    assert payload["errors"]["1"]["code"] == 404
    assert payload["errors"]["2"] == {
        "code": 409, "message": f"Contact {outsider.id} is not part of campaign {campaign.id}"
    }
    assert payload["errors"]["3"]["code"] == 400
    assert payload["errors"]["4"] == {"code": 400, "message": "eventId and contactId must be integers"}
    assert db.query(LeadEventLog).count() == 1


def test_batch_edit_without_errors_omits_errors(client, campaign, member, editor, auth_headers):
    items = [{"eventId": event.id, "contactId": member.id} for event in campaign.events]

    response = client.put("/api/v1/campaigns/events/batch/edit", json=items, headers=auth_headers(editor))

    assert response.status_code == 200
    assert len(response.json()["events"]) == 2
    assert "errors" not in response.json()


def test_batch_edit_over_limit(client, campaign, member, editor, auth_headers, monkeypatch):
    monkeypatch.setattr(settings, "API_BATCH_MAX_LIMIT", 1)
    items = [{"eventId": event.id, "contactId": member.id} for event in campaign.events]

    response = client.put("/api/v1/campaigns/events/batch/edit", json=items, headers=auth_headers(editor))

    assert response.status_code == 400


def test_list_events(client, campaign, member, editor, auth_headers):
    headers = auth_headers(editor)
    for event in campaign.events:
        client.put(url(event, member), json={}, headers=headers)

    response = client.get("/api/v1/campaigns/events", params={"start": 1, "limit": 5}, headers=headers)

    assert response.status_code == 200
    assert response.json()["total"] == 2
    assert len(response.json()["events"]) == 1
