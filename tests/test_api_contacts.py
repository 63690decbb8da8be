from app.core.security import get_password_hash
from app.models.contact import Contact
from app.models.field_change import FieldChange
from app.models.user import User


def pending(db, contact_id):
    return {
        r.column_name: r.column_value
        for r in db.query(FieldChange).filter(
            FieldChange.object_type == "contact", FieldChange.object_id == contact_id
        )
    }


def test_requires_authentication(client):
    response = client.post("/api/v1/contacts", json={"email": "a@x.com"})

    assert response.status_code == 401


def test_create_contact_records_field_changes(client, db, editor, auth_headers, enable_integration):
    enable_integration("hubspot")

    response = client.post(
        "/api/v1/contacts", json={"firstname": "Ada", "email": "ada@x.com"}, headers=auth_headers(editor)
    )

    assert response.status_code == 201
    contact = response.json()["contact"]
    assert contact["owner_id"] == editor.id
    assert pending(db, contact["id"]) == {"firstname": "Ada", "email": "ada@x.com", "owner_id": str(editor.id)}


def test_sync_header_suppresses_tracking(client, db, admin, auth_headers, enable_integration):
    enable_integration("hubspot")

    response = client.post(
        "/api/v1/contacts",
        json={"email": "ada@x.com"},
        headers={**auth_headers(admin), "X-Sync-In-Progress": "1"},
    )

    assert response.status_code == 201
    assert pending(db, response.json()["contact"]["id"]) == {}


def test_update_contact(client, db, admin, auth_headers, enable_integration):
    enable_integration("hubspot")
    contact_id = client.post(
        "/api/v1/contacts", json={"email": "a@x.com"}, headers=auth_headers(admin)
    ).json()["contact"]["id"]

    response = client.patch(
        f"/api/v1/contacts/{contact_id}", json={"email": "b@x.com"}, headers=auth_headers(admin)
    )

    assert response.status_code == 200
    assert response.json()["contact"]["email"] == "b@x.com"
    assert pending(db, contact_id) == {"email": "b@x.com"}


def test_update_unknown_field_is_rejected(client, db, admin, auth_headers):
    contact = Contact(email="a@x.com")
    db.add(contact)
    db.commit()

    response = client.patch(f"/api/v1/contacts/{contact.id}", json={"shoe_size": 44}, headers=auth_headers(admin))

    assert response.status_code == 400
    assert "shoe_size" in response.json()["detail"]


def test_missing_contact(client, admin, auth_headers):
    response = client.patch("/api/v1/contacts/999", json={"email": "b@x.com"}, headers=auth_headers(admin))

    assert response.status_code == 404


def test_viewer_cannot_edit(client, db, viewer, auth_headers):
    contact = Contact(email="a@x.com")
    db.add(contact)
    db.commit()

    assert client.get(f"/api/v1/contacts/{contact.id}", headers=auth_headers(viewer)).status_code == 200
    response = client.patch(f"/api/v1/contacts/{contact.id}", json={"email": "b@x.com"}, headers=auth_headers(viewer))

    assert response.status_code == 403


def test_editor_cannot_touch_contacts_owned_by_others(client, db, admin, editor, auth_headers):
    contact = Contact(email="a@x.com", owner_id=admin.id)
    db.add(contact)
    db.commit()

    response = client.delete(f"/api/v1/contacts/{contact.id}", headers=auth_headers(editor))

    assert response.status_code == 403


def test_delete_contact_clears_ledger(client, db, admin, auth_headers, enable_integration):
    enable_integration("hubspot")
    contact_id = client.post(
        "/api/v1/contacts", json={"email": "a@x.com"}, headers=auth_headers(admin)
    ).json()["contact"]["id"]
    assert pending(db, contact_id)

    response = client.delete(f"/api/v1/contacts/{contact_id}", headers=auth_headers(admin))

    assert response.status_code == 200
    assert response.json() == {"contact": {"id": contact_id}, "deleted": True}
    assert pending(db, contact_id) == {}


def test_do_not_contact_endpoints(client, db, admin, auth_headers, enable_integration):
    enable_integration("hubspot")
    contact_id = client.post(
        "/api/v1/contacts", json={"email": "a@x.com"}, headers=auth_headers(admin)
    ).json()["contact"]["id"]

    response = client.post(
        f"/api/v1/contacts/{contact_id}/dnc/email", params={"reason": "bounced"}, headers=auth_headers(admin)
    )
    assert response.status_code == 200
    assert response.json()["changed"] is True
    assert response.json()["contact"]["do_not_contact"] == {"email": "bounced"}
    assert pending(db, contact_id)["mautic_internal_dnc_email"] == "bounced"

    response = client.delete(f"/api/v1/contacts/{contact_id}/dnc/email", headers=auth_headers(admin))
    assert response.json()["changed"] is True
    assert pending(db, contact_id)["mautic_internal_dnc_email"] == ""


def test_do_not_contact_unknown_channel(client, db, admin, auth_headers):
    contact = Contact(email="a@x.com")
    db.add(contact)
    db.commit()

    response = client.post(f"/api/v1/contacts/{contact.id}/dnc/pigeon", headers=auth_headers(admin))

    assert response.status_code == 400


def test_add_contact_to_company(client, db, admin, auth_headers, enable_integration):
    enable_integration("hubspot")
    headers = auth_headers(admin)
    contact_id = client.post("/api/v1/contacts", json={"email": "a@x.com"}, headers=headers).json()["contact"]["id"]
    company_id = client.post("/api/v1/companies", json={"companyname": "Acme"}, headers=headers).json()["company"]["id"]

    response = client.put(f"/api/v1/contacts/{contact_id}/company/{company_id}", headers=headers)

    assert response.status_code == 200
    assert response.json()["contact"]["company"] == "Acme"
    assert pending(db, contact_id)["company"] == "Acme"


def test_company_requires_name(client, admin, auth_headers):
    response = client.post("/api/v1/companies", json={"companycity": "Riga"}, headers=auth_headers(admin))

    assert response.status_code == 400


def test_field_changes_endpoint_decodes_values(client, admin, auth_headers, enable_integration):
    enable_integration("hubspot")
    headers = auth_headers(admin)
    contact_id = client.post(
        "/api/v1/contacts", json={"email": "a@x.com", "points": 7}, headers=headers
    ).json()["contact"]["id"]

    response = client.get(
        "/api/v1/integrations/hubspot/field-changes",
        params={"object_type": "contact", "object_id": contact_id},
        headers=headers,
    )

    assert response.status_code == 200
    changes = {c["column_name"]: c for c in response.json()["changes"]}
    assert changes["points"]["column_type"] == "int"
    assert changes["points"]["decoded_value"] == 7
    assert changes["email"]["decoded_value"] == "a@x.com"


def test_field_changes_for_unknown_integration(client, admin, auth_headers):
    response = client.get("/api/v1/integrations/nope/field-changes", headers=auth_headers(admin))

    assert response.status_code == 404


def test_login_issues_usable_token(client, db):
    db.add(User(username="ada", hashed_password=get_password_hash("s3cret!Pass"), can_edit=True))
    db.commit()

    response = client.post("/api/v1/auth/login", json={"username": "ada", "password": "s3cret!Pass"})
    assert response.status_code == 200
    token = response.json()["access_token"]

    me = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["username"] == "ada"


def test_login_with_wrong_password(client, db):
    db.add(User(username="ada", hashed_password=get_password_hash("s3cret!Pass")))
    db.commit()

    response = client.post("/api/v1/auth/login", json={"username": "ada", "password": "wrong"})

    assert response.status_code == 401


def test_unregistered_integration_reports_saved_write(client, db, admin, auth_headers, enable_integration):
    enable_integration("ghost", register=False)

    response = client.post("/api/v1/contacts", json={"email": "ada@x.com"}, headers=auth_headers(admin))

    assert response.status_code == 500
    assert "saved" in response.json()["detail"]
    assert db.query(Contact).count() == 1
    assert db.query(FieldChange).count() == 0
