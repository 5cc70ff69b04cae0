import json

from jobbooster.models import Profile


def test_job_data_crud(client, auth):
    headers, user_id = auth

    created = client.post("/api/job-data", json={"content": "Python role", "title": "Engineer"}, headers=headers)
    assert created.status_code == 201
    job = created.get_json()
    assert job["title"] == "Engineer"

    listed = client.get("/api/job-data?page=1&limit=5", headers=headers).get_json()
    assert listed["pagination"] == {"page": 1, "limit": 5, "total": 1, "pages": 1}

    updated = client.put(f"/api/job-data/{job['id']}", json={"company": "Acme"}, headers=headers)
    assert updated.get_json()["company"] == "Acme"
    assert client.put(f"/api/job-data/{job['id']}", json={"content": ""}, headers=headers).status_code == 400

    assert client.delete(f"/api/job-data/{job['id']}", headers=headers).status_code == 200
    assert client.get(f"/api/job-data/{job['id']}", headers=headers).status_code == 404


def test_job_data_requires_content(client, auth):
    headers, _ = auth
    assert client.post("/api/job-data", json={"title": "No body"}, headers=headers).status_code == 400


def test_job_data_is_private(client, auth, register):
    headers, _ = auth
    job = client.post("/api/job-data", json={"content": "Python role"}, headers=headers).get_json()

    other = {"Authorization": f"Bearer {register(email='other@example.com')}"}
    assert client.get(f"/api/job-data/{job['id']}", headers=other).status_code == 404


def test_generated_content_lifecycle(client):
    session = {"X-Session-Id": "anon_content"}
    created = client.post("/api/generated-content", json={
        "type": "application", "content": "Dear team", "kind": "email", "language": "de",
    }, headers=session)
    assert created.status_code == 200
    item = created.get_json()["data"]
    assert item["language"] == "de"
    assert item["wordCount"] == 2

    listed = client.get("/api/generated-content?type=application", headers=session).get_json()
    assert listed["pagination"]["total"] == 1

    assert client.delete(f"/api/generated-content/{item['id']}", headers=session).status_code == 200
    assert client.get("/api/generated-content", headers=session).get_json()["pagination"]["total"] == 0


def test_generated_content_validation(client):
    assert client.post("/api/generated-content", json={"type": "application"}).status_code == 400
    bad_type = client.post("/api/generated-content", json={"type": "spam", "content": "x"})
    assert bad_type.status_code == 400


def test_gdpr_consent_roundtrip(client, auth):
    headers, user_id = auth
    response = client.post("/api/gdpr/consent", json={
        "consent": {"marketing": False, "analytics": True}, "consentVersion": "2.0",
    }, headers=headers)
    assert response.status_code == 200

    consent = client.get("/api/gdpr/consent", headers=headers).get_json()
    assert consent["gdprConsent"] is True
    assert consent["consentVersion"] == "2.0"
    assert consent["consent"]["analytics"] is True

    assert client.post("/api/gdpr/consent", json={"consent": "yes"}, headers=headers).status_code == 400


def test_gdpr_export_attachment(client, auth):
    headers, _ = auth
    response = client.post("/api/gdpr/export", json={"format": "json"}, headers=headers)

    assert response.status_code == 200
    assert response.mimetype == "application/json"
    assert response.headers["Content-Disposition"].startswith('attachment; filename="user-data-export-')
    assert json.loads(response.get_data(as_text=True))["profile"]["email"] == "jane@example.com"

    assert client.post("/api/gdpr/export", json={"format": "pdf"}, headers=headers).status_code == 400


def test_gdpr_delete_requires_reason(client, auth):
    headers, _ = auth
    response = client.post("/api/gdpr/delete", json={}, headers=headers)
    assert response.status_code == 400
    assert response.get_json()["error"] == "Deletion reason is required"


def test_gdpr_delete_everything(client, auth):
    headers, user_id = auth
    preview = client.get("/api/gdpr/delete", headers=headers).get_json()
    assert preview["dataSummary"]["profile"] == 1

    response = client.post("/api/gdpr/delete", json={"reason": "No longer needed"}, headers=headers)

    data = response.get_json()
    assert response.status_code == 200
    assert data["success"] is True
    assert data["deletedRecords"] >= 3
    assert Profile.query.filter_by(user_id=user_id).count() == 0
    # the session row is gone, so the token no longer works
    assert client.get("/api/gdpr/delete", headers=headers).status_code == 401


def test_gdpr_delete_rejects_string_flags(client, auth):
    headers, user_id = auth
    response = client.post("/api/gdpr/delete", json={"reason": "Tidy up", "deleteProfile": "false"}, headers=headers)

    assert response.status_code == 400
    assert response.get_json()["error"] == "deleteProfile must be true or false"
    assert Profile.query.filter_by(user_id=user_id).count() == 1
