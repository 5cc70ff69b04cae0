from jobbooster.models import Profile, UserSession


def test_register_creates_profile_and_session(register):
    token = register(email="Ada@Example.com", name="Ada")
    assert token

    profile = Profile.query.filter_by(email="ada@example.com").one()
    assert profile.full_name == "Ada"
    assert UserSession.query.filter_by(user_id=profile.user_id).count() == 1


def test_register_duplicate_email(client, register):
    register()
    response = client.post("/api/auth/register", json={"email": "jane@example.com", "password": "another-pass"})
    assert response.status_code == 409
    assert response.get_json()["error"] == "Email already registered"


def test_register_short_password(client):
    response = client.post("/api/auth/register", json={"email": "a@b.c", "password": "short"})
    assert response.status_code == 400


def test_login(client, register):
    register()

    ok = client.post("/api/auth/login", json={"email": "jane@example.com", "password": "s3cret-pass"})
    assert ok.status_code == 200
    assert "access_token" in ok.get_json()

    bad = client.post("/api/auth/login", json={"email": "jane@example.com", "password": "wrong-pass"})
    assert bad.status_code == 401
    assert bad.get_json()["error"] == "Invalid email or password"


def test_logout_revokes_token(client, auth):
    headers, _ = auth
    assert client.get("/api/gdpr/consent", headers=headers).status_code == 200

    response = client.post("/api/auth/logout", headers=headers)
    assert response.status_code == 200

    after = client.get("/api/gdpr/consent", headers=headers)
    assert after.status_code == 401
    assert after.get_json()["error"] == "Session has been signed out"


def test_protected_route_without_token(client):
    response = client.get("/api/job-data")
    assert response.status_code == 401
    assert response.get_json()["error"] == "Unauthorized"


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.get_json()["status"] == "ok"
