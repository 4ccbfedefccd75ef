from app.models.user import User


def test_create_user_then_already_exists(client, db):
    r = client.post("/api/users/create", json={"identityKey": "user_1"})
    assert r.status_code == 201
    body = r.json()
    assert body["created"] is True
    assert body["user"]["identityKey"] == "user_1"
    assert body["user"]["hasPaid"] is False

    r = client.post("/api/users/create", json={"identityKey": "user_1"})
    assert r.status_code == 200
    assert r.json()["created"] is False

    assert db.query(User).filter(User.identity_key == "user_1").count() == 1


def test_create_user_accepts_clerk_user_id(client):
    r = client.post("/api/users/create", json={"clerkUserId": "user_2"})
    assert r.status_code == 201
    assert r.json()["user"]["identityKey"] == "user_2"


def test_create_user_missing_key(client):
    r = client.post("/api/users/create", json={})
    assert r.status_code == 400
    assert r.json()["reason"] == "MissingIdentityKey"

    r = client.post("/api/users/create", json={"identityKey": "   "})
    assert r.status_code == 400


def test_create_user_without_body(client):
    r = client.post("/api/users/create")
    assert r.status_code == 400


def test_create_user_malformed_body(client):
    r = client.post("/api/users/create", json={"identityKey": ["not", "a", "string"]})
    assert r.status_code == 400
    assert r.json()["reason"] == "BadRequest"


def test_me_requires_identity_header(client):
    r = client.get("/api/users/me")
    assert r.status_code == 401
    assert r.json() == {"error": "Unauthorized", "reason": "Unauthorized"}


def test_me_rejects_placeholder_identity(client):
    r = client.get("/api/users/me", headers={"clerk-user-id": "undefined"})
    assert r.status_code == 401


def test_me_unknown_user(client):
    r = client.get("/api/users/me", headers={"clerk-user-id": "ghost"})
    assert r.status_code == 404
    assert r.json()["reason"] == "UserNotFound"


def test_me_reports_uploads_and_remaining(client):
    headers = {"clerk-user-id": "user_1"}
    client.post("/api/users/create", json={"identityKey": "user_1"})
    client.post("/api/voice/transcribe", headers=headers, files={"file": ("a.wav", b"RIFF", "audio/wav")})

    r = client.get("/api/users/me", headers=headers)
    assert r.status_code == 200
    body = r.json()
    assert body["identityKey"] == "user_1"
    assert body["hasPaid"] is False
    assert body["uploadCount"] == 1
    assert body["remainingFreeUploads"] == 1
    assert body["uploads"][0]["fileName"] == "a.wav"
    assert body["uploads"][0]["transcription"] == "Mock transcription for file: a.wav"
