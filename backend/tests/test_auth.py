"""
Authentication and account key tests
"""

from app.models import User, Folder, ROOT_FOLDER_NAME


def test_register_creates_key_and_root(client, db_session):
    response = client.post("/api/auth/register", json={
        "email": "New.User@Example.com",
        "password": "testpass123"
    })
    assert response.status_code == 201
    data = response.json()
    assert data["user"]["email"] == "new.user@example.com"
    assert len(data["encryption_key"]) == 64
    assert data["token"]

    user = db_session.query(User).filter_by(email="new.user@example.com").one()
    assert user.encryption_key == data["encryption_key"]
    assert user.password_hash != "testpass123"

    folders = db_session.query(Folder).filter_by(user_id=user.id).all()
    assert [(f.name, f.parent_id) for f in folders] == [(ROOT_FOLDER_NAME, None)]


def test_each_account_gets_its_own_key(register):
    _, first = register("one@example.com")
    _, second = register("two@example.com")
    assert first["encryption_key"] != second["encryption_key"]


def test_register_duplicate_email(client, register):
    register()
    response = client.post("/api/auth/register", json={
        "email": "test@example.com",
        "password": "anotherpass"
    })
    assert response.status_code == 409


def test_register_short_password(client):
    response = client.post("/api/auth/register", json={
        "email": "short@example.com",
        "password": "short"
    })
    assert response.status_code == 422


def test_login_wrong_password(client, register):
    register()
    response = client.post("/api/auth/login", json={
        "email": "test@example.com",
        "password": "wrongpass123"
    })
    assert response.status_code == 401


def test_login_unknown_user(client):
    response = client.post("/api/auth/login", json={
        "email": "ghost@example.com",
        "password": "testpass123"
    })
    assert response.status_code == 401


def test_verify_token(client, register):
    _, data = register()
    response = client.post("/api/auth/verify", json={"token": data["token"]})
    assert response.status_code == 200
    body = response.json()
    assert body["valid"] is True
    assert body["encryption_key"] == data["encryption_key"]
    assert body["user"]["email"] == "test@example.com"


def test_verify_invalid_token(client):
    response = client.post("/api/auth/verify", json={"token": "garbage"})
    assert response.status_code == 401


def test_protected_route_requires_token(client):
    response = client.get("/api/folders")
    assert response.status_code in (401, 403)

    response = client.get("/api/folders", headers={"Authorization": "Bearer garbage"})
    assert response.status_code == 401


def test_missing_account_key_is_integrity_error(client, register, db_session):
    headers, _ = register()
    user = db_session.query(User).filter_by(email="test@example.com").one()
    user.encryption_key = "corrupt"
    db_session.commit()

    response = client.get("/api/backup/export", headers=headers)
    assert response.status_code == 500
    assert response.json()["error_code"] == "INTEGRITY_ERROR"
