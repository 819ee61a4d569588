"""
Vault Integration Tests
End-to-end flow through the API: register, store encrypted items, back up, restore

Fixtures (db_session, client, register, root_folder_id) are provided by conftest.py
"""

from app.models import User, Item, ItemVersion
from app.utils.cipher import encrypt, decrypt


def test_complete_vault_flow(client, register, root_folder_id):
    """Register, create folder and items, update, back up, wipe, restore"""

    # 1. Register - the account key comes back exactly once per session
    headers, data = register()
    key = data["encryption_key"]
    assert len(key) == 64

    # 2. Login returns the same key
    response = client.post("/api/auth/login", json={
        "email": "test@example.com",
        "password": "testpass123"
    })
    assert response.status_code == 200
    assert response.json()["encryption_key"] == key

    # 3. Create a folder under Root
    root_id = root_folder_id(headers)
    response = client.post("/api/folders", headers=headers, json={
        "name": "Work",
        "parent_id": root_id
    })
    assert response.status_code == 201
    work_id = response.json()["id"]

    # 4. Store encrypted items
    response = client.post("/api/items", headers=headers, json={
        "name": "A",
        "type": "text",
        "encrypted_content": encrypt("first note", key),
        "folder_id": root_id
    })
    assert response.status_code == 201
    item_a = response.json()

    response = client.post("/api/items", headers=headers, json={
        "name": "B",
        "type": "secret",
        "encrypted_content": encrypt("hunter2", key),
        "folder_id": work_id,
        "tags": ["prod"]
    })
    assert response.status_code == 201

    # 5. Update A - a second version is recorded
    response = client.put(f"/api/items/{item_a['id']}", headers=headers, json={
        "encrypted_content": encrypt("second note", key)
    })
    assert response.status_code == 200
    response = client.get(f"/api/items/{item_a['id']}/versions", headers=headers)
    assert [v["version_number"] for v in response.json()] == [2, 1]

    # 6. Export, wipe by restoring with clear_existing, verify contents
    bundle = client.get("/api/backup/export", headers=headers).json()
    response = client.post("/api/backup/import", headers=headers, json={
        "backup_data": bundle,
        "clear_existing": True
    })
    assert response.status_code == 200
    assert response.json()["imported"] == {"folders": 2, "items": 2}

    items = client.get("/api/items", headers=headers).json()
    by_name = {item["name"]: item for item in items}
    assert decrypt(by_name["A"]["encrypted_content"], key) == "second note"
    assert decrypt(by_name["B"]["encrypted_content"], key) == "hunter2"
    assert by_name["B"]["folder_name"] == "Work"
    assert by_name["B"]["tags"] == ["prod"]


def test_database_contains_encrypted_data(client, db_session, register, root_folder_id):
    """Verify that the database holds ciphertext, never the plaintext"""
    headers, data = register()
    key = data["encryption_key"]

    client.post("/api/items", headers=headers, json={
        "name": "token",
        "type": "api_key",
        "encrypted_content": encrypt("sk-very-secret-value", key),
        "folder_id": root_folder_id(headers)
    })

    user = db_session.query(User).filter_by(email="test@example.com").first()
    assert user.encryption_key == key

    item = db_session.query(Item).filter_by(user_id=user.id).first()
    assert "sk-very-secret-value" not in item.encrypted_content
    assert decrypt(item.encrypted_content, key) == "sk-very-secret-value"

    version = db_session.query(ItemVersion).filter_by(item_id=item.id).one()
    assert version.version_number == 1
    assert version.encrypted_content == item.encrypted_content


def test_users_cannot_see_each_other(client, register, root_folder_id):
    """Another user's folders and items behave as if they did not exist"""
    alice, _ = register("alice@example.com")
    bob, _ = register("bob@example.com")

    response = client.post("/api/items", headers=alice, json={
        "name": "private",
        "type": "text",
        "encrypted_content": "blob",
        "folder_id": root_folder_id(alice)
    })
    item_id = response.json()["id"]

    assert client.get(f"/api/items/{item_id}", headers=bob).status_code == 404
    assert client.delete(f"/api/items/{item_id}", headers=bob).status_code == 404
    assert client.get("/api/items", headers=bob).json() == []

    response = client.post("/api/items", headers=bob, json={
        "name": "sneaky",
        "type": "text",
        "encrypted_content": "blob",
        "folder_id": root_folder_id(alice)
    })
    assert response.status_code == 404
