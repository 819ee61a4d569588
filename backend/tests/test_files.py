"""
File upload/download tests
"""

import os

import pytest

from app.models import Item


@pytest.fixture
def vault(client, register, root_folder_id):
    headers, data = register()
    return headers, data["encryption_key"], root_folder_id(headers)


def _upload(client, headers, folder_id, content, encrypt):
    return client.post(
        "/api/files/upload",
        headers=headers,
        files={"file": ("notes.txt", content, "text/plain")},
        data={"folder_id": str(folder_id), "encrypt": "true" if encrypt else "false"},
    )


def test_encrypted_upload_round_trip(client, vault, db_session):
    headers, _, root_id = vault
    response = _upload(client, headers, root_id, b"top secret bytes", encrypt=True)
    assert response.status_code == 201
    item = response.json()
    assert item["type"] == "file"
    assert item["encrypted_content"] == "encrypted"
    assert item["file_size"] == len(b"top secret bytes")

    stored = db_session.get(Item, item["id"])
    with open(stored.file_path, "rb") as f:
        on_disk = f.read()
    assert b"top secret bytes" not in on_disk

    response = client.get(f"/api/files/download/{item['id']}", headers=headers)
    assert response.status_code == 200
    assert response.content == b"top secret bytes"
    assert "notes.txt" in response.headers["content-disposition"]


def test_plain_upload_round_trip(client, vault):
    headers, _, root_id = vault
    item = _upload(client, headers, root_id, b"plain bytes", encrypt=False).json()
    assert item["encrypted_content"] is None

    response = client.get(f"/api/files/download/{item['id']}", headers=headers)
    assert response.content == b"plain bytes"


def test_tampered_file_fails_to_decrypt(client, vault, db_session):
    headers, _, root_id = vault
    item = _upload(client, headers, root_id, b"payload", encrypt=True).json()

    path = db_session.get(Item, item["id"]).file_path
    with open(path, "rb") as f:
        blob = bytearray(f.read())
    blob[-1] ^= 0xFF
    with open(path, "wb") as f:
        f.write(bytes(blob))

    response = client.get(f"/api/files/download/{item['id']}", headers=headers)
    assert response.status_code == 400
    assert response.json()["error_code"] == "DECRYPTION_FAILED"


def test_download_missing_on_disk(client, vault, db_session):
    headers, _, root_id = vault
    item = _upload(client, headers, root_id, b"x", encrypt=False).json()
    os.remove(db_session.get(Item, item["id"]).file_path)

    response = client.get(f"/api/files/download/{item['id']}", headers=headers)
    assert response.status_code == 404


def test_upload_to_unknown_folder(client, vault):
    headers, _, _ = vault
    assert _upload(client, headers, 9999, b"x", encrypt=False).status_code == 404


def test_delete_file_removes_disk_copy(client, vault, db_session):
    headers, _, root_id = vault
    item = _upload(client, headers, root_id, b"bye", encrypt=True).json()
    path = db_session.get(Item, item["id"]).file_path

    response = client.delete(f"/api/files/{item['id']}", headers=headers)
    assert response.status_code == 200
    assert not os.path.exists(path)
    assert client.get(f"/api/files/download/{item['id']}", headers=headers).status_code == 404


def test_file_routes_ignore_non_file_items(client, vault):
    headers, _, root_id = vault
    note = client.post("/api/items", headers=headers, json={
        "name": "note", "type": "text", "encrypted_content": "blob", "folder_id": root_id
    }).json()

    assert client.get(f"/api/files/download/{note['id']}", headers=headers).status_code == 404
    assert client.delete(f"/api/files/{note['id']}", headers=headers).status_code == 404
