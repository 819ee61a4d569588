#!/usr/bin/env python3
"""
Vault Integrity Verification Script
====================================
Connects to the database and verifies:
  1. Every user has a well-formed 256-bit account key
  2. Every user has exactly one Root folder
  3. Every item has version history starting at 1 without gaps
  4. Stored content blobs look like ciphertext, not plaintext
"""

import base64
import binascii
import os
import sys

import psycopg2
from dotenv import load_dotenv

# Base64 of nonce(16) || tag(16) || ciphertext
MIN_CIPHERTEXT_BYTES = 32


def looks_encrypted(blob):
    try:
        raw = base64.b64decode(blob, validate=True)
    except (binascii.Error, ValueError):
        return False
    return len(raw) >= MIN_CIPHERTEXT_BYTES


def main():
    load_dotenv()
    db_url = os.getenv("DATABASE_URL")

    if not db_url or not db_url.startswith("postgresql"):
        print("ERROR: DATABASE_URL must point at a PostgreSQL database")
        sys.exit(1)

    try:
        conn = psycopg2.connect(db_url)
        cur = conn.cursor()
    except psycopg2.Error as e:
        print(f"ERROR: Failed to connect to database: {e}")
        sys.exit(1)

    failures = 0

    print("=" * 60)
    print("VAULT INTEGRITY VERIFICATION")
    print("=" * 60)
    print()

    # CHECK 1: account keys
    cur.execute("SELECT id, encryption_key FROM users")
    users = cur.fetchall()
    bad_keys = [uid for uid, key in users if not key or len(key) != 64]
    for uid, key in users:
        if uid in bad_keys:
            continue
        try:
            bytes.fromhex(key)
        except ValueError:
            bad_keys.append(uid)
    if bad_keys:
        print(f"FAIL: {len(bad_keys)} users have a missing or malformed account key: {bad_keys}")
        failures += 1
    else:
        print(f"OK: all {len(users)} users have 256-bit account keys")

    # CHECK 2: Root folders
    cur.execute("""
        SELECT u.id, COUNT(f.id) FROM users u
        LEFT JOIN folders f
          ON f.user_id = u.id AND f.parent_id IS NULL AND f.name = 'Root'
        GROUP BY u.id
        HAVING COUNT(f.id) != 1
    """)
    bad_roots = cur.fetchall()
    if bad_roots:
        print(f"FAIL: {len(bad_roots)} users without exactly one Root folder: {bad_roots}")
        failures += 1
    else:
        print("OK: every user has exactly one Root folder")

    # CHECK 3: gapless version numbering
    cur.execute("""
        SELECT i.id, COUNT(v.id), MIN(v.version_number), MAX(v.version_number)
        FROM items i
        LEFT JOIN item_versions v ON v.item_id = i.id
        GROUP BY i.id
    """)
    bad_versions = [
        item_id for item_id, count, low, high in cur.fetchall()
        if count == 0 or low != 1 or high != count
    ]
    if bad_versions:
        print(f"FAIL: {len(bad_versions)} items with broken version history: {bad_versions[:20]}")
        failures += 1
    else:
        print("OK: all items have gapless version history starting at 1")

    # CHECK 4: sampled content is ciphertext
    cur.execute("""
        SELECT id, encrypted_content FROM items
        WHERE type != 'file' AND encrypted_content IS NOT NULL
        ORDER BY updated_at DESC
        LIMIT 50
    """)
    suspicious = [item_id for item_id, blob in cur.fetchall() if not looks_encrypted(blob)]
    if suspicious:
        print(f"FAIL: {len(suspicious)} sampled items do not look encrypted: {suspicious}")
        failures += 1
    else:
        print("OK: sampled item content is ciphertext")

    conn.close()

    print()
    print("=" * 60)
    if failures:
        print(f"VERIFICATION FAILED ({failures} checks)")
        print("=" * 60)
        sys.exit(1)
    print("VERIFICATION PASSED")
    print("=" * 60)


if __name__ == "__main__":
    main()
