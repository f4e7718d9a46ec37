import sqlite3

import pytest

from searchreplace.gateway import InMemoryGateway, SQLiteGateway


@pytest.fixture
def users_rows():
    return [
        {"id": i, "name": f"user{i}", "homepage": f"http://old.example.com/u/{i}", "age": 20 + i}
        for i in range(1, 21)
    ]


@pytest.fixture
def memory_gateway(users_rows):
    """Three tables: users (20 rows), posts (3 rows), empty (0 rows)."""
    return InMemoryGateway({
        "users": users_rows,
        "posts": [
            {"title": "Hello", "body": "see http://old.example.com"},
            {"title": "Nothing here", "body": "plain"},
            {"title": "Links", "body": "http://old.example.com and http://old.example.com/x"},
        ],
        "empty": [],
    })


@pytest.fixture
def sqlite_path(tmp_path):
    """SQLite database file with a users and a settings table."""
    path = tmp_path / "app.db"
    conn = sqlite3.connect(path)
    conn.execute("CREATE TABLE users (id INTEGER PRIMARY KEY, name TEXT, homepage TEXT, score REAL)")
    conn.execute("CREATE TABLE settings (key TEXT, value TEXT)")
    conn.executemany(
        "INSERT INTO users (id, name, homepage, score) VALUES (?, ?, ?, ?)",
        [(i, f"user{i}", f"http://old.example.com/u/{i}", i * 1.5) for i in range(1, 8)],
    )
    conn.executemany(
        "INSERT INTO settings (key, value) VALUES (?, ?)",
        [("siteurl", "http://old.example.com"), ("blogname", "My blog"), ("home", None)],
    )
    conn.commit()
    conn.close()
    return path


@pytest.fixture
def sqlite_gateway(sqlite_path):
    gateway = SQLiteGateway(str(sqlite_path))
    yield gateway
    gateway.close()
