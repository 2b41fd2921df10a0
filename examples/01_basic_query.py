"""
Example 01: Basic Query Execution

This example runs read statements through the QueryEngine against a SQLite
file and prints the response envelopes.
"""

import asyncio
import sqlite3
import tempfile
from pathlib import Path

from db_bridge import AsyncConnectionManager, ConnectionConfig, PermissionPolicy, QueryEngine
from db_bridge.adapters.sqlite import SqliteAsyncAdapter


async def main():
    # Create a temporary database
    db_file = tempfile.NamedTemporaryFile(delete=False, suffix=".db")
    db_path = db_file.name
    db_file.close()

    # Set up the database with some test data
    conn = sqlite3.connect(db_path)
    conn.execute("""
        CREATE TABLE users (
            id INTEGER PRIMARY KEY,
            name TEXT NOT NULL,
            email TEXT NOT NULL
        )
    """)
    conn.execute("INSERT INTO users (name, email) VALUES ('Alice', 'alice@example.com')")
    conn.execute("INSERT INTO users (name, email) VALUES ('Bob', 'bob@example.com')")
    conn.commit()
    conn.close()

    # Configure engine; the default policy allows reads only
    config = ConnectionConfig(database=db_path, pool_size=1)
    manager = AsyncConnectionManager(config, SqliteAsyncAdapter())
    engine = QueryEngine(manager, PermissionPolicy(), dialect="sqlite")

    print("=== Basic Query Execution ===\n")

    envelope = await engine.execute("SELECT id, name, email FROM users ORDER BY id")
    print("Rows:")
    print(envelope.text)
    print(envelope.content[1].text)
    print()

    envelope = await engine.execute("SELECT COUNT(*) AS total FROM users")
    print(f"Count: {envelope.text}\n")

    # Backend errors come back as error envelopes, never as exceptions
    envelope = await engine.execute("SELECT * FROM orders")
    print(f"isError={envelope.is_error}: {envelope.text}\n")

    print("Wire format:")
    print(envelope.to_wire())

    # Clean up
    await engine.close()
    Path(db_path).unlink()


if __name__ == "__main__":
    asyncio.run(main())
