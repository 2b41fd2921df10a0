"""
Example 02: Write Permissions

This example shows global write flags, schema overrides and read-only mode.
"""

import asyncio
import tempfile
from pathlib import Path

from db_bridge import (
    AsyncConnectionManager,
    ConnectionConfig,
    PermissionPolicy,
    QueryEngine,
    WriteOperation,
)
from db_bridge.adapters.sqlite import SqliteAsyncAdapter


def build_engine(db_path, policy):
    manager = AsyncConnectionManager(ConnectionConfig(database=db_path), SqliteAsyncAdapter())
    return QueryEngine(manager, policy, dialect="sqlite")


async def main():
    db_file = tempfile.NamedTemporaryFile(delete=False, suffix=".db")
    db_path = db_file.name
    db_file.close()

    print("=== Write Permissions ===\n")

    # INSERT and DDL allowed globally
    admin = build_engine(
        db_path,
        PermissionPolicy(
            global_permissions={WriteOperation.INSERT: True, WriteOperation.DDL: True}
        ),
    )
    envelope = await admin.execute("CREATE TABLE notes (id INTEGER PRIMARY KEY, body TEXT)")
    print(f"CREATE: {envelope.text}")
    envelope = await admin.execute("INSERT INTO notes (body) VALUES ('hello')")
    print(f"INSERT: {envelope.text}")

    # DELETE was never granted
    envelope = await admin.execute("DELETE FROM notes")
    print(f"DELETE: {envelope.text}\n")

    # Schema-specific settings win over the global flag
    scoped = build_engine(
        db_path,
        PermissionPolicy(
            global_permissions={WriteOperation.INSERT: True},
            schema_permissions={"main": {WriteOperation.INSERT: False}},
        ),
    )
    envelope = await scoped.execute("INSERT INTO main.notes (body) VALUES ('blocked')")
    print(f"INSERT into main: {envelope.text}")
    envelope = await scoped.execute("INSERT INTO notes (body) VALUES ('allowed')")
    print(f"INSERT into default: {envelope.text}\n")

    # Read-only mode blocks every write, whatever the flags say
    locked = build_engine(
        db_path,
        PermissionPolicy(
            global_permissions={op: True for op in WriteOperation}, read_only_mode=True
        ),
    )
    envelope = await locked.execute("UPDATE notes SET body = 'x'")
    print(f"UPDATE in read-only mode: {envelope.text}")
    envelope = await locked.execute("SELECT body FROM notes ORDER BY id")
    print(f"SELECT in read-only mode: {envelope.text}")

    # Clean up
    for engine in (admin, scoped, locked):
        await engine.close()
    Path(db_path).unlink()


if __name__ == "__main__":
    asyncio.run(main())
