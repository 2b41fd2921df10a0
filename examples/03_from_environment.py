"""
Example 03: Configuration From the Environment

This example builds the engine from environment variables the way a server
process does at startup. Values can also come from a .env file.
"""

import asyncio
import os
import tempfile
from pathlib import Path

from db_bridge import ConfigurationError, QueryEngine, Settings, configure_logging


async def main():
    db_dir = Path(tempfile.mkdtemp())
    os.environ.update(
        {
            "DB_TYPE": "sqlite",
            "SQLITE_DB": str(db_dir / "app.db"),
            "ALLOW_DDL_OPERATION": "true",
            "ALLOW_INSERT_OPERATION": "true",
            "LOG_LEVEL": "DEBUG",
        }
    )

    settings = Settings()
    configure_logging(settings.log_level)

    try:
        engine = QueryEngine.from_settings(settings)
        await engine.initialize_pool()
    except ConfigurationError as e:
        print(f"Startup failed: {e}")
        return

    print("=== Engine From Settings ===\n")
    print(f"Backend: {settings.backend.value}")
    print(f"Database: {settings.database_name}\n")

    for sql in (
        "CREATE TABLE events (id INTEGER PRIMARY KEY, kind TEXT)",
        "INSERT INTO events (kind) VALUES ('signup')",
        "SELECT * FROM events",
        "DELETE FROM events",
    ):
        envelope = await engine.execute(sql)
        print(f"{sql}\n  -> {envelope.text}\n")

    # Clean up
    await engine.close()
    for file in db_dir.iterdir():
        file.unlink()
    db_dir.rmdir()


if __name__ == "__main__":
    asyncio.run(main())
