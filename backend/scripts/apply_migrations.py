"""Apply pending SQL migrations from backend/migrations in filename order.

Usage: python scripts/apply_migrations.py [--dry-run]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from clanhall.infra.postgres import close_pool, get_pool  # noqa: E402
from clanhall.obs.logging import configure_logging  # noqa: E402

MIGRATIONS_DIR = BACKEND_ROOT / "migrations"

_LOG = logging.getLogger("clanhall.migrations")


def pending_files(applied: set[str]) -> list[Path]:
    files = sorted(MIGRATIONS_DIR.glob("*.sql"))
    return [path for path in files if path.stem not in applied]


async def apply(*, dry_run: bool = False) -> list[str]:
    pool = await get_pool()
    done: list[str] = []
    async with pool.acquire() as conn:
        await conn.execute(
            "CREATE TABLE IF NOT EXISTS schema_migrations (version TEXT PRIMARY KEY, applied_at TIMESTAMPTZ NOT NULL DEFAULT NOW())"
        )
        rows = await conn.fetch("SELECT version FROM schema_migrations")
        applied = {row["version"] for row in rows}
        for path in pending_files(applied):
            if dry_run:
                _LOG.info("migration.pending", extra={"version": path.stem})
                done.append(path.stem)
                continue
            async with conn.transaction():
                await conn.execute(path.read_text(encoding="utf-8"))
                await conn.execute("INSERT INTO schema_migrations (version) VALUES ($1)", path.stem)
            _LOG.info("migration.applied", extra={"version": path.stem})
            done.append(path.stem)
    await close_pool()
    return done


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--dry-run", action="store_true", help="list pending migrations without applying")
    args = parser.parse_args()
    configure_logging()
    asyncio.run(apply(dry_run=args.dry_run))


if __name__ == "__main__":
    main()
