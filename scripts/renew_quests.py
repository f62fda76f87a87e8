#!/usr/bin/env python3
"""
renew_quests.py
---------------

Expires overdue daily quests and makes sure every listed owner has the
current day's batch.

USAGE:
  python scripts/renew_quests.py user-1 user-2        # Renew listed owners
  python scripts/renew_quests.py --file owners.txt    # One owner id per line
  python scripts/renew_quests.py --sweep-only         # Only expire overdue quests
  python scripts/renew_quests.py --json user-1        # Machine-readable summary

The database URL comes from DATABASE_URL (or .env); quest settings from the
YAML files in QUESTLINE_CONFIG_DIR.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import List

from questline.core.config import Config, ConfigManager
from questline.core.database import DatabaseService
from questline.core.event import EventBus
from questline.core.logging import get_logger, setup_logging, shutdown_logging
from questline.modules.quests import DailyQuestService, QuestSettings, build_catalog

logger = get_logger("questline.scripts.renew_quests")


class _NoGrantLedger:
    """Renewal never claims; any grant attempt is refused."""

    async def grant_coins(self, owner_id: str, amount: int, *, reference: str) -> bool:
        logger.warning(
            "Reward grant attempted during renewal run",
            extra={"owner_id": owner_id, "amount": amount, "reference": reference},
        )
        return False


def _read_owner_ids(args: argparse.Namespace) -> List[str]:
    owner_ids = list(args.owners)
    if args.file:
        lines = Path(args.file).read_text(encoding="utf-8").splitlines()
        owner_ids.extend(line.strip() for line in lines if line.strip())
    return owner_ids


def _parse_args(argv: List[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Renew daily quests")
    parser.add_argument("owners", nargs="*", help="Owner ids to renew")
    parser.add_argument("--file", help="File with one owner id per line")
    parser.add_argument(
        "--sweep-only",
        action="store_true",
        help="Expire overdue quests without generating new ones",
    )
    parser.add_argument("--database-url", help="Override DATABASE_URL")
    parser.add_argument("--config-dir", help="Override the YAML config directory")
    parser.add_argument("--json", action="store_true", help="Print the summary as JSON")
    parser.add_argument(
        "--create-tables",
        action="store_true",
        help="Create missing tables before renewing",
    )
    return parser.parse_args(argv)


async def _run(args: argparse.Namespace) -> int:
    ConfigManager.initialize(Path(args.config_dir) if args.config_dir else None)
    settings = QuestSettings.from_config()

    await DatabaseService.initialize(args.database_url)
    try:
        if args.create_tables:
            await DatabaseService.create_all()

        service = DailyQuestService(
            settings,
            build_catalog(settings),
            _NoGrantLedger(),
            EventBus(),
            logger,
        )

        if args.sweep_only:
            expired = await service.expire_overdue()
            summary = {"quests_expired": expired}
            failed = False
        else:
            result = await service.renew_quests(_read_owner_ids(args))
            summary = result.to_dict()
            failed = not result.success
    finally:
        await DatabaseService.shutdown()

    if args.json:
        print(json.dumps(summary, indent=2))
    else:
        for key, value in summary.items():
            if key == "errors":
                for error in value:
                    print(f"  ! {error['owner_id']}: {error['error']}")
            else:
                print(f"{key}: {value}")

    return 1 if failed else 0


def main(argv: List[str] = None) -> int:
    args = _parse_args(sys.argv[1:] if argv is None else argv)
    try:
        setup_logging()
        Config.validate()
        return asyncio.run(_run(args))
    finally:
        shutdown_logging()


if __name__ == "__main__":
    sys.exit(main())
