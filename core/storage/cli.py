"""Maintenance CLI for the configured upload store."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Optional, Sequence

from loguru import logger

from core.exceptions import ConfigurationError
from core.logging_config import setup_logging
from core.settings import Settings
from core.storage import S3Storage, build_storage


def parse_arguments(args: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Maintain the Tempdrop upload store")
    parser.add_argument("--config", type=Path, help="Configuration file (default: TEMPDROP_CONFIG or config/default.yaml)")
    parser.add_argument("--log-level", default="INFO", help="Log level")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("purge", help="Delete uploads whose expiry has passed")
    lifecycle = sub.add_parser("lifecycle", help="Install the S3 bucket lifecycle rule")
    lifecycle.add_argument("--days", type=int, help="Expire objects after this many days (default from config)")
    return parser.parse_args(args)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_arguments(argv)
    setup_logging(level=args.log_level)

    settings = Settings.load(args.config)
    storage = build_storage(settings.storage)

    if args.command == "purge":
        purged = storage.purge_expired()
        logger.info("Purged {count} expired upload(s)", count=purged)
        return 0

    if not isinstance(storage, S3Storage):
        raise ConfigurationError("Lifecycle rules require storage.backend 's3'")
    storage.ensure_lifecycle(days=args.days or settings.storage.lifecycle_days)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
