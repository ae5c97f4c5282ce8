"""Entry point: python -m bagmover [-i HANDLE|all] [-t URL] [-s SCRATCH]

Usage:
  # Export a content subtree into packages in the scratch directory:
  python -m bagmover -i 123456789/1 -s /var/tmp/export --source repo.json

  # Export the entire repository:
  python -m bagmover -i all -s /var/tmp/export --source repo.json

  # Upload previously exported packages, reloading export.map:
  python -m bagmover -t http://my-mds-repo.org/webapi -s /var/tmp/export

  # Override config file:
  python -m bagmover -i all -t http://my-mds-repo.org/webapi --config /etc/bagmover/bagmover.toml
"""
from __future__ import annotations

import argparse
import logging
import sys

from bagmover.config import load_config
from bagmover.content.static import StaticContentSource
from bagmover.migrate.orchestrator import MigrationOrchestrator, MigrationResult
from bagmover.storage.digest import DigestAlgorithmError


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Package repository content into bags and upload them to a target repository",
        prog="python -m bagmover",
    )
    parser.add_argument(
        "--identifier", "-i",
        default="",
        help="Root handle to export, or 'all' for the entire repository.",
    )
    parser.add_argument(
        "--target", "-t",
        default="",
        help="URL of the repository to upload packages into.",
    )
    parser.add_argument(
        "--scratch", "-s",
        default="",
        help="Scratch directory for packages and export.map.",
    )
    parser.add_argument(
        "--source",
        default="",
        help="JSON description of the content to export (required with --identifier).",
    )
    parser.add_argument(
        "--config", "-c",
        default="",
        help="Path to bagmover.toml config file.",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging.",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)

    level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    log = logging.getLogger("bagmover")

    cfg = load_config(args.config or None)
    if args.scratch:
        cfg.scratch_dir = args.scratch
    target = args.target or cfg.target_url

    if not args.identifier and not target:
        log.error("Nothing to do: give --identifier to export and/or --target to upload.")
        return 1

    source = None
    if args.identifier:
        if not args.source:
            log.error("--source is required to export %s", args.identifier)
            return 1
        try:
            source = StaticContentSource.from_file(args.source)
        except (OSError, ValueError) as exc:
            log.error("Cannot load content source %s: %s", args.source, exc)
            return 1

    try:
        orchestrator = MigrationOrchestrator(cfg, source)
    except DigestAlgorithmError as exc:
        log.error("Configuration error: %s", exc)
        return 1

    log.info("Scratch directory: %s", cfg.scratch_dir)
    result = orchestrator.run(args.identifier or None, target or None)

    exit_codes = {
        MigrationResult.SUCCESS: 0,
        MigrationResult.NOTHING_TO_DO: 0,
        MigrationResult.ERROR: 1,
    }
    code = exit_codes.get(result, 1)
    log.info("Migration result: %s (exit %d)", result.name, code)
    return code


if __name__ == "__main__":
    sys.exit(main())
