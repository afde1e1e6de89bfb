"""Command line interface for CasaOS AppStore manifests."""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List

from .main import (
    adapt_compose_file,
    list_catalog,
    list_categories,
    list_upgrades,
    print_json,
    write_adapted_compose,
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="casaos-appstore",
        description="Adapt CasaOS AppStore manifests and curate the app catalog.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    adapt = subparsers.add_parser(
        "adapt",
        help="Adapt a compose file to the deployment described by the environment.",
    )
    adapt.add_argument("input_file", type=Path, help="Path to docker-compose.yml")
    adapt.add_argument(
        "-o",
        "--output",
        type=Path,
        default=Path("docker-compose.adapted.yml"),
        help="Output compose path.",
    )
    adapt.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the adapted compose without writing to disk.",
    )

    catalog = subparsers.add_parser("catalog", help="List AppStore apps as JSON.")
    catalog.add_argument("apps_dir", type=Path, help="AppStore Apps directory")
    catalog.add_argument("--category", help="Only apps in this category.")
    catalog.add_argument(
        "--author-type",
        help="Only apps by this author type (official, by_casaos, community).",
    )
    catalog.add_argument(
        "--recommend-file",
        type=Path,
        help="YAML list of recommended store app ids to keep.",
    )
    catalog.add_argument("--arch", help="CPU architecture (defaults to this machine).")
    catalog.add_argument(
        "--installed-dir",
        type=Path,
        help="Directory of installed apps, reported as 'installed' ids.",
    )

    categories = subparsers.add_parser("categories", help="List categories as JSON.")
    categories.add_argument("apps_dir", type=Path, help="AppStore Apps directory")

    upgrades = subparsers.add_parser("upgrades", help="List upgradable installed apps as JSON.")
    upgrades.add_argument("apps_dir", type=Path, help="AppStore Apps directory")
    upgrades.add_argument("installed_dir", type=Path, help="Directory of installed apps")
    upgrades.add_argument(
        "--updating",
        nargs="*",
        default=[],
        metavar="NAME",
        help="Installed app names with an update already in progress.",
    )
    return parser


def configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s", stream=sys.stderr)


def main(argv: List[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    try:
        if args.command == "adapt":
            app = adapt_compose_file(args.input_file)
            write_adapted_compose(app, args.output, args.dry_run)
        elif args.command == "catalog":
            print_json(
                list_catalog(
                    args.apps_dir,
                    arch=args.arch,
                    category=args.category,
                    author_type=args.author_type,
                    recommend_file=args.recommend_file,
                    installed_dir=args.installed_dir,
                )
            )
        elif args.command == "categories":
            print_json(list_categories(args.apps_dir))
        else:  # upgrades
            print_json(list_upgrades(args.apps_dir, args.installed_dir, updating=args.updating))
        return 0
    except Exception as exc:  # pragma: no cover - protects CLI UX
        logging.error("casaos-appstore failed: %s", exc)
        return 1


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
