import argparse
import logging
import sys

from .cf import transport_from_settings
from .config import load_settings
from .errors import ReportError
from .reports import group_audit, stale_apps, usage_summary
from .uaa import UAAC


def positive_int(value):
    days = int(value)
    if days < 1:
        raise argparse.ArgumentTypeError(f"{value} is not a positive number of days")
    return days


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog="cf-reports",
        description="Usage, stale app and group membership reports for Cloud Foundry.",
    )
    parser.add_argument("--debug", help="Enable debug logging.", action="store_true")
    parser.add_argument("--config", help="YAML settings file (default: ~/.cf-reports.yml).")

    subparsers = parser.add_subparsers(
        dest="command", help="Run <command> --help for more information."
    )
    subparsers.required = True

    subparsers.add_parser(
        "usage-summary", help="Print AIs and SIs per organization and in total."
    )

    stale_apps_parser = subparsers.add_parser(
        "stale-apps", help="Export stopped apps not updated recently to CSV."
    )
    stale_apps_parser.add_argument(
        "-o",
        "--output",
        dest="output",
        required=True,
        help="CSV file to write, e.g. old_stopped_apps.csv",
    )
    stale_apps_parser.add_argument(
        "--days",
        type=positive_int,
        help="Apps updated more than this many days ago are stale (default: 60).",
    )

    subparsers.add_parser(
        "group-audit", help="Print each UAA user's groups and their descriptions."
    )

    return parser.parse_args(argv)


def run(args) -> int:
    settings = load_settings(args.config)

    if args.command == "group-audit":
        uaa = UAAC(page_size=settings.uaa_page_size)
        uaa.check_connectivity()
        group_audit(uaa)
        return 0

    transport = transport_from_settings(settings)
    transport.check_connectivity()

    if args.command == "usage-summary":
        usage_summary(transport, skip_orgs=settings.skip_orgs, per_page=settings.per_page)
        return 0
    if args.command == "stale-apps":
        days = args.days if args.days is not None else settings.stale_days
        stale_apps(transport, args.output, days=days, per_page=settings.per_page)
        return 0
    raise ValueError(f"unknown command {args.command}")


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        return run(args)
    except (ReportError, OSError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
