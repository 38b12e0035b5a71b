"""
The three reports: per-org usage totals, stale stopped apps, and UAA group
membership. Each ``build_*``/``collect_*`` function returns plain data; the
``print_*``/``write_*`` functions format it.
"""

import csv
import datetime
import logging
from collections import namedtuple

from .aggregate import aggregate, all_of, format_timestamp, state_is, sum_field, updated_before
from .errors import FetchError
from .fetcher import DEFAULT_PER_PAGE, fetch_all, with_page_size
from .joiner import UNRESOLVED, build_lookup, field, resolve

logger = logging.getLogger(__name__)

STALE_APP_FIELDS = [
    "app_name",
    "updated_at",
    "created_at",
    "space_id",
    "space_name",
    "org_name",
    "org_guid",
]
PREVIEW_ROWS = 5
SEPARATOR = "-" * 40

OrgUsage = namedtuple("OrgUsage", ["name", "guid", "started_instances", "service_instances"])
StaleApp = namedtuple("StaleApp", STALE_APP_FIELDS)
StaleAppReport = namedtuple("StaleAppReport", ["days", "cutoff", "rows", "total_apps", "stopped_apps"])
GroupMembership = namedtuple("GroupMembership", ["username", "groups"])
Group = namedtuple("Group", ["name", "description"])


# usage-summary


def collect_org_usage(transport, skip_orgs=("system",), per_page: int = DEFAULT_PER_PAGE) -> list:
    """
    Fetch the usage summary of every organization not in ``skip_orgs``.

    The organization list must be fetched in full. An organization whose
    summary can't be fetched is logged and left out.
    """
    orgs = fetch_all(transport.request_page, with_page_size("/v3/organizations", per_page))
    usages = []
    for org in orgs:
        name = org.get("name")
        guid = org.get("guid")
        if name in skip_orgs:
            continue
        if not guid:
            logger.warning("skipping organization %s with no guid", name)
            continue
        logger.debug("fetching usage summary for %s", name)
        try:
            summary = transport.get(f"/v3/organizations/{guid}/usage_summary")
        except FetchError as exc:
            logger.warning("skipping %s: %s", name, exc)
            continue
        usages.append(
            OrgUsage(
                name,
                guid,
                field(summary, "usage_summary.started_instances", 0),
                field(summary, "usage_summary.service_instances", 0),
            )
        )
    return usages


def usage_totals(usages) -> tuple:
    return (
        sum_field(usages, lambda usage: usage.started_instances),
        sum_field(usages, lambda usage: usage.service_instances),
    )


def print_org_usage(usage: OrgUsage):
    print(f"Processing {usage.name}...")
    print(f"AIs: {usage.started_instances}")
    print(f"SIs: {usage.service_instances}")
    print()


def usage_summary(transport, skip_orgs=("system",), per_page: int = DEFAULT_PER_PAGE):
    usages = collect_org_usage(transport, skip_orgs=skip_orgs, per_page=per_page)
    for usage in usages:
        print_org_usage(usage)
    total_ais, total_sis = usage_totals(usages)
    print(f"Total AIs: {total_ais}")
    print(f"Total SIs: {total_sis}")
    return total_ais, total_sis


# stale-apps


def stale_cutoff(days: int, now: datetime.datetime = None) -> datetime.datetime:
    if now is None:
        now = datetime.datetime.now(datetime.timezone.utc)
    return (now - datetime.timedelta(days=days)).replace(microsecond=0)


def stale_app_projector(spaces, orgs):
    """Join an app to its space and that space's organization."""

    def project(app):
        space_guid = field(app, "relationships.space.data.guid", UNRESOLVED)
        space = resolve(spaces, space_guid)
        org_guid = field(space, "relationships.organization.data.guid", UNRESOLVED)
        org = resolve(orgs, org_guid)
        return StaleApp(
            app_name=app.get("name"),
            updated_at=app.get("updated_at"),
            created_at=app.get("created_at"),
            space_id=space_guid,
            space_name=field(space, "name", UNRESOLVED),
            org_name=field(org, "name", UNRESOLVED),
            org_guid=org_guid,
        )

    return project


def find_stale_apps(apps, spaces, orgs, cutoff: datetime.datetime) -> list:
    space_lookup = build_lookup(spaces)
    org_lookup = build_lookup(orgs)
    stale = aggregate(
        apps,
        all_of(state_is("STOPPED"), updated_before(cutoff)),
        stale_app_projector(space_lookup, org_lookup),
    )
    return list(stale)


def build_stale_app_report(transport, days: int = 60, per_page: int = DEFAULT_PER_PAGE, now=None) -> StaleAppReport:
    cutoff = stale_cutoff(days, now)
    print(f"Filtering apps stopped and updated before: {format_timestamp(cutoff)}")

    collections = {}
    for name, path in (
        ("apps", "/v3/apps"),
        ("spaces", "/v3/spaces"),
        ("organizations", "/v3/organizations"),
    ):
        print(f"Fetching {name} data...")
        collections[name] = fetch_all(transport.request_page, with_page_size(path, per_page))

    apps = collections["apps"]
    print("Processing applications...")
    rows = find_stale_apps(apps, collections["spaces"], collections["organizations"], cutoff)
    stopped = len(list(aggregate(apps, state_is("STOPPED"))))
    return StaleAppReport(days, cutoff, rows, len(apps), stopped)


def write_stale_apps_csv(rows, output_path: str):
    with open(output_path, "w", newline="") as fp:
        writer = csv.writer(fp)
        writer.writerow(STALE_APP_FIELDS)
        for row in rows:
            writer.writerow([str(value) if value is UNRESOLVED else value for value in row])


def format_columns(rows) -> list:
    """Left-align each column to its widest cell, two spaces apart."""
    rendered = [["" if value is None else str(value) for value in row] for row in rows]
    widths = [max(len(row[idx]) for row in rendered) for idx in range(len(rendered[0]))]
    return [
        "  ".join(cell.ljust(width) for cell, width in zip(row, widths)).rstrip()
        for row in rendered
    ]


def print_stale_app_report(report: StaleAppReport, output_path: str):
    count = len(report.rows)
    days_label = f"older than {report.days} days"
    if count:
        print(f"Found {count} stopped applications {days_label}")
        print(f"Results saved to: {output_path}")
        print()
        print("First few results:")
        for line in format_columns([STALE_APP_FIELDS] + list(report.rows[:PREVIEW_ROWS])):
            print(line)
        if count > PREVIEW_ROWS:
            print(f"... and {count - PREVIEW_ROWS} more")
    else:
        print(f"Found 0 stopped applications {days_label}")
        print(f"Empty CSV file created: {output_path}")

    print()
    print("Processing Summary:")
    print(f"- Total applications processed: {report.total_apps}")
    print(f"- Stopped applications found: {report.stopped_apps}")
    print(f"- Stopped applications {days_label}: {count}")


def stale_apps(transport, output_path: str, days: int = 60, per_page: int = DEFAULT_PER_PAGE, now=None):
    report = build_stale_app_report(transport, days=days, per_page=per_page, now=now)
    write_stale_apps_csv(report.rows, output_path)
    print_stale_app_report(report, output_path)
    return report


# group-audit


def describe_group(uaa, name: str) -> Group:
    """A group whose description can't be read is kept with no description."""
    try:
        return Group(name, uaa.group_description(name))
    except FetchError as exc:
        logger.warning("no description for group %s: %s", name, exc)
        return Group(name, None)


def collect_group_memberships(uaa) -> list:
    """
    Every UAA user with their groups and each group's description.

    The user listing must be fetched in full. A user whose groups can't be
    read is logged and left out; a group whose description can't be read
    is kept without one.
    """
    users = fetch_all(uaa.request_page, 1)
    memberships = []
    for user in users:
        username = user.get("username")
        if not username:
            logger.warning("skipping user %s with no username", user.get("id"))
            continue
        try:
            names = uaa.user_groups(username)
        except FetchError as exc:
            logger.warning("skipping %s: %s", username, exc)
            continue
        memberships.append(GroupMembership(username, [describe_group(uaa, name) for name in names]))
    return memberships


def print_group_membership(membership: GroupMembership):
    print(f"Processing {membership.username}...")
    print(f"Processing {len(membership.groups)} groups...")
    for group in membership.groups:
        print(f"Group: {group.name}")
        print(f"Description: {group.description or ''}")
        print(SEPARATOR)
    print()


def group_audit(uaa) -> list:
    memberships = collect_group_memberships(uaa)
    for membership in memberships:
        print_group_membership(membership)
    return memberships
