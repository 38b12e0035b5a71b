"""
UAA users and groups via the ``uaac`` CLI.

``uaac users`` prints YAML, so the user listing is parsed with
``yaml.safe_load`` and paged with ``--start``/``--count``. ``uaac user get``
and ``uaac group get`` print nested listings with repeated keys that aren't
valid YAML; the ``display:`` and ``description:`` lines are scraped from
those instead. All of the scraping lives in this module.
"""

import functools
import logging
import re
import shutil
import subprocess

import yaml

from .errors import ConnectivityError, FetchError
from .fetcher import Page

logger = logging.getLogger(__name__)

DISPLAY_LINE = re.compile(r"^\s*display:\s*(\S.*?)\s*$", re.MULTILINE)
DESCRIPTION_LINE = re.compile(r"^\s*description:[ \t]*(.*?)\s*$", re.MULTILINE)


def parse_user_listing(output: str, start: int) -> Page:
    """
    Turn one ``uaac users`` page into a ``Page``.

    The next token is the start index of the following page, or ``None``
    once ``totalresults`` is reached.
    """
    try:
        data = yaml.safe_load(output)
    except yaml.YAMLError as exc:
        raise FetchError(f"uaac users --start {start}", f"unparseable listing: {exc}")
    if not isinstance(data, dict):
        raise FetchError(f"uaac users --start {start}", "listing is not a mapping")

    resources = data.get("resources") or []
    total = int(data.get("totalresults", 0))
    first = int(data.get("startindex", start))
    per_page = int(data.get("itemsperpage", len(resources)))

    next_start = first + per_page
    if per_page < 1 or not resources or next_start > total:
        next_start = None
    return Page(resources, next_start)


def parse_group_displays(output: str) -> list:
    return DISPLAY_LINE.findall(output)


def parse_group_description(output: str):
    match = DESCRIPTION_LINE.search(output)
    if match is None:
        return None
    return match.group(1)


class UAAC:
    def __init__(self, page_size: int = 500):
        self.page_size = page_size
        self.group_description = functools.lru_cache(maxsize=None)(self._group_description)

    def _run(self, command: list) -> str:
        try:
            output = subprocess.run(command, capture_output=True, check=True, encoding="utf-8")
        except FileNotFoundError:
            raise ConnectivityError("uaac is required but not installed. Run `gem install cf-uaac`.")
        except subprocess.CalledProcessError as exc:
            detail = (exc.stderr or exc.stdout or "").strip()
            raise FetchError(" ".join(command), detail or f"exited with status {exc.returncode}")
        return output.stdout

    def request_page(self, start) -> Page:
        start = int(start)
        output = self._run(
            [
                "uaac",
                "users",
                "--attributes",
                "id",
                "--attributes",
                "username",
                "--start",
                str(start),
                "--count",
                str(self.page_size),
            ]
        )
        return parse_user_listing(output, start)

    def user_groups(self, username: str) -> list:
        """Display names of the groups ``username`` belongs to."""
        return parse_group_displays(self._run(["uaac", "user", "get", username]))

    def _group_description(self, group: str):
        return parse_group_description(self._run(["uaac", "group", "get", group]))

    def check_connectivity(self):
        if shutil.which("uaac") is None:
            raise ConnectivityError("uaac is required but not installed. Run `gem install cf-uaac`.")
