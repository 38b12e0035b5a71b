"""
Cloud Foundry v3 API transports.

``CFCurl`` shells out to ``cf curl`` and relies on the CLI's login.
``CFApi`` talks HTTP directly with ``requests`` and a bearer token.
Both turn a response into a ``Page`` for ``fetch_all``.
"""

import json
import logging
import shutil
import subprocess
from urllib.parse import urljoin, urlparse

import requests

from .config import load_cf_cli_config
from .errors import ConnectivityError, FetchError
from .fetcher import Page

logger = logging.getLogger(__name__)


def relative_path(href: str) -> str:
    """Strip scheme and host from a next link so ``cf curl`` can follow it."""
    parsed = urlparse(href)
    if parsed.query:
        return f"{parsed.path}?{parsed.query}"
    return parsed.path


def next_href(results: dict):
    pagination = results.get("pagination") or {}
    next_page = pagination.get("next")
    if not next_page:
        return None
    return next_page.get("href")


def results_handler(path: str, body: str) -> dict:
    """Decode a CF response body, raising ``FetchError`` for CF API errors."""
    try:
        results = json.loads(body)
    except (TypeError, ValueError) as exc:
        raise FetchError(path, f"response is not JSON: {exc}")

    if isinstance(results, dict) and "errors" in results:
        details = "; ".join(
            error.get("detail", str(error)) if isinstance(error, dict) else str(error)
            for error in results["errors"]
        )
        raise FetchError(path, details)

    if not isinstance(results, dict):
        raise FetchError(path, "response is not a JSON object")
    return results


class CFTransport:
    def get(self, path: str) -> dict:
        raise NotImplementedError

    def follow(self, href: str) -> str:
        return href

    def request_page(self, token) -> Page:
        results = self.get(token)
        if "resources" not in results:
            raise FetchError(token, "response has no resources")
        href = next_href(results)
        return Page(results["resources"], self.follow(href) if href else None)

    def check_connectivity(self):
        raise NotImplementedError


class CFCurl(CFTransport):
    def get(self, path: str) -> dict:
        command = ["cf", "curl", path]
        try:
            output = subprocess.run(command, capture_output=True, check=True, encoding="utf-8")
        except FileNotFoundError:
            raise ConnectivityError("cf CLI is required but not installed.")
        except subprocess.CalledProcessError as exc:
            detail = (exc.stderr or exc.stdout or "").strip()
            raise FetchError(path, detail or f"cf curl exited with status {exc.returncode}")
        return results_handler(path, output.stdout)

    def follow(self, href: str) -> str:
        return relative_path(href)

    def check_connectivity(self):
        if shutil.which("cf") is None:
            raise ConnectivityError("cf CLI is required but not installed.")
        try:
            self.get("/v3/info")
        except FetchError as exc:
            raise ConnectivityError(
                f"Unable to access CF API ({exc.cause}). Please ensure you're logged in with 'cf login'"
            )


def oauth_token() -> str:
    """Ask the cf CLI for a fresh token."""
    try:
        output = subprocess.run(["cf", "oauth-token"], capture_output=True, check=True, encoding="utf-8")
    except FileNotFoundError:
        raise ConnectivityError("Need CF_TOKEN or a logged-in `cf` CLI")
    except subprocess.CalledProcessError as exc:
        raise ConnectivityError(f"Error retrieving CF access token: {(exc.stderr or '').strip()}")
    token = output.stdout.strip()
    return token if token.lower().startswith("bearer ") else f"bearer {token}"


class CFApi(CFTransport):
    """Reuses one session and token across requests; refreshes the token once on a 401."""

    def __init__(self, api: str, token: str = None, verify: bool = True, timeout: int = 30):
        self.base_url = api.rstrip("/") + "/"
        self.session = requests.Session()
        self.session.verify = verify
        self.session.headers["Accept"] = "application/json"
        self.timeout = timeout
        self._static_token = token
        self._set_token(token or oauth_token())

    @classmethod
    def from_settings(cls, settings):
        api = settings.api
        verify = settings.verify_ssl
        if not api:
            cf_config = load_cf_cli_config()
            api = cf_config.get("Target")
            if not api:
                raise ConnectivityError("Cloud Foundry API target not configured. Run 'cf target'.")
            verify = verify and not cf_config.get("SSLDisabled")
        return cls(api, token=settings.token, verify=verify)

    def _set_token(self, token: str):
        if not token.lower().startswith("bearer "):
            token = f"bearer {token}"
        self.session.headers["Authorization"] = token

    def _url(self, path: str) -> str:
        return urljoin(self.base_url, path.lstrip("/")) if not urlparse(path).scheme else path

    def get(self, path: str, retry: bool = True) -> dict:
        try:
            response = self.session.get(self._url(path), timeout=self.timeout)
        except requests.RequestException as exc:
            raise FetchError(path, exc)
        if response.status_code == 401 and retry and not self._static_token:
            logger.debug("token rejected, fetching a new one")
            self._set_token(oauth_token())
            return self.get(path, retry=False)
        try:
            response.raise_for_status()
        except requests.HTTPError as exc:
            raise FetchError(path, exc)
        return results_handler(path, response.text)

    def check_connectivity(self):
        try:
            self.get("/v3/info")
        except FetchError as exc:
            raise ConnectivityError(f"Unable to access CF API at {self.base_url}: {exc.cause}")


def transport_from_settings(settings) -> CFTransport:
    if settings.backend == "api":
        return CFApi.from_settings(settings)
    return CFCurl()
