"""
Settings for the report commands.

Defaults are overridden by an optional YAML file, which is overridden by
environment variables. The YAML file looks like::

    backend: api
    api: https://api.fr.cloud.gov
    per_page: 1000
    stale_days: 90
    skip_orgs:
      - system
      - sandbox-tests
"""

import json
import logging
import os

import yaml

from .errors import ConfigError

logger = logging.getLogger(__name__)

BACKENDS = ("cf-curl", "api")
DEFAULT_CONFIG_FILE = os.path.join(os.path.expanduser("~"), ".cf-reports.yml")
CF_CLI_CONFIG_FILE = os.path.join(os.path.expanduser("~"), ".cf", "config.json")

DEFAULTS = {
    "backend": "cf-curl",
    "api": None,
    "token": None,
    "per_page": 5000,
    "stale_days": 60,
    "skip_orgs": ["system"],
    "uaa_page_size": 500,
    "verify_ssl": True,
}

ENVIRONMENT = {
    "backend": "CF_REPORTS_BACKEND",
    "api": "CF_API",
    "token": "CF_TOKEN",
    "per_page": "CF_REPORTS_PER_PAGE",
    "stale_days": "CF_REPORTS_STALE_DAYS",
    "skip_orgs": "CF_REPORTS_SKIP_ORGS",
    "uaa_page_size": "CF_REPORTS_UAA_PAGE_SIZE",
}

INTEGER_KEYS = ("per_page", "stale_days", "uaa_page_size")


class Settings:
    def __init__(self, **values):
        for key, default in DEFAULTS.items():
            setattr(self, key, values.get(key, default))

    def __repr__(self):
        shown = {key: getattr(self, key) for key in DEFAULTS if key != "token"}
        return f"Settings({shown})"


def load_yaml_file(path: str) -> dict:
    with open(path, "r", encoding="utf-8") as config_file:
        data = yaml.safe_load(config_file)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping of settings")
    unknown = set(data) - set(DEFAULTS)
    if unknown:
        logger.warning("ignoring unknown settings in %s: %s", path, ", ".join(sorted(unknown)))
    return {key: value for key, value in data.items() if key in DEFAULTS}


def _from_environment(environ) -> dict:
    values = {}
    for key, variable in ENVIRONMENT.items():
        raw = environ.get(variable)
        if raw is None or raw == "":
            continue
        if key == "skip_orgs":
            values[key] = [name.strip() for name in raw.split(",") if name.strip()]
        else:
            values[key] = raw
    return values


def _coerce(values: dict) -> dict:
    for key in INTEGER_KEYS:
        if key not in values:
            continue
        try:
            values[key] = int(values[key])
        except (TypeError, ValueError):
            raise ConfigError(f"{key} must be an integer, got {values[key]!r}")
        if values[key] < 1:
            raise ConfigError(f"{key} must be positive, got {values[key]}")
    if "backend" in values and values["backend"] not in BACKENDS:
        raise ConfigError(
            f"backend must be one of {', '.join(BACKENDS)}, got {values['backend']!r}"
        )
    if "skip_orgs" in values:
        skip_orgs = values["skip_orgs"]
        if skip_orgs is None:
            values["skip_orgs"] = []
        elif isinstance(skip_orgs, str):
            values["skip_orgs"] = [skip_orgs]
        elif isinstance(skip_orgs, list) and all(isinstance(name, str) for name in skip_orgs):
            values["skip_orgs"] = list(skip_orgs)
        else:
            raise ConfigError(f"skip_orgs must be an org name or a list of names, got {skip_orgs!r}")
    if "verify_ssl" in values and not isinstance(values["verify_ssl"], bool):
        raise ConfigError(f"verify_ssl must be true or false, got {values['verify_ssl']!r}")
    return values


def load_settings(path: str = None, environ=None) -> Settings:
    if environ is None:
        environ = os.environ
    values = {}

    config_path = path or environ.get("CF_REPORTS_CONFIG")
    if not config_path and os.path.exists(DEFAULT_CONFIG_FILE):
        config_path = DEFAULT_CONFIG_FILE
    if config_path:
        try:
            values.update(load_yaml_file(config_path))
        except FileNotFoundError:
            raise ConfigError(f"config file {config_path} not found")
        except yaml.YAMLError as exc:
            raise ConfigError(f"unable to parse {config_path}: {exc}")

    values.update(_from_environment(environ))
    settings = Settings(**_coerce(values))
    logger.debug("loaded %r", settings)
    return settings


def load_cf_cli_config(path: str = CF_CLI_CONFIG_FILE) -> dict:
    """Read the cf CLI's own config to discover the API target."""
    try:
        with open(path, "r", encoding="utf-8") as config_file:
            return json.load(config_file)
    except FileNotFoundError:
        raise ConfigError("CF CLI config not found. Run 'cf login' first.")
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Unable to parse CF CLI config: {exc}")
