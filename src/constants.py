"""Constants used in the project."""

import logging
import os
from enum import Enum

logger = logging.getLogger(__name__)


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    CONNECTION_ERROR = 2
    UNRESOLVED = 3
    INVALID_INPUT = 4


class ManifestFiles(Enum):
    """Manifest file names recognized when scanning a package directory.

    Args:
        Enum (string): Manifest file names, in scan order.
    """

    DENO_JSON = "deno.json"
    DENO_JSONC = "deno.jsonc"
    JSR_JSON = "jsr.json"
    JSR_JSONC = "jsr.jsonc"
    PACKAGE_JSON = "package.json"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    LOG_FORMAT = "[%(levelname)s] %(message)s"
    LOG_LEVEL = "INFO"
    ENV_LOG_LEVEL = "ALIASGATE_LOG_LEVEL"
    ENV_CONFIG = "ALIASGATE_CONFIG"
    DEFAULT_CONFIG_PATHS = [
        "aliasgate.yml",
        "aliasgate.yaml",
        os.path.join("~", ".config", "aliasgate", "aliasgate.yml"),
    ]

    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    HTTP_RETRY_MAX = 3
    HTTP_RETRY_BASE_DELAY_SEC = 0.3
    USER_AGENT = "aliasgate/0.1"

    MANIFEST_SCAN_ORDER = [member.value for member in ManifestFiles]
    # How many directories above an importer are searched for its manifest
    # and for enclosing workspace roots.
    WORKSPACE_SEARCH_DEPTH = 8
    # Upper bound on alias -> registry -> alias chains.
    MAX_ALIAS_HOPS = 8
    ERROR_CHECK = True

    REGISTRIES = {
        "jsr": {
            "host": "jsr.io",
            "listing": "https://{host}/{name}/meta.json",
            "manifest": "https://{host}/{name}/{version}/{filename}",
            "manifest_files": [
                ManifestFiles.DENO_JSON.value,
                ManifestFiles.DENO_JSONC.value,
                ManifestFiles.JSR_JSON.value,
                ManifestFiles.JSR_JSONC.value,
            ],
            "name_segments": 2,
        },
        "npm": {
            "host": "registry.npmjs.org",
            "listing": "https://{host}/{name}",
            "manifest": "https://unpkg.com/{name}@{version}/{filename}",
            "manifest_files": [ManifestFiles.PACKAGE_JSON.value],
            "name_segments": 1,
        },
    }


def _config_candidates(explicit_path=None):
    """Yield config paths in precedence order."""
    if explicit_path:
        yield explicit_path
    env_path = os.environ.get(Constants.ENV_CONFIG)
    if env_path:
        yield env_path
    for path in Constants.DEFAULT_CONFIG_PATHS:
        yield os.path.expanduser(path)


def _load_yaml_config(explicit_path=None):
    """Return the first YAML config mapping found, or an empty dict.

    An explicit path that does not exist is reported; missing default
    locations are silently skipped.
    """
    import yaml  # pylint: disable=import-outside-toplevel

    for path in _config_candidates(explicit_path):
        if not os.path.isfile(path):
            if path == explicit_path:
                logger.warning("Config file not found: %s", path)
            continue
        with open(path, "r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
        if not isinstance(data, dict):
            logger.warning("Ignoring config %s: top-level value is not a mapping", path)
            return {}
        logger.debug("Loaded config from %s", path)
        return data
    return {}


def apply_config(cfg):
    """Apply a parsed config mapping over the Constants defaults."""
    logging_cfg = cfg.get("logging") or {}
    if "level" in logging_cfg:
        Constants.LOG_LEVEL = str(logging_cfg["level"]).upper()

    http = cfg.get("http") or {}
    if "timeout" in http:
        Constants.REQUEST_TIMEOUT = int(http["timeout"])
    if "retries" in http:
        Constants.HTTP_RETRY_MAX = max(1, int(http["retries"]))
    if "user_agent" in http:
        Constants.USER_AGENT = str(http["user_agent"])

    resolution = cfg.get("resolution") or {}
    if "error_check" in resolution:
        Constants.ERROR_CHECK = bool(resolution["error_check"])
    if "workspace_search_depth" in resolution:
        Constants.WORKSPACE_SEARCH_DEPTH = int(resolution["workspace_search_depth"])
    if "max_alias_hops" in resolution:
        Constants.MAX_ALIAS_HOPS = int(resolution["max_alias_hops"])

    registries = cfg.get("registries") or {}
    for scheme, overrides in registries.items():
        merged = dict(Constants.REGISTRIES.get(scheme, {}))
        merged.update(overrides or {})
        Constants.REGISTRIES[scheme] = merged


def load_config(explicit_path=None):
    """Load YAML config (if any) and apply it. Returns the raw mapping."""
    cfg = _load_yaml_config(explicit_path)
    if cfg:
        apply_config(cfg)
    return cfg
