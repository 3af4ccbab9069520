"""Constants used in the project."""

import logging
import os
from enum import Enum
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    CONNECTION_ERROR = 2
    RESOLUTION_ERROR = 3
    COMMAND_ERROR = 4


class DependencyKinds(Enum):
    """Specifier kinds supported by the program.

    Args:
        Enum (string): Specifier protocols without the trailing colon.
    """

    JSR = "jsr"
    NPM = "npm"
    HTTP = "http"
    HTTPS = "https"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    REGISTRY_URL_NPM = "https://registry.npmjs.org/"
    REGISTRY_URL_JSR = "https://jsr.io/"
    API_URL_JSR = "https://api.jsr.io/"
    SUPPORTED_KINDS = [
        DependencyKinds.JSR.value,
        DependencyKinds.NPM.value,
        DependencyKinds.HTTP.value,
        DependencyKinds.HTTPS.value,
    ]
    CONFIG_FILES = ["deno.json", "deno.jsonc"]
    LOCKFILE_NAME = "deno.lock"
    LOCKFILE_VERSION = "3"
    MODULE_EXTENSIONS = [".ts", ".tsx", ".mts", ".js", ".jsx", ".mjs"]
    LOG_FORMAT = "[%(levelname)s] %(message)s"
    ENV_LOG_LEVEL = "DEPBUMP_LOG_LEVEL"
    ENV_CONFIG = "DEPBUMP_CONFIG"

    # HTTP
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    HTTP_RETRY_MAX = 3
    HTTP_RETRY_BASE_DELAY_SEC = 0.3
    HTTP_MAX_CONCURRENCY = 16
    HTTP_MAX_REDIRECTS = 10
    USER_AGENT = "depbump/0.1.0"

    # Commits
    COMMIT_SUBJECT_MAX = 50
    COMMIT_PREFIX = ""
    COMMIT_PREFIX_LOCK = ""


# Mapping of YAML "section.key" to Constants attribute and expected type.
_CONFIG_KEYS = {
    ("http", "timeout"): ("REQUEST_TIMEOUT", (int, float)),
    ("http", "retry_max"): ("HTTP_RETRY_MAX", int),
    ("http", "retry_base_delay_sec"): ("HTTP_RETRY_BASE_DELAY_SEC", (int, float)),
    ("http", "max_concurrency"): ("HTTP_MAX_CONCURRENCY", int),
    ("http", "user_agent"): ("USER_AGENT", str),
    ("registry", "npm_url"): ("REGISTRY_URL_NPM", str),
    ("registry", "jsr_url"): ("REGISTRY_URL_JSR", str),
    ("registry", "jsr_api_url"): ("API_URL_JSR", str),
    ("commit", "subject_max"): ("COMMIT_SUBJECT_MAX", int),
    ("commit", "prefix"): ("COMMIT_PREFIX", str),
    ("commit", "prefix_lock"): ("COMMIT_PREFIX_LOCK", str),
}


def _candidate_config_paths(path: Optional[str] = None):
    if path:
        yield path
        return
    env_path = os.environ.get(Constants.ENV_CONFIG)
    if env_path:
        yield env_path
    yield "depbump.yml"
    yield "depbump.yaml"
    xdg = os.environ.get("XDG_CONFIG_HOME") or os.path.join(os.path.expanduser("~"), ".config")
    yield os.path.join(xdg, "depbump", "depbump.yml")


def _load_yaml_config(path: Optional[str] = None) -> Dict[str, Any]:
    """Load the first YAML configuration document found.

    Args:
        path: Explicit path; when given, no other locations are searched.

    Returns:
        dict: Parsed configuration, empty when no file exists.

    Raises:
        ValueError: If the document is not a mapping.
    """
    for candidate in _candidate_config_paths(path):
        if not os.path.isfile(candidate):
            continue
        with open(candidate, "r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Configuration in {candidate} must be a mapping")
        logger.debug("Loaded configuration from %s", candidate)
        return data
    return {}


def apply_config(cfg: Dict[str, Any]) -> None:
    """Copy recognised configuration values onto Constants."""
    for (section, key), (attr, expected) in _CONFIG_KEYS.items():
        block = cfg.get(section)
        if not isinstance(block, dict) or key not in block:
            continue
        value = block[key]
        if isinstance(value, bool) or not isinstance(value, expected):
            logger.warning("Ignoring invalid config value %s.%s=%r", section, key, value)
            continue
        setattr(Constants, attr, value)


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """Load YAML configuration and apply it to Constants."""
    cfg = _load_yaml_config(path)
    apply_config(cfg)
    return cfg
