"""Build metadata reported by the health endpoint.

APP_VERSION and GIT_COMMIT come from environment variables set in CI.
Outside CI the version falls back to the installed distribution metadata
and the commit to the local git checkout.
"""

import os
import subprocess
from importlib import metadata

DISTRIBUTION_NAME = "tablesync"


def _installed_version() -> str:
    try:
        return metadata.version(DISTRIBUTION_NAME)
    except metadata.PackageNotFoundError:
        return "dev"


def _git_short_sha() -> str:
    """Read the short commit SHA from git, or "dev" outside a checkout."""
    try:
        return subprocess.check_output(
            ["git", "rev-parse", "--short", "HEAD"],  # noqa: S607
            text=True,
            stderr=subprocess.DEVNULL,
        ).strip()
    except (FileNotFoundError, subprocess.CalledProcessError):
        return "dev"


APP_VERSION: str = os.environ.get("APP_VERSION") or _installed_version()
GIT_COMMIT: str = os.environ.get("GIT_COMMIT") or _git_short_sha()
