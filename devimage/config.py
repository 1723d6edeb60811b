"""
config.py

Responsibility: Resolve process-wide settings once, at start-up.

Each setting is taken from (in priority order) an explicit CLI flag, an
environment variable, then a computed default. Nothing else in the package
reads the environment or git state.
"""

from __future__ import annotations

import logging
import os
import platform
import re
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Mapping

from devimage.errors import DevImageError

logger = logging.getLogger(__name__)

DEFAULT_REGISTRY = "ghcr.io"
DEFAULT_VERSIONS_FILE = "versions.json"
DEFAULT_CONTEXT_DIR = "base"
DEFAULT_BUILDER_NAME = "multi-platform"

DEFAULT_BASE_URL = "https://raw.githubusercontent.com/racecarparts/devcontainer/main"
DEFAULT_IMAGE_REPOSITORY = "ghcr.io/racecarparts/devcontainer"
DEFAULT_OUTPUT_DIR = ".devcontainer"

_ARCH_ALIASES = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
}

_REMOTE_RE = re.compile(r"[:/]([^/:]+/[^/]+?)(?:\.git)?/?$")


class ConfigError(DevImageError):
    pass


@dataclass(frozen=True)
class BuildConfig:
    registry: str
    repository: str
    versions_file: Path
    context_dir: Path
    dockerfile: Path
    builder_name: str = DEFAULT_BUILDER_NAME

    @property
    def image_repository(self) -> str:
        return f"{self.registry}/{self.repository}"


@dataclass(frozen=True)
class InstallConfig:
    base_url: str
    image_repository: str
    output_dir: Path


def parse_remote_repository(url: str) -> str | None:
    """
    Turn a git remote URL into a lowercased `owner/name` repository path.

    Handles scp-like (`git@host:Owner/Repo.git`) and URL forms
    (`https://host/Owner/Repo(.git)`).
    """
    m = _REMOTE_RE.search((url or "").strip())
    if not m:
        return None
    return m.group(1).lower()


def git_remote_url(cwd: str | Path | None = None) -> str | None:
    """
    Return `remote.origin.url` for the repository at cwd, or None.
    """
    try:
        p = subprocess.run(
            ["git", "config", "--get", "remote.origin.url"],
            cwd=str(cwd) if cwd is not None else None,
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
            text=True,
            check=False,
        )
    except OSError as e:
        logger.debug("git not available: %s", e)
        return None
    url = p.stdout.strip()
    return url or None


def git_toplevel(cwd: str | Path | None = None) -> Path | None:
    """
    Return the top-level directory of the git checkout containing cwd, or None.
    """
    try:
        p = subprocess.run(
            ["git", "rev-parse", "--show-toplevel"],
            cwd=str(cwd) if cwd is not None else None,
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
            text=True,
            check=False,
        )
    except OSError as e:
        logger.debug("git not available: %s", e)
        return None
    top = p.stdout.strip()
    return Path(top) if p.returncode == 0 and top else None


def find_project_root(
    start: str | Path | None = None,
    toplevel_lookup: Callable[[Path], Path | None] = git_toplevel,
) -> Path:
    """
    The nearest directory at or above start that holds `versions.json`,
    else the git top-level directory, else start itself.
    """
    here = Path(start or Path.cwd()).resolve()
    for candidate in (here, *here.parents):
        if (candidate / DEFAULT_VERSIONS_FILE).is_file():
            return candidate
    top = toplevel_lookup(here)
    return top if top is not None else here


def host_platform(machine: str | None = None) -> str:
    """
    The `linux/<arch>` platform string for the current (or given) machine.
    """
    raw = (machine or platform.machine() or "").lower()
    return f"linux/{_ARCH_ALIASES.get(raw, raw)}"


def resolve_build_config(
    *,
    registry: str | None = None,
    repository: str | None = None,
    versions_file: str | Path | None = None,
    context_dir: str | Path | None = None,
    dockerfile: str | Path | None = None,
    root: str | Path | None = None,
    env: Mapping[str, str] | None = None,
    remote_lookup: Callable[[], str | None] = git_remote_url,
) -> BuildConfig:
    environ = os.environ if env is None else env

    resolved_registry = registry or environ.get("REGISTRY") or DEFAULT_REGISTRY

    resolved_repository = repository or environ.get("REPOSITORY")
    if not resolved_repository:
        remote = remote_lookup()
        resolved_repository = parse_remote_repository(remote) if remote else None
    if not resolved_repository:
        raise ConfigError(
            "Repository name could not be determined (use --repo, set REPOSITORY, or add a git origin remote)"
        )

    # Defaults live next to each other at the project root; explicit paths are used as given.
    base = Path(root) if root is not None else None
    if base is None and (not versions_file or not context_dir):
        base = find_project_root()

    ctx = Path(context_dir) if context_dir else base / DEFAULT_CONTEXT_DIR
    return BuildConfig(
        registry=resolved_registry.rstrip("/"),
        repository=resolved_repository.strip("/"),
        versions_file=Path(versions_file) if versions_file else base / DEFAULT_VERSIONS_FILE,
        context_dir=ctx,
        dockerfile=Path(dockerfile) if dockerfile else ctx / "Dockerfile",
    )


def resolve_install_config(
    *,
    base_url: str | None = None,
    image_repository: str | None = None,
    output_dir: str | Path | None = None,
    env: Mapping[str, str] | None = None,
) -> InstallConfig:
    environ = os.environ if env is None else env
    return InstallConfig(
        base_url=base_url or environ.get("DEVIMAGE_BASE_URL") or DEFAULT_BASE_URL,
        image_repository=image_repository or environ.get("DEVIMAGE_IMAGE") or DEFAULT_IMAGE_REPOSITORY,
        output_dir=Path(output_dir or DEFAULT_OUTPUT_DIR),
    )
