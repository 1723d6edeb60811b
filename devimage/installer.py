"""
installer.py

Responsibility: Interactive `.devcontainer` setup for a project directory.

Flow:
1) Confirm before overwriting an existing output directory
2) Fetch the version matrix and let the user pick one combination
3) Prompt for project name and git identity
4) Fetch and render the devcontainer.json template, then write it
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from devimage.config import InstallConfig
from devimage.errors import DevImageError
from devimage.remote import RemoteClient
from devimage.renderer import DevcontainerValues, render_devcontainer, write_devcontainer
from devimage.selector import format_choices, select_entry
from devimage.versions import MatrixEntry

logger = logging.getLogger(__name__)

Prompt = Callable[[str], str]


class InstallError(DevImageError):
    pass


@dataclass(frozen=True)
class InstallResult:
    entry: MatrixEntry
    values: DevcontainerValues
    path: Path


def _banner(title: str) -> None:
    print("")
    print("==========================================")
    print(title)
    print("==========================================")
    print("")


def _guarded(prompt: Prompt) -> Prompt:
    """Wrap a prompt so closed or exhausted input becomes an InstallError."""

    def ask(question: str) -> str:
        try:
            return prompt(question)
        except EOFError as e:
            print("")
            raise InstallError(f"No input available for prompt: {question.strip()}") from e

    return ask


def _confirm_overwrite(output_dir: Path, prompt: Prompt) -> None:
    print(f"{output_dir} directory already exists!")
    reply = prompt("Overwrite? (y/N): ").strip()
    if reply not in {"y", "Y"}:
        raise InstallError("Aborted.")


def run_install(
    config: InstallConfig,
    *,
    client: RemoteClient,
    prompt: Prompt | None = None,
    cwd: str | Path | None = None,
) -> InstallResult:
    ask = _guarded(prompt or input)
    workdir = Path(cwd) if cwd is not None else Path.cwd()
    output_dir = config.output_dir if config.output_dir.is_absolute() else workdir / config.output_dir

    _banner("Dev Container Setup")

    if output_dir.exists() and not output_dir.is_dir():
        raise InstallError(f"{output_dir} exists and is not a directory")
    if output_dir.is_dir():
        _confirm_overwrite(config.output_dir, ask)

    print("Fetching available versions...")
    matrix = client.fetch_versions()

    print("")
    print("Available Go + Python combinations:")
    print("")
    for line in format_choices(matrix):
        print(line)
    print("")

    entry = select_entry(matrix, ask(f"Select version (1-{len(matrix)}): "))
    image = f"{config.image_repository}:{entry.tag_suffix}"

    print("")
    print(f"Selected: {entry.label}")
    print(f"Image: {image}")
    print("")

    default_name = workdir.resolve().name
    project_name = ask(f"Project name (default: {default_name}): ").strip() or default_name

    print("")
    git_name = ask("Enter your Git name (e.g., John Doe): ").strip()
    git_email = ask("Enter your Git email (e.g., john@example.com): ").strip()
    if not git_name or not git_email:
        raise InstallError("Git name and email are required")

    print("")
    print("Downloading devcontainer.json...")
    template = client.fetch_template()

    values = DevcontainerValues(project_name=project_name, image=image, git_name=git_name, git_email=git_email)
    rendered = render_devcontainer(template, values)
    path = write_devcontainer(rendered, output_dir)
    logger.debug("Wrote %s", path)

    _banner("Setup Complete!")
    print(f"Project: {project_name}")
    print(f"Created: {path}")
    print(f"Image: {image}")
    print(f"Git: {git_name} <{git_email}>")
    print("")
    print("Next steps:")
    print("  1. Open this folder in VS Code")
    print("  2. When prompted, click 'Reopen in Container'")
    print("  3. Or press Cmd/Ctrl+Shift+P -> 'Dev Containers: Reopen in Container'")
    print("")
    print(f"Customize {path} if needed:")
    print("  - Uncomment mounts to use your host .gitconfig")
    print("  - Add custom post-create scripts")
    print("  - Modify VS Code settings and extensions")
    print("")

    return InstallResult(entry=entry, values=values, path=path)
