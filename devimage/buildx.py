"""
buildx.py

Responsibility: Isolate all `docker buildx` interaction.

This module must be the only place that:
- Constructs docker command lines
- Runs docker as a subprocess
- Interprets docker exit statuses

Success or failure is reported solely through the process exit status.
"""

from __future__ import annotations

import logging
import shlex
import subprocess
from pathlib import Path
from typing import Any, Callable, Sequence

from devimage.config import DEFAULT_BUILDER_NAME
from devimage.errors import DevImageError

logger = logging.getLogger(__name__)

BUILDER_PLATFORMS = "linux/amd64,linux/arm64"


class BuildxError(DevImageError):
    def __init__(self, message: str, returncode: int | None = None, output: str = "") -> None:
        super().__init__(message)
        self.returncode = returncode
        self.output = output


def _fmt_argv(argv: Sequence[str]) -> str:
    return " ".join(shlex.quote(a) for a in argv)


def build_argv(
    *,
    go_version: str,
    python_version: str,
    tags: Sequence[str],
    platform: str,
    push: bool,
    dockerfile: str | Path,
    context_dir: str | Path,
    docker: str = "docker",
) -> list[str]:
    argv = [
        docker,
        "buildx",
        "build",
        "--build-arg",
        f"GO_VERSION={go_version}",
        "--build-arg",
        f"PYTHON_VERSION={python_version}",
        "--file",
        str(dockerfile),
    ]
    for tag in tags:
        argv += ["--tag", tag]
    argv += ["--platform", platform, "--push" if push else "--load", str(context_dir)]
    return argv


class Buildx:
    def __init__(
        self,
        docker: str = "docker",
        builder_name: str = DEFAULT_BUILDER_NAME,
        runner: Callable[..., Any] = subprocess.run,
    ) -> None:
        self.docker = docker
        self.builder_name = builder_name
        self._runner = runner

    def _quiet(self, *args: str) -> bool:
        argv = [self.docker, "buildx", *args]
        logger.debug("CMD %s", _fmt_argv(argv))
        try:
            p = self._runner(argv, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL, check=False)
        except OSError as e:
            logger.debug("Failed to run %s: %s", self.docker, e)
            return False
        return p.returncode == 0

    def ensure_available(self) -> None:
        if not self._quiet("version"):
            raise BuildxError("docker buildx is required but not available; install Docker with buildx support")

    def ensure_builder(self) -> str:
        """
        Make the named multi-platform builder current, creating it if needed.
        Falls back to the `default` builder. Returns the builder in use.
        """
        if not self._quiet("inspect", self.builder_name):
            logger.info("Creating buildx builder '%s'...", self.builder_name)
            if not self._quiet("create", "--name", self.builder_name, "--use", "--platform", BUILDER_PLATFORMS):
                logger.warning("Could not create buildx builder '%s'", self.builder_name)

        if self._quiet("use", self.builder_name):
            return self.builder_name
        if self._quiet("use", "default"):
            logger.warning("Using the default buildx builder")
            return "default"
        raise BuildxError(f"Could not select buildx builder '{self.builder_name}' or 'default'")

    def build(self, argv: Sequence[str], *, capture: bool = False) -> str:
        """
        Run a `buildx build` command line. With capture=True, combined
        stdout/stderr is returned instead of streamed to the terminal.
        """
        argv_list = list(argv)
        logger.info("CMD %s", _fmt_argv(argv_list))
        kwargs: dict[str, Any] = {"check": False, "text": True}
        if capture:
            kwargs.update(stdout=subprocess.PIPE, stderr=subprocess.STDOUT)
        try:
            p = self._runner(argv_list, **kwargs)
        except OSError as e:
            raise BuildxError(f"Failed to run {self.docker}: {e}") from e

        output = (p.stdout or "") if capture else ""
        if p.returncode != 0:
            raise BuildxError(
                f"Command failed ({p.returncode}): {_fmt_argv(argv_list)}",
                returncode=p.returncode,
                output=output,
            )
        return output
