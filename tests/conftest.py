from __future__ import annotations

import json
import subprocess
import threading
from pathlib import Path

import pytest

from devimage.versions import parse_versions

MATRIX = {
    "combinations": [
        {"go_version": "1.23.2", "python_version": "3.12.7", "platforms": ["linux/amd64", "linux/arm64"]},
        {"go_version": "1.23.2", "python_version": "3.11.10", "platforms": ["linux/amd64", "linux/arm64"]},
        {"go_version": "1.22.8", "python_version": "3.12.7", "platforms": ["linux/amd64"]},
    ]
}

TEMPLATE = """{
  "name": "Go + Python Development Container",
  "image": "ghcr.io/racecarparts/devcontainer:go1.23.2-py3.12.7",
  "containerEnv": {
    "GIT_USER_NAME": "Your Name",
    "GIT_USER_EMAIL": "your.email@example.com"
  },
  // "mounts": ["source=${localEnv:HOME}/.gitconfig,target=/home/vscode/.gitconfig,type=bind"],
  "postCreateCommand": "echo ready"
}
"""

IMAGE_REPOSITORY = "ghcr.io/racecarparts/devcontainer"


class FakeRunner:
    """
    Stands in for subprocess.run. `fail_on` maps a substring of the joined
    argv to the exit status that command should return.
    """

    def __init__(self, fail_on: dict[str, int] | None = None, stdout: str = "") -> None:
        self.fail_on = dict(fail_on or {})
        self.stdout = stdout
        self.calls: list[list[str]] = []
        self._lock = threading.Lock()

    def __call__(self, argv, **kwargs):
        argv = list(argv)
        with self._lock:
            self.calls.append(argv)
        joined = " ".join(argv)
        code = 0
        for needle, rc in self.fail_on.items():
            if needle in joined:
                code = rc
        captured = kwargs.get("stdout") == subprocess.PIPE
        return subprocess.CompletedProcess(argv, code, stdout=self.stdout if captured else None)

    @property
    def build_calls(self) -> list[list[str]]:
        return [c for c in self.calls if c[1:3] == ["buildx", "build"]]


@pytest.fixture
def matrix_text() -> str:
    return json.dumps(MATRIX)


@pytest.fixture
def matrix(matrix_text):
    return parse_versions(matrix_text)


@pytest.fixture
def versions_file(tmp_path: Path, matrix_text: str) -> Path:
    path = tmp_path / "versions.json"
    path.write_text(matrix_text, encoding="utf-8")
    return path


@pytest.fixture
def template_text() -> str:
    return TEMPLATE
