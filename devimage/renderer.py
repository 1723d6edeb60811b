"""
renderer.py

Responsibility: Render the `devcontainer.json` template with project values.

Rules:
- If Jinja2 markers are present, render with Jinja2. Undefined names are errors,
  values are JSON-escaped, and a default value left in the output is an error.
- Otherwise replace the four default values shipped in the template:
  the container name, the image reference, and the two git identity fields.
- Every default value must be present before anything is replaced; a template
  whose defaults have drifted is rejected instead of being written unchanged.
- Text outside the replaced values is preserved byte-for-byte, and all four
  replacements are applied in one pass over the template.

This module intentionally does NOT know about HTTP, prompts, or CLI parsing.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from pathlib import Path

from jinja2 import Environment, StrictUndefined

from devimage.config import DEFAULT_IMAGE_REPOSITORY
from devimage.errors import DevImageError

DEFAULT_NAME = "Go + Python Development Container"
DEFAULT_GIT_NAME = "Your Name"
DEFAULT_GIT_EMAIL = "your.email@example.com"

DEVCONTAINER_FILENAME = "devcontainer.json"


class RenderError(DevImageError):
    pass


@dataclass(frozen=True)
class DevcontainerValues:
    project_name: str
    image: str
    git_name: str
    git_email: str

    def as_context(self) -> dict[str, str]:
        return {
            "project_name": self.project_name,
            "image": self.image,
            "git_name": self.git_name,
            "git_email": self.git_email,
        }


def _json_escape(value: str) -> str:
    # Content of a JSON string literal, without the surrounding quotes.
    return json.dumps(value, ensure_ascii=False)[1:-1]


def _has_jinja_markers(text: str) -> bool:
    return ("{{" in text) or ("{%" in text) or ("{#" in text)


def _field_pattern(key: str, default: str) -> re.Pattern[str]:
    return re.compile(rf'("{re.escape(key)}"\s*:\s*"){re.escape(default)}(")')


IMAGE_PATTERN = re.compile(rf"{re.escape(DEFAULT_IMAGE_REPOSITORY)}:go[0-9.]*-py[0-9.]*")

MARKERS: list[tuple[str, re.Pattern[str]]] = [
    ("name", _field_pattern("name", DEFAULT_NAME)),
    ("image", IMAGE_PATTERN),
    ("GIT_USER_NAME", _field_pattern("GIT_USER_NAME", DEFAULT_GIT_NAME)),
    ("GIT_USER_EMAIL", _field_pattern("GIT_USER_EMAIL", DEFAULT_GIT_EMAIL)),
]


def missing_markers(template: str) -> list[str]:
    """
    Names of the default values that are absent from `template`.
    """
    return [field for field, pattern in MARKERS if not pattern.search(template)]


def _marker_value(m: re.Match[str]) -> str:
    return m.string[m.end(1) : m.start(2)] if m.re.groups else m.group(0)


def remaining_markers(text: str, injected: dict[str, str] | None = None) -> list[str]:
    """
    Names of the default values still present in `text`. A default that is
    exactly the value injected for that field does not count.
    """
    injected = injected or {}
    return [
        field
        for field, pattern in MARKERS
        if any(_marker_value(m) != injected.get(field) for m in pattern.finditer(text))
    ]


def _replacements(values: DevcontainerValues) -> dict[str, str]:
    return {
        "name": _json_escape(values.project_name),
        "image": _json_escape(values.image),
        "GIT_USER_NAME": _json_escape(values.git_name),
        "GIT_USER_EMAIL": _json_escape(values.git_email),
    }


def _render_jinja(template: str, values: DevcontainerValues) -> str:
    env = Environment(
        autoescape=False,
        undefined=StrictUndefined,
        keep_trailing_newline=True,
    )
    context = {key: _json_escape(value) for key, value in values.as_context().items()}
    try:
        out = env.from_string(template).render(**context)
    except Exception as e:  # noqa: BLE001 - surface as RenderError
        raise RenderError(f"Failed rendering {DEVCONTAINER_FILENAME} template: {e}") from e

    leftover = remaining_markers(out, _replacements(values))
    if leftover:
        raise RenderError(
            f"Rendered {DEVCONTAINER_FILENAME} still carries default values for: {', '.join(leftover)}"
        )
    if not any(value in out for value in context.values()):
        raise RenderError(f"Rendered {DEVCONTAINER_FILENAME} contains none of the project values")
    return out


def render_devcontainer(template: str, values: DevcontainerValues) -> str:
    """
    Render the template text and return the resulting document.
    """
    if _has_jinja_markers(template):
        return _render_jinja(template, values)

    missing = missing_markers(template)
    if missing:
        raise RenderError(
            f"{DEVCONTAINER_FILENAME} template is missing expected default values for: {', '.join(missing)}"
        )

    replacements = _replacements(values)
    # Collect spans on the original text so inserted values are never rescanned.
    spans: list[tuple[int, int, str]] = []
    for field, pattern in MARKERS:
        replacement = replacements[field]
        for m in pattern.finditer(template):
            start, end = (m.end(1), m.start(2)) if pattern.groups else m.span()
            spans.append((start, end, replacement))

    parts: list[str] = []
    pos = 0
    for start, end, replacement in sorted(spans):
        parts.append(template[pos:start])
        parts.append(replacement)
        pos = end
    parts.append(template[pos:])
    return "".join(parts)


def write_devcontainer(text: str, destination_dir: str | Path) -> Path:
    """
    Write the rendered document into destination_dir, creating it as needed.
    """
    dst_dir = Path(destination_dir)
    dst_dir.mkdir(parents=True, exist_ok=True)
    dst_path = dst_dir / DEVCONTAINER_FILENAME
    # Normalize newlines for stable cross-platform output.
    dst_path.write_text(text if text.endswith("\n") else text + "\n", encoding="utf-8", newline="\n")
    return dst_path
