"""
devimage package

This package implements the devcontainer image tooling as a CLI-first utility.

Key responsibilities are split across modules:
- `versions.py`: parse the version matrix (`versions.json`) into typed entries
- `selector.py`: numbered display of the matrix and validation of a human's choice
- `renderer.py`: render the `devcontainer.json` template with project values
- `remote.py`: isolated HTTP fetches of the matrix and template
- `config.py`: start-up configuration (flags > environment > computed defaults)
- `buildx.py`: isolated `docker buildx` invocations
- `build.py`: build planning and execution across the matrix
- `installer.py`: interactive `.devcontainer` setup
- `cli.py`: CLI entrypoint and orchestration
"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.1.0"
