"""
cli.py

Responsibility: CLI entrypoint for devimage.

Commands:
- `build`: build (and optionally push) images for the version matrix; filters
  that match no combination are an error (exit status 1)
- `install`: interactively write `.devcontainer/devcontainer.json`
- `list`: print the version matrix, numbered in file order

This module should orchestrate behavior but keep concerns isolated:
- Matrix parsing: `versions.py`
- Settings: `config.py`
- docker buildx: `buildx.py` / `build.py`
- HTTP: `remote.py`
"""

from __future__ import annotations

import argparse
import logging

from devimage import __version__
from devimage.build import plan_builds, run_builds
from devimage.buildx import Buildx
from devimage.config import DEFAULT_VERSIONS_FILE, find_project_root, resolve_build_config, resolve_install_config
from devimage.errors import DevImageError
from devimage.installer import run_install
from devimage.logging_utils import configure_logging
from devimage.remote import RemoteClient
from devimage.selector import format_choices
from devimage.versions import load_versions

logger = logging.getLogger(__name__)


def build_cmd(args: argparse.Namespace) -> int:
    config = resolve_build_config(
        registry=args.registry,
        repository=args.repo,
        versions_file=args.versions,
        context_dir=args.context,
        dockerfile=args.file,
    )
    matrix = load_versions(config.versions_file)

    tasks = plan_builds(
        matrix,
        config,
        push=bool(args.push),
        go=args.go,
        python=args.python,
        tag_latest=bool(args.tag_latest),
    )

    buildx = Buildx(builder_name=config.builder_name)
    if not args.skip_setup:
        buildx.ensure_available()
        buildx.ensure_builder()

    logger.info("Registry: %s", config.registry)
    logger.info("Repository: %s", config.repository)
    logger.info("Push: %s", "true" if args.push else "false")
    if args.go or args.python:
        logger.info("Building %d matching version combination(s)", len(tasks))
    else:
        logger.info("Building all %d version combinations from %s", len(tasks), config.versions_file)

    report = run_builds(tasks, buildx, config, jobs=args.jobs)

    for line in report.summary_lines():
        logger.info("%s", line)

    if not report.ok:
        logger.error("Build failed: %d failed, %d skipped", len(report.failed), len(report.skipped))
        return 1

    logger.info("Build complete!")
    if not args.push:
        logger.info("Images built locally. To push to the registry, re-run with --push")
    return 0


def install_cmd(args: argparse.Namespace) -> int:
    config = resolve_install_config(
        base_url=args.base_url,
        image_repository=args.image,
        output_dir=args.output_dir,
    )
    run_install(config, client=RemoteClient(config.base_url))
    return 0


def list_cmd(args: argparse.Namespace) -> int:
    if args.base_url:
        matrix = RemoteClient(args.base_url).fetch_versions()
    else:
        matrix = load_versions(args.versions or find_project_root() / DEFAULT_VERSIONS_FILE)
    for line in format_choices(matrix):
        print(line)
    return 0


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="devimage", description="devimage - Go + Python devcontainer image tooling")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = p.add_subparsers(dest="command", required=True)

    b = sub.add_parser(
        "build",
        help="Build images for every (or a filtered set of) version combination(s)",
        epilog="--go and --python must both match when given; if no combination matches, nothing is built "
        "and the exit status is 1. Default paths are resolved from the project root (the nearest directory "
        "holding versions.json, else the git top level).",
    )
    b.add_argument("--push", action="store_true", help="Build all listed platforms and push to the registry")
    b.add_argument("--go", default=None, metavar="VERSION", help="Build only this Go version (exact match)")
    b.add_argument("--python", default=None, metavar="VERSION", help="Build only this Python version (exact match)")
    b.add_argument("--registry", default=None, metavar="URL", help="Registry (default: $REGISTRY or ghcr.io)")
    b.add_argument(
        "--repo",
        default=None,
        metavar="NAME",
        help="Repository name (default: $REPOSITORY or auto-detected from git)",
    )
    b.add_argument(
        "--versions", default=None, metavar="PATH", help="Version matrix file (default: <project root>/versions.json)"
    )
    b.add_argument(
        "--context", default=None, metavar="DIR", help="Build context directory (default: <project root>/base)"
    )
    b.add_argument("--file", default=None, metavar="PATH", help="Dockerfile (default: <context>/Dockerfile)")
    b.add_argument("--tag-latest", action="store_true", help="Also tag the last selected combination as latest")
    b.add_argument("--jobs", type=int, default=1, help="Parallel builds; above 1 every build runs (default: 1)")
    b.add_argument("--skip-setup", action="store_true", help="Do not check or select the buildx builder")
    b.set_defaults(func=build_cmd)

    i = sub.add_parser("install", help="Write .devcontainer/devcontainer.json for the current project")
    i.add_argument("--base-url", default=None, help="Raw-content base URL (or set DEVIMAGE_BASE_URL)")
    i.add_argument("--image", default=None, help="Image repository (or set DEVIMAGE_IMAGE)")
    i.add_argument("--output-dir", default=None, help="Output directory (default: .devcontainer)")
    i.set_defaults(func=install_cmd)

    ls = sub.add_parser("list", help="List available version combinations")
    src = ls.add_mutually_exclusive_group()
    src.add_argument(
        "--versions", default=None, metavar="PATH", help="Local version matrix file (default: <project root>/versions.json)"
    )
    src.add_argument("--base-url", default=None, help="Fetch the matrix from this raw-content base URL")
    ls.set_defaults(func=list_cmd)

    return p


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    configure_logging(logging.DEBUG if args.verbose else logging.INFO)
    try:
        return int(args.func(args))
    except DevImageError as e:
        logger.error("%s", e)
        return 1
    except KeyboardInterrupt:
        logger.error("Interrupted")
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
