"""
build.py

Responsibility: Turn the version matrix into build tasks and execute them.

High-level flow:
1) Filter matrix entries (exact match on Go and/or Python version, AND)
2) Plan one task per entry: tags, platform argument, load vs. push
3) Run the tasks through `Buildx`

Execution modes:
- jobs == 1: sequential in file order, fail-fast. The first failure stops the
  run; the remaining tasks are reported as skipped.
- jobs > 1: a bounded thread pool. Every task runs, output is captured and
  logged per entry, and all outcomes are collected in the report.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

from devimage.buildx import Buildx, BuildxError, build_argv
from devimage.config import BuildConfig, host_platform
from devimage.errors import DevImageError
from devimage.versions import MatrixEntry, VersionMatrix

logger = logging.getLogger(__name__)


class BuildError(DevImageError):
    pass


@dataclass(frozen=True)
class BuildTask:
    entry: MatrixEntry
    tags: tuple[str, ...]
    platform: str
    push: bool

    @property
    def primary_tag(self) -> str:
        return self.tags[0]

    @property
    def label(self) -> str:
        return self.entry.tag_suffix


@dataclass(frozen=True)
class BuildOutcome:
    task: BuildTask
    ok: bool
    error: str | None = None
    skipped: bool = False


@dataclass
class BuildReport:
    outcomes: list[BuildOutcome] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return bool(self.outcomes) and all(o.ok for o in self.outcomes)

    @property
    def failed(self) -> list[BuildOutcome]:
        return [o for o in self.outcomes if not o.ok and not o.skipped]

    @property
    def skipped(self) -> list[BuildOutcome]:
        return [o for o in self.outcomes if o.skipped]

    def summary_lines(self) -> list[str]:
        lines = []
        for o in self.outcomes:
            if o.ok:
                status = "ok"
            elif o.skipped:
                status = "skipped"
            else:
                status = f"FAILED ({o.error})"
            lines.append(f"{o.task.primary_tag}: {status}")
        return lines


def image_tag(registry: str, repository: str, entry: MatrixEntry) -> str:
    return f"{registry}/{repository}:{entry.tag_suffix}"


def latest_tag(registry: str, repository: str) -> str:
    return f"{registry}/{repository}:latest"


def plan_builds(
    matrix: VersionMatrix,
    config: BuildConfig,
    *,
    push: bool,
    go: str | None = None,
    python: str | None = None,
    tag_latest: bool = False,
    host: str | None = None,
) -> list[BuildTask]:
    """
    Build the ordered task list for one invocation.

    Local mode builds only for the host platform; push mode builds every
    platform listed for the entry. With tag_latest, the `latest` tag goes on
    the last selected entry only.
    """
    entries = matrix.filter(go=go, python=python)
    if not entries:
        wanted = ", ".join(f"{k}={v}" for k, v in (("go", go), ("python", python)) if v)
        raise BuildError(f"No version combinations match the given filters ({wanted or 'none'})")

    local_platform = host or host_platform()
    tasks: list[BuildTask] = []
    for i, entry in enumerate(entries):
        tags = [image_tag(config.registry, config.repository, entry)]
        if tag_latest and i == len(entries) - 1:
            tags.append(latest_tag(config.registry, config.repository))
        tasks.append(
            BuildTask(
                entry=entry,
                tags=tuple(tags),
                platform=entry.platform_arg if push else local_platform,
                push=push,
            )
        )
    return tasks


def task_argv(task: BuildTask, config: BuildConfig, docker: str = "docker") -> list[str]:
    return build_argv(
        go_version=task.entry.go_version,
        python_version=task.entry.python_version,
        tags=task.tags,
        platform=task.platform,
        push=task.push,
        dockerfile=config.dockerfile,
        context_dir=config.context_dir,
        docker=docker,
    )


def _announce(task: BuildTask) -> None:
    logger.info(
        "Building %s (tag: %s, platforms: %s, mode: %s)",
        task.entry.label,
        ", ".join(task.tags),
        task.platform,
        "push" if task.push else "load",
    )


def _run_sequential(tasks: list[BuildTask], buildx: Buildx, config: BuildConfig) -> BuildReport:
    report = BuildReport()
    for i, task in enumerate(tasks):
        _announce(task)
        try:
            buildx.build(task_argv(task, config, buildx.docker))
        except BuildxError as e:
            logger.error("Build failed for %s: %s", task.primary_tag, e)
            report.outcomes.append(BuildOutcome(task=task, ok=False, error=str(e)))
            report.outcomes.extend(BuildOutcome(task=t, ok=False, skipped=True) for t in tasks[i + 1 :])
            return report
        if task.push:
            logger.info("Pushed: %s", task.primary_tag)
        else:
            logger.info("Successfully built: %s (loaded locally)", task.primary_tag)
        report.outcomes.append(BuildOutcome(task=task, ok=True))
    return report


def _run_one_captured(task: BuildTask, buildx: Buildx, config: BuildConfig) -> BuildOutcome:
    _announce(task)
    try:
        output = buildx.build(task_argv(task, config, buildx.docker), capture=True)
    except BuildxError as e:
        for line in e.output.splitlines():
            logger.info("[%s] %s", task.label, line)
        logger.error("[%s] build failed: %s", task.label, e)
        return BuildOutcome(task=task, ok=False, error=str(e))
    for line in output.splitlines():
        logger.info("[%s] %s", task.label, line)
    logger.info("[%s] done: %s", task.label, task.primary_tag)
    return BuildOutcome(task=task, ok=True)


def run_builds(tasks: list[BuildTask], buildx: Buildx, config: BuildConfig, *, jobs: int = 1) -> BuildReport:
    if jobs < 1:
        raise BuildError(f"--jobs must be at least 1 (got {jobs})")
    if jobs == 1 or len(tasks) <= 1:
        return _run_sequential(tasks, buildx, config)

    with ThreadPoolExecutor(max_workers=min(jobs, len(tasks))) as pool:
        futures = [pool.submit(_run_one_captured, task, buildx, config) for task in tasks]
        # Futures are read back in submission order so the report keeps file order.
        return BuildReport(outcomes=[f.result() for f in futures])
