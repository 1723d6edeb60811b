from __future__ import annotations

from pathlib import Path

import pytest

from devimage.build import BuildError, image_tag, latest_tag, plan_builds, run_builds
from devimage.buildx import Buildx
from devimage.config import BuildConfig
from tests.conftest import FakeRunner

CONFIG = BuildConfig(
    registry="ghcr.io",
    repository="me/devcontainer",
    versions_file=Path("versions.json"),
    context_dir=Path("base"),
    dockerfile=Path("base/Dockerfile"),
)


def _platform(argv: list[str]) -> str:
    return argv[argv.index("--platform") + 1]


def _tags(argv: list[str]) -> list[str]:
    return [argv[i + 1] for i, a in enumerate(argv) if a == "--tag"]


def test_tags(matrix):
    assert image_tag("ghcr.io", "me/devcontainer", matrix[0]) == "ghcr.io/me/devcontainer:go1.23.2-py3.12.7"
    assert latest_tag("ghcr.io", "me/devcontainer") == "ghcr.io/me/devcontainer:latest"


def test_no_filters_builds_everything(matrix):
    tasks = plan_builds(matrix, CONFIG, push=False, host="linux/amd64")
    assert [t.entry for t in tasks] == list(matrix)


def test_go_filter_ignores_python(matrix):
    tasks = plan_builds(matrix, CONFIG, push=False, go="1.23.2", host="linux/amd64")
    assert [t.entry.python_version for t in tasks] == ["3.12.7", "3.11.10"]


def test_both_filters_are_anded(matrix):
    tasks = plan_builds(matrix, CONFIG, push=False, go="1.23.2", python="3.12.7", host="linux/amd64")
    assert [t.primary_tag for t in tasks] == ["ghcr.io/me/devcontainer:go1.23.2-py3.12.7"]


def test_no_match_is_an_error(matrix):
    with pytest.raises(BuildError, match="go=9.9"):
        plan_builds(matrix, CONFIG, push=False, go="9.9", host="linux/amd64")


def test_local_mode_uses_host_platform_only(matrix):
    runner = FakeRunner()
    tasks = plan_builds(matrix, CONFIG, push=False, host="linux/arm64")
    report = run_builds(tasks, Buildx(runner=runner), CONFIG)
    assert report.ok
    for argv in runner.build_calls:
        assert _platform(argv) == "linux/arm64"
        assert "--load" in argv and "--push" not in argv


def test_push_mode_uses_every_listed_platform(matrix):
    runner = FakeRunner()
    tasks = plan_builds(matrix, CONFIG, push=True, host="linux/arm64")
    run_builds(tasks, Buildx(runner=runner), CONFIG)
    assert [_platform(a) for a in runner.build_calls] == [
        "linux/amd64,linux/arm64",
        "linux/amd64,linux/arm64",
        "linux/amd64",
    ]
    assert all("--push" in a and "--load" not in a for a in runner.build_calls)


def test_latest_goes_on_last_selected_entry_only(matrix):
    tasks = plan_builds(matrix, CONFIG, push=True, tag_latest=True, host="linux/amd64")
    assert [len(t.tags) for t in tasks] == [1, 1, 2]
    assert tasks[-1].tags[1] == "ghcr.io/me/devcontainer:latest"

    untagged = plan_builds(matrix, CONFIG, push=True, host="linux/amd64")
    assert all(len(t.tags) == 1 for t in untagged)


def test_sequential_failure_stops_remaining_builds(matrix):
    runner = FakeRunner(fail_on={"PYTHON_VERSION=3.11.10": 1})
    tasks = plan_builds(matrix, CONFIG, push=False, host="linux/amd64")
    report = run_builds(tasks, Buildx(runner=runner), CONFIG)

    assert not report.ok
    assert len(runner.build_calls) == 2
    assert [o.ok for o in report.outcomes] == [True, False, False]
    assert [o.task for o in report.skipped] == [tasks[2]]
    assert len(report.failed) == 1


def test_parallel_runs_everything_and_reports_in_file_order(matrix):
    runner = FakeRunner(fail_on={"PYTHON_VERSION=3.11.10": 1}, stdout="step\n")
    tasks = plan_builds(matrix, CONFIG, push=False, host="linux/amd64")
    report = run_builds(tasks, Buildx(runner=runner), CONFIG, jobs=3)

    assert len(runner.build_calls) == 3
    assert [o.task for o in report.outcomes] == tasks
    assert [o.ok for o in report.outcomes] == [True, False, True]
    assert report.skipped == []
    assert report.summary_lines()[1].startswith("ghcr.io/me/devcontainer:go1.23.2-py3.11.10: FAILED")


def test_build_argv_carries_config_paths(matrix):
    runner = FakeRunner()
    tasks = plan_builds(matrix, CONFIG, push=False, go="1.22.8", host="linux/amd64")
    run_builds(tasks, Buildx(runner=runner), CONFIG)
    (argv,) = runner.build_calls
    assert argv[argv.index("--file") + 1] == str(Path("base/Dockerfile"))
    assert argv[-1] == "base"
    assert _tags(argv) == ["ghcr.io/me/devcontainer:go1.22.8-py3.12.7"]


def test_jobs_must_be_positive(matrix):
    tasks = plan_builds(matrix, CONFIG, push=False, host="linux/amd64")
    with pytest.raises(BuildError):
        run_builds(tasks, Buildx(runner=FakeRunner()), CONFIG, jobs=0)
