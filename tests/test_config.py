from __future__ import annotations

from pathlib import Path

import pytest

from devimage.config import (
    DEFAULT_BASE_URL,
    DEFAULT_IMAGE_REPOSITORY,
    ConfigError,
    find_project_root,
    host_platform,
    parse_remote_repository,
    resolve_build_config,
    resolve_install_config,
)


@pytest.mark.parametrize(
    "url,expected",
    [
        ("git@github.com:RaceCarParts/DevContainer.git", "racecarparts/devcontainer"),
        ("https://github.com/RaceCarParts/devcontainer.git", "racecarparts/devcontainer"),
        ("https://github.com/racecarparts/devcontainer", "racecarparts/devcontainer"),
        ("ssh://git@github.com/org/repo/", "org/repo"),
        ("", None),
        ("not a remote", None),
    ],
)
def test_parse_remote_repository(url, expected):
    assert parse_remote_repository(url) == expected


@pytest.mark.parametrize(
    "machine,expected",
    [
        ("x86_64", "linux/amd64"),
        ("AMD64", "linux/amd64"),
        ("aarch64", "linux/arm64"),
        ("arm64", "linux/arm64"),
        ("riscv64", "linux/riscv64"),
    ],
)
def test_host_platform(machine, expected):
    assert host_platform(machine) == expected


def test_flags_win_over_environment():
    cfg = resolve_build_config(
        registry="registry.example",
        repository="me/images",
        env={"REGISTRY": "env.example", "REPOSITORY": "env/repo"},
        remote_lookup=lambda: pytest.fail("git should not be consulted"),
    )
    assert cfg.registry == "registry.example"
    assert cfg.repository == "me/images"
    assert cfg.image_repository == "registry.example/me/images"


def test_environment_wins_over_defaults():
    cfg = resolve_build_config(
        env={"REGISTRY": "env.example", "REPOSITORY": "env/repo"},
        remote_lookup=lambda: "git@github.com:Other/Thing.git",
    )
    assert (cfg.registry, cfg.repository) == ("env.example", "env/repo")


def test_computed_defaults(tmp_path):
    cfg = resolve_build_config(env={}, root=tmp_path, remote_lookup=lambda: "git@github.com:Other/Thing.git")
    assert cfg.registry == "ghcr.io"
    assert cfg.repository == "other/thing"
    assert cfg.versions_file == tmp_path / "versions.json"
    assert cfg.context_dir == tmp_path / "base"
    assert cfg.dockerfile == tmp_path / "base" / "Dockerfile"


def test_explicit_paths_are_used_as_given(tmp_path):
    cfg = resolve_build_config(repository="a/b", versions_file="m.json", context_dir="ctx", root=tmp_path, env={})
    assert (cfg.versions_file, cfg.context_dir) == (Path("m.json"), Path("ctx"))


def test_defaults_resolve_from_a_subdirectory(tmp_path, monkeypatch):
    (tmp_path / "versions.json").write_text("{}", encoding="utf-8")
    nested = tmp_path / "docs" / "guide"
    nested.mkdir(parents=True)
    monkeypatch.chdir(nested)

    cfg = resolve_build_config(repository="a/b", env={})
    assert cfg.versions_file == tmp_path.resolve() / "versions.json"
    assert cfg.dockerfile == tmp_path.resolve() / "base" / "Dockerfile"


def test_find_project_root_falls_back_to_git_toplevel(tmp_path):
    nested = tmp_path / "a" / "b"
    nested.mkdir(parents=True)
    assert find_project_root(nested, toplevel_lookup=lambda here: tmp_path) == tmp_path
    assert find_project_root(nested, toplevel_lookup=lambda here: None) == nested.resolve()


def test_dockerfile_follows_context():
    cfg = resolve_build_config(repository="a/b", context_dir="images/base", versions_file="versions.json", env={})
    assert cfg.dockerfile == Path("images/base") / "Dockerfile"


def test_missing_repository_is_an_error():
    with pytest.raises(ConfigError):
        resolve_build_config(env={}, remote_lookup=lambda: None)


def test_install_config_priority():
    assert resolve_install_config(env={}).base_url == DEFAULT_BASE_URL
    assert resolve_install_config(env={}).image_repository == DEFAULT_IMAGE_REPOSITORY
    assert resolve_install_config(env={}).output_dir == Path(".devcontainer")

    env = {"DEVIMAGE_BASE_URL": "https://env.test", "DEVIMAGE_IMAGE": "env/image"}
    cfg = resolve_install_config(env=env)
    assert (cfg.base_url, cfg.image_repository) == ("https://env.test", "env/image")

    cfg = resolve_install_config(base_url="https://flag.test", image_repository="flag/image", env=env)
    assert (cfg.base_url, cfg.image_repository) == ("https://flag.test", "flag/image")
