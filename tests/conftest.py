from __future__ import annotations

import shutil
from pathlib import Path
from typing import Callable

import pytest

from tests._fixtures.repo_builder import RepoBuilder

HAS_GIT = shutil.which("git") is not None


@pytest.fixture
def make_repo(tmp_path: Path) -> Callable[[str], RepoBuilder]:
    """Factory for repositories with their own names below tmp_path."""
    if not HAS_GIT:
        pytest.skip("git executable not available")

    def factory(name: str) -> RepoBuilder:
        return RepoBuilder(tmp_path, name)

    return factory


@pytest.fixture
def repo_builder(make_repo: Callable[[str], RepoBuilder]) -> RepoBuilder:
    """A fresh repository named "project"."""
    return make_repo("project")


@pytest.fixture
def three_commit_repo(repo_builder: RepoBuilder) -> RepoBuilder:
    """Root commit A (no files), B adds x.txt, C modifies it."""
    repo_builder.commit("A: initial")
    repo_builder.commit("B: add x", {"x.txt": "one\ntwo\nthree\n"})
    repo_builder.commit("C: change x", {"x.txt": "one\nTWO\nthree\n"})
    return repo_builder
