from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from stagix_package.mcp_server import call_tool, list_tools
from tests._fixtures.repo_builder import RepoBuilder


def test_tools_are_listed() -> None:
    tools = asyncio.run(list_tools())

    assert [t.name for t in tools] == ["build_repo_site", "build_index", "publish_pages"]


def test_build_repo_site_tool(three_commit_repo: RepoBuilder, tmp_path: Path) -> None:
    out = tmp_path / "site"

    [result] = asyncio.run(
        call_tool("build_repo_site", {"repo_path": str(three_commit_repo.root), "out_dir": str(out), "log_length": 1})
    )

    assert result.type == "text"
    assert str(out.resolve()) in result.text
    assert len(list((out / "commits").iterdir())) == 1


def test_build_index_and_publish_tools(three_commit_repo: RepoBuilder, tmp_path: Path) -> None:
    three_commit_repo.set_meta("pages", "")
    out = tmp_path / "www"

    [index] = asyncio.run(call_tool("build_index", {"repo_paths": [str(three_commit_repo.root)], "out_dir": str(out)}))
    [pages] = asyncio.run(
        call_tool(
            "publish_pages",
            {"repo_paths": [str(three_commit_repo.root)], "out_dir": str(out), "working_dir": str(tmp_path / "work")},
        )
    )

    assert "Index of 1 repositories" in index.text
    assert pages.text.startswith("Published 1 of 1 repositories")
    assert (out / "project" / "x.txt").exists()


def test_missing_arguments_and_unknown_tools_raise() -> None:
    with pytest.raises(ValueError, match="repo_path"):
        asyncio.run(call_tool("build_repo_site", {"out_dir": "x"}))
    with pytest.raises(ValueError, match="Unknown tool"):
        asyncio.run(call_tool("nope", {}))
