from __future__ import annotations

from pathlib import Path

import pytest

from stagix_package.files import FileTreeRenderer, file_page_path, iter_files
from stagix_package.git import Repository
from stagix_package.meta import load_metadata
from stagix_package.render import RenderOptions
from tests._fixtures.repo_builder import RepoBuilder


@pytest.fixture
def file_repo(repo_builder: RepoBuilder) -> RepoBuilder:
    sub = repo_builder.commit("sub", {"lib.txt": "lib\n"})
    repo_builder.write(
        {
            "a.txt": "one\ntwo\n",
            "bin/run.sh": "#!/bin/sh\necho hi\n",
            "img.bin": b"\x00\xff\x01\x02\x03",
            "sub/dir/deep.txt": "deep\n",
        }
    )
    repo_builder.make_executable("bin/run.sh")
    repo_builder.symlink("link", "a.txt")
    repo_builder.git("add", "-A")
    repo_builder.add_gitlink("vendor", sub)
    repo_builder.commit("files", stage_all=False)
    return repo_builder


def _write(builder: RepoBuilder, out: Path, options: RenderOptions | None = None):
    repo = Repository.open(builder.root)
    renderer = FileTreeRenderer(repo, load_metadata(repo), options or RenderOptions(highlight=False))
    return renderer.write(out, repo.head_tree())


def test_only_regular_and_executable_files_are_listed(file_repo: RepoBuilder) -> None:
    repo = Repository.open(file_repo.root)

    paths = [e.path for e in iter_files(repo, repo.head_tree())]

    assert sorted(paths) == ["a.txt", "bin/run.sh", "img.bin", "lib.txt", "sub/dir/deep.txt"]


def test_listing_modes_and_sizes(file_repo: RepoBuilder, tmp_path: Path) -> None:
    out = tmp_path / "site"

    files = {f.path: f for f in _write(file_repo, out)}

    assert files["a.txt"].size_label == "2L"
    assert files["img.bin"].size_label == "5B"
    assert files["bin/run.sh"].mode_string == "-rwxr-xr-x"
    assert files["a.txt"].mode_string == "-rw-r--r--"
    listing = (out / "files.html").read_text(encoding="utf-8")
    assert '<td>-rwxr-xr-x</td><td><a href="files/bin/run.sh.html">bin/run.sh</a></td><td class="num">2L</td>' in listing
    assert "link" not in files
    assert "vendor" not in files


def test_file_pages_mirror_tree_paths(file_repo: RepoBuilder, tmp_path: Path) -> None:
    out = tmp_path / "site"
    _write(file_repo, out)

    deep = (out / file_page_path("sub/dir/deep.txt")).read_text(encoding="utf-8")

    assert 'href="../../../../style.css"' in deep
    assert 'href="../../../log.html">Log</a>' in deep
    assert "<p>sub/dir/deep.txt (5B)</p>" in deep
    assert not (out / file_page_path("link")).exists()
    assert not (out / file_page_path("vendor")).exists()


def test_text_file_lines_are_anchored(file_repo: RepoBuilder, tmp_path: Path) -> None:
    out = tmp_path / "site"
    _write(file_repo, out)

    page = (out / file_page_path("a.txt")).read_text(encoding="utf-8")

    assert '<a id="l0" href="#l0" class="line">      0 </a>one' in page
    assert 'id="l1"' in page
    assert 'id="l2"' not in page


def test_binary_file_page_has_notice(file_repo: RepoBuilder, tmp_path: Path) -> None:
    out = tmp_path / "site"
    _write(file_repo, out)

    page = (out / file_page_path("img.bin")).read_text(encoding="utf-8")

    assert "<p>img.bin (5B)</p>" in page
    assert "binary file." in page
    assert 'id="l0"' not in page


def test_highlighted_pages_carry_pygments_styles(file_repo: RepoBuilder, tmp_path: Path) -> None:
    out = tmp_path / "site"
    _write(file_repo, out, RenderOptions())

    page = (out / file_page_path("bin/run.sh")).read_text(encoding="utf-8")

    assert "<style>" in page
    assert ".highlight" in page
