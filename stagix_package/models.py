"""
Plain records passed between the git layer and the renderers.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Tuple


class EntryKind(enum.Enum):
    TREE = "tree"
    BLOB = "blob"
    BLOB_EXECUTABLE = "blob_executable"
    LINK = "link"
    COMMIT = "commit"

    @classmethod
    def from_mode(cls, mode: str) -> "EntryKind":
        if mode == "040000":
            return cls.TREE
        if mode == "100755":
            return cls.BLOB_EXECUTABLE
        if mode == "120000":
            return cls.LINK
        if mode == "160000":
            return cls.COMMIT
        return cls.BLOB

    @property
    def is_blob(self) -> bool:
        return self in (EntryKind.BLOB, EntryKind.BLOB_EXECUTABLE)


class ChangeKind(enum.Enum):
    ADDITION = "A"
    DELETION = "D"
    MODIFICATION = "M"
    REWRITE = "R"


@dataclass(frozen=True)
class TreeEntry:
    path: str           # slash-separated, relative to the tree being walked
    oid: str
    mode: str           # six-digit octal string as git prints it
    size: Optional[int] = None

    @property
    def kind(self) -> EntryKind:
        return EntryKind.from_mode(self.mode)

    @property
    def name(self) -> str:
        return self.path.rsplit("/", 1)[-1]


@dataclass(frozen=True)
class CommitRecord:
    id: str
    parent_ids: Tuple[str, ...]
    author_name: str
    author_email: str
    author_time: datetime
    committer_time: datetime
    title: str
    body: str
    tree_id: str

    @property
    def first_parent(self) -> Optional[str]:
        return self.parent_ids[0] if self.parent_ids else None


@dataclass
class ChangeRecord:
    kind: ChangeKind
    old_location: str
    new_location: str
    old_oid: Optional[str]
    new_oid: Optional[str]
    old_mode: str
    new_mode: str
    lines_added: int = 0
    lines_removed: int = 0
    unified_diff: Optional[str] = None

    @property
    def location(self) -> str:
        return self.new_location

    @property
    def is_tree(self) -> bool:
        return EntryKind.TREE in (EntryKind.from_mode(self.old_mode), EntryKind.from_mode(self.new_mode))


@dataclass
class DiffStat:
    files_changed: int = 0
    lines_added: int = 0
    lines_removed: int = 0

    @classmethod
    def from_changes(cls, changes: List[ChangeRecord]) -> "DiffStat":
        stat = cls()
        for change in changes:
            if change.is_tree:
                continue
            stat.files_changed += 1
            stat.lines_added += change.lines_added
            stat.lines_removed += change.lines_removed
        return stat


@dataclass(frozen=True)
class FileEntry:
    path: str
    executable: bool
    size_bytes: int
    is_text: bool
    line_count: Optional[int] = None

    @property
    def mode_string(self) -> str:
        return "-rwxr-xr-x" if self.executable else "-rw-r--r--"

    @property
    def size_label(self) -> str:
        if self.is_text:
            return f"{self.line_count}L"
        return f"{self.size_bytes}B"


@dataclass(frozen=True)
class RefRecord:
    name: str           # short name, e.g. "main" or "v1.0"
    kind: str           # "tag" | "branch"
    commit: CommitRecord


@dataclass(frozen=True)
class RepositoryMetadata:
    name: str
    description: str = ""
    url: str = ""
    owner: str = ""
    pages: Optional[str] = None
    readme: Optional[str] = None
    license: Optional[str] = None
    clone_urls: Tuple[str, ...] = field(default_factory=tuple)
