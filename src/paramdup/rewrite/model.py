from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet, List, Tuple

import libcst as cst

Position = Tuple[int, int]


@dataclass(frozen=True)
class TextEdit:
    path: str
    start: Position
    end: Position
    replacement: str


@dataclass(frozen=True)
class DuplicationOptions:
    include_nested: bool = True
    count_receiver: bool = False
    exclude: FrozenSet[str] = frozenset()

    def excludes(self, name: str, qualname: str) -> bool:
        return name in self.exclude or qualname in self.exclude


@dataclass(frozen=True)
class DuplicationRecord:
    qualname: str
    function: str
    original: str
    suggested: str
    path: str = ""

    def describe(self) -> str:
        message = (
            f"Duplicated parameter '{self.original}' "
            f"as '{self.suggested}' "
            f"in function '{self.function}'"
        )
        if self.path:
            message += f" ({self.path})"
        return message


@dataclass(frozen=True)
class SkipRecord:
    qualname: str
    reason: str

    def describe(self) -> str:
        return f"Skipped function '{self.qualname}': {self.reason}"


@dataclass(frozen=True)
class DuplicationResult:
    module: cst.Module
    records: List[DuplicationRecord] = field(default_factory=list)
    skipped: List[SkipRecord] = field(default_factory=list)

    @property
    def code(self) -> str:
        return self.module.code

    @property
    def modified_count(self) -> int:
        return len(self.records)


@dataclass
class DuplicationPlan:
    edits: List[TextEdit] = field(default_factory=list)
    records: List[DuplicationRecord] = field(default_factory=list)
    skipped: List[SkipRecord] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    file_counts: List[Tuple[str, int]] = field(default_factory=list)

    @property
    def modified_count(self) -> int:
        return sum(count for _, count in self.file_counts)

    def extend(self, other: "DuplicationPlan") -> None:
        self.edits.extend(other.edits)
        self.records.extend(other.records)
        self.skipped.extend(other.skipped)
        self.errors.extend(other.errors)
        self.file_counts.extend(other.file_counts)
