from __future__ import annotations

import concurrent.futures
import contextvars
from dataclasses import replace
from pathlib import Path
from typing import Iterable, NamedTuple

import libcst as cst

from paramdup.invariants import never
from paramdup.naming import suggest_name
from paramdup.rewrite.model import (
    DuplicationOptions,
    DuplicationPlan,
    DuplicationRecord,
    DuplicationResult,
    SkipRecord,
    TextEdit,
)
from paramdup.timeout_context import check_deadline, deadline_loop_iter

_POSITIONAL_GROUPS = ("posonly_params", "params")
_NAMED_GROUPS = ("posonly_params", "params", "kwonly_params")


class _Slot(NamedTuple):
    group: str
    index: int
    param: cst.Param


def read_source(path: Path) -> str:
    # newline="" keeps \r\n line endings intact.
    with path.open(encoding="utf-8", newline="") as handle:
        return handle.read()


def write_source(path: Path, text: str) -> None:
    with path.open("w", encoding="utf-8", newline="") as handle:
        handle.write(text)


def _is_staticmethod(node: cst.FunctionDef) -> bool:
    for decorator in node.decorators:
        expr = decorator.decorator
        if isinstance(expr, cst.Name) and expr.value == "staticmethod":
            return True
        if isinstance(expr, cst.Attribute) and expr.attr.value == "staticmethod":
            return True
    return False


def _parameter_slots(params: cst.Parameters) -> list[_Slot]:
    slots: list[_Slot] = []
    for group in _NAMED_GROUPS:
        for index, param in enumerate(getattr(params, group)):
            slots.append(_Slot(group, index, param))
    if isinstance(params.star_arg, cst.Param):
        slots.append(_Slot("star_arg", 0, params.star_arg))
    if params.star_kwarg is not None:
        slots.append(_Slot("star_kwarg", 0, params.star_kwarg))
    return slots


def _formal_slots(params: cst.Parameters, *, has_receiver: bool) -> list[_Slot]:
    slots = _parameter_slots(params)
    if not has_receiver:
        return slots
    for position, slot in enumerate(slots):
        if slot.group in _POSITIONAL_GROUPS:
            return slots[:position] + slots[position + 1:]
    return slots


def _unused_name(name: str, taken: set[str]) -> str:
    # The receiver is not a formal parameter but still occupies its name.
    suggested = suggest_name(name)
    seen = {name}
    while suggested in taken:
        if suggested in seen:
            never("name suggestions cycle", name=name, suggested=suggested)
        seen.add(suggested)
        suggested = suggest_name(suggested)
    return suggested


def _preceding_whitespace(
    node: cst.FunctionDef, slot: _Slot
) -> cst.BaseParenthesizableWhitespace | None:
    params = node.params
    if slot.index > 0:
        comma = getattr(params, slot.group)[slot.index - 1].comma
        return comma.whitespace_after if isinstance(comma, cst.Comma) else None
    if slot.group == "kwonly_params":
        star = params.star_arg
        if isinstance(star, (cst.ParamStar, cst.Param)) and isinstance(star.comma, cst.Comma):
            return star.comma.whitespace_after
        return None
    if slot.group == "params" and isinstance(params.posonly_ind, cst.ParamSlash):
        comma = params.posonly_ind.comma
        return comma.whitespace_after if isinstance(comma, cst.Comma) else None
    return node.whitespace_before_params


def _lead_whitespace(
    preceding: cst.BaseParenthesizableWhitespace | None,
) -> cst.BaseParenthesizableWhitespace:
    if isinstance(preceding, cst.ParenthesizedWhitespace):
        return preceding.with_changes(first_line=cst.TrailingWhitespace(), empty_lines=())
    return cst.SimpleWhitespace(" ")


def _strip_comment(
    whitespace: cst.BaseParenthesizableWhitespace,
) -> cst.BaseParenthesizableWhitespace:
    if isinstance(whitespace, cst.ParenthesizedWhitespace):
        return whitespace.with_changes(first_line=cst.TrailingWhitespace())
    return whitespace


def _separator_whitespace(
    trailing: cst.BaseParenthesizableWhitespace,
    lead: cst.BaseParenthesizableWhitespace,
) -> cst.BaseParenthesizableWhitespace:
    if isinstance(lead, cst.ParenthesizedWhitespace):
        if isinstance(trailing, cst.ParenthesizedWhitespace):
            return trailing.with_changes(
                empty_lines=(), indent=lead.indent, last_line=lead.last_line
            )
        return lead
    if (
        isinstance(trailing, cst.ParenthesizedWhitespace)
        and trailing.first_line.comment is not None
    ):
        # A trailing comment must stay followed by its line break.
        return trailing.with_changes(empty_lines=())
    return cst.SimpleWhitespace(" ")


def _duplicate_pair(
    original: cst.Param,
    new_name: str,
    lead: cst.BaseParenthesizableWhitespace,
) -> tuple[cst.Param, cst.Param]:
    comma = original.comma
    if isinstance(comma, cst.Comma):
        first = original.with_changes(
            comma=comma.with_changes(
                whitespace_after=_separator_whitespace(comma.whitespace_after, lead)
            )
        )
        duplicate = original.with_changes(
            name=cst.Name(new_name),
            comma=comma.with_changes(whitespace_after=_strip_comment(comma.whitespace_after)),
        )
        return first, duplicate
    # Without a comma the param owns the whitespace before ")", which moves
    # to the duplicate.
    trailing = original.whitespace_after_param
    first = original.with_changes(
        whitespace_after_param=cst.SimpleWhitespace(""),
        comma=cst.Comma(whitespace_after=_separator_whitespace(trailing, lead)),
    )
    duplicate = original.with_changes(
        name=cst.Name(new_name),
        whitespace_after_param=_strip_comment(trailing),
    )
    return first, duplicate


class ParameterDuplicationTransformer(cst.CSTTransformer):
    """Give every function with exactly one formal parameter a second one.

    The duplicate copies the annotation, default and passing kind of the
    original and takes its name from ``suggest_name``. Only the ``params`` of a
    qualifying ``def`` are replaced; every other node keeps its trivia.
    """

    def __init__(self, *, options: DuplicationOptions | None = None) -> None:
        self.options = options or DuplicationOptions()
        self.records: list[DuplicationRecord] = []
        self.skipped: list[SkipRecord] = []
        self._stack: list[tuple[str, str]] = []

    @property
    def modified_count(self) -> int:
        return len(self.records)

    def visit_ClassDef(self, node: cst.ClassDef) -> bool:
        self._stack.append(("class", node.name.value))
        return True

    def leave_ClassDef(
        self, original_node: cst.ClassDef, updated_node: cst.ClassDef
    ) -> cst.CSTNode:
        if self._stack:
            self._stack.pop()
        return updated_node

    def visit_FunctionDef(self, node: cst.FunctionDef) -> bool:
        self._stack.append(("function", node.name.value))
        return True

    def leave_FunctionDef(
        self, original_node: cst.FunctionDef, updated_node: cst.FunctionDef
    ) -> cst.CSTNode:
        qualname = ".".join(name for _, name in self._stack)
        enclosing = [kind for kind, _ in self._stack[:-1]]
        if self._stack:
            self._stack.pop()
        check_deadline(qualname)
        return self._maybe_duplicate(
            original_node,
            updated_node,
            qualname=qualname,
            enclosing=enclosing,
        )

    def _maybe_duplicate(
        self,
        original_node: cst.FunctionDef,
        updated_node: cst.FunctionDef,
        *,
        qualname: str,
        enclosing: list[str],
    ) -> cst.CSTNode:
        in_class = bool(enclosing) and enclosing[-1] == "class"
        has_receiver = (
            in_class
            and not self.options.count_receiver
            and not _is_staticmethod(original_node)
        )
        formal = _formal_slots(updated_node.params, has_receiver=has_receiver)
        if len(formal) != 1:
            return updated_node
        slot = formal[0]
        name = original_node.name.value
        if self.options.excludes(name, qualname):
            self.skipped.append(SkipRecord(qualname, "excluded by configuration"))
            return updated_node
        if not self.options.include_nested and "function" in enclosing:
            self.skipped.append(SkipRecord(qualname, "nested function"))
            return updated_node
        if slot.group in {"star_arg", "star_kwarg"}:
            self.skipped.append(SkipRecord(qualname, "sole parameter is variadic"))
            return updated_node

        original_name = slot.param.name.value
        suggested = _unused_name(
            original_name,
            {item.param.name.value for item in _parameter_slots(updated_node.params)},
        )
        lead = _lead_whitespace(_preceding_whitespace(updated_node, slot))
        first, duplicate = _duplicate_pair(slot.param, suggested, lead)
        members = list(getattr(updated_node.params, slot.group))
        members[slot.index:slot.index + 1] = [first, duplicate]
        new_params = updated_node.params.with_changes(**{slot.group: members})

        self.records.append(
            DuplicationRecord(
                qualname=qualname,
                function=name,
                original=original_name,
                suggested=suggested,
            )
        )
        return updated_node.with_changes(params=new_params)


def duplicate_parameters(
    module: cst.Module, options: DuplicationOptions | None = None
) -> DuplicationResult:
    transformer = ParameterDuplicationTransformer(options=options)
    new_module = module.visit(transformer)
    return DuplicationResult(
        module=new_module,
        records=list(transformer.records),
        skipped=list(transformer.skipped),
    )


def rewrite_source(
    source: str, options: DuplicationOptions | None = None
) -> DuplicationResult:
    return duplicate_parameters(cst.parse_module(source), options)


def collect_sources(paths: Iterable[Path]) -> list[Path]:
    files: list[Path] = []
    seen: set[Path] = set()
    for path in paths:
        if path.is_dir():
            candidates = sorted(item for item in path.rglob("*.py") if item.is_file())
        else:
            candidates = [path]
        for candidate in candidates:
            if candidate in seen:
                continue
            seen.add(candidate)
            files.append(candidate)
    return files


class RewriteEngine:
    def __init__(self, project_root: Path | None = None) -> None:
        self.project_root = project_root

    def _resolve(self, target_path: Path | str) -> Path:
        path = Path(target_path)
        if self.project_root and not path.is_absolute():
            path = self.project_root / path
        return path

    def plan_file(
        self,
        target_path: Path | str,
        options: DuplicationOptions | None = None,
    ) -> DuplicationPlan:
        path = self._resolve(target_path)
        check_deadline(str(path))
        try:
            source = read_source(path)
        except (OSError, UnicodeDecodeError) as exc:
            return DuplicationPlan(errors=[f"Failed to read {path}: {exc}"])
        try:
            module = cst.parse_module(source)
        except cst.ParserSyntaxError as exc:
            return DuplicationPlan(errors=[f"LibCST parse failed for {path}: {exc}"])
        result = duplicate_parameters(module, options)
        plan = DuplicationPlan(
            records=[replace(record, path=str(path)) for record in result.records],
            skipped=list(result.skipped),
            file_counts=[(str(path), result.modified_count)],
        )
        new_source = result.code
        if new_source == source:
            return plan
        end_line = len(source.splitlines())
        plan.edits.append(
            TextEdit(
                path=str(path),
                start=(0, 0),
                end=(end_line, 0),
                replacement=new_source,
            )
        )
        return plan

    def plan_paths(
        self,
        paths: Iterable[Path | str],
        options: DuplicationOptions | None = None,
        *,
        jobs: int = 1,
    ) -> DuplicationPlan:
        files = collect_sources(self._resolve(path) for path in paths)
        if jobs <= 1 or len(files) <= 1:
            plans = [self.plan_file(path, options) for path in deadline_loop_iter(files)]
        else:
            with concurrent.futures.ThreadPoolExecutor(max_workers=jobs) as executor:
                # Each task runs in a copy of the caller's context so the
                # run-wide deadline applies inside the worker threads.
                futures = [
                    executor.submit(
                        contextvars.copy_context().run, self.plan_file, path, options
                    )
                    for path in files
                ]
                plans = [future.result() for future in futures]
        merged = DuplicationPlan()
        for plan in plans:
            merged.extend(plan)
        return merged


def apply_plan(plan: DuplicationPlan) -> list[Path]:
    written: list[Path] = []
    for edit in plan.edits:
        check_deadline(edit.path)
        target = Path(edit.path)
        write_source(target, edit.replacement)
        written.append(target)
    return written
