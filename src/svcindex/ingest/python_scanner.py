"""Discover ``@provides`` provider classes in Python sources.

The scanner works in two stages:
  1) Index: every file is parsed, and its imports, module-level names and
     classes (with resolved bases) are recorded across the whole input set.
  2) Discover: each class carrying a marker decorator becomes a
     DiscoveryEvent, with its explicit contract resolved and checked for
     assignability, or with its bases split into superclasses and
     interfaces for contract inference.
"""

from __future__ import annotations

import ast
import builtins
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

from svcindex.diagnostics import DiagnosticSink, Severity, SourceLocation, report_error
from svcindex.exceptions import InvalidContractError, InvalidPriorityError, SourceParseError
from svcindex.ingest.discovery_contract import ContractRef, DiscoveryEvent
from svcindex.ingest.visitors import ImportTable, ImportVisitor, ParentAnnotator

DEFAULT_MARKER = "svcindex.provides"

OBJECT_TYPE = "builtins.object"
TRIVIAL_BASES = frozenset(
    {
        OBJECT_TYPE,
        "typing.Generic",
        "typing.Protocol",
        "typing_extensions.Protocol",
        "abc.ABC",
    }
)
INTERFACE_MARKERS = frozenset({"abc.ABC", "typing.Protocol", "typing_extensions.Protocol"})
ABSTRACT_METACLASSES = frozenset({"abc.ABCMeta"})


@dataclass
class ScanConfig:
    project_root: Path | None = None
    exclude_dirs: set[str] = field(default_factory=set)
    decorators: set[str] = field(default_factory=lambda: {DEFAULT_MARKER})
    strict_assignability: bool = False

    def is_ignored_path(self, path: Path) -> bool:
        parts = set(path.parts)
        return bool(self.exclude_dirs & parts)


@dataclass
class ClassInfo:
    qual: str
    module: str
    node: ast.ClassDef
    path: Path
    scopes: tuple[str, ...]
    in_function: bool
    bases: tuple[str, ...] = ()
    metaclass: str | None = None
    # Some base expression (call, starred, ...) could not be named.
    opaque_bases: bool = False


@dataclass
class ModuleUnit:
    path: Path
    module: str
    tree: ast.Module
    parents: dict[ast.AST, ast.AST]
    # Module-level names that are bound to something other than a class.
    non_type_names: set[str] = field(default_factory=set)


def iter_python_paths(paths: Iterable[Path | str], *, config: ScanConfig) -> list[Path]:
    """Expand input paths to python files, pruning ignored directories early."""
    out: list[Path] = []
    for p in paths:
        path = Path(p)
        if path.is_dir():
            for root, dirnames, filenames in os.walk(path, topdown=True):
                if config.exclude_dirs:
                    dirnames[:] = [d for d in dirnames if d not in config.exclude_dirs]
                dirnames.sort()
                for filename in sorted(filenames):
                    if not filename.endswith(".py"):
                        continue
                    candidate = Path(root) / filename
                    if config.is_ignored_path(candidate):
                        continue
                    out.append(candidate)
        else:
            if config.is_ignored_path(path):
                continue
            out.append(path)
    return sorted(set(out))


def module_name(path: Path, project_root: Path | None = None) -> str:
    rel = path.with_suffix("")
    if project_root is not None:
        try:
            rel = rel.resolve().relative_to(project_root.resolve())
        except ValueError:
            pass
    parts = list(rel.parts[1:] if rel.is_absolute() else rel.parts)
    if parts and parts[0] == "src":
        parts = parts[1:]
    if parts and parts[-1] == "__init__":
        parts = parts[:-1]
    return ".".join(parts)


def dotted_name(node: ast.AST) -> str | None:
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        head = dotted_name(node.value)
        if head is None:
            return None
        return f"{head}.{node.attr}"
    return None


def _base_expression(node: ast.AST) -> ast.AST:
    # ``Base[T]`` names the class ``Base``.
    if isinstance(node, ast.Subscript):
        return node.value
    return node


def _priority_literal(node: ast.AST) -> int | None:
    if isinstance(node, ast.Constant):
        if isinstance(node.value, int) and not isinstance(node.value, bool):
            return node.value
        return None
    if isinstance(node, ast.UnaryOp) and isinstance(node.op, (ast.USub, ast.UAdd)):
        value = _priority_literal(node.operand)
        if value is None:
            return None
        return -value if isinstance(node.op, ast.USub) else value
    return None


def _location(path: Path, node: ast.AST) -> SourceLocation:
    return SourceLocation(
        path=path,
        line=getattr(node, "lineno", 0),
        column=getattr(node, "col_offset", -1) + 1,
    )


def _enclosing_scopes(
    node: ast.AST, parents: dict[ast.AST, ast.AST]
) -> tuple[tuple[str, ...], bool]:
    scopes: list[str] = []
    in_function = False
    current = parents.get(node)
    while current is not None:
        if isinstance(current, ast.ClassDef):
            scopes.append(current.name)
        elif isinstance(current, (ast.FunctionDef, ast.AsyncFunctionDef)):
            in_function = True
            scopes.append(current.name)
        current = parents.get(current)
    return tuple(reversed(scopes)), in_function


def _module_level_bindings(tree: ast.Module) -> set[str]:
    names: set[str] = set()
    for stmt in tree.body:
        if isinstance(stmt, (ast.FunctionDef, ast.AsyncFunctionDef)):
            names.add(stmt.name)
        elif isinstance(stmt, ast.Assign):
            for target in stmt.targets:
                if isinstance(target, ast.Name):
                    names.add(target.id)
        elif isinstance(stmt, ast.AnnAssign) and isinstance(stmt.target, ast.Name):
            names.add(stmt.target.id)
    return names


class PythonSourceScanner:
    def __init__(self, *, config: ScanConfig, sink: DiagnosticSink) -> None:
        self.config = config
        self.sink = sink
        self.imports = ImportTable()
        self.units: list[ModuleUnit] = []
        self.modules: set[str] = set()
        self.classes: dict[str, ClassInfo] = {}
        self._marker_keys = {
            (name.split(".")[0], name.rsplit(".", 1)[-1]) for name in config.decorators
        }

    # -- index -------------------------------------------------------------

    def _parse(self, path: Path) -> ast.Module:
        try:
            source = path.read_text(encoding="utf-8")
            return ast.parse(source, filename=str(path))
        except SyntaxError as exc:
            raise SourceParseError(
                f"Failed to parse {path}: {exc.msg}",
                location=SourceLocation(path, exc.lineno or 0, exc.offset or 0),
            ) from exc
        except (OSError, UnicodeError, ValueError) as exc:
            raise SourceParseError(
                f"Failed to read {path}: {exc}",
                location=SourceLocation(path),
            ) from exc

    def index(self, paths: Iterable[Path]) -> None:
        for path in paths:
            try:
                tree = self._parse(path)
            except SourceParseError as exc:
                report_error(self.sink, exc)
                continue
            module = module_name(path, self.config.project_root)
            annotator = ParentAnnotator()
            annotator.visit(tree)
            ImportVisitor(module, self.imports, is_package=path.stem == "__init__").visit(tree)
            unit = ModuleUnit(
                path=path,
                module=module,
                tree=tree,
                parents=annotator.parents,
                non_type_names=_module_level_bindings(tree),
            )
            self.units.append(unit)
            self.modules.add(module)
            for node in ast.walk(tree):
                if not isinstance(node, ast.ClassDef):
                    continue
                scopes, in_function = _enclosing_scopes(node, unit.parents)
                qual = ".".join(part for part in (module, *scopes, node.name) if part)
                if not scopes:
                    unit.non_type_names.discard(node.name)
                self.classes[qual] = ClassInfo(
                    qual=qual,
                    module=module,
                    node=node,
                    path=path,
                    scopes=scopes,
                    in_function=in_function,
                )
        for info in self.classes.values():
            self._resolve_bases(info)

    def _resolve_bases(self, info: ClassInfo) -> None:
        bases: list[str] = []
        for base in info.node.bases:
            text = dotted_name(_base_expression(base))
            if text is None:
                info.opaque_bases = True
                continue
            bases.append(self.resolve_name(info.module, text, scopes=info.scopes))
        info.bases = tuple(bases)
        for keyword in info.node.keywords:
            if keyword.arg == "metaclass":
                text = dotted_name(keyword.value)
                if text is not None:
                    info.metaclass = self.resolve_name(info.module, text, scopes=info.scopes)

    # -- name resolution ---------------------------------------------------

    def canonical(self, qual: str) -> str:
        """Follow package re-exports until ``qual`` names a defining site."""
        seen: set[str] = set()
        while qual not in self.classes and qual not in seen:
            seen.add(qual)
            parts = qual.split(".")
            for split in range(len(parts) - 1, 0, -1):
                module = ".".join(parts[:split])
                target = self.imports.resolve(module, parts[split])
                if target is not None and target != ".".join(parts[: split + 1]):
                    qual = ".".join([target, *parts[split + 1 :]])
                    break
            else:
                break
        return qual

    def resolve_name(self, module: str, text: str, *, scopes: tuple[str, ...] = ()) -> str:
        head, _, rest = text.partition(".")
        suffix = f".{rest}" if rest else ""
        for depth in range(len(scopes), 0, -1):
            candidate = ".".join(part for part in (module, *scopes[:depth], head) if part)
            if candidate in self.classes:
                return self.canonical(candidate + suffix)
        local = f"{module}.{head}" if module else head
        if local in self.classes:
            return self.canonical(local + suffix)
        imported = self.imports.resolve(module, head)
        if imported is not None:
            return self.canonical(imported + suffix)
        if not rest and hasattr(builtins, head):
            return f"builtins.{head}"
        if rest:
            return self.canonical(text)
        return local

    def is_type_name(self, qual: str) -> bool:
        if qual in self.classes:
            return True
        if qual in self.modules:
            return False
        owner, _, attr = qual.rpartition(".")
        if owner == "builtins":
            return isinstance(getattr(builtins, attr, None), type)
        for unit in self.units:
            if unit.module == owner and attr in unit.non_type_names:
                return False
        # Names from outside the scanned sources are taken at their word.
        return True

    # -- hierarchy ---------------------------------------------------------

    def is_interface(self, qual: str, seen: set[str] | None = None) -> bool:
        info = self.classes.get(qual)
        if info is None:
            return qual in INTERFACE_MARKERS
        seen = seen if seen is not None else set()
        if qual in seen:
            return False
        seen.add(qual)
        if info.metaclass in ABSTRACT_METACLASSES:
            return True
        return any(
            base in INTERFACE_MARKERS or self.is_interface(base, seen)
            for base in info.bases
        )

    def is_assignable(self, qual: str, contract: str) -> bool | None:
        """True when ``contract`` is an ancestor, None when the walk leaves the sources."""
        if qual == contract or contract == OBJECT_TYPE:
            return True
        unknown = False
        seen: set[str] = set()
        pending = [qual]
        while pending:
            current = pending.pop()
            if current in seen:
                continue
            seen.add(current)
            info = self.classes.get(current)
            if info is None:
                if current not in TRIVIAL_BASES:
                    unknown = True
                continue
            if info.opaque_bases:
                unknown = True
            for base in info.bases:
                if base == contract:
                    return True
                pending.append(base)
        return None if unknown else False

    # -- discovery ---------------------------------------------------------

    def _decorator_matches(self, resolved: str) -> bool:
        if resolved in self.config.decorators:
            return True
        # ``pkg.markers.provides`` matches a configured ``pkg.provides``.
        root, tail = resolved.split(".")[0], resolved.rsplit(".", 1)[-1]
        return (root, tail) in self._marker_keys

    def _marker_call(self, info: ClassInfo) -> ast.expr | None:
        for decorator in info.node.decorator_list:
            target = decorator.func if isinstance(decorator, ast.Call) else decorator
            text = dotted_name(target)
            if text is None:
                continue
            if self._decorator_matches(self.resolve_name(info.module, text, scopes=info.scopes)):
                return decorator
        return None

    def _explicit_contract(self, info: ClassInfo, node: ast.expr) -> ContractRef:
        text = ast.unparse(node)
        name = dotted_name(node)
        if name is None:
            return ContractRef(text=text, name=None, assignable=False)
        qual = self.resolve_name(info.module, name, scopes=info.scopes)
        if not self.is_type_name(qual):
            return ContractRef(text=text, name=None, assignable=False)
        assignable = self.is_assignable(info.qual, qual)
        if assignable is None:
            assignable = not self.config.strict_assignability
        return ContractRef(text=text, name=qual, assignable=assignable)

    def _event_for(self, info: ClassInfo, marker: ast.expr) -> DiscoveryEvent:
        location = _location(info.path, info.node)
        contract_node: ast.expr | None = None
        priority = 0
        if not isinstance(marker, ast.Call):
            # A bare decorator receives the class as its contract at runtime.
            raise InvalidContractError(
                f"Marker on '{info.qual}' must be called, e.g. '@{ast.unparse(marker)}()'",
                location=location,
            )
        if marker.args:
            contract_node = marker.args[0]
        for keyword in marker.keywords:
            if keyword.arg == "contract":
                contract_node = keyword.value
            elif keyword.arg == "priority":
                value = _priority_literal(keyword.value)
                if value is None:
                    raise InvalidPriorityError(
                        f"Priority of '{info.qual}' must be an integer literal, "
                        f"got '{ast.unparse(keyword.value)}'",
                        location=_location(info.path, keyword.value),
                    )
                priority = value
        if contract_node is not None:
            return DiscoveryEvent(
                implementation=info.qual,
                priority=priority,
                explicit_contract=self._explicit_contract(info, contract_node),
                location=location,
            )
        superclasses: list[str] = []
        interfaces: list[str] = []
        for base in info.bases:
            if base in TRIVIAL_BASES:
                continue
            if self.is_interface(base):
                interfaces.append(base)
            else:
                superclasses.append(base)
        return DiscoveryEvent(
            implementation=info.qual,
            priority=priority,
            superclasses=tuple(superclasses),
            interfaces=tuple(interfaces),
            location=location,
        )

    def discover(self) -> list[DiscoveryEvent]:
        events: list[DiscoveryEvent] = []
        ordered = sorted(
            self.classes.values(),
            key=lambda info: (str(info.path), info.node.lineno, info.node.col_offset),
        )
        for info in ordered:
            marker = self._marker_call(info)
            if marker is None:
                continue
            if info.in_function:
                self.sink.report(
                    Severity.WARNING,
                    f"Skipping '{info.qual}': classes defined inside a function cannot be loaded by name",
                    _location(info.path, info.node),
                )
                continue
            try:
                events.append(self._event_for(info, marker))
            except (InvalidContractError, InvalidPriorityError) as exc:
                report_error(self.sink, exc)
        return events


def scan_sources(
    paths: Iterable[Path | str],
    *,
    config: ScanConfig,
    sink: DiagnosticSink,
) -> list[DiscoveryEvent]:
    scanner = PythonSourceScanner(config=config, sink=sink)
    scanner.index(iter_python_paths(paths, config=config))
    return scanner.discover()
