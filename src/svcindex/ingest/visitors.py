from __future__ import annotations

import ast
from dataclasses import dataclass, field


@dataclass
class ImportTable:
    imports: dict[tuple[str, str], str] = field(default_factory=dict)

    def resolve(self, module: str, name: str) -> str | None:
        return self.imports.get((module, name))


class ParentAnnotator(ast.NodeVisitor):
    def __init__(self) -> None:
        self.parents: dict[ast.AST, ast.AST] = {}

    def generic_visit(self, node: ast.AST) -> None:
        for child in ast.iter_child_nodes(node):
            self.parents[child] = node
            self.visit(child)


class ImportVisitor(ast.NodeVisitor):
    """Record module-level import bindings as ``(module, local) -> fqn``."""

    def __init__(self, module_name: str, table: ImportTable, *, is_package: bool = False) -> None:
        self.module = module_name
        self.table = table
        self.is_package = is_package

    def visit_FunctionDef(self, node: ast.FunctionDef) -> None:
        return

    def visit_AsyncFunctionDef(self, node: ast.AsyncFunctionDef) -> None:
        return

    def visit_ClassDef(self, node: ast.ClassDef) -> None:
        return

    def visit_Import(self, node: ast.Import) -> None:
        for alias in node.names:
            if alias.asname:
                self.table.imports[(self.module, alias.asname)] = alias.name
            else:
                # ``import a.b`` binds ``a``.
                head = alias.name.split(".")[0]
                self.table.imports[(self.module, head)] = head

    def visit_ImportFrom(self, node: ast.ImportFrom) -> None:
        if not node.module and node.level == 0:
            return
        if node.level > 0:
            parts = self.module.split(".")
            # A package's own ``__init__`` is level-1 relative to itself.
            keep = len(parts) - node.level + (1 if self.is_package else 0)
            if keep < 0:
                return
            base = parts[:keep]
            if node.module:
                base.append(node.module)
            source = ".".join(base)
        else:
            source = node.module or ""
        for alias in node.names:
            if alias.name == "*":
                continue
            local = alias.asname or alias.name
            fqn = f"{source}.{alias.name}" if source else alias.name
            self.table.imports[(self.module, local)] = fqn
