from __future__ import annotations

import ast
import logging
import os
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional, Union

from routescribe.extractors.annotated.decorators import (
    final_name,
    is_deprecation_decorator,
    parse_mapping_decorator,
    parse_param_marker,
    split_annotated,
)
from routescribe.source.model import (
    FieldDecl,
    MappingKind,
    ParameterDecl,
    ParamMarker,
    Scope,
    ScopeKind,
    TypeRef,
)

logger = logging.getLogger(__name__)

_FunctionNode = Union[ast.FunctionDef, ast.AsyncFunctionDef]

# bound on alias hops when following re-exports (pkg/__init__.py importing from a submodule)
_MAX_REEXPORT_HOPS = 10


def module_name_for(rel_path: str) -> str:
    # pkg/api.py -> pkg.api, pkg/__init__.py -> pkg
    p = rel_path.replace("\\", "/")
    if p.endswith(".py"):
        p = p[:-3]
    parts = [x for x in p.split("/") if x and x != "."]
    if parts and parts[-1] == "__init__":
        parts = parts[:-1]
    # src-layout: src/shop/api.py is imported as shop.api
    if len(parts) > 1 and parts[0] == "src":
        parts = parts[1:]
    return ".".join(parts) or "__main__"


class _ImportTable:
    """Local name -> fully-qualified target, for one module."""

    def __init__(self, module: str, is_package: bool) -> None:
        self.module = module
        self.is_package = is_package
        self.names: dict[str, str] = {}

    def collect(self, tree: ast.AST) -> None:
        # walk the whole tree so `if TYPE_CHECKING:` imports count too
        for node in ast.walk(tree):
            if isinstance(node, ast.Import):
                for alias in node.names:
                    if alias.asname:
                        self.names[alias.asname] = alias.name
                    else:
                        head = alias.name.split(".")[0]
                        self.names[head] = head
            elif isinstance(node, ast.ImportFrom):
                base = self._from_base(node)
                for alias in node.names:
                    if alias.name == "*":
                        continue
                    local = alias.asname or alias.name
                    self.names[local] = f"{base}.{alias.name}" if base else alias.name

    def _from_base(self, node: ast.ImportFrom) -> str:
        if not node.level:
            return node.module or ""
        package = self.module if self.is_package else self.module.rpartition(".")[0]
        parts = package.split(".") if package else []
        drop = node.level - 1
        if drop:
            parts = parts[:-drop] if drop <= len(parts) else []
        if node.module:
            parts.append(node.module)
        return ".".join(parts)


class AstSourceModel:
    """
    In-memory source model built from Python files with `ast` only.

    Nothing is imported or executed. Scopes are modules, classes (nested to
    any depth) and functions defined directly in a module or class body;
    function bodies are not descended into.
    """

    def __init__(self) -> None:
        self._scopes: dict[str, Scope] = {}
        self._imports: dict[str, _ImportTable] = {}
        self.skipped: list[str] = []

    # ----------------------------
    # Construction
    # ----------------------------

    @classmethod
    def from_sources(cls, sources: Mapping[str, str]) -> "AstSourceModel":
        model = cls()
        for rel_path, text in sources.items():
            model.add_source(rel_path, text)
        return model

    @classmethod
    def from_files(
        cls,
        paths: Iterable[Union[str, Path]],
        root: Path,
        max_bytes: int = 500_000,
    ) -> "AstSourceModel":
        model = cls()
        root = root.resolve()
        for p in paths:
            fpath = Path(p).resolve()
            rel_path = os.path.relpath(str(fpath), str(root))
            try:
                if fpath.stat().st_size > max_bytes:
                    logger.warning("Skipping %s: larger than %d bytes", rel_path, max_bytes)
                    model.skipped.append(rel_path)
                    continue
                text = fpath.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as exc:
                logger.warning("Skipping %s: %s", rel_path, exc)
                model.skipped.append(rel_path)
                continue
            model.add_source(rel_path, text)
        return model

    def add_source(self, rel_path: str, text: str) -> bool:
        try:
            tree = ast.parse(text, filename=rel_path)
        except SyntaxError as exc:
            logger.warning("Skipping %s: cannot parse (%s)", rel_path, exc.msg)
            self.skipped.append(rel_path)
            return False

        rel_path = rel_path.replace("\\", "/")
        module = module_name_for(rel_path)
        imports = _ImportTable(module, is_package=rel_path.endswith("__init__.py"))
        imports.collect(tree)
        self._imports[module] = imports

        self._scopes[module] = Scope(
            qualname=module,
            name=module.rpartition(".")[2],
            kind=ScopeKind.MODULE,
            module=module,
            file_path=rel_path,
            line=1,
        )
        self._visit_body(tree.body, enclosing=module, module=module, file_path=rel_path)
        return True

    def _visit_body(self, body: list[ast.stmt], enclosing: str, module: str, file_path: str) -> None:
        for node in body:
            if isinstance(node, ast.ClassDef):
                self._add_class(node, enclosing, module, file_path)
            elif isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
                self._add_function(node, enclosing, module, file_path)

    def _add_class(self, node: ast.ClassDef, enclosing: str, module: str, file_path: str) -> None:
        qualname = f"{enclosing}.{node.name}"
        fields = []
        for stmt in node.body:
            if not isinstance(stmt, ast.AnnAssign) or not isinstance(stmt.target, ast.Name):
                continue
            type_node, _ = split_annotated(self._unquote(stmt.annotation))
            if _is_classvar(type_node):
                continue
            fields.append(FieldDecl(name=stmt.target.id, annotation=self._type_ref(stmt.annotation, module)))

        self._scopes[qualname] = Scope(
            qualname=qualname,
            name=node.name,
            kind=ScopeKind.CLASS,
            module=module,
            file_path=file_path,
            line=node.lineno,
            enclosing=enclosing,
            annotations=self._mappings(node.decorator_list),
            deprecated=any(is_deprecation_decorator(d) for d in node.decorator_list),
            fields=tuple(fields),
            bases=tuple(self._type_ref(b, module) for b in node.bases),
        )
        self._visit_body(node.body, enclosing=qualname, module=module, file_path=file_path)

    def _add_function(self, node: _FunctionNode, enclosing: str, module: str, file_path: str) -> None:
        qualname = f"{enclosing}.{node.name}"
        self._scopes[qualname] = Scope(
            qualname=qualname,
            name=node.name,
            kind=ScopeKind.FUNCTION,
            module=module,
            file_path=file_path,
            line=node.lineno,
            enclosing=enclosing,
            annotations=self._mappings(node.decorator_list),
            deprecated=any(is_deprecation_decorator(d) for d in node.decorator_list),
            parameters=self._parameters(node.args, module),
            returns=self._type_ref(node.returns, module) if node.returns is not None else None,
        )

    def _mappings(self, decorators: list[ast.expr]) -> tuple:
        out = []
        for dec in decorators:
            ann = parse_mapping_decorator(dec)
            if ann is not None:
                out.append(ann)
        return tuple(out)

    def _parameters(self, args: ast.arguments, module: str) -> tuple[ParameterDecl, ...]:
        positional = list(args.posonlyargs) + list(args.args)
        defaults: list[Optional[ast.expr]] = [None] * (len(positional) - len(args.defaults))
        defaults += list(args.defaults)

        pairs = list(zip(positional, defaults)) + list(zip(args.kwonlyargs, args.kw_defaults))

        out = []
        for arg, default in pairs:
            markers: list[ParamMarker] = []
            annotation: Optional[TypeRef] = None
            if arg.annotation is not None:
                _, metadata = split_annotated(self._unquote(arg.annotation))
                for meta in metadata:
                    marker = parse_param_marker(meta)
                    if marker is not None:
                        markers.append(marker)
                annotation = self._type_ref(arg.annotation, module)
            if default is not None:
                marker = parse_param_marker(default)
                if marker is not None:
                    markers.append(marker)
            out.append(ParameterDecl(name=arg.arg, annotation=annotation, markers=tuple(markers)))
        return tuple(out)

    def _unquote(self, node: ast.expr) -> ast.expr:
        # "UserDto" forward references
        if isinstance(node, ast.Constant) and isinstance(node.value, str):
            try:
                return ast.parse(node.value, mode="eval").body
            except SyntaxError:
                return node
        return node

    def _type_ref(self, node: ast.expr, module: str) -> TypeRef:
        type_node, _ = split_annotated(self._unquote(node))
        type_node = self._unquote(type_node)
        return TypeRef(text=ast.unparse(type_node), candidate=self._candidate(type_node, module))

    def _candidate(self, node: ast.expr, module: str) -> Optional[str]:
        if isinstance(node, ast.Name):
            imported = self._imports[module].names.get(node.id)
            return imported or f"{module}.{node.id}"
        if isinstance(node, ast.Attribute):
            head = self._candidate(node.value, module)
            return f"{head}.{node.attr}" if head else None
        return None

    # ----------------------------
    # Provider interface
    # ----------------------------

    @property
    def scopes(self) -> list[Scope]:
        return list(self._scopes.values())

    def scope(self, qualname: str) -> Optional[Scope]:
        return self._scopes.get(qualname)

    def list_annotated_members(self, kinds: Iterable[MappingKind]) -> list[Scope]:
        wanted = set(kinds)
        return [
            s
            for s in self._scopes.values()
            if s.kind == ScopeKind.FUNCTION and any(a.kind in wanted for a in s.annotations)
        ]

    def get_enclosing_scope(self, scope: Scope) -> Optional[Scope]:
        if scope.enclosing is None:
            return None
        return self._scopes.get(scope.enclosing)

    def annotation_kinds(self, scope: Scope) -> tuple[MappingKind, ...]:
        seen: list[MappingKind] = []
        for ann in scope.annotations:
            if ann.kind not in seen:
                seen.append(ann.kind)
        return tuple(seen)

    def get_annotation_field(self, scope: Scope, kind: MappingKind, field_name: str) -> Any:
        for ann in scope.annotations:
            if ann.kind == kind:
                return ann.get(field_name)
        return None

    def is_deprecated(self, scope: Scope) -> bool:
        return scope.deprecated

    def get_parameters(self, member: Scope) -> tuple[ParameterDecl, ...]:
        return member.parameters

    def get_declared_type(self, target: Union[Scope, ParameterDecl, FieldDecl]) -> Optional[TypeRef]:
        if isinstance(target, Scope):
            return target.returns
        return target.annotation

    def resolve_type(self, ref: Optional[TypeRef]) -> Optional[str]:
        if ref is None or ref.candidate is None:
            return None
        return self._follow_reexports(ref.candidate)

    def display_type(self, ref: Optional[TypeRef]) -> Optional[str]:
        if ref is None:
            return None
        return self.resolve_type(ref) or ref.text

    def get_fields(self, type_fqn: str) -> tuple[FieldDecl, ...]:
        scope = self._class(type_fqn)
        return scope.fields if scope else ()

    def get_superclass(self, type_fqn: str) -> Optional[str]:
        scope = self._class(type_fqn)
        if scope is None:
            return None
        for base in scope.bases:
            resolved = self.resolve_type(base)
            if resolved and resolved != type_fqn:
                return resolved
        return None

    def _class(self, fqn: str) -> Optional[Scope]:
        scope = self._scopes.get(fqn)
        if scope is None or scope.kind != ScopeKind.CLASS:
            return None
        return scope

    def _follow_reexports(self, candidate: str) -> Optional[str]:
        current = candidate
        for _ in range(_MAX_REEXPORT_HOPS):
            if self._class(current) is not None:
                return current
            module, _, rest = current.rpartition(".")
            nxt = None
            # longest module prefix that imports the next name
            while module:
                table = self._imports.get(module)
                if table is not None:
                    head, _, tail = rest.partition(".")
                    target = table.names.get(head)
                    if target is not None:
                        nxt = f"{target}.{tail}" if tail else target
                    break
                module, _, last = module.rpartition(".")
                rest = f"{last}.{rest}"
            if nxt is None or nxt == current:
                return None
            current = nxt
        return None


def _is_classvar(node: ast.expr) -> bool:
    target = node.value if isinstance(node, ast.Subscript) else node
    return final_name(target) == "ClassVar"
