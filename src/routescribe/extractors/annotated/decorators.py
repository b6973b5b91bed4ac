from __future__ import annotations

import ast
from typing import Optional

from routescribe.source.model import (
    MAPPING_FIELDS,
    MappingAnnotation,
    MappingKind,
    MarkerKind,
    ParamMarker,
)

_KIND_BY_NAME: dict[str, MappingKind] = {}
for _kind in MappingKind:
    _KIND_BY_NAME[_kind.value] = _kind
    _KIND_BY_NAME[_kind.snake_name] = _kind

_MARKER_BY_NAME: dict[str, MarkerKind] = {
    "RequestParam": MarkerKind.QUERY,
    "request_param": MarkerKind.QUERY,
    "RequestBody": MarkerKind.BODY,
    "request_body": MarkerKind.BODY,
}

_DEPRECATION_NAMES = {"deprecated", "Deprecated"}

_KEYWORD_ALIASES = {
    "methods": "method",
    "defaultValue": "default_value",
}

_NO_DEFAULT_SUFFIX = "DEFAULT_NONE"


def final_name(node: ast.AST) -> Optional[str]:
    # web.GetMapping -> GetMapping
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        return node.attr
    return None


def parse_mapping_decorator(dec: ast.expr) -> Optional[MappingAnnotation]:
    """
    Recognize decorators of form:
      @GetMapping
      @GetMapping("/users", produces=["application/json"])
      @web.request_mapping(path="/api", method=[RequestMethod.GET])

    Returns None for anything that is not a mapping decorator.
    """
    target = dec.func if isinstance(dec, ast.Call) else dec
    kind = _KIND_BY_NAME.get(final_name(target) or "")
    if kind is None:
        return None

    line = getattr(dec, "lineno", 1) or 1
    if not isinstance(dec, ast.Call):
        return MappingAnnotation(kind=kind, method=kind.implied_methods, line=line)

    values: dict[str, Optional[tuple[str, ...]]] = {}
    if dec.args:
        values["value"] = _str_tuple(dec.args[0])

    for kw in dec.keywords or []:
        if kw.arg is None:
            # **options: nothing literal to read
            continue
        name = _KEYWORD_ALIASES.get(kw.arg, kw.arg)
        if name not in MAPPING_FIELDS:
            continue
        if name == "method":
            values[name] = _method_tuple(kw.value)
        else:
            values[name] = _str_tuple(kw.value)

    if kind is MappingKind.REQUEST:
        method = values.get("method") or ()
    else:
        method = kind.implied_methods

    return MappingAnnotation(
        kind=kind,
        path=tuple(p for p in values.get("path") or () if p),
        value=tuple(p for p in values.get("value") or () if p),
        method=method,
        consumes=values.get("consumes"),
        produces=values.get("produces"),
        line=line,
    )


def is_deprecation_decorator(dec: ast.expr) -> bool:
    target = dec.func if isinstance(dec, ast.Call) else dec
    return final_name(target) in _DEPRECATION_NAMES


def parse_param_marker(node: ast.expr) -> Optional[ParamMarker]:
    """
    Recognize parameter markers:
      RequestParam("page", default_value="1")
      request_param(name="q")
      RequestBody / RequestBody()
    """
    target = node.func if isinstance(node, ast.Call) else node
    kind = _MARKER_BY_NAME.get(final_name(target) or "")
    if kind is None:
        return None
    if kind is MarkerKind.BODY or not isinstance(node, ast.Call):
        return ParamMarker(kind=kind)

    name = ""
    value = ""
    default_value: Optional[str] = None

    if node.args:
        value = (const_str(node.args[0]) or "").strip()

    for kw in node.keywords or []:
        arg = _KEYWORD_ALIASES.get(kw.arg or "", kw.arg)
        if arg == "name":
            name = (const_str(kw.value) or "").strip()
        elif arg == "value":
            value = (const_str(kw.value) or "").strip()
        elif arg == "default_value":
            default_value = _default_literal(kw.value)

    return ParamMarker(kind=kind, name=name, value=value, default_value=default_value)


def split_annotated(node: ast.expr) -> tuple[ast.expr, list[ast.expr]]:
    """Annotated[T, m1, m2] -> (T, [m1, m2]); anything else -> (node, [])."""
    if not isinstance(node, ast.Subscript):
        return node, []
    if final_name(node.value) != "Annotated":
        return node, []
    inner = node.slice
    if isinstance(inner, ast.Tuple) and inner.elts:
        return inner.elts[0], list(inner.elts[1:])
    return inner, []


def const_str(node: ast.AST) -> Optional[str]:
    if isinstance(node, ast.Constant) and isinstance(node.value, str):
        return node.value
    return None


def _str_tuple(node: ast.AST) -> Optional[tuple[str, ...]]:
    # "x" or ["x", "y"] or ("x",); non-literal -> None
    if isinstance(node, (ast.List, ast.Tuple, ast.Set)):
        out = []
        for elt in node.elts:
            s = const_str(elt)
            if s is None:
                return None
            out.append(s)
        return tuple(out)

    s = const_str(node)
    if s is not None:
        return (s,)
    return None


def _method_token(node: ast.AST) -> Optional[str]:
    # "GET", RequestMethod.GET, GET
    s = const_str(node)
    if s is None:
        s = final_name(node)
    return s.strip().upper() if s and s.strip() else None


def _method_tuple(node: ast.AST) -> Optional[tuple[str, ...]]:
    elts = node.elts if isinstance(node, (ast.List, ast.Tuple, ast.Set)) else [node]
    out = []
    for elt in elts:
        token = _method_token(elt)
        if token is None:
            return None
        out.append(token)
    return tuple(out)


def _default_literal(node: ast.AST) -> Optional[str]:
    if isinstance(node, ast.Constant):
        if node.value is None:
            return None
        if isinstance(node.value, str):
            return node.value
        return str(node.value)
    if (final_name(node) or "").endswith(_NO_DEFAULT_SUFFIX):
        return None
    return ast.unparse(node)
