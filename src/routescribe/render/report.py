from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Iterable, Optional

from routescribe.domain.errors import ReportWriteError
from routescribe.domain.models import Param, Route, RouteGroup

logger = logging.getLogger(__name__)

ANY_METHOD = "ANY"
UNKNOWN_TYPE = "unknown"


def _media(values: tuple[str, ...]) -> str:
    return "[" + ", ".join(values) + "]"


def route_line(r: Route) -> str:
    parts = ["\t- "]
    if r.deprecated:
        parts.append("[DEPRECATED] ")
    parts.append(" ".join(r.methods) if r.methods else ANY_METHOD)
    parts.append(" " + r.path)
    if r.consumes is not None:
        parts.append(f"(expects: {_media(r.consumes)})")
    if r.produces is not None:
        parts.append(f"(returns: {_media(r.produces)})")
    return "".join(parts)


def _param_lines(header: Optional[str], params: Iterable[Param]) -> list[str]:
    lines = []
    if header is not None:
        lines.append("\t\t" + header)
    indent = "\t\t\t" if header is not None else "\t\t"
    for p in params:
        line = f"{indent}- {p.type_fqn or UNKNOWN_TYPE} {p.name}"
        if p.default_value is not None:
            line += f" (default: {p.default_value})"
        lines.append(line)
    return lines


def render(group: RouteGroup) -> str:
    r"""
    Render the route model as text:

      app.api.UserController:
      \t- [DEPRECATED] GET api/users(returns: [application/json])
      \t\t- int page (default: 1)
      \t\toutput: app.dto.UserPage
      \t\t\t- list[app.dto.User] items

    Types and routes keep the group's insertion order.
    """
    lines: list[str] = []
    for declaring_type, routes in group.items():
        lines.append(f"{declaring_type}:")
        for r in routes:
            lines.append(route_line(r))
            lines.extend(_param_lines(None, r.query_params))
            if r.body_type is not None:
                lines.extend(_param_lines(f"input: {r.body_type.type_fqn}", r.body_type.fields))
            if r.return_type is not None:
                lines.extend(_param_lines(f"output: {r.return_type.type_fqn}", r.return_type.fields))
    return "".join(line + "\n" for line in lines)


def write_report(text: str, destination: Path) -> Path:
    """
    Write `text` to `destination` atomically.

    The text goes to a temporary file next to the destination, which replaces
    the target only once fully written; on failure the temporary file is
    removed and any previous report is left as it was.
    """
    destination = Path(destination)
    tmp_name: Optional[str] = None
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            newline="\n",
            dir=str(destination.parent),
            prefix=f".{destination.name}.",
            suffix=".tmp",
            delete=False,
        ) as fh:
            tmp_name = fh.name
            fh.write(text)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_name, destination)
    except OSError as exc:
        if tmp_name is not None:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
        raise ReportWriteError(str(destination)) from exc

    logger.info("Wrote report to %s", destination)
    return destination
