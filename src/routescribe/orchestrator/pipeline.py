from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from routescribe.config import Settings, get_settings
from routescribe.domain.models import RouteGroup
from routescribe.extractors.annotated.source_model import AstSourceModel
from routescribe.render.report import render, write_report
from routescribe.repo.scanner import scan_python_files
from routescribe.resolve.annotations import AnnotationResolver
from routescribe.resolve.builder import RouteModelBuilder

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalyzeResult:
    repo_path: str
    files_scanned: int
    files_parsed: int
    skipped_files: list[str]
    group: RouteGroup
    warnings: list[str]
    report: str
    report_path: str | None

    @property
    def route_count(self) -> int:
        return self.group.route_count


def build_route_group(
    model: AstSourceModel,
    settings: Settings,
) -> tuple[RouteGroup, list[str]]:
    resolver = AnnotationResolver(model, kinds=settings.recognized_kinds)
    builder = RouteModelBuilder(resolver)
    group = builder.build()
    return group, list(resolver.warnings)


def run_analyze(
    repo_path: Path,
    settings: Optional[Settings] = None,
    max_files: int | None = None,
    output: Optional[Path] = None,
    write: bool = True,
) -> AnalyzeResult:
    """
    Scan a repo, resolve every annotated handler into a Route and render the
    report. With `write=True` the report is written to `output`, or to
    `<repo>/<output_dir>/<output_name>` by default.
    """
    settings = settings or get_settings()
    repo_path = repo_path.resolve()

    py_files = scan_python_files(repo_path, max_files=max_files, extra_ignores=settings.extra_ignores)
    model = AstSourceModel.from_files(py_files, root=repo_path, max_bytes=settings.max_file_bytes)
    logger.info("Parsed %d of %d files under %s", len(py_files) - len(model.skipped), len(py_files), repo_path)

    group, warnings = build_route_group(model, settings)
    report = render(group)

    report_path: str | None = None
    if write:
        destination = output if output is not None else settings.report_path_for(repo_path)
        report_path = str(write_report(report, destination))

    return AnalyzeResult(
        repo_path=str(repo_path),
        files_scanned=len(py_files),
        files_parsed=len(py_files) - len(model.skipped),
        skipped_files=list(model.skipped),
        group=group,
        warnings=warnings,
        report=report,
        report_path=report_path,
    )
