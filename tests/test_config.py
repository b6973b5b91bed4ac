from pathlib import Path

import pytest
from pydantic import ValidationError

from routescribe.config import Settings, kind_from_name
from routescribe.source.model import DEFAULT_KIND_ORDER, MappingKind


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("RECOGNIZED_KINDS", "EXTRA_IGNORES", "OUTPUT_DIR", "OUTPUT_NAME", "MAX_FILE_BYTES", "LOG_LEVEL"):
        monkeypatch.delenv(f"ROUTESCRIBE_{name}", raising=False)


def test_defaults():
    s = Settings(_env_file=None)
    assert s.recognized_kinds == list(DEFAULT_KIND_ORDER)
    assert s.extra_ignores == []
    assert s.report_path_for(Path("/repo")) == Path("/repo/.routescribe/routes")


def test_comma_separated_env_values(monkeypatch):
    monkeypatch.setenv("ROUTESCRIBE_RECOGNIZED_KINDS", "GetMapping, post_mapping,DELETE")
    monkeypatch.setenv("ROUTESCRIBE_EXTRA_IGNORES", "vendor,generated")

    s = Settings(_env_file=None)
    assert s.recognized_kinds == [MappingKind.GET, MappingKind.POST, MappingKind.DELETE]
    assert s.extra_ignores == ["vendor", "generated"]


def test_json_list_env_values(monkeypatch):
    monkeypatch.setenv("ROUTESCRIBE_RECOGNIZED_KINDS", '["RequestMapping", "get"]')
    monkeypatch.setenv("ROUTESCRIBE_EXTRA_IGNORES", '["build"]')

    s = Settings(_env_file=None)
    assert s.recognized_kinds == [MappingKind.REQUEST, MappingKind.GET]
    assert s.extra_ignores == ["build"]


def test_scalar_env_values(monkeypatch):
    monkeypatch.setenv("ROUTESCRIBE_OUTPUT_DIR", "docs")
    monkeypatch.setenv("ROUTESCRIBE_MAX_FILE_BYTES", "1000")

    s = Settings(_env_file=None)
    assert s.output_dir == "docs"
    assert s.max_file_bytes == 1000


def test_unknown_kind_is_rejected(monkeypatch):
    monkeypatch.setenv("ROUTESCRIBE_RECOGNIZED_KINDS", "GetMapping,Route")
    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_kind_from_name_spellings():
    assert kind_from_name("PatchMapping") is MappingKind.PATCH
    assert kind_from_name("patch_mapping") is MappingKind.PATCH
    assert kind_from_name(" patch ") is MappingKind.PATCH
    with pytest.raises(ValueError):
        kind_from_name("Patch")
