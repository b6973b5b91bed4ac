import logging
import textwrap

from routescribe.extractors.annotated.source_model import AstSourceModel, module_name_for
from routescribe.source.model import MappingKind, MarkerKind, ScopeKind, TypeRef


def model_of(files: dict) -> AstSourceModel:
    return AstSourceModel.from_sources({p: textwrap.dedent(src) for p, src in files.items()})


def test_module_name_for():
    assert module_name_for("app/api.py") == "app.api"
    assert module_name_for("app/models/__init__.py") == "app.models"
    assert module_name_for(r"pkg\sub\mod.py") == "pkg.sub.mod"
    assert module_name_for("main.py") == "main"
    assert module_name_for("src/shop/api.py") == "shop.api"
    assert module_name_for("src/shop/__init__.py") == "shop"
    assert module_name_for("src.py") == "src"


def test_scopes_members_and_enclosing_chain():
    model = model_of({"app/api.py": """
        from web import RequestMapping, GetMapping

        @RequestMapping("api")
        class UserController:
            @GetMapping("users")
            def list_users(self):
                def inner():
                    pass
                return []

            def helper(self):
                pass

        @GetMapping("/health")
        async def health():
            return {}
        """})

    members = model.list_annotated_members(MappingKind)
    assert [m.qualname for m in members] == [
        "app.api.UserController.list_users",
        "app.api.health",
    ]

    list_users = members[0]
    assert list_users.kind is ScopeKind.FUNCTION
    assert list_users.file_path == "app/api.py"

    ctl = model.get_enclosing_scope(list_users)
    assert ctl is not None and ctl.qualname == "app.api.UserController"
    assert model.annotation_kinds(ctl) == (MappingKind.REQUEST,)

    module = model.get_enclosing_scope(ctl)
    assert module is not None and module.kind is ScopeKind.MODULE
    assert model.get_enclosing_scope(module) is None

    # function bodies are not indexed
    assert model.scope("app.api.UserController.list_users.inner") is None


def test_list_annotated_members_filters_by_kind():
    model = model_of({"app.py": """
        @GetMapping("/a")
        def a(): ...

        @PostMapping("/b")
        def b(): ...
        """})
    members = model.list_annotated_members([MappingKind.POST])
    assert [m.name for m in members] == ["b"]


def test_annotation_field_absent_kind_returns_none():
    model = model_of({"app.py": """
        @GetMapping("/a", consumes=["application/json"])
        def a(): ...
        """})
    a = model.scope("app.a")
    assert model.get_annotation_field(a, MappingKind.GET, "consumes") == ("application/json",)
    assert model.get_annotation_field(a, MappingKind.GET, "produces") is None
    assert model.get_annotation_field(a, MappingKind.POST, "value") is None


def test_parameters_markers_from_annotated_and_defaults():
    model = model_of({"app.py": """
        from typing import Annotated

        @PostMapping("/x")
        def create(
            body: Annotated["Payload", RequestBody()],
            page: int = RequestParam(),
            *,
            q: Annotated[str, RequestParam("query")] = "",
            plain=3,
        ): ...
        """})
    params = {p.name: p for p in model.get_parameters(model.scope("app.create"))}

    assert params["body"].marker(MarkerKind.BODY) is not None
    assert params["body"].annotation.text == "Payload"
    assert params["page"].marker(MarkerKind.QUERY) is not None
    assert params["page"].annotation.text == "int"
    assert params["q"].marker(MarkerKind.QUERY).value == "query"
    assert params["q"].annotation.text == "str"
    assert params["plain"].markers == ()
    assert params["plain"].annotation is None


def test_type_resolution_across_modules_relative_imports_and_reexports():
    model = model_of({
        "app/models/__init__.py": """
        from .user import User
        """,
        "app/models/user.py": """
        class User:
            id: int
        """,
        "app/api.py": """
        from app.models import User as U
        from . import models
        from .models.user import User

        @GetMapping("/a")
        def a() -> U: ...

        @GetMapping("/b")
        def b() -> models.User: ...

        @GetMapping("/c")
        def c() -> "User": ...

        @GetMapping("/d")
        def d() -> dict: ...
        """,
    })
    for name in ("a", "b", "c"):
        ref = model.get_declared_type(model.scope(f"app.api.{name}"))
        assert model.resolve_type(ref) == "app.models.user.User", name

    d_ref = model.get_declared_type(model.scope("app.api.d"))
    assert model.resolve_type(d_ref) is None
    assert model.display_type(d_ref) == "dict"


def test_fields_skip_classvar_and_superclass_uses_first_known_base():
    model = model_of({"app/dto.py": """
        from typing import ClassVar
        from pydantic import BaseModel

        class Base(BaseModel):
            id: int

        class User(BaseModel, Base):
            registry: ClassVar[dict] = {}
            name: str
            email: "str | None" = None
            count = 0
        """})
    assert [f.name for f in model.get_fields("app.dto.User")] == ["name", "email"]
    assert model.get_superclass("app.dto.User") == "app.dto.Base"
    assert model.get_superclass("app.dto.Base") is None
    assert model.get_fields("app.dto.Missing") == ()


def test_unparseable_source_is_skipped_with_warning(caplog):
    with caplog.at_level(logging.WARNING):
        model = AstSourceModel.from_sources({"broken.py": "def (:\n", "ok.py": "x = 1\n"})

    assert model.skipped == ["broken.py"]
    assert model.scope("ok") is not None
    assert any("broken.py" in r.getMessage() for r in caplog.records)


def test_resolve_type_of_unknown_reference():
    model = AstSourceModel()
    assert model.resolve_type(None) is None
    assert model.resolve_type(TypeRef(text="list[int]")) is None
    assert model.display_type(TypeRef(text="list[int]")) == "list[int]"
