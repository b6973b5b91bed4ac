import ast

from routescribe.extractors.annotated.decorators import (
    is_deprecation_decorator,
    parse_mapping_decorator,
    parse_param_marker,
    split_annotated,
)
from routescribe.source.model import MappingKind, MarkerKind


def _dec(src: str) -> ast.expr:
    return ast.parse(src, mode="eval").body


def test_parse_mapping_positional_value_and_media():
    ann = parse_mapping_decorator(_dec('GetMapping("/users", produces=["application/json"])'))
    assert ann is not None
    assert ann.kind is MappingKind.GET
    assert ann.value == ("/users",)
    assert ann.path == ()
    assert ann.method == ("GET",)
    assert ann.produces == ("application/json",)
    assert ann.consumes is None


def test_parse_mapping_bare_and_dotted_snake_case():
    bare = parse_mapping_decorator(_dec("PostMapping"))
    assert bare is not None
    assert bare.kind is MappingKind.POST
    assert bare.value == () and bare.path == ()
    assert bare.method == ("POST",)

    dotted = parse_mapping_decorator(_dec('web.delete_mapping(path="/x")'))
    assert dotted is not None
    assert dotted.kind is MappingKind.DELETE
    assert dotted.path == ("/x",)


def test_parse_request_mapping_methods_from_strings_and_enum_attributes():
    ann = parse_mapping_decorator(_dec('RequestMapping(path=["/a", "/b"], method=[RequestMethod.GET, "post"])'))
    assert ann is not None
    assert ann.kind is MappingKind.REQUEST
    assert ann.path == ("/a", "/b")
    assert ann.method == ("GET", "POST")

    alias = parse_mapping_decorator(_dec('request_mapping("/c", methods="put")'))
    assert alias is not None
    assert alias.method == ("PUT",)


def test_path_literals_are_kept_exactly_marker_names_are_trimmed():
    ann = parse_mapping_decorator(_dec('GetMapping(" /x ", method=" post ")'))
    assert ann is not None
    assert ann.value == (" /x ",)

    ann = parse_mapping_decorator(_dec('RequestMapping(path="/a ", method=" post ")'))
    assert ann is not None
    assert ann.path == ("/a ",)
    assert ann.method == ("POST",)

    m = parse_param_marker(_dec('RequestParam(" q ", name=" size ")'))
    assert m is not None
    assert m.value == "q"
    assert m.name == "size"


def test_verb_mapping_ignores_method_keyword():
    ann = parse_mapping_decorator(_dec('GetMapping("/x", method=["POST"])'))
    assert ann is not None
    assert ann.method == ("GET",)


def test_explicit_empty_media_is_not_absent():
    ann = parse_mapping_decorator(_dec('PutMapping("/x", consumes=[])'))
    assert ann is not None
    assert ann.consumes == ()
    assert ann.produces is None


def test_non_literal_values_are_treated_as_absent():
    ann = parse_mapping_decorator(_dec('GetMapping(PREFIX + "/users", produces=MEDIA)'))
    assert ann is not None
    assert ann.value == ()
    assert ann.produces is None


def test_unrelated_decorators_are_ignored():
    assert parse_mapping_decorator(_dec('app.get("/users")')) is None
    assert parse_mapping_decorator(_dec("staticmethod")) is None


def test_deprecation_decorator_spellings():
    assert is_deprecation_decorator(_dec('deprecated("use v2")'))
    assert is_deprecation_decorator(_dec("typing_extensions.deprecated"))
    assert is_deprecation_decorator(_dec("Deprecated"))
    assert not is_deprecation_decorator(_dec("cached_property"))


def test_query_marker_fields_and_no_default_sentinel():
    m = parse_param_marker(_dec('RequestParam("q", default_value=ValueConstants.DEFAULT_NONE)'))
    assert m is not None
    assert m.kind is MarkerKind.QUERY
    assert m.value == "q"
    assert m.name == ""
    assert m.default_value is None

    m = parse_param_marker(_dec('request_param(name="size", defaultValue="20")'))
    assert m is not None
    assert m.name == "size"
    assert m.default_value == "20"

    m = parse_param_marker(_dec('RequestParam(default_value="")'))
    assert m is not None
    assert m.default_value == ""

    m = parse_param_marker(_dec("RequestParam(default_value=None)"))
    assert m is not None
    assert m.default_value is None

    m = parse_param_marker(_dec("RequestParam(default_value=10)"))
    assert m is not None
    assert m.default_value == "10"


def test_body_marker_bare_or_called():
    assert parse_param_marker(_dec("RequestBody")).kind is MarkerKind.BODY
    assert parse_param_marker(_dec("request_body()")).kind is MarkerKind.BODY
    assert parse_param_marker(_dec("Query()")) is None


def test_split_annotated():
    type_node, metadata = split_annotated(_dec("Annotated[int, RequestParam(), Doc('x')]"))
    assert ast.unparse(type_node) == "int"
    assert len(metadata) == 2

    type_node, metadata = split_annotated(_dec("list[int]"))
    assert ast.unparse(type_node) == "list[int]"
    assert metadata == []
