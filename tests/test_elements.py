import pytest

from diffcatcher.extraction.classifier import Language
from diffcatcher.extraction.elements import (
    ChangeType,
    DetectedElement,
    ElementKind,
    detect_elements,
)
from diffcatcher.extraction.parser import RawHunk


def make_hunk(lines, new_start=10, new_count=1, context=None):
    return RawHunk(
        header=f"@@ -1,1 +{new_start},{new_count} @@",
        old_start=1,
        old_count=1,
        new_start=new_start,
        new_count=new_count,
        context_function=context,
        lines="".join(line + "\n" for line in lines),
    )


def test_added_rust_function():
    hunk = make_hunk(["+pub fn hello() {", "+    body();", "+}"], new_start=10, new_count=1)
    elements = detect_elements("src/lib.rs", [hunk], 500, Language.RUST)
    assert len(elements) == 1
    element = elements[0]
    assert element.kind is ElementKind.FUNCTION
    assert element.name == "hello"
    assert element.change_type is ChangeType.ADDED
    assert element.lines_added == 1
    assert element.lines_removed == 0
    assert element.signature == "pub fn hello() {"
    assert element.line_range == (10, 10)


def test_modified_when_added_and_removed():
    hunk = make_hunk(["-fn compute() {", "+fn compute(x: u32) {"])
    [element] = detect_elements("a.rs", [hunk], 500, Language.RUST)
    assert element.name == "compute"
    assert element.change_type is ChangeType.MODIFIED
    assert element.lines_added == 1
    assert element.lines_removed == 1
    assert element.signature == "fn compute() {"


def test_removed_python_class():
    hunk = make_hunk(["-class Widget:", "-    pass"])
    [element] = detect_elements("w.py", [hunk], 500, Language.PYTHON)
    assert element.kind is ElementKind.CLASS
    assert element.name == "Widget"
    assert element.change_type is ChangeType.REMOVED


def test_context_line_match_is_modified_without_counts():
    hunk = make_hunk([" fn ctx() {", "+    call();"])
    [element] = detect_elements("a.rs", [hunk], 500, Language.RUST)
    assert element.name == "ctx"
    assert element.change_type is ChangeType.MODIFIED
    assert element.lines_added == 0
    assert element.lines_removed == 0


def test_unmatched_hunk_uses_context_function():
    hunk = make_hunk(["+    x += 1;", "-    x -= 1;", "     y;"], context="fn outer()")
    [element] = detect_elements("a.rs", [hunk], 500, Language.RUST)
    assert element.kind is ElementKind.OTHER
    assert element.name == "fn outer()"
    assert element.enclosing_context == "fn outer()"
    assert element.lines_added == 1
    assert element.lines_removed == 1
    assert element.change_type is ChangeType.MODIFIED


def test_unmatched_hunk_without_context_named_by_start():
    hunk = make_hunk(["+    x += 1;"], new_start=42)
    [element] = detect_elements("a.rs", [hunk], 500, Language.RUST)
    assert element.name == "body_changes_hunk_42"
    assert element.change_type is ChangeType.ADDED


def test_no_hunks_gives_body_changes_element():
    [element] = detect_elements("docs/readme.txt", [], 500, Language.unknown("txt"))
    assert element.name == "body_changes_in_docs/readme.txt"
    assert element.kind is ElementKind.OTHER
    assert element.change_type is ChangeType.MODIFIED
    assert element.line_range is None
    assert element.signature is None


def test_results_sorted_by_kind_then_name():
    hunk = make_hunk(["+struct Alpha {}", "+fn zeta() {}", "+fn beta() {}"])
    elements = detect_elements("a.rs", [hunk], 500, Language.RUST)
    keys = [(e.kind, e.name) for e in elements]
    assert keys == [
        (ElementKind.FUNCTION, "beta"),
        (ElementKind.FUNCTION, "zeta"),
        (ElementKind.STRUCT, "Alpha"),
    ]


def test_max_elements_caps_result():
    hunk = make_hunk([f"+fn f{i}() {{}}" for i in range(6)])
    elements = detect_elements("a.rs", [hunk], 2, Language.RUST)
    assert len(elements) == 2
    assert [e.name for e in elements] == ["f0", "f1"]


def test_stops_after_hunk_when_cap_reached():
    first = make_hunk(["+fn one() {}"], new_start=1)
    second = make_hunk(["+fn aaa() {}"], new_start=50)
    elements = detect_elements("a.rs", [first, second], 1, Language.RUST)
    assert [e.name for e in elements] == ["one"]


def test_pattern_without_group_named_anonymous():
    hunk = make_hunk(["+module.exports = {};"])
    elements = detect_elements("index.js", [hunk], 500, Language.JAVASCRIPT)
    assert any(
        e.kind is ElementKind.MODULE and e.name == "anonymous" for e in elements
    )


def test_long_names_truncated():
    long_name = "a" * 300
    hunk = make_hunk([f"+fn {long_name}() {{}}"])
    [element] = detect_elements("a.rs", [hunk], 500, Language.RUST)
    assert element.name == long_name[:120]


def test_go_method_detected():
    hunk = make_hunk(["+func (r *Runner) Run() error {"])
    elements = detect_elements("main.go", [hunk], 500, Language.GO)
    assert [(e.kind, e.name) for e in elements] == [(ElementKind.METHOD, "Run")]


def test_generic_patterns_are_case_insensitive():
    hunk = make_hunk(["+DEF Handler"])
    elements = detect_elements("thing.xyz", [hunk], 500, Language.unknown("xyz"))
    assert [(e.kind, e.name) for e in elements] == [(ElementKind.FUNCTION, "Handler")]


def test_rust_impl_for_uses_trait_name():
    hunk = make_hunk(["+impl Display for Widget {"])
    elements = detect_elements("a.rs", [hunk], 500, Language.RUST)
    assert [(e.kind, e.name) for e in elements] == [(ElementKind.IMPL, "Display")]


def test_rust_impl_without_trait_uses_type_name():
    hunk = make_hunk(["+impl Widget {"])
    elements = detect_elements("a.rs", [hunk], 500, Language.RUST)
    assert [(e.kind, e.name) for e in elements] == [(ElementKind.IMPL, "Widget")]


def test_python_test_function_reported_twice():
    hunk = make_hunk(["+def test_login():"])
    elements = detect_elements("t.py", [hunk], 500, Language.PYTHON)
    kinds = {(e.kind, e.name) for e in elements}
    assert kinds == {(ElementKind.FUNCTION, "test_login"), (ElementKind.TEST, "test_login")}


@pytest.mark.parametrize(
    "lines,expected",
    [
        (["+a", "+b"], ChangeType.ADDED),
        (["-a", "-b"], ChangeType.REMOVED),
        (["+a", "-b"], ChangeType.MODIFIED),
    ],
)
def test_fallback_change_type(lines, expected):
    [element] = detect_elements("a.rs", [make_hunk(lines)], 500, Language.RUST)
    assert element.change_type is expected
    assert element.lines_added + element.lines_removed == len(lines)


def test_detected_element_defaults():
    element = DetectedElement(ElementKind.TEST, "t", ChangeType.ADDED)
    assert element.lines_added == 0
    assert element.line_range is None
    assert str(element.kind) == "Test"
    assert ElementKind.FUNCTION.rank < ElementKind.OTHER.rank