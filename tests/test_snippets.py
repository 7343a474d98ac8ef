from diffcatcher.extraction.elements import ChangeType, DetectedElement, ElementKind
from diffcatcher.extraction.parser import RawHunk
from diffcatcher.extraction.snippets import (
    CaptureScope,
    ScopeKind,
    SnippetOptions,
    build_snippet,
)


def _hunk(lines, new_start=1, new_count=3, context=None):
    return RawHunk(
        header="@@",
        old_start=new_start,
        old_count=new_count,
        new_start=new_start,
        new_count=new_count,
        context_function=context,
        lines=lines,
    )


def _element(change_type, name="foo", line_range=(1, 3)):
    return DetectedElement(
        kind=ElementKind.FUNCTION, name=name, change_type=change_type, line_range=line_range
    )


def test_added_element_captures_full_block():
    hunk = _hunk("+fn foo() {\n+    bar();\n+}\n")
    snippet = build_snippet(_element(ChangeType.ADDED), [hunk], "aaa", "bbb", SnippetOptions())
    assert snippet.before is None
    assert snippet.after.code == "fn foo() {\n    bar();\n}"
    assert snippet.after.commit == "bbb"
    assert (snippet.after.start_line, snippet.after.end_line) == (1, 3)
    assert snippet.capture_scope == CaptureScope.full_element()
    assert snippet.diff_lines == hunk.lines


def test_removed_element_keeps_hunk_scope():
    hunk = _hunk("-x = 1\n-y = 2\n")
    options = SnippetOptions(context_lines=7)
    snippet = build_snippet(_element(ChangeType.REMOVED), [hunk], "aaa", "bbb", options)
    assert snippet.after is None
    assert snippet.before.code == "x = 1\ny = 2"
    assert snippet.before.commit == "aaa"
    assert snippet.capture_scope == CaptureScope.hunk_with_context(7)


def test_no_snippets_returns_diff_only():
    hunk = _hunk("+a\n")
    options = SnippetOptions(no_snippets=True)
    snippet = build_snippet(_element(ChangeType.ADDED), [hunk], "aaa", "bbb", options)
    assert snippet.before is None and snippet.after is None
    assert snippet.capture_scope.kind is ScopeKind.DIFF_ONLY
    assert snippet.diff_lines == "+a\n"


def test_truncation_reports_actual_and_max():
    hunk = _hunk("+l1\n+l2\n+l3\n+l4\n+l5\n", new_count=5)
    options = SnippetOptions(max_snippet_lines=3)
    snippet = build_snippet(_element(ChangeType.ADDED), [hunk], "a", "b", options)
    assert snippet.after.code == "l1\nl2\nl3"
    assert snippet.capture_scope == CaptureScope.truncated(5, 3)


def test_modified_with_only_additions_mirrors_before():
    hunk = _hunk("+value = 2\n")
    snippet = build_snippet(_element(ChangeType.MODIFIED), [hunk], "a", "b", SnippetOptions())
    assert snippet.before.code == snippet.after.code == "value = 2"
    assert snippet.before.commit == "a"
    assert snippet.after.commit == "b"


def test_modified_with_empty_hunk_gives_empty_code():
    snippet = build_snippet(
        _element(ChangeType.MODIFIED), [_hunk("")], "a", "b", SnippetOptions()
    )
    assert snippet.before.code == ""
    assert snippet.after.code == ""


def test_special_markers_kept_in_both_views():
    hunk = _hunk("-a\n+b\n\\ No newline at end of file\n")
    snippet = build_snippet(_element(ChangeType.MODIFIED), [hunk], "x", "y", SnippetOptions())
    assert snippet.before.code == "a\n\\ No newline at end of file"
    assert snippet.after.code == "b\n\\ No newline at end of file"


def test_hunks_selected_by_context_name():
    alpha = _hunk("+one\n", context="fn alpha()")
    beta = _hunk("+two\n", context="fn beta()")
    element = _element(ChangeType.ADDED, name="beta")
    snippet = build_snippet(element, [alpha, beta], "a", "b", SnippetOptions())
    assert snippet.diff_lines == beta.lines
    assert snippet.after.code == "two"


def test_hunks_selected_by_line_range_then_all():
    first = _hunk("+one\n", new_start=1, new_count=2)
    second = _hunk("+two\n", new_start=50, new_count=2)
    in_range = build_snippet(
        _element(ChangeType.ADDED, line_range=(51, 51)), [first, second], "a", "b", SnippetOptions()
    )
    assert in_range.diff_lines == second.lines
    nowhere = build_snippet(
        _element(ChangeType.ADDED, line_range=(30, 30)), [first, second], "a", "b", SnippetOptions()
    )
    assert nowhere.diff_lines == "\n".join([first.lines, second.lines])