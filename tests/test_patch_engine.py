from askai.models.patches import EditBlock, PatchMarkers
from askai.services.patch_engine import DEFAULT_MARKERS, apply_block, apply_patches, parse_edit_blocks


MARKERS = PatchMarkers("<<<SEARCH>>>", "<<<DIVIDER>>>", "<<<REPLACE_END>>>")


def block(search: str, replace: str) -> str:
    return f"<<<SEARCH>>>\n{search}\n<<<DIVIDER>>>\n{replace}\n<<<REPLACE_END>>>"


def test_response_without_blocks_leaves_document_unchanged():
    result = apply_patches("<p>hi</p>", "Nothing to change here.", MARKERS)
    assert result.document == "<p>hi</p>"
    assert result.changed_ranges == []
    assert result.skipped_blocks == 0


def test_empty_search_inserts_at_top():
    response = "<<<SEARCH>>>\n<<<DIVIDER>>>\nX\n<<<REPLACE_END>>>"
    result = apply_patches("<body></body>", response, MARKERS)
    assert result.document == "X\n<body></body>"
    assert result.updated_lines() == [[1, 1]]


def test_replacement_reports_one_based_inclusive_range():
    result = apply_patches("line1\nline2\nline3", block("line2", "lineA\nlineB"), MARKERS)
    assert result.document == "line1\nlineA\nlineB\nline3"
    assert result.updated_lines() == [[2, 3]]


def test_missing_search_text_is_skipped_and_later_blocks_apply():
    response = "Explanation first.\n" + block("nope", "ignored") + "\n" + block("line2", "lineZ")
    result = apply_patches("line1\nline2\nline3", response, MARKERS)
    assert result.document == "line1\nlineZ\nline3"
    assert result.updated_lines() == [[2, 2]]
    assert result.skipped_blocks == 1


def test_blocks_apply_against_previous_output():
    response = block("alpha", "beta") + "\n" + block("beta", "gamma\ndelta")
    result = apply_patches("alpha", response, MARKERS)
    assert result.document == "gamma\ndelta"
    assert result.updated_lines() == [[1, 1], [1, 2]]


def test_only_first_occurrence_is_replaced():
    result = apply_patches("a\nb\na", block("a", "c"), MARKERS)
    assert result.document == "c\nb\na"


def test_empty_replacement_deletes_search_text():
    response = "<<<SEARCH>>>\n<p>remove</p>\n<<<DIVIDER>>>\n<<<REPLACE_END>>>"
    result = apply_patches("<div>\n<p>remove</p>\n</div>", response, MARKERS)
    assert result.document == "<div>\n\n</div>"
    assert len(result.changed_ranges) == 1


def test_incomplete_trailing_block_is_ignored():
    response = block("line1", "first") + "\n<<<SEARCH>>>\nline2\n<<<DIVIDER>>>\nnever closed"
    result = apply_patches("line1\nline2", response, MARKERS)
    assert result.document == "first\nline2"
    assert result.skipped_blocks == 0


def test_crlf_line_breaks_around_markers():
    response = "<<<SEARCH>>>\r\nline2\r\n<<<DIVIDER>>>\r\nlineA\r\n<<<REPLACE_END>>>"
    result = apply_patches("line1\nline2\nline3", response, MARKERS)
    assert result.document == "line1\nlineA\nline3"


def test_parse_uses_default_markers():
    response = "<<<<<<< SEARCH\n<h1>Old</h1>\n=======\n<h1>New</h1>\n>>>>>>> REPLACE"
    assert parse_edit_blocks(response) == [EditBlock("<h1>Old</h1>", "<h1>New</h1>")]
    assert apply_patches("<h1>Old</h1>", response, DEFAULT_MARKERS).document == "<h1>New</h1>"


def test_replacement_keeps_leading_indentation():
    response = "<<<SEARCH>>>\nfoo\n<<<DIVIDER>>>\n    bar\n<<<REPLACE_END>>>"
    assert parse_edit_blocks(response, MARKERS)[0].replace_text == "    bar"


def test_apply_block_reports_miss_as_none():
    assert apply_block("abc", EditBlock("zzz", "y")) is None
