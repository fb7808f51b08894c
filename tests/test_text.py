from journal_client.core.text import count_words, escape_newlines, strip_markdown, unescape_newlines


def test_count_words_ignores_markup():
    assert count_words("# Title\n\nHello **world**") == 3


def test_count_words_empty():
    assert count_words("") == 0
    assert count_words("   \n\n") == 0


def test_count_words_links_and_lists():
    text = "- one [two](http://example.com/a/b)\n- `three`\n"
    assert count_words(text) == 3


def test_strip_markdown_keeps_code_blocks():
    text = "Intro\n\n```\nprint(1)\n```"
    assert strip_markdown(text) == "Intro\nprint(1)\n"


def test_newline_escaping_round_trip():
    raw = "line one\nline two\n\nthree"
    escaped = escape_newlines(raw)
    assert "\n" not in escaped
    assert escaped == "line one\\nline two\\n\\nthree"
    assert unescape_newlines(escaped) == raw


def test_escape_normalizes_crlf():
    assert escape_newlines("a\r\nb") == "a\\nb"
