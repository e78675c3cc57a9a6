"""Tests for resolving command text from an inline option or a file."""

import pytest

from atlcli.common import content as content_module
from atlcli.common.content import resolve_content
from atlcli.common.errors import ConfigurationError, NotFoundError


class TestResolveContent:
    def test_inline_value_is_returned(self):
        assert resolve_content("<p>Hello</p>", None) == "<p>Hello</p>"

    def test_file_contents_are_returned_verbatim(self, tmp_path):
        path = tmp_path / "body.html"
        path.write_bytes("<p>Grüße</p>\r\nline two\n".encode("utf-8"))

        assert resolve_content(None, str(path)) == "<p>Grüße</p>\r\nline two\n"

    def test_both_given_is_rejected(self, tmp_path):
        path = tmp_path / "body.html"
        path.write_text("from file", encoding="utf-8")

        with pytest.raises(ConfigurationError, match="You cannot specify both --body and --file"):
            resolve_content("inline", str(path))

    def test_option_names_appear_in_conflict_message(self, tmp_path):
        path = tmp_path / "desc.txt"
        path.write_text("x", encoding="utf-8")

        with pytest.raises(ConfigurationError) as exc_info:
            resolve_content("y", path, content_option="description", file_option="description-file")

        assert exc_info.value.message == (
            "You cannot specify both --description and --description-file. Please use only one."
        )

    def test_neither_given_when_required(self):
        with pytest.raises(ConfigurationError, match="You must specify either --body or --file"):
            resolve_content(None, None)

    def test_neither_given_when_optional(self):
        assert resolve_content(None, None, required=False) is None

    def test_empty_strings_count_as_absent(self):
        assert resolve_content("", "", required=False) is None

    def test_missing_file(self, tmp_path):
        missing = tmp_path / "nope.html"

        with pytest.raises(NotFoundError, match="The specified file does not exist"):
            resolve_content(None, str(missing))

    def test_missing_file_reported_before_conflict(self, tmp_path):
        with pytest.raises(NotFoundError):
            resolve_content("inline", str(tmp_path / "nope.html"))

    def test_file_that_is_not_utf8(self, tmp_path):
        path = tmp_path / "latin1.txt"
        path.write_bytes(b"\xff\xfe bad")

        with pytest.raises(ConfigurationError, match="not valid UTF-8") as excinfo:
            resolve_content(None, str(path))

        assert str(path) in excinfo.value.message
        assert isinstance(excinfo.value.cause, UnicodeDecodeError)

    def test_unreadable_file(self, tmp_path, monkeypatch):
        path = tmp_path / "body.txt"
        path.write_text("hello", encoding="utf-8")

        def deny(*args, **kwargs):
            raise PermissionError(13, "Permission denied")

        monkeypatch.setattr(content_module, "open", deny, raising=False)

        with pytest.raises(NotFoundError, match="could not be read"):
            resolve_content(None, str(path))
