from pathlib import Path

import pytest


class TestStringAndNumber:
    def test_string_value_is_stripped(self, helper_config, monkeypatch) -> None:
        monkeypatch.setenv("KB_DIR", "  ./docs  ")
        assert helper_config.get_string_val("kb_dir") == "./docs"

    def test_blank_value_falls_back_to_default(self, helper_config, monkeypatch) -> None:
        monkeypatch.setenv("KB_DIR", "   ")
        assert helper_config.get_string_val("KB_DIR", default="fallback") == "fallback"

    def test_missing_value_without_default_raises(self, helper_config) -> None:
        with pytest.raises(ValueError, match="KB_DIR"):
            helper_config.get_string_val("KB_DIR")

    @pytest.mark.parametrize(("raw", "expected"), [("64", 64), ("2.5", 2.5)])
    def test_numbers_keep_their_kind(self, helper_config, monkeypatch, raw: str, expected) -> None:
        monkeypatch.setenv("KB_BATCH_SIZE", raw)
        value = helper_config.get_number_val("KB_BATCH_SIZE")
        assert value == expected
        assert type(value) is type(expected)

    def test_invalid_number_raises(self, helper_config, monkeypatch) -> None:
        monkeypatch.setenv("KB_BATCH_SIZE", "many")
        with pytest.raises(ValueError):
            helper_config.get_number_val("KB_BATCH_SIZE", default=64)


class TestBool:
    @pytest.mark.parametrize(("raw", "expected"), [("true", True), ("1", True), ("YES", True), ("false", False), ("0", False)])
    def test_parses_common_spellings(self, helper_config, monkeypatch, raw: str, expected: bool) -> None:
        monkeypatch.setenv("KB_SKIP_UNREADABLE", raw)
        assert helper_config.get_bool_val("KB_SKIP_UNREADABLE", default=False) is expected

    def test_default_applies_when_unset(self, helper_config) -> None:
        assert helper_config.get_bool_val("KB_SKIP_UNREADABLE", default=False) is False


class TestList:
    def test_bracketed_list_is_split_and_trimmed(self, helper_config, monkeypatch) -> None:
        monkeypatch.setenv("KB_EXTENSIONS", "[.md, .txt ,,.rst]")
        assert helper_config.get_list_val("KB_EXTENSIONS") == [".md", ".txt", ".rst"]

    def test_default_applies_when_unset(self, helper_config) -> None:
        assert helper_config.get_list_val("KB_EXTENSIONS", default=[".md"]) == [".md"]

    def test_value_without_brackets_is_rejected(self, helper_config, monkeypatch) -> None:
        monkeypatch.setenv("KB_EXTENSIONS", ".md,.txt")
        with pytest.raises(ValueError, match="format"):
            helper_config.get_list_val("KB_EXTENSIONS")

    def test_elements_are_cast(self, helper_config, monkeypatch) -> None:
        monkeypatch.setenv("KB_EXTENSIONS", "[1,2]")
        assert helper_config.get_list_val("KB_EXTENSIONS", element_type=int) == [1, 2]


def test_path_is_resolved_against_cwd(helper_config, monkeypatch, tmp_path) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("KB_DIR", "knowledge")
    assert helper_config.get_path_val("KB_DIR", default="./data/knowledge") == (tmp_path / "knowledge").resolve()


def test_path_default_is_used(helper_config, monkeypatch, tmp_path) -> None:
    monkeypatch.chdir(tmp_path)
    assert helper_config.get_path_val("KB_DIR", default="./data/knowledge") == Path(tmp_path, "data", "knowledge").resolve()
