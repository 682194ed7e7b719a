import json
import logging
import pathlib

import pytest

from i18nsync.classes import CatalogUpdate, Coverage, ReconcileResult, UpdateOptions, UpdateStats
from i18nsync.updater import (
    PARAM_MISMATCH_MARKER,
    CatalogFormatError,
    clean_unused,
    coverage,
    find_missing,
    find_unused,
    merge_multiple,
    read_catalog,
    reconcile,
    sort_keys,
    update_catalog_files,
    write_catalog,
)


def test_adds_new_keys() -> None:
    result = reconcile({"hello": "Hello", "world": "World"}, {"hello": "Hello"})

    assert result == {"hello": "Hello", "world": "World"}


def test_preserves_existing_translations() -> None:
    result = reconcile({"hello": "Hello"}, {"hello": "你好"})

    assert result == {"hello": "你好"}


def test_does_not_mutate_inputs() -> None:
    source = {"a": "A"}
    target = {"old": "x"}
    reconcile(source, target, UpdateOptions(flush=True))

    assert source == {"a": "A"}
    assert target == {"old": "x"}


def test_flush_removes_unused_keys() -> None:
    result = reconcile(
        {"hello": "Hello"}, {"hello": "你好", "removed": "已删除"}, UpdateOptions(flush=True)
    )

    assert result == {"hello": "你好"}


def test_keeps_unused_keys_without_flush() -> None:
    result = reconcile({"hello": "Hello"}, {"hello": "你好", "removed": "已删除"})

    assert result["removed"] == "已删除"


def test_stats() -> None:
    outcome = reconcile(
        {"hello": "Hello", "world": "World", "new": "New"},
        {"hello": "你好", "unused": "未使用"},
        UpdateOptions(flush=True, return_stats=True),
    )

    assert isinstance(outcome, ReconcileResult)
    assert outcome.stats == UpdateStats(added=2, removed=1, unchanged=1, total=3)
    assert outcome.result == {"hello": "你好", "world": "World", "new": "New"}


def test_remove_untranslated_overwrites_sentinel() -> None:
    outcome = reconcile(
        {"greeting": "Hello"},
        {"greeting": "greeting"},
        UpdateOptions(remove_untranslated=True, return_stats=True),
    )

    assert outcome.result == {"greeting": "Hello"}
    assert outcome.stats == UpdateStats(added=0, removed=0, unchanged=0, total=1)


def test_matching_params_pass_validation() -> None:
    source = {"{count} items in {category}": "{count} items in {category}"}
    target = {"{count} items in {category}": "{category}里有{count}个"}

    result = reconcile(source, target, UpdateOptions(validate_params=True))

    assert result == target


def test_param_mismatch_is_marked(caplog: pytest.LogCaptureFixture) -> None:
    source = {"Hello {name}": "Hello {name}"}
    target = {"Hello {name}": "你好 {username}"}

    with caplog.at_level(logging.WARNING, logger="i18nsync.updater"):
        outcome = reconcile(source, target, UpdateOptions(validate_params=True, return_stats=True))

    assert outcome.result["Hello {name}"] == PARAM_MISMATCH_MARKER + "你好 {username}"
    assert outcome.stats.unchanged == 0
    assert "Parameter mismatch" in caplog.text


def test_param_mismatch_marker_is_not_repeated() -> None:
    source = {"Hello {name}": "Hello {name}"}
    options = UpdateOptions(validate_params=True)

    once = reconcile(source, {"Hello {name}": "你好 {username}"}, options)
    twice = reconcile(source, once, options)

    assert twice == once
    assert twice["Hello {name}"].count(PARAM_MISMATCH_MARKER) == 1


def test_reconcile_is_idempotent() -> None:
    source = {"a": "A", "b": "B"}
    target = {"a": "甲", "c": "丙"}

    once = reconcile(source, target)

    assert reconcile(source, once) == once


@pytest.mark.parametrize(
    "source, target",
    [
        ({"a": "A"}, {"a": "甲", "old": "旧", "older": "更旧"}),
        ({}, {"x": "1"}),
        ({"a": "A"}, {}),
    ],
)
def test_flush_removes_exactly_unused_keys(source: dict, target: dict) -> None:
    kept = reconcile(source, target)
    flushed = reconcile(source, target, UpdateOptions(flush=True))

    assert sorted(set(kept) - set(flushed)) == sorted(find_unused(source, target))


def test_merge_multiple() -> None:
    result = merge_multiple([{"a": "A", "b": "B"}, {"c": "C", "d": "D"}], {"a": "甲"})

    assert result == {"a": "甲", "b": "B", "c": "C", "d": "D"}


def test_later_sources_override() -> None:
    assert merge_multiple([{"a": "First"}, {"a": "Second"}], {}) == {"a": "Second"}


def test_merge_multiple_with_flush() -> None:
    result = merge_multiple([{"a": "A"}], {"a": "甲", "old": "旧"}, UpdateOptions(flush=True))

    assert result == {"a": "甲"}


def test_find_missing_and_coverage() -> None:
    source = {"a": "A", "b": "B", "c": "C"}
    target = {"a": "甲"}

    assert find_missing(source, target) == ["b", "c"]
    assert coverage(source, target) == Coverage(total=3, translated=1, missing=2, percentage=33)


def test_untranslated_and_empty_values_are_missing() -> None:
    source = {"a": "A", "b": "B", "c": "C"}
    target = {"a": "甲", "b": "b", "c": ""}

    assert find_missing(source, target) == ["b", "c"]
    assert coverage(source, target).translated == 1


def test_coverage() -> None:
    assert coverage({"a": "A", "b": "B", "c": "C", "d": "D"}, {"a": "甲", "b": "乙"}).percentage == 50
    assert coverage({}, {"a": "甲"}) == Coverage(0, 0, 0, 100)
    # 2/3 rounds up
    assert coverage({"a": "A", "b": "B", "c": "C"}, {"a": "1", "b": "2"}).percentage == 67


def test_find_unused() -> None:
    assert find_unused({"a": "A"}, {"a": "甲", "b": "乙", "c": "丙"}) == ["b", "c"]
    assert find_unused({"a": "A"}, {"a": "甲"}) == []


def test_sort_keys() -> None:
    assert list(sort_keys({"zebra": "1", "apple": "2", "mango": "3"})) == ["apple", "mango", "zebra"]
    assert list(sort_keys({"b": "1", "B": "2", "é": "3", "a": "4"})) == ["a", "b", "B", "é"]
    assert sort_keys({}) == {}


def test_clean_unused() -> None:
    assert clean_unused({"valid": "Value", "empty": "", "whitespace": "   "}) == {"valid": "Value"}

    data = {"translated": "翻译", "untranslated": "untranslated"}
    assert clean_unused(data) == data
    assert clean_unused(data, remove_untranslated=True) == {"translated": "翻译"}


def test_special_keys_survive() -> None:
    long_key = "x" * 5000
    source = {"Hello, {name}! \"Quoted\" 'single'": "v", "": "", long_key: long_key}

    assert reconcile(source, {}) == source


# Catalog files


def test_read_catalog(tmp_path: pathlib.Path) -> None:
    path = tmp_path / "en.json"
    path.write_text('{"hello": "Hello", "unicode": "你好 🌍"}', "utf-8")

    assert read_catalog(path) == {"hello": "Hello", "unicode": "你好 🌍"}


def test_read_missing_catalog(tmp_path: pathlib.Path) -> None:
    assert read_catalog(tmp_path / "missing.json") == {}


def test_read_invalid_catalog(tmp_path: pathlib.Path) -> None:
    broken = tmp_path / "broken.json"
    broken.write_text("{not json", "utf-8")
    array = tmp_path / "array.json"
    array.write_text('["a"]', "utf-8")
    nested = tmp_path / "nested.json"
    nested.write_text('{"a": {"b": "c"}}', "utf-8")

    with pytest.raises(json.JSONDecodeError):
        read_catalog(broken)
    with pytest.raises(CatalogFormatError):
        read_catalog(array)
    with pytest.raises(CatalogFormatError):
        read_catalog(nested)


def test_write_catalog(tmp_path: pathlib.Path) -> None:
    path = tmp_path / "nested" / "dir" / "zh.json"
    write_catalog(path, {"zebra": "斑马", "apple": "苹果"})

    text = path.read_text("utf-8")
    assert text == '{\n  "apple": "苹果",\n  "zebra": "斑马"\n}\n'


def test_write_catalog_unsorted_compact(tmp_path: pathlib.Path) -> None:
    path = tmp_path / "en.json"
    write_catalog(path, {"zebra": "1", "apple": "2"}, sort=False, pretty=False)

    assert path.read_text("utf-8") == '{"zebra":"1","apple":"2"}\n'


def test_catalog_round_trip(tmp_path: pathlib.Path) -> None:
    data = {"b": "乙", "a": "Hello \"{name}\"\n", "c": "\\path"}
    path = tmp_path / "round.json"
    write_catalog(path, data)

    assert read_catalog(path) == data


def test_update_catalog_files(tmp_path: pathlib.Path) -> None:
    source = tmp_path / "en.json"
    zh = tmp_path / "zh.json"
    fr = tmp_path / "fr.json"
    write_catalog(source, {"hello": "Hello", "world": "World"})
    write_catalog(zh, {"hello": "你好", "old": "旧"})

    updates = update_catalog_files(source, [zh, fr], UpdateOptions(flush=True))

    assert updates == [CatalogUpdate(str(zh), 2), CatalogUpdate(str(fr), 2)]
    assert read_catalog(zh) == {"hello": "你好", "world": "World"}
    assert read_catalog(fr) == {"hello": "Hello", "world": "World"}
