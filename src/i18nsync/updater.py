import json
import logging
import math
import pathlib
import unicodedata
from typing import Iterable, Mapping

from i18nsync.classes import (
    PARAM_REGEX,
    CatalogUpdate,
    Coverage,
    ReconcileResult,
    UpdateOptions,
    UpdateStats,
)

logger = logging.getLogger(__name__)

PARAM_MISMATCH_MARKER = "[PARAM_MISMATCH] "


class CatalogFormatError(ValueError):
    pass


def _sorted_params(text: str) -> list[str]:
    return sorted(PARAM_REGEX.findall(text))


def _is_translated(key: str, value: str | None) -> bool:
    return value is not None and value != "" and value != key


def reconcile(
    source: Mapping[str, str],
    target: Mapping[str, str],
    options: UpdateOptions | None = None,
) -> dict[str, str] | ReconcileResult:
    options = options or UpdateOptions()
    result = dict(target)
    stats = UpdateStats()

    if options.flush:
        for key in list(result):
            if key not in source:
                del result[key]
                stats.removed += 1

    for key, value in source.items():
        stats.total += 1

        if key not in result:
            result[key] = value
            stats.added += 1
        elif options.remove_untranslated and result[key] == key:
            result[key] = value
        elif options.validate_params and PARAM_REGEX.search(key):
            existing = result[key]
            if existing.startswith(PARAM_MISMATCH_MARKER):
                # Already flagged for review on a previous run
                stats.unchanged += 1
            elif _sorted_params(value) != _sorted_params(existing):
                logger.warning(f'Parameter mismatch for "{key}": "{existing}"')
                result[key] = PARAM_MISMATCH_MARKER + existing
            else:
                stats.unchanged += 1
        else:
            stats.unchanged += 1

    if options.return_stats:
        return ReconcileResult(result, stats)
    return result


def merge_multiple(
    sources: Iterable[Mapping[str, str]],
    target: Mapping[str, str],
    options: UpdateOptions | None = None,
) -> dict[str, str] | ReconcileResult:
    merged: dict[str, str] = {}
    for source in sources:
        merged.update(source)
    return reconcile(merged, target, options)


def find_missing(source: Mapping[str, str], target: Mapping[str, str]) -> list[str]:
    return [key for key in source if not _is_translated(key, target.get(key))]


def find_unused(source: Mapping[str, str], target: Mapping[str, str]) -> list[str]:
    return [key for key in target if key not in source]


def coverage(source: Mapping[str, str], target: Mapping[str, str]) -> Coverage:
    total = len(source)
    translated = sum(1 for key in source if _is_translated(key, target.get(key)))
    # Half rounds up
    percentage = math.floor(translated * 100 / total + 0.5) if total else 100
    return Coverage(total, translated, total - translated, percentage)


def _collation_key(key: str) -> tuple[str, str, str]:
    decomposed = unicodedata.normalize("NFD", key)
    base = "".join(c for c in decomposed if not unicodedata.combining(c))
    return base.casefold(), key.casefold(), key.swapcase()


def sort_keys(data: Mapping[str, str]) -> dict[str, str]:
    return {key: data[key] for key in sorted(data, key=_collation_key)}


def clean_unused(data: Mapping[str, str], remove_untranslated: bool = False) -> dict[str, str]:
    cleaned = {}
    for key, value in data.items():
        if not value or not value.strip():
            continue
        if remove_untranslated and value == key:
            continue
        cleaned[key] = value
    return cleaned


def read_catalog(path: str | pathlib.Path) -> dict[str, str]:
    try:
        text = pathlib.Path(path).read_text("utf-8")
    except FileNotFoundError:
        logger.debug(f"{path} does not exist, starting from an empty catalog")
        return {}

    data = json.loads(text)
    if not isinstance(data, dict):
        raise CatalogFormatError(f"{path} does not contain a JSON object")
    for key, value in data.items():
        if not isinstance(value, str):
            raise CatalogFormatError(f'{path}: value of "{key}" is not a string')
    return data


def write_catalog(
    path: str | pathlib.Path,
    data: Mapping[str, str],
    *,
    sort: bool = True,
    pretty: bool = True,
) -> None:
    final = sort_keys(data) if sort else dict(data)
    if pretty:
        content = json.dumps(final, ensure_ascii=False, indent=2)
    else:
        content = json.dumps(final, ensure_ascii=False, separators=(",", ":"))

    file = pathlib.Path(path)
    file.parent.mkdir(parents=True, exist_ok=True)
    file.write_text(content + "\n", "utf-8")


def update_catalog_files(
    source_file: str | pathlib.Path,
    target_files: Iterable[str | pathlib.Path],
    options: UpdateOptions | None = None,
) -> list[CatalogUpdate]:
    options = options or UpdateOptions()
    source = read_catalog(source_file)
    updates = []
    for target_file in target_files:
        target = read_catalog(target_file)
        updated = reconcile(source, target, options)
        if isinstance(updated, ReconcileResult):
            updated = updated.result
        write_catalog(target_file, updated)
        logger.info(f"Updated {target_file} ({len(updated)} keys)")
        updates.append(CatalogUpdate(str(target_file), len(updated)))
    return updates
