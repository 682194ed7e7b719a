import pathlib

import pytest
import yaml

from i18nsync.classes import DEFAULT_FUNCTION_NAMES
from i18nsync.config import Config


def test_missing_config_uses_defaults(tmp_path: pathlib.Path) -> None:
    config = Config.load(str(tmp_path))

    assert config == Config()
    assert config.logging.level == "INFO"
    assert config.extract.function_names == list(DEFAULT_FUNCTION_NAMES)
    assert config.catalog.sort


def test_partial_config(tmp_path: pathlib.Path) -> None:
    (tmp_path / "config.yml").write_text(
        "logging:\n  level: DEBUG\nextract:\n  source: app\n  function_names: [tr]\ncatalog:\n  pretty: false\n",
        "utf-8",
    )

    config = Config.load(str(tmp_path))

    assert config.logging.level == "DEBUG"
    assert config.extract.source == "app"
    assert config.extract.function_names == ["tr"]
    assert config.extract.output == "./src/locales/en.json"
    assert not config.catalog.pretty
    assert config.catalog.sort


def test_empty_config_file(tmp_path: pathlib.Path) -> None:
    (tmp_path / "config.yml").write_text("", "utf-8")

    assert Config.load(str(tmp_path)) == Config()


def test_malformed_config(tmp_path: pathlib.Path) -> None:
    (tmp_path / "config.yml").write_text("logging: [unclosed\n", "utf-8")

    with pytest.raises(yaml.YAMLError):
        Config.load(str(tmp_path))


def test_sample_config_loads() -> None:
    folder = pathlib.Path(__file__).resolve().parents[1] / "config"

    config = Config.load(str(folder))

    assert config.extract.include == "**/*.{js,jsx,ts,tsx,mjs,cjs,svelte,vue}"
    assert ".nuxt/**" in config.extract.exclude
