import logging
import os
from dataclasses import dataclass, field
from typing import Any

import yaml

from i18nsync.classes import DEFAULT_EXCLUDE, DEFAULT_FUNCTION_NAMES, DEFAULT_INCLUDE

logger = logging.getLogger(__name__)


@dataclass
class LoggingConfig:
    level: str = "INFO"
    format: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt: str = "%Y-%m-%d %H:%M:%S"


@dataclass
class ExtractConfig:
    source: str = "./src"
    output: str = "./src/locales/en.json"
    include: str | list[str] = DEFAULT_INCLUDE
    exclude: list[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDE))
    function_names: list[str] = field(default_factory=lambda: list(DEFAULT_FUNCTION_NAMES))
    fallback_to_regex: bool = False


@dataclass
class CatalogConfig:
    sort: bool = True
    pretty: bool = True


@dataclass
class Config:
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    extract: ExtractConfig = field(default_factory=ExtractConfig)
    catalog: CatalogConfig = field(default_factory=CatalogConfig)

    @classmethod
    def from_dict(cls, raw: dict[str, Any] | None) -> "Config":
        raw = raw or {}
        return cls(
            logging=LoggingConfig(**(raw.get("logging") or {})),
            extract=ExtractConfig(**(raw.get("extract") or {})),
            catalog=CatalogConfig(**(raw.get("catalog") or {})),
        )

    @classmethod
    def load(cls, config_folder: str) -> "Config":
        """Read config.yml from the folder; a missing file yields the defaults.

        Raises yaml.YAMLError on malformed YAML.
        """
        config_file_path = os.path.join(os.path.abspath(config_folder), "config.yml")
        try:
            with open(config_file_path, "r", encoding="utf-8") as file:
                return cls.from_dict(yaml.safe_load(file))
        except FileNotFoundError:
            logger.debug(f"No config file at {config_file_path}, using defaults")
            return cls()

    def configure_logging(self) -> None:
        logging.basicConfig(
            level=logging.getLevelName(self.logging.level.upper()),
            format=self.logging.format,
            datefmt=self.logging.datefmt,
        )
