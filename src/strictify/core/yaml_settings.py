"""Layered YAML configuration with `include:` support.

Files are deep-merged, later ones winning:

    package defaults < user config < ./strictify.yaml < --include files

Any file may name further files under `include:` (a path or a list of
paths, relative to that file). The including file wins over what it
includes.
"""

from __future__ import annotations

import os
import sys
from collections.abc import Iterator
from pathlib import Path

import yaml
from platformdirs import user_config_dir
from pydantic_settings import BaseSettings, YamlConfigSettingsSource

from strictify.core.log import logger

DEFAULTS_FILE = Path(__file__).parent.parent / "defaults" / "default.yaml"
PROJECT_FILE = "strictify.yaml"


def _cli_includes(argv: list[str]) -> list[str]:
    """Values of every `--include FILE` pair in argv."""
    return [
        value for flag, value in zip(argv[1:], argv[2:])
        if flag == "--include"
    ]


def deep_merge(base: dict, override: dict) -> dict:
    """New dict with `override` merged into `base`, nested dicts too."""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def load_with_includes(path: Path, seen: frozenset[Path] = frozenset()) -> dict:
    """Load one YAML file with everything it includes merged beneath it.

    Raises:
        ValueError: If a file includes itself, directly or not
    """
    path = path.resolve()
    if path in seen:
        raise ValueError(f"Circular include: {path}")

    data = yaml.safe_load(path.read_text()) or {}
    includes = data.pop("include", None) or []
    if isinstance(includes, str):
        includes = [includes]

    merged: dict = {}
    for include in includes:
        target = Path(include).expanduser()
        if not target.is_absolute():
            target = path.parent / target
        merged = deep_merge(merged, load_with_includes(target, seen | {path}))
    return deep_merge(merged, data)


class YamlWithIncludesSettingsSource(YamlConfigSettingsSource):
    """pydantic-settings YAML source over the layered files."""

    def __init__(
        self, settings_cls: type[BaseSettings], yaml_file=None
    ):
        base = yaml_file or settings_cls.model_config.get("yaml_file")
        if base is None:
            files = []
        elif isinstance(base, (str, os.PathLike)):
            files = [base]
        else:
            files = list(base)

        super().__init__(settings_cls, files + _cli_includes(sys.argv))

    def _candidate_files(self, files) -> Iterator[Path]:
        yield DEFAULTS_FILE
        yield Path(user_config_dir("strictify", appauthor=False)) / PROJECT_FILE
        if isinstance(files, (str, os.PathLike)):
            files = [files]
        for name in files or []:
            yield Path(name).expanduser()

    def _read_files(self, files, **kwargs):  # noqa: ARG002
        """Merge every candidate file that exists; always deep."""
        result: dict = {}
        for path in self._candidate_files(files):
            if not path.is_file():
                logger.debug("No configuration file", file=str(path))
                continue
            logger.debug("Loading configuration", file=str(path))
            result = deep_merge(result, load_with_includes(path))
        return result
