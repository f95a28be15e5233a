"""Application configuration."""

from __future__ import annotations

import os
import re
from enum import Enum
from pathlib import Path
from typing import Any

import platformdirs
from pydantic import BaseModel, Field, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from strictify.compiler.correlate import MatchMode
from strictify.compiler.tsc import DIAGNOSTIC_EXIT_CODES, StrictnessOptions
from strictify.core.base import BaseConfig
from strictify.core.log import Logger
from strictify.core.yaml_settings import YamlWithIncludesSettingsSource

# Modules reachable from templates, e.g. {platformdirs.user_state_dir}
TEMPLATE_NAMESPACE = {
    'os': os,
    'platformdirs': platformdirs,
    'Path': Path,
}

_TEMPLATE = re.compile(r'\{([a-z._]+)\}')


class GitConfig(BaseConfig):
    """Repository and branch selection."""

    workdir: Path = Field(
        default=Path("."),
        description="Repository (and TypeScript project) directory",
    )
    target_branch: str = Field(
        default="master",
        description="Branch the current branch is compared against",
    )
    ignore_branches: list[str] = Field(
        default_factory=list,
        description=(
            "Branches whose changed files are not checked, e.g. work "
            "merged in from another in-progress branch"
        ),
    )
    timeout: int | None = Field(
        default=None,
        description="Timeout for each git query in seconds (none if unset)",
    )


class CompilerConfig(BaseConfig):
    """Strict compiler invocation and diagnostic attribution."""

    command: str = Field(
        default="tsc",
        description="Compiler command, e.g. 'tsc' or 'npx tsc'",
    )
    options: StrictnessOptions = Field(
        default_factory=StrictnessOptions,
        description="Strictness toggles passed to the compiler",
    )
    diagnostic_exit_codes: list[int] = Field(
        default_factory=lambda: list(DIAGNOSTIC_EXIT_CODES),
        description=(
            "Exit codes meaning 'diagnostics reported'; any other "
            "non-zero exit aborts the check"
        ),
    )
    timeout: int | None = Field(
        default=None,
        description="Compiler timeout in seconds (none if unset)",
    )
    match_mode: MatchMode = Field(
        default=MatchMode.SUBSTRING,
        description=(
            "How diagnostic lines are attributed to files: "
            "'substring' or 'exact'"
        ),
    )


class Config(BaseConfig):
    """Configuration loaded from YAML/env/CLI."""

    logger: Logger = Field(
        default=None,
        description="Logger configuration and runtime instance"
    )
    git: GitConfig = Field(
        default_factory=GitConfig,
        description="Repository and branch settings"
    )
    compiler: CompilerConfig = Field(
        default_factory=CompilerConfig,
        description="Compiler settings"
    )
    log_level: str = Field(
        default="info",
        alias="log-level",
        description=(
            "Console log level: 'spew', 'trace', 'debug', 'info', "
            "'warn', 'error', 'fatal'"
        ),
    )
    log_root: Path = Field(
        default_factory=(
            lambda: Path(platformdirs.user_state_dir()) / "strictify"
        ),
        description=(
            "Root directory for log files "
            "(supports {platformdirs.*} templates)"
        ),
    )
    commands: dict[str, dict[str, str]] = Field(
        default_factory=dict,
        description="Command templates by category (git)",
    )

    model_config = {"populate_by_name": True}

    @model_validator(mode='before')
    @classmethod
    def _default_logger_level(cls, data: Any) -> Any:
        """Let log-level set the logger level unless the logger
        section sets its own."""
        if not isinstance(data, dict):
            return data
        level = data.get("log-level", data.get("log_level"))
        logger_data = data.get("logger")
        if level and isinstance(logger_data, dict) \
                and "level" not in logger_data:
            data = {**data, "logger": {**logger_data, "level": level}}
        return data

    @model_validator(mode='after')
    def _setup_logger(self) -> 'Config':
        """Initialize the global logger once configuration is loaded."""
        from strictify.core.log import setup_logger

        if self.logger is None:
            self.logger = Logger(level=self.log_level)

        setup_logger(
            log_root=self.log_root,
            run_name="check",
            level=self.log_level,
            console=self.logger.console,
            file=self.logger.file,
        )
        return self

    def close(self):
        """Close the global logger, then the remaining children."""
        from strictify.core.log import logger
        logger.close()
        super().close()


class State(BaseSettings):
    """Complete application state as loaded from all sources."""

    config: Config = Field(
        default_factory=Config,
        description="Application configuration (from YAML/env/CLI)",
    )
    include: list[str] | None = Field(
        default=None,
        description=(
            "Additional YAML files to include and merge. "
            "Use --include on CLI or include: in YAML files."
        ),
    )

    model_config = SettingsConfigDict(
        yaml_file="strictify.yaml",
        env_file=".env",
        env_prefix="STRICTIFY_",
        env_nested_delimiter="__",
        cli_parse_args=True,
        cli_implicit_flags=True,
        cli_use_class_docs_for_groups=True,
        arbitrary_types_allowed=True,
        extra='ignore',
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Highest priority first: init, YAML, .env, environment,
        secrets."""
        return (
            init_settings,
            YamlWithIncludesSettingsSource(settings_cls),
            dotenv_settings,
            env_settings,
            file_secret_settings,
        )

    @model_validator(mode="after")
    def substitute_templates(self) -> "State":
        """Expand {config.*} and {platformdirs.*} references in every
        string and Path value, e.g.

            "{config.git.workdir}/node_modules/.bin/tsc"
            "{platformdirs.user_state_dir}/strictify"
        """
        _expand_in_place(self, self)
        return self


def _resolve_reference(root: BaseModel, dotted: str) -> Any:
    head, *rest = dotted.split(".")
    if head in TEMPLATE_NAMESPACE:
        target = TEMPLATE_NAMESPACE[head]
    else:
        target, rest = root, [head, *rest]

    for attr in rest:
        target = getattr(target, attr)
    if callable(target):
        target = target('strictify', appauthor=False)
    return target


def expand_templates(text: str, root: BaseModel) -> str:
    """Fill {dotted.path} references from `root` or TEMPLATE_NAMESPACE.

    References that do not resolve stay as written, so per-query
    placeholders such as {ref} reach the git layer untouched.
    """
    def lookup(match: re.Match) -> str:
        try:
            return str(_resolve_reference(root, match.group(1)))
        except (AttributeError, TypeError):
            return match.group(0)

    return _TEMPLATE.sub(lookup, text)


def _expand_in_place(node: Any, root: BaseModel) -> None:
    if isinstance(node, BaseModel):
        entries = [(name, getattr(node, name))
                   for name in type(node).model_fields]

        def store(name, value):
            setattr(node, name, value)
    elif isinstance(node, dict):
        entries, store = list(node.items()), node.__setitem__
    elif isinstance(node, list):
        entries, store = list(enumerate(node)), node.__setitem__
    else:
        return

    for key, value in entries:
        if isinstance(value, Enum):
            continue
        if isinstance(value, str):
            expanded = expand_templates(value, root)
            if expanded != value:
                store(key, expanded)
        elif isinstance(value, Path):
            expanded = expand_templates(str(value), root)
            if expanded != str(value):
                store(key, Path(expanded))
        else:
            _expand_in_place(value, root)


__all__ = [
    "State", "Config", "GitConfig", "CompilerConfig", "expand_templates",
]
