"""Configuration loading from environment variables and projmem.toml."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib
from pathlib import Path

_CONFIG_FILENAME = "projmem.toml"

DEFAULT_NAMING_PROMPT = """\
Suggest a short, human-readable filename of at most five words for the
conversation below. Reply with the filename only: no extension, no quotes,
no punctuation at the end, nothing else."""

DEFAULT_SUMMARY_PROMPT = """\
You maintain a running summary of a software project, built up from many
separate conversations. You are given the existing summary and one new
conversation.

Merge what the conversation adds into the existing summary instead of
replacing it: keep every fact from the existing summary that the conversation
does not contradict, update facts the conversation changes, and add new
decisions, goals, open problems and conventions.

Do not invent facts that are not stated in the summary or the conversation.
Reply with the updated summary only."""

DEFAULT_DIRECTIVE_TEMPLATE = """\
You are a helpful assistant working inside a long-running project.

Project description:
{description}

Summary of previous conversations in this project:
{summary}

Use this context when it is relevant to the request. Do not repeat it back
unless asked."""


@dataclass
class EngineConfig:
    """Configuration for the remote model backend."""

    name: str = "anthropic_api"
    model: str | None = None
    timeout: int = 300
    max_tokens: int = 4096


@dataclass
class MemoryConfig:
    """Per-project memory options: chat directory layout, pipeline flags, prompts."""

    chat_dir: str = ".gptel-chats"
    autosave: bool = True
    auto_summary: bool = True
    naming_model: str | None = None
    summary_model: str | None = None
    summary_filename: str = "summary.txt"
    description_filename: str = "project-description.txt"
    transcript_format: str = "markdown"
    naming_system_prompt: str = DEFAULT_NAMING_PROMPT
    summary_system_prompt: str = DEFAULT_SUMMARY_PROMPT
    directive_template: str = DEFAULT_DIRECTIVE_TEMPLATE


@dataclass
class ProjmemConfig:
    """Top-level projmem configuration."""

    engine: EngineConfig = field(default_factory=EngineConfig)
    memory: MemoryConfig = field(default_factory=MemoryConfig)
    log_level: str = "INFO"


def _env_bool(key: str, default: bool) -> bool:
    raw = os.getenv(key)
    if raw is None:
        return bool(default)
    return raw.strip().lower() in ("1", "true", "yes", "on")


def load_config(config_path: Path | None = None) -> ProjmemConfig:
    """Load configuration from environment variables and optional projmem.toml.

    Priority: environment variables > projmem.toml > defaults.
    """
    file_data: dict = {}
    if config_path and config_path.exists():
        file_data = tomllib.loads(config_path.read_text())
    else:
        # Search current dir and ~/.projmem/
        for candidate in [Path.cwd() / _CONFIG_FILENAME, Path.home() / ".projmem" / _CONFIG_FILENAME]:
            if candidate.exists():
                file_data = tomllib.loads(candidate.read_text())
                break

    engine_data = file_data.get("engine", {})
    memory_data = file_data.get("memory", {})
    defaults = MemoryConfig()

    config = ProjmemConfig(
        engine=EngineConfig(
            name=os.getenv("PROJMEM_ENGINE", engine_data.get("name", "anthropic_api")),
            model=os.getenv("PROJMEM_MODEL", engine_data.get("model")),
            timeout=int(os.getenv("PROJMEM_TIMEOUT", engine_data.get("timeout", 300))),
            max_tokens=int(engine_data.get("max_tokens", 4096)),
        ),
        memory=MemoryConfig(
            chat_dir=os.getenv("PROJMEM_CHAT_DIR", memory_data.get("chat_dir", defaults.chat_dir)),
            autosave=_env_bool("PROJMEM_AUTOSAVE", memory_data.get("autosave", True)),
            auto_summary=_env_bool("PROJMEM_AUTO_SUMMARY", memory_data.get("auto_summary", True)),
            naming_model=os.getenv("PROJMEM_NAMING_MODEL", memory_data.get("naming_model")),
            summary_model=os.getenv("PROJMEM_SUMMARY_MODEL", memory_data.get("summary_model")),
            summary_filename=memory_data.get("summary_filename", defaults.summary_filename),
            description_filename=memory_data.get(
                "description_filename", defaults.description_filename
            ),
            transcript_format=memory_data.get("transcript_format", defaults.transcript_format),
            naming_system_prompt=memory_data.get(
                "naming_system_prompt", defaults.naming_system_prompt
            ),
            summary_system_prompt=memory_data.get(
                "summary_system_prompt", defaults.summary_system_prompt
            ),
            directive_template=memory_data.get("directive_template", defaults.directive_template),
        ),
        log_level=os.getenv("PROJMEM_LOG_LEVEL", file_data.get("log_level", "INFO")),
    )
    return config
