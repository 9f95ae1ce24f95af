# src/codebench/config/settings.py
from __future__ import annotations

import dataclasses
import math
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

import yaml  # PyYAML
from dotenv import load_dotenv

from ..errors import InvalidInput

ENV_PREFIX = "CODEBENCH_"
DEFAULT_CONFIG_FILE = "codebench.yaml"
LEDGER_BACKENDS = ("memory", "sqlite")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@dataclass(frozen=True, slots=True)
class CodebenchSettings:
    """Stores the resolved settings for stores, sessions and the ledger.

    Stored fields:
    - initial_capacity: Starting capacity of a new PatternStore (doubles when full).
    - complexity_increment: Increment used by the fixed complexity analyzer.
    - refinement_marker: Text the refinement stage prepends to a suggestion.
    - commit_description: Description sent with the final ledger commit.
    - ledger_backend: "memory" (local mock) or "sqlite" (append-only file).
    - ledger_path: SQLite file used by the sqlite backend.
    - commit_max_retries / commit_retry_base_delay_s: Ledger commit retry policy.
    - session_timeout_s: Optional session deadline in seconds.
    - log_level: Root level for `configure_logging`.
    """

    initial_capacity: int = 10
    complexity_increment: float = 1.0
    refinement_marker: str = "Refined code suggestion:\n"
    commit_description: str = "Final Suggestion"
    ledger_backend: str = "memory"
    ledger_path: str = ".codebench/ledger.sqlite3"
    commit_max_retries: int = 2
    commit_retry_base_delay_s: float = 0.1
    session_timeout_s: float | None = None
    log_level: str = "INFO"

    def to_dict(self) -> dict[str, object]:
        return dataclasses.asdict(self)

    def with_overrides(self, overrides: Mapping[str, object]) -> "CodebenchSettings":
        """Returns new settings with the given (already typed or raw) values applied."""
        merged = {**self.to_dict(), **{k: v for k, v in overrides.items() if v is not None}}
        return CodebenchSettings.from_dict(merged)

    @staticmethod
    def keys() -> tuple[str, ...]:
        return tuple(f.name for f in dataclasses.fields(CodebenchSettings))

    @staticmethod
    def from_dict(d: Mapping[str, object]) -> "CodebenchSettings":
        """Parses settings from a mapping; raw strings (env/YAML) are coerced.

        Raises:
            InvalidInput: On unknown keys or invalid values.
        """
        unknown = sorted(set(d) - set(CodebenchSettings.keys()))
        if unknown:
            raise InvalidInput("Unknown settings keys", data={"unknown": unknown})

        defaults = CodebenchSettings()

        def get(name: str) -> object:
            return d.get(name, getattr(defaults, name))

        initial_capacity = _as_int(get("initial_capacity"), "initial_capacity")
        if initial_capacity < 1:
            raise InvalidInput("initial_capacity must be >= 1", data={"value": initial_capacity})

        commit_max_retries = _as_int(get("commit_max_retries"), "commit_max_retries")
        if commit_max_retries < 0:
            raise InvalidInput("commit_max_retries must be >= 0", data={"value": commit_max_retries})

        base_delay = _as_float(get("commit_retry_base_delay_s"), "commit_retry_base_delay_s")
        if base_delay < 0:
            raise InvalidInput("commit_retry_base_delay_s must be >= 0", data={"value": base_delay})

        raw_timeout = get("session_timeout_s")
        timeout = None if raw_timeout in (None, "") else _as_float(raw_timeout, "session_timeout_s")
        if timeout is not None and timeout <= 0:
            raise InvalidInput("session_timeout_s must be > 0", data={"value": timeout})

        backend = str(get("ledger_backend")).strip().lower()
        if backend not in LEDGER_BACKENDS:
            raise InvalidInput("ledger_backend is invalid", data={"value": backend, "allowed": list(LEDGER_BACKENDS)})

        log_level = str(get("log_level")).strip().upper()
        if log_level not in LOG_LEVELS:
            raise InvalidInput("log_level is invalid", data={"value": log_level, "allowed": list(LOG_LEVELS)})

        marker = get("refinement_marker")
        description = get("commit_description")
        ledger_path = get("ledger_path")
        for name, value in (("refinement_marker", marker), ("commit_description", description), ("ledger_path", ledger_path)):
            if not isinstance(value, str) or not value.strip():
                raise InvalidInput(f"{name} must be a non-empty string", data={"field": name})

        return CodebenchSettings(
            initial_capacity=initial_capacity,
            complexity_increment=_as_float(get("complexity_increment"), "complexity_increment"),
            refinement_marker=str(marker),
            commit_description=str(description),
            ledger_backend=backend,
            ledger_path=str(ledger_path),
            commit_max_retries=commit_max_retries,
            commit_retry_base_delay_s=base_delay,
            session_timeout_s=timeout,
            log_level=log_level,
        )


def _as_int(x: object, name: str) -> int:
    if isinstance(x, bool):
        raise InvalidInput(f"{name} must be an int (bool is not allowed)", data={"field": name})
    if isinstance(x, int):
        return x
    if isinstance(x, str) and x.strip().lstrip("-").isdigit():
        return int(x.strip())
    raise InvalidInput(f"{name} must be an int or digit string", data={"field": name, "value": repr(x)})


def _as_float(x: object, name: str) -> float:
    if isinstance(x, bool):
        raise InvalidInput(f"{name} must be a number (bool is not allowed)", data={"field": name})
    try:
        value = float(x)  # type: ignore[arg-type]
    except (TypeError, ValueError) as e:
        raise InvalidInput(f"{name} must be a number", data={"field": name, "value": repr(x)}) from e
    if not math.isfinite(value):
        raise InvalidInput(f"{name} must be finite", data={"field": name, "value": repr(x)})
    return value


def read_config_file(path: str | Path) -> dict[str, object]:
    """Reads the `codebench:` section (or the whole mapping) of a YAML config file."""
    p = Path(path)
    try:
        raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    except OSError as e:
        raise InvalidInput("Cannot read config file", data={"path": str(p), "error": str(e)}) from e
    except yaml.YAMLError as e:
        raise InvalidInput("Config file is not valid YAML", data={"path": str(p), "error": str(e)}) from e

    if not isinstance(raw, dict):
        raise InvalidInput("Config file must be a mapping", data={"path": str(p)})
    section = raw.get("codebench", raw)
    if not isinstance(section, dict):
        raise InvalidInput("'codebench' section must be a mapping", data={"path": str(p)})
    return {str(k): v for k, v in section.items()}


def settings_from_env(env: Mapping[str, str]) -> dict[str, object]:
    """Collects CODEBENCH_<FIELD> variables (e.g. CODEBENCH_LEDGER_BACKEND)."""
    out: dict[str, object] = {}
    for name in CodebenchSettings.keys():
        key = ENV_PREFIX + name.upper()
        if key in env:
            out[name] = env[key]
    return out


def load_settings(
    *,
    config_path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
    load_env_file: bool = True,
    overrides: Mapping[str, object] | None = None,
) -> CodebenchSettings:
    """Resolves settings: defaults -> YAML file -> environment -> explicit overrides.

    When `env` is None the process environment is used, after loading a `.env`
    file (python-dotenv) if `load_env_file` is set. When `config_path` is None,
    `./codebench.yaml` is used if it exists.
    """
    merged: dict[str, object] = {}

    path = Path(config_path) if config_path is not None else Path(DEFAULT_CONFIG_FILE)
    if config_path is not None or path.exists():
        merged.update(read_config_file(path))

    if env is None:
        if load_env_file:
            load_dotenv()
        env = os.environ
    merged.update(settings_from_env(env))

    if overrides:
        merged.update({k: v for k, v in overrides.items() if v is not None})

    return CodebenchSettings.from_dict(merged)
