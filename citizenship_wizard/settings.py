"""
Settings loader for settings.yaml.

Values come from DEFAULTS, overridden by the YAML file. The file defaults to
the bundled settings.yaml; WIZARD_SETTINGS_FILE points to another one.

Usage:
    from citizenship_wizard.settings import settings

    level = settings.logging.level
    limit = settings.get_nested("api.history_limit", 50)
"""

import copy
import os
from pathlib import Path
from typing import Any, List, Optional

import yaml


BUNDLED_SETTINGS_FILE = Path(__file__).parent / "settings.yaml"

DEFAULTS = {
    "logging": {
        "level": "INFO",
        "log_traces": False,
    },
    "rules": {
        # None means the bundled yaml_config/ directory
        "config_dir": None,
        "countries_file": "countries.yaml",
        "validate_on_load": True,
        "strict_references": False,
    },
    "wizard": {
        "max_in_progress_percent": 99,
    },
    "api": {
        "db_path": "data/eligibility_runs.db",
        "history_limit": 50,
    },
}

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class DotDict(dict):
    """dict with attribute access to keys (settings.api.history_limit)."""

    def __getattr__(self, key: str) -> Any:
        if key not in self:
            raise AttributeError(f"Setting '{key}' not found")
        value = self[key]
        return DotDict(value) if isinstance(value, dict) else value

    def __setattr__(self, key: str, value: Any) -> None:
        self[key] = value

    def get_nested(self, path: str, default: Any = None) -> Any:
        """Value at a dotted path such as 'rules.config_dir', or default."""
        node: Any = self
        for part in path.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node


def _deep_merge(base: dict, override: dict) -> dict:
    """New dict with override merged into base, recursing into nested dicts."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = _deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def settings_file() -> Path:
    override = os.environ.get("WIZARD_SETTINGS_FILE")
    return Path(override) if override else BUNDLED_SETTINGS_FILE


def load_settings(filepath: Optional[Path] = None) -> DotDict:
    """
    Load settings from a YAML file on top of DEFAULTS.

    A missing or empty file yields the defaults.
    """
    path = Path(filepath) if filepath else settings_file()

    overrides = {}
    if path.exists():
        with open(path, "r", encoding="utf-8") as f:
            overrides = yaml.safe_load(f) or {}

    return DotDict(_deep_merge(DEFAULTS, overrides))


def validate_settings(settings: DotDict) -> List[str]:
    """
    Validate settings.

    Returns:
        List of errors (empty if everything is OK)
    """
    errors = []

    if str(settings.logging.level).upper() not in LOG_LEVELS:
        errors.append(f"logging.level has unknown value '{settings.logging.level}'")

    if not settings.rules.countries_file:
        errors.append("rules.countries_file is not set")

    cap = settings.wizard.max_in_progress_percent
    if isinstance(cap, bool) or not isinstance(cap, int) or not 0 <= cap < 100:
        errors.append("wizard.max_in_progress_percent must be an integer in [0, 99]")

    limit = settings.api.history_limit
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
        errors.append("api.history_limit must be >= 1")

    return errors


_settings: Optional[DotDict] = None


def get_settings() -> DotDict:
    """
    Process-wide settings, loaded and validated on first use.

    Raises:
        ValueError: If the settings file has invalid values
    """
    global _settings
    if _settings is None:
        loaded = load_settings()
        errors = validate_settings(loaded)
        if errors:
            raise ValueError("Invalid settings:\n" + "\n".join(f"  - {err}" for err in errors))
        _settings = loaded
    return _settings


def reload_settings() -> DotDict:
    global _settings
    _settings = None
    return get_settings()


settings = get_settings()
