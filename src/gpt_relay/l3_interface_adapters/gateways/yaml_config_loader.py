"""Gateway: YAML configuration loader."""

from __future__ import annotations

from pathlib import Path

import yaml

from gpt_relay.l3_interface_adapters.gateways.paths import DEFAULT_CONFIG_PATHS


class YamlConfigLoader:
    """Reads YAML config files and merges CLI/env overrides on top."""

    def load_raw(
        self,
        config_path: str | None = None,
        overrides: dict | None = None,
    ) -> dict:
        """Return the merged YAML data as a raw dict (before Pydantic validation)."""
        data: dict = {}
        if config_path is not None:
            path = Path(config_path)
            if not path.exists():
                raise FileNotFoundError(f'Config file not found: {path}')
            data = _read(path)
        else:
            for default_path in DEFAULT_CONFIG_PATHS:
                if default_path.exists():
                    data = _read(default_path)
                    break
        if overrides:
            deep_merge(data, overrides)
        return data


def _read(path: Path) -> dict:
    data = yaml.safe_load(path.read_text(encoding='utf-8')) or {}
    if not isinstance(data, dict):
        raise ValueError(f'Invalid config format in {path}, expected a mapping')
    return data


def deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge *override* into *base* (mutates base)."""
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            deep_merge(base[key], value)
        else:
            base[key] = value
    return base
