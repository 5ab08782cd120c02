"""Shared path constants for configuration and the message store."""

from __future__ import annotations

from platformdirs import user_config_path, user_data_path

CONFIG_DIR = user_config_path('gpt-relay')
DATA_DIR = user_data_path('gpt-relay')

STORE_FILENAME = 'store.sqlite3'

DEFAULT_CONFIG_PATHS = [
    CONFIG_DIR / 'config.yaml',
    CONFIG_DIR / 'config.yml',
]
