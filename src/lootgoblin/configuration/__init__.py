"""
Configuration management for LootGoblin.

- **app_configuration.py**: YAML configuration loader for global settings
  (database location, settings cache TTL). Falls back to defaults on missing
  or malformed config files.

Per-guild configuration lives in the database; see lootgoblin.settings.
"""
