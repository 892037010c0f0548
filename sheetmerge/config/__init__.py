"""Configuration loading (YAML + JSON schema + environment overrides)."""
