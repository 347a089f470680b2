"""Configuration loading (YAML, .env, environment)."""
