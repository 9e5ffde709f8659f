"""Configuration loading for cuesync."""
