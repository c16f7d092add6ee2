"""Collectors that receive telemetry and summarise it on demand."""
