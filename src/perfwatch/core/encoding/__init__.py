"""Encoders for telemetry reports."""
