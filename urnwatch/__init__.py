"""Vault monitor for Rico-style collateralized debt positions."""

__version__ = "0.1.0"
