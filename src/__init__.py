"""Provisioning planner — resolve component installs against a catalog."""

__version__ = "0.1.0"
