"""Shared helpers used across docsproxy modules."""
