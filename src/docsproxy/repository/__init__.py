"""Clients for the source-controlled store the docs are published to."""
