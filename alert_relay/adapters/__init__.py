"""Outbound and inbound adapters for the alert relay service."""
