"""Shared utilities for KeyCompass."""
