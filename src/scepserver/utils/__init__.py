"""Helpers for PEM encoding and secret resolution."""
