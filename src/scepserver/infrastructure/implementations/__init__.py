"""Concrete infrastructure implementations."""
