"""Core cross-cutting concerns: logging and request tracing."""
