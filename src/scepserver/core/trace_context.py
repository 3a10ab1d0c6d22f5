"""Request trace id shared between the HTTP middleware and the log filter."""

import contextvars

# None outside of a request
trace_id_context: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "trace_id", default=None
)
