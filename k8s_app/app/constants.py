"""Service-level constants shared across modules."""
from __future__ import annotations

LIVENESS_MESSAGE = "Node K8s App running!"


class ExitCode:
    OK = 0
    STARTUP_FAILURE = 1
