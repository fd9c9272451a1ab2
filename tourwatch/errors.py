"""Error taxonomy for the monitor.

Every error carries the pipeline stage it came from so the run loop can log
site name, stage and message without inspecting exception types.
"""


class MonitorError(Exception):
    """Base error for a single site poll."""

    def __init__(self, message: str, stage: str = "unknown") -> None:
        super().__init__(message)
        self.stage = stage


class ConfigError(MonitorError):
    """Invalid site registry or process configuration."""

    def __init__(self, message: str) -> None:
        super().__init__(message, stage="config")


class RenderError(MonitorError):
    """Navigation or timeout failure while loading a site."""

    def __init__(self, message: str) -> None:
        super().__init__(message, stage="render")


class InteractionError(MonitorError):
    """Trigger control not found, or clicking it failed."""

    def __init__(self, message: str) -> None:
        super().__init__(message, stage="interaction")


class AccessError(MonitorError):
    """A nested frame cannot be inspected (cross-origin, detached, not loaded)."""

    def __init__(self, message: str) -> None:
        super().__init__(message, stage="extraction")


class ExtractionError(MonitorError):
    """Unexpected failure while evaluating an extraction strategy."""

    def __init__(self, message: str) -> None:
        super().__init__(message, stage="extraction")


class DeliveryError(MonitorError):
    """The messaging gateway rejected the message or was unreachable."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message, stage="notify")
        self.status_code = status_code
