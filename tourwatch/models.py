"""Domain models for tourwatch.

Pydantic models for monitored sites, availability matches, per-site poll
results, notification outcomes and cycle reports.
"""

import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Diagnostic context kept on a match, in characters
CONTEXT_MAX_CHARS = 200


# --- Enums ---


class AvailabilityStatus(str, Enum):
    """Booking state carried by a calendar day's status marker."""

    SELLING_OUT = "SellingOut"
    AVAILABLE = "Available"


class SiteState(str, Enum):
    """Per-site poll state within one cycle."""

    IDLE = "idle"
    RENDERING = "rendering"
    INTERACTING = "interacting"
    EXTRACTING = "extracting"
    NOTIFYING = "notifying"
    DONE = "done"
    FAILED = "failed"
    SKIPPED = "skipped"  # Cycle interrupted before this site was polled


class DispatchStatus(str, Enum):
    """Outcome of a notification decision."""

    SENT = "sent"
    NOT_TRIGGERED = "not_triggered"  # No trigger date among the matches
    SUPPRESSED = "suppressed"  # Gateway not configured
    COOLDOWN = "cooldown"  # Sent recently for this site
    FAILED = "failed"  # Gateway rejected or unreachable


# --- Site registry ---


class SiteConfig(BaseModel):
    """One monitored booking page. Immutable for the process lifetime."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    url: str = Field(min_length=1)
    target_dates: tuple[str, ...] = Field(min_length=1)
    requires_interaction: bool = False
    interaction_trigger_label: Optional[str] = None
    calendar_selector: str = "#calendar-widget"
    status_attribute: str = "data-testid"

    @field_validator("target_dates", mode="before")
    @classmethod
    def normalize_dates(cls, v):
        # YAML reads bare 19 as an int; labels are compared as page text
        if isinstance(v, (list, tuple)):
            seen: list[str] = []
            for item in v:
                label = str(item).strip()
                if label and label not in seen:
                    seen.append(label)
            return tuple(seen)
        return v

    @field_validator("url")
    @classmethod
    def check_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"URL must start with http:// or https://, got {v!r}")
        return v

    @model_validator(mode="after")
    def check_trigger_label(self) -> "SiteConfig":
        if self.requires_interaction and not self.interaction_trigger_label:
            raise ValueError(
                "interaction_trigger_label is required when requires_interaction is true"
            )
        return self


# --- Extraction results ---


class AvailabilityMatch(BaseModel):
    """A target date found with a status marker on a booking page."""

    model_config = ConfigDict(frozen=True)

    date: str
    status: AvailabilityStatus
    context: str = ""

    @field_validator("context", mode="before")
    @classmethod
    def truncate_context(cls, v):
        if isinstance(v, str):
            return v.strip()[:CONTEXT_MAX_CHARS]
        return v


class PageDiagnostics(BaseModel):
    """Page structure summary logged when no strategy matched."""

    has_container: bool = False
    selling_out_count: int = 0
    available_count: int = 0
    status_values: list[str] = Field(default_factory=list)


class DispatchResult(BaseModel):
    """What the notification dispatcher did with one site's result."""

    status: DispatchStatus
    message: Optional[str] = None
    error: Optional[str] = None

    @property
    def delivered(self) -> bool:
        return self.status == DispatchStatus.SENT


class SiteRunResult(BaseModel):
    """Matches and outcome for one site in one poll cycle."""

    site: SiteConfig
    matches: list[AvailabilityMatch] = Field(default_factory=list)
    state: SiteState = SiteState.IDLE
    strategy: Optional[str] = None
    error: Optional[str] = None
    error_stage: Optional[str] = None
    diagnostics: Optional[PageDiagnostics] = None
    dispatch: Optional[DispatchResult] = None
    duration_seconds: float = 0.0

    @property
    def found(self) -> bool:
        return bool(self.matches)

    @property
    def failed(self) -> bool:
        return self.state == SiteState.FAILED

    @property
    def dates(self) -> list[str]:
        """Matched date labels in document order, without repeats."""
        seen: list[str] = []
        for m in self.matches:
            if m.date not in seen:
                seen.append(m.date)
        return seen


class CycleReport(BaseModel):
    """Results of one full pass over the site registry."""

    cycle: int = Field(ge=1)
    started_at: datetime.datetime = Field(
        default_factory=lambda: datetime.datetime.now(datetime.timezone.utc)
    )
    finished_at: Optional[datetime.datetime] = None
    results: list[SiteRunResult] = Field(default_factory=list)
    interrupted: bool = False

    @property
    def total_matches(self) -> int:
        return sum(len(r.matches) for r in self.results)

    @property
    def failed_sites(self) -> list[str]:
        return [r.site.name for r in self.results if r.failed]

    @property
    def notifications_sent(self) -> int:
        return sum(1 for r in self.results if r.dispatch and r.dispatch.delivered)
