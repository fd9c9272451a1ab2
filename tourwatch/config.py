"""Process configuration and site registry loading.

The configuration is built once at startup from environment variables and
the site registry YAML, then passed explicitly into the run loop. Nothing
downstream reads the environment.
"""

import logging
import os
from enum import Enum
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from tourwatch.errors import ConfigError
from tourwatch.models import SiteConfig

logger = logging.getLogger(__name__)

_DATA_DIR = Path(__file__).parent / "data"
DEFAULT_SITES_PATH = _DATA_DIR / "sites.yaml"

DEFAULT_INTERVAL_SECONDS = 180
DEFAULT_TRIGGER_DATES = ("20",)
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)

# Environment variable names
ENV_MODE = "TOURWATCH_ENV"
ENV_INTERVAL = "TOURWATCH_INTERVAL_SECONDS"
ENV_TRIGGER_DATES = "TOURWATCH_TRIGGER_DATES"
ENV_COOLDOWN = "TOURWATCH_COOLDOWN_MINUTES"
ENV_SITES_FILE = "TOURWATCH_SITES_FILE"
ENV_TELEGRAM_TOKEN = "TELEGRAM_BOT_TOKEN"
ENV_TELEGRAM_CHAT = "TELEGRAM_CHAT_ID"


class RunMode(str, Enum):
    """Whether the run loop exits after one cycle or repeats on an interval."""

    SINGLE_PASS = "single_pass"  # External scheduler re-invokes the process
    CONTINUOUS = "continuous"


class RenderTimeouts(BaseModel):
    """Bounds for every suspension point of a site poll, in milliseconds."""

    model_config = ConfigDict(frozen=True)

    navigation_ms: int = Field(default=60000, gt=0)
    load_settle_ms: int = Field(default=5000, ge=0)
    trigger_wait_ms: int = Field(default=10000, gt=0)
    interaction_settle_ms: int = Field(default=3000, ge=0)
    frame_settle_ms: int = Field(default=2000, ge=0)


class TelegramSettings(BaseModel):
    """Telegram Bot API credentials. Both unset is a valid state."""

    model_config = ConfigDict(frozen=True)

    bot_token: Optional[str] = None
    chat_id: Optional[str] = None
    timeout_seconds: float = Field(default=15.0, gt=0)

    @property
    def configured(self) -> bool:
        return bool(self.bot_token and self.chat_id)

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "TelegramSettings":
        if env is None:
            env = os.environ
        return cls(
            bot_token=env.get(ENV_TELEGRAM_TOKEN, "").strip() or None,
            chat_id=env.get(ENV_TELEGRAM_CHAT, "").strip() or None,
        )


class MonitorConfig(BaseModel):
    """Everything the run loop needs, resolved once at startup."""

    model_config = ConfigDict(frozen=True)

    sites: tuple[SiteConfig, ...] = Field(min_length=1)
    mode: RunMode = RunMode.CONTINUOUS
    interval_seconds: int = Field(default=DEFAULT_INTERVAL_SECONDS, ge=1)
    trigger_dates: tuple[str, ...] = Field(default=DEFAULT_TRIGGER_DATES, min_length=1)
    cooldown_minutes: float = Field(default=0, ge=0)
    timeouts: RenderTimeouts = Field(default_factory=RenderTimeouts)
    telegram: TelegramSettings = Field(default_factory=TelegramSettings)
    headless: bool = True
    viewport_width: int = Field(default=1920, gt=0)
    viewport_height: int = Field(default=1080, gt=0)
    user_agent: str = DEFAULT_USER_AGENT

    @field_validator("trigger_dates", mode="before")
    @classmethod
    def normalize_triggers(cls, v):
        if isinstance(v, str):
            v = v.split(",")
        if isinstance(v, (list, tuple)):
            return tuple(str(d).strip() for d in v if str(d).strip())
        return v

    @model_validator(mode="after")
    def check_unique_names(self) -> "MonitorConfig":
        names = [s.name for s in self.sites]
        dupes = sorted({n for n in names if names.count(n) > 1})
        if dupes:
            raise ValueError(f"Duplicate site names: {', '.join(dupes)}")
        return self

    def get_site(self, name: str) -> Optional[SiteConfig]:
        """Look up a site by name (exact, then case-insensitive)."""
        for site in self.sites:
            if site.name == name:
                return site
        for site in self.sites:
            if site.name.lower() == name.lower():
                return site
        return None

    @classmethod
    def from_env(
        cls,
        env: Optional[Mapping[str, str]] = None,
        sites_path: Optional[Path] = None,
        **overrides: Any,
    ) -> "MonitorConfig":
        """Build the configuration from environment variables.

        Args:
            env: Environment mapping. Defaults to ``os.environ``.
            sites_path: Site registry YAML. Falls back to
                ``TOURWATCH_SITES_FILE``, then the bundled registry.
            **overrides: Field values that win over the environment
                (``None`` values are ignored).

        Raises:
            ConfigError: On an unreadable registry or invalid values.
        """
        if env is None:
            env = os.environ

        if sites_path is None and env.get(ENV_SITES_FILE, "").strip():
            sites_path = Path(env[ENV_SITES_FILE].strip())

        data: dict[str, Any] = {
            "sites": load_sites(sites_path or DEFAULT_SITES_PATH),
            "mode": (
                RunMode.SINGLE_PASS
                if env.get(ENV_MODE, "").strip().lower() == "production"
                else RunMode.CONTINUOUS
            ),
            "telegram": TelegramSettings.from_env(env),
        }

        if env.get(ENV_INTERVAL, "").strip():
            data["interval_seconds"] = _parse_number(env, ENV_INTERVAL, int)
        if env.get(ENV_COOLDOWN, "").strip():
            data["cooldown_minutes"] = _parse_number(env, ENV_COOLDOWN, float)
        if env.get(ENV_TRIGGER_DATES, "").strip():
            data["trigger_dates"] = env[ENV_TRIGGER_DATES]

        data.update({k: v for k, v in overrides.items() if v is not None})

        try:
            return cls(**data)
        except ValidationError as exc:
            raise ConfigError(_format_validation_error("Invalid configuration", exc))


def _parse_number(env: Mapping[str, str], name: str, kind: type):
    raw = env[name].strip()
    try:
        return kind(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}")


def _format_validation_error(title: str, exc: ValidationError) -> str:
    lines = [f"{title}:"]
    for err in exc.errors():
        loc = " -> ".join(str(x) for x in err["loc"])
        lines.append(f"  {loc}: {err['msg']}" if loc else f"  {err['msg']}")
    return "\n".join(lines)


def load_sites(path: Path) -> tuple[SiteConfig, ...]:
    """Load and validate the site registry YAML.

    The file holds either a mapping with a ``sites`` list or a bare list of
    site records.

    Raises:
        ConfigError: With line/column for YAML errors and field-level
            messages for invalid records.
    """
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Site registry not found: {path}")

    try:
        with open(path, encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        msg = f"YAML parse error in {path}"
        if hasattr(exc, "problem_mark") and exc.problem_mark is not None:
            mark = exc.problem_mark
            msg += f" at line {mark.line + 1}, column {mark.column + 1}"
        if hasattr(exc, "problem") and exc.problem:
            msg += f": {exc.problem}"
        raise ConfigError(msg)

    if isinstance(raw, dict):
        raw = raw.get("sites")
    if not isinstance(raw, list) or not raw:
        raise ConfigError(f"Expected a non-empty 'sites' list in {path}")

    sites: list[SiteConfig] = []
    for i, entry in enumerate(raw):
        if not isinstance(entry, dict):
            raise ConfigError(
                f"Site #{i + 1} in {path} must be a mapping, got {type(entry).__name__}"
            )
        try:
            sites.append(SiteConfig(**entry))
        except ValidationError as exc:
            label = entry.get("name") or f"#{i + 1}"
            raise ConfigError(_format_validation_error(f"Invalid site {label} in {path}", exc))

    names = [s.name for s in sites]
    dupes = sorted({n for n in names if names.count(n) > 1})
    if dupes:
        raise ConfigError(f"Duplicate site names in {path}: {', '.join(dupes)}")

    logger.debug("Loaded %d site(s) from %s", len(sites), path)
    return tuple(sites)
