"""Editor settings loaded from the environment."""

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..core.exceptions import ConfigError
from .defaults import (
    DEFAULT_HOST,
    DEFAULT_LAST_MOD,
    DEFAULT_PATH,
    DEFAULT_PORT,
    DEFAULT_SEND_QUEUE_SIZE,
    DEFAULT_TRANSITION_WINDOW,
)


class EditorSettings(BaseSettings):
    """Connection and behaviour settings for an editing session.

    Every field can be overridden with a ``STRUCT_CANVAS_`` prefixed
    environment variable, e.g. ``STRUCT_CANVAS_PORT=6000``.
    """

    model_config = SettingsConfigDict(env_prefix="STRUCT_CANVAS_", extra="ignore")

    host: str = Field(default=DEFAULT_HOST, description="Watcher host")
    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535, description="Watcher port")
    path: str = Field(default=DEFAULT_PATH, description="Websocket endpoint path")
    last_mod: str = Field(
        default=DEFAULT_LAST_MOD,
        description="Version token sent as ?lastMod= to bust stale reconnects",
    )
    transition_window: float = Field(
        default=DEFAULT_TRANSITION_WINDOW,
        ge=0.0,
        description="Seconds the transitioning flag stays set after a model change",
    )
    send_queue_size: int = Field(default=DEFAULT_SEND_QUEUE_SIZE, ge=1)
    attach_packages: bool = Field(
        default=False,
        description="Attach the optimistic package list to every outbound command",
    )
    log_level: str = Field(default="INFO")

    @property
    def websocket_url(self) -> str:
        """Full websocket URL including the cache-busting token."""
        path = self.path if self.path.startswith("/") else f"/{self.path}"
        return f"ws://{self.host}:{self.port}{path}?lastMod={self.last_mod}"


def load_settings(**overrides: object) -> EditorSettings:
    """Load settings from the environment, applying explicit overrides.

    Overrides set to ``None`` are ignored so CLI options can be passed
    through unconditionally.

    Raises:
        ConfigError: If any value fails validation
    """
    values = {key: value for key, value in overrides.items() if value is not None}
    try:
        return EditorSettings(**values)
    except ValidationError as e:
        raise ConfigError(f"Invalid editor settings: {e}", {"overrides": values}) from e
