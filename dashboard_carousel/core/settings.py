"""
Typed runtime settings.

Values are layered, later sources winning:

    built-in defaults  <-  config.txt (key = value)  <-  environment (KEY)

Invalid values never stop the server: numbers fall back to their default
with a warning, unknown enum names do the same, and malformed auth JSON
disables auth.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, TypeVar

from . import paths
from .browser.interface import PageSettings, Viewport
from .browser.profiles import ResourceProfile, WaitUntil
from .browser.session_manager import SessionPolicy
from .capture.executor import DEFAULT_LOADING_SELECTOR, AuthConfig, CaptureOptions
from .config_manager import ConfigManager, get_config_manager
from .errors import ConfigError
from .logging_utils import get_module_logger
from .scheduler import ScheduleMode, SchedulerParams

logger = get_module_logger("Settings")

E = TypeVar("E")

CONFIG_KEYS = (
    "dashboard_urls",
    "capture_every_min",
    "page_timeout_ms",
    "navigation_timeout_ms",
    "action_timeout_ms",
    "screenshot_timeout_ms",
    "viewport_width",
    "viewport_height",
    "device_scale_factor",
    "wait_until",
    "settle_ms",
    "loading_selector",
    "loading_extension_ms",
    "max_retries",
    "retry_backoff_ms",
    "schedule_mode",
    "batch_size",
    "inter_target_pause_ms",
    "session_policy",
    "recycle_every",
    "resource_profile",
    "headless",
    "browser_executable",
    "auth_headers",
    "auth_cookies",
    "host",
    "port",
    "shots_dir",
    "public_dir",
    "state_file",
    "shutdown_timeout_s",
    "log_level",
    "log_file",
    "placeholders",
)


@dataclass(frozen=True)
class CarouselSettings:
    dashboard_urls: str = ""
    capture_every_min: float = 30.0

    # Page
    page_timeout_ms: int = 90_000
    navigation_timeout_ms: int = 120_000
    action_timeout_ms: int = 60_000
    screenshot_timeout_ms: int = 45_000
    viewport_width: int = 3200
    viewport_height: int = 1800
    device_scale_factor: float = 1.0
    wait_until: WaitUntil = WaitUntil.NETWORK_IDLE
    settle_ms: int = 90_000
    loading_selector: str = DEFAULT_LOADING_SELECTOR
    loading_extension_ms: int = 30_000
    max_retries: int = 2
    retry_backoff_ms: int = 5_000

    # Scheduling
    schedule_mode: ScheduleMode = ScheduleMode.ROTATE
    batch_size: int = 1
    inter_target_pause_ms: int = 5_000

    # Browser
    session_policy: SessionPolicy = SessionPolicy.PER_CAPTURE
    recycle_every: int = 4
    resource_profile: ResourceProfile = ResourceProfile.CONSTRAINED
    headless: bool = True
    browser_executable: str = ""
    auth: AuthConfig = field(default_factory=AuthConfig)

    # Server and files
    host: str = "0.0.0.0"
    port: int = 3000
    shots_dir: Path = paths.SHOTS_DIR
    public_dir: Path = paths.PUBLIC_DIR
    state_file: Path = paths.STATE_FILE
    shutdown_timeout_s: float = 10.0
    log_level: str = "info"
    log_file: Optional[Path] = paths.DEFAULT_LOG_FILE
    placeholders: bool = True

    @property
    def viewport(self) -> Viewport:
        return Viewport(self.viewport_width, self.viewport_height, self.device_scale_factor)

    def page_settings(self) -> PageSettings:
        return PageSettings(
            viewport=self.viewport,
            navigation_timeout_ms=self.navigation_timeout_ms,
            action_timeout_ms=self.action_timeout_ms,
        )

    def capture_options(self) -> CaptureOptions:
        return CaptureOptions(
            page=self.page_settings(),
            wait_until=self.wait_until,
            page_timeout_ms=self.page_timeout_ms,
            settle_s=self.settle_ms / 1000.0,
            loading_selector=self.loading_selector,
            loading_extension_s=self.loading_extension_ms / 1000.0,
            screenshot_timeout_ms=self.screenshot_timeout_ms,
            max_retries=self.max_retries,
            retry_backoff_s=self.retry_backoff_ms / 1000.0,
            auth=self.auth,
        )

    def scheduler_params(self) -> SchedulerParams:
        return SchedulerParams(
            mode=self.schedule_mode,
            interval_s=self.capture_every_min * 60.0,
            batch_size=self.batch_size,
            inter_step_pause_s=self.inter_target_pause_ms / 1000.0,
        )

    def with_overrides(self, **overrides: Any) -> "CarouselSettings":
        """Copy with the non-None ``overrides`` applied (CLI flags)."""
        changes = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **changes) if changes else self


def parse_auth(headers_raw: str, cookies_raw: str) -> AuthConfig:
    """Build auth from JSON text. Raises ConfigError on malformed input."""
    headers: Dict[str, str] = {}
    cookies: list = []

    if headers_raw.strip():
        try:
            decoded = json.loads(headers_raw)
        except ValueError as exc:
            raise ConfigError(f"auth_headers is not valid JSON: {exc}") from exc
        if not isinstance(decoded, dict):
            raise ConfigError("auth_headers must be a JSON object")
        headers = {str(k): str(v) for k, v in decoded.items()}

    if cookies_raw.strip():
        try:
            decoded = json.loads(cookies_raw)
        except ValueError as exc:
            raise ConfigError(f"auth_cookies is not valid JSON: {exc}") from exc
        if not isinstance(decoded, list) or not all(isinstance(c, dict) for c in decoded):
            raise ConfigError("auth_cookies must be a JSON list of objects")
        for cookie in decoded:
            if "name" not in cookie or "value" not in cookie:
                raise ConfigError("every cookie needs 'name' and 'value'")
            if "url" not in cookie and "domain" not in cookie:
                raise ConfigError(f"cookie '{cookie['name']}' needs 'url' or 'domain'")
        cookies = decoded

    return AuthConfig(headers=headers, cookies=tuple(cookies))


def _parse_enum(parser: Callable[[str], E], raw: str, default: E, key: str) -> E:
    if not raw:
        return default
    try:
        return parser(raw)
    except ValueError as exc:
        logger.warning("%s - using default for %s", exc, key)
        return default


def build_settings(config: Mapping[str, str], manager: Optional[ConfigManager] = None) -> CarouselSettings:
    """Type a merged key/value mapping into ``CarouselSettings``."""
    cm = manager or get_config_manager()
    cfg = dict(config)
    d = CarouselSettings()

    try:
        auth = parse_auth(cm.get_str(cfg, "auth_headers"), cm.get_str(cfg, "auth_cookies"))
    except ConfigError as exc:
        logger.error("Invalid auth configuration, auth disabled: %s", exc)
        auth = AuthConfig()

    log_file_raw = cm.get_str(cfg, "log_file", str(d.log_file))
    log_file = paths.resolve_path(log_file_raw) if log_file_raw else None

    return CarouselSettings(
        dashboard_urls=cm.get_str(cfg, "dashboard_urls", d.dashboard_urls),
        capture_every_min=max(0.0, cm.get_float(cfg, "capture_every_min", d.capture_every_min)),
        page_timeout_ms=cm.get_int(cfg, "page_timeout_ms", d.page_timeout_ms),
        navigation_timeout_ms=cm.get_int(cfg, "navigation_timeout_ms", d.navigation_timeout_ms),
        action_timeout_ms=cm.get_int(cfg, "action_timeout_ms", d.action_timeout_ms),
        screenshot_timeout_ms=cm.get_int(cfg, "screenshot_timeout_ms", d.screenshot_timeout_ms),
        viewport_width=cm.get_int(cfg, "viewport_width", d.viewport_width),
        viewport_height=cm.get_int(cfg, "viewport_height", d.viewport_height),
        device_scale_factor=cm.get_float(cfg, "device_scale_factor", d.device_scale_factor),
        wait_until=_parse_enum(WaitUntil.parse, cm.get_str(cfg, "wait_until"), d.wait_until, "wait_until"),
        settle_ms=max(0, cm.get_int(cfg, "settle_ms", d.settle_ms)),
        loading_selector=cm.get_str(cfg, "loading_selector", d.loading_selector),
        loading_extension_ms=max(0, cm.get_int(cfg, "loading_extension_ms", d.loading_extension_ms)),
        max_retries=max(1, cm.get_int(cfg, "max_retries", d.max_retries)),
        retry_backoff_ms=max(0, cm.get_int(cfg, "retry_backoff_ms", d.retry_backoff_ms)),
        schedule_mode=_parse_enum(ScheduleMode.parse, cm.get_str(cfg, "schedule_mode"), d.schedule_mode, "schedule_mode"),
        batch_size=max(1, cm.get_int(cfg, "batch_size", d.batch_size)),
        inter_target_pause_ms=max(0, cm.get_int(cfg, "inter_target_pause_ms", d.inter_target_pause_ms)),
        session_policy=_parse_enum(SessionPolicy.parse, cm.get_str(cfg, "session_policy"), d.session_policy, "session_policy"),
        recycle_every=max(1, cm.get_int(cfg, "recycle_every", d.recycle_every)),
        resource_profile=_parse_enum(
            ResourceProfile.parse, cm.get_str(cfg, "resource_profile"), d.resource_profile, "resource_profile",
        ),
        headless=cm.get_bool(cfg, "headless", d.headless),
        browser_executable=cm.get_str(cfg, "browser_executable", d.browser_executable),
        auth=auth,
        host=cm.get_str(cfg, "host", d.host) or d.host,
        port=cm.get_int(cfg, "port", d.port),
        shots_dir=paths.resolve_path(cm.get_str(cfg, "shots_dir") or d.shots_dir),
        public_dir=paths.resolve_path(cm.get_str(cfg, "public_dir") or d.public_dir),
        state_file=paths.resolve_path(cm.get_str(cfg, "state_file") or d.state_file),
        shutdown_timeout_s=max(0.0, cm.get_float(cfg, "shutdown_timeout_s", d.shutdown_timeout_s)),
        log_level=cm.get_str(cfg, "log_level", d.log_level) or d.log_level,
        log_file=log_file,
        placeholders=cm.get_bool(cfg, "placeholders", d.placeholders),
    )


async def load_settings(
    config_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> CarouselSettings:
    """Read ``config_path`` (default config.txt), overlay the environment and type it."""
    cm = get_config_manager()
    path = Path(config_path) if config_path else paths.CONFIG_PATH
    file_config = await cm.read_config_async(path)
    merged = cm.overlay_environment(file_config, CONFIG_KEYS, os.environ if environ is None else environ)
    settings = build_settings(merged, cm)
    logger.debug("Settings loaded from %s (%d keys from file)", path, len(file_config))
    return settings


__all__ = [
    "CONFIG_KEYS",
    "CarouselSettings",
    "build_settings",
    "load_settings",
    "parse_auth",
]
