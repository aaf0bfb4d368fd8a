"""Chromium launch profiles sized for the deployment's memory budget."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ResourceProfile(Enum):
    """Memory budget the browser is launched for."""
    CONSTRAINED = "constrained"   # ~512 MB hosts: one renderer, small V8 heap
    DEFAULT = "default"
    HIGH_MEMORY = "high-memory"

    @classmethod
    def parse(cls, value: str) -> "ResourceProfile":
        normalized = (value or "").strip().lower().replace("_", "-")
        for member in cls:
            if member.value == normalized:
                return member
        raise ValueError(f"Unknown resource profile '{value}'")


class WaitUntil(Enum):
    """Page-ready condition for navigation."""
    COMMIT = "commit"
    DOM_PARSED = "domcontentloaded"
    LOAD = "load"
    NETWORK_IDLE = "networkidle"

    @classmethod
    def parse(cls, value: str) -> "WaitUntil":
        normalized = (value or "").strip().lower()
        # Puppeteer-style names from older deployments
        aliases = {"networkidle0": "networkidle", "networkidle2": "networkidle"}
        normalized = aliases.get(normalized, normalized)
        for member in cls:
            if member.value == normalized:
                return member
        raise ValueError(f"Unknown wait condition '{value}'")


BASE_ARGS = (
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--no-sandbox",
    "--no-first-run",
    "--mute-audio",
)

_PROFILE_ARGS = {
    ResourceProfile.CONSTRAINED: (
        "--single-process",
        "--no-zygote",
        "--renderer-process-limit=1",
        "--disable-extensions",
        "--disable-background-networking",
        "--js-flags=--max-old-space-size=400",
    ),
    ResourceProfile.DEFAULT: (
        "--js-flags=--max-old-space-size=1024",
    ),
    ResourceProfile.HIGH_MEMORY: (
        "--js-flags=--max-old-space-size=4096",
    ),
}

_PROTOCOL_TIMEOUTS_MS = {
    ResourceProfile.CONSTRAINED: 180_000,
    ResourceProfile.DEFAULT: 120_000,
    ResourceProfile.HIGH_MEMORY: 90_000,
}


@dataclass(frozen=True)
class LaunchOptions:
    """Everything the driver needs to start one browser process."""
    profile: ResourceProfile
    args: tuple[str, ...]
    launch_timeout_ms: int
    headless: bool = True


def launch_options(profile: ResourceProfile, *, headless: bool = True) -> LaunchOptions:
    return LaunchOptions(
        profile=profile,
        args=BASE_ARGS + _PROFILE_ARGS[profile],
        launch_timeout_ms=_PROTOCOL_TIMEOUTS_MS[profile],
        headless=headless,
    )


__all__ = ["ResourceProfile", "WaitUntil", "LaunchOptions", "launch_options", "BASE_ARGS"]
