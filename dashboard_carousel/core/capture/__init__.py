"""Capture pipeline: executor, retry combinator and placeholder images."""

from .executor import (
    DEFAULT_LOADING_SELECTOR,
    AttemptStage,
    AuthConfig,
    CaptureExecutor,
    CaptureOptions,
    CaptureResult,
)
from .placeholder import ensure_placeholders, render_placeholder
from .retry import RetryResult, with_retry

__all__ = [
    "DEFAULT_LOADING_SELECTOR",
    "AttemptStage",
    "AuthConfig",
    "CaptureExecutor",
    "CaptureOptions",
    "CaptureResult",
    "RetryResult",
    "with_retry",
    "ensure_placeholders",
    "render_placeholder",
]
