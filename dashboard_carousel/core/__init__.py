from .capture_state import CaptureState, CaptureStateStore
from .carousel_system import CarouselSystem
from .errors import (
    CarouselError,
    ConfigError,
    LaunchError,
    NavigationError,
    NavigationTimeout,
    ScreenshotError,
    StateIOError,
)
from .progress import ProgressSnapshot, ProgressTracker
from .scheduler import RotationCursor, RotationScheduler, ScheduleMode, SchedulerParams, per_target_interval
from .settings import CarouselSettings, load_settings
from .shutdown_coordinator import ShutdownCoordinator, get_shutdown_coordinator
from .targets import Target, parse_targets, targets_digest

__all__ = [
    'CaptureState',
    'CaptureStateStore',
    'CarouselSystem',
    'CarouselError',
    'ConfigError',
    'LaunchError',
    'NavigationError',
    'NavigationTimeout',
    'ScreenshotError',
    'StateIOError',
    'ProgressSnapshot',
    'ProgressTracker',
    'RotationCursor',
    'RotationScheduler',
    'ScheduleMode',
    'SchedulerParams',
    'per_target_interval',
    'CarouselSettings',
    'load_settings',
    'ShutdownCoordinator',
    'get_shutdown_coordinator',
    'Target',
    'parse_targets',
    'targets_digest',
]
