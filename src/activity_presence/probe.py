"""Foreground window and idle detection for Windows."""

from __future__ import annotations

import ctypes
import logging
import sys
from ctypes import wintypes
from typing import Optional, Protocol

import psutil

from .models import RawWindowSample
from .normalization import normalize_sample

logger = logging.getLogger(__name__)


class WindowProbe(Protocol):
    def get_active_window(self) -> RawWindowSample: ...


class IdleDetector(Protocol):
    def is_idle(self, threshold_ms: int) -> bool: ...


class WindowsIdleDetector:
    """Detects idle state using Win32 APIs."""

    class LASTINPUTINFO(ctypes.Structure):
        _fields_ = [("cbSize", wintypes.UINT), ("dwTime", wintypes.DWORD)]

    def __init__(self) -> None:
        self._user32 = ctypes.windll.user32  # type: ignore[attr-defined]
        self._kernel32 = ctypes.windll.kernel32  # type: ignore[attr-defined]

    def milliseconds_since_input(self) -> int:
        last_input = self.LASTINPUTINFO()
        last_input.cbSize = ctypes.sizeof(last_input)
        if not self._user32.GetLastInputInfo(ctypes.byref(last_input)):
            raise ctypes.WinError()
        # dwTime wraps with the 32-bit tick counter.
        elapsed = (self._kernel32.GetTickCount() - last_input.dwTime) & 0xFFFFFFFF
        return int(elapsed)

    def is_idle(self, threshold_ms: int) -> bool:
        try:
            idle_ms = self.milliseconds_since_input()
            return idle_ms >= threshold_ms
        except OSError:  # pragma: no cover - defensive log path
            logger.exception("Failed to query idle state; assuming not idle.")
            return False


class WindowsActiveWindowProbe:
    """Retrieves the foreground window title and process name."""

    def __init__(self) -> None:
        self._user32 = ctypes.windll.user32  # type: ignore[attr-defined]

    def get_active_window(self) -> RawWindowSample:
        try:
            process_name, window_title = self._query()
        except Exception:  # pragma: no cover - defensive log path
            logger.exception("Failed to query the foreground window.")
            return RawWindowSample.unknown()
        return normalize_sample(process_name, window_title)

    def _query(self) -> tuple[Optional[str], Optional[str]]:
        hwnd = self._user32.GetForegroundWindow()
        if not hwnd:
            return None, None

        length = self._user32.GetWindowTextLengthW(hwnd)
        buffer = ctypes.create_unicode_buffer(length + 1)
        self._user32.GetWindowTextW(hwnd, buffer, length + 1)
        window_title = buffer.value.strip() or None

        pid = wintypes.DWORD()
        self._user32.GetWindowThreadProcessId(hwnd, ctypes.byref(pid))
        process_name: Optional[str]
        try:
            if pid.value:
                process_name = psutil.Process(pid.value).name()
            else:
                process_name = None
        except (psutil.Error, ProcessLookupError):
            process_name = None

        return process_name, window_title


class UnsupportedPlatformProbe:
    """Reports the unknown sentinel on platforms without a window query."""

    def get_active_window(self) -> RawWindowSample:
        return RawWindowSample.unknown()


def create_window_probe() -> WindowProbe:
    if sys.platform == "win32":
        return WindowsActiveWindowProbe()
    logger.warning("Foreground window detection is not supported on %s.", sys.platform)
    return UnsupportedPlatformProbe()


def create_idle_detector() -> Optional[IdleDetector]:
    if sys.platform == "win32":
        return WindowsIdleDetector()
    return None
