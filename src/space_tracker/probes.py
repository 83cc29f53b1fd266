"""OS collaborators: focused window, running processes, installed apps."""

from __future__ import annotations

import ctypes
import logging
import os
import sys
from pathlib import Path
from typing import Optional, Protocol

import psutil

from .errors import CollaboratorUnavailable
from .models import FocusedApplication, InstalledApplication, RunningApplication
from .normalization import canonical_app_name, display_app_name

logger = logging.getLogger(__name__)


class FocusProbe(Protocol):
    def get_focused_application(self) -> Optional[FocusedApplication]:
        ...


class WindowsFocusProbe:
    """Resolves the foreground window's process name using Win32 APIs."""

    def __init__(self) -> None:
        from ctypes import wintypes

        self._wintypes = wintypes
        self._user32 = ctypes.windll.user32  # type: ignore[attr-defined]

    def get_focused_application(self) -> Optional[FocusedApplication]:
        hwnd = self._user32.GetForegroundWindow()
        if not hwnd:
            return None

        pid = self._wintypes.DWORD()
        self._user32.GetWindowThreadProcessId(hwnd, ctypes.byref(pid))
        if not pid.value:
            return None
        try:
            process_name = psutil.Process(pid.value).name()
        except (psutil.Error, ProcessLookupError) as exc:
            raise CollaboratorUnavailable(
                f"Could not resolve process {pid.value}: {exc}"
            ) from exc

        name = display_app_name(process_name)
        return FocusedApplication(name=name) if name else None


class UnsupportedFocusProbe:
    """Placeholder for platforms without a focus backend."""

    def get_focused_application(self) -> Optional[FocusedApplication]:
        raise CollaboratorUnavailable(
            f"Focused window detection is not supported on {sys.platform}"
        )


def default_focus_probe() -> FocusProbe:
    if sys.platform == "win32":
        return WindowsFocusProbe()
    logger.warning("No focus probe for %s; ticks will record nothing.", sys.platform)
    return UnsupportedFocusProbe()


def get_running_applications() -> list[RunningApplication]:
    """List user-visible processes, one entry per application name."""
    seen: set[str] = set()
    apps: list[RunningApplication] = []
    try:
        for proc in psutil.process_iter(["name", "pid"]):
            name = display_app_name(proc.info.get("name"))
            if not name or canonical_app_name(name) in seen:
                continue
            seen.add(canonical_app_name(name))
            apps.append(RunningApplication(name=name, process_id=int(proc.info["pid"])))
    except psutil.Error as exc:
        raise CollaboratorUnavailable(f"Could not enumerate processes: {exc}") from exc
    return sorted(apps, key=lambda app: app.name.casefold())


def _application_dirs() -> list[tuple[Path, str]]:
    if sys.platform == "win32":
        roots = [
            Path(os.environ.get("PROGRAMDATA", r"C:\ProgramData")),
            Path(os.environ.get("APPDATA", str(Path.home() / "AppData" / "Roaming"))),
        ]
        return [
            (root / "Microsoft" / "Windows" / "Start Menu" / "Programs", "*.lnk")
            for root in roots
        ]
    if sys.platform == "darwin":
        return [
            (Path("/Applications"), "*.app"),
            (Path("/System/Applications"), "*.app"),
            (Path.home() / "Applications", "*.app"),
        ]
    return [
        (Path("/usr/share/applications"), "*.desktop"),
        (Path.home() / ".local" / "share" / "applications", "*.desktop"),
    ]


def get_installed_applications() -> list[InstalledApplication]:
    """Scan the platform's application directories."""
    found: dict[str, InstalledApplication] = {}
    try:
        for directory, pattern in _application_dirs():
            if not directory.is_dir():
                continue
            for path in directory.rglob(pattern):
                key = canonical_app_name(path.stem)
                if key and key not in found:
                    found[key] = InstalledApplication(name=path.stem, path=str(path))
    except OSError as exc:
        raise CollaboratorUnavailable(f"Could not list installed applications: {exc}") from exc
    return sorted(found.values(), key=lambda app: app.name.casefold())
