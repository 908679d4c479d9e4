"""Moves the mouse to a screen position and clicks it, using the platform's tools."""

from __future__ import annotations

import shutil
import subprocess
import sys
import time
from typing import Optional, Sequence

_CLICK_PAUSE = 0.05

_WINDOWS_CLICK_SCRIPT = """\
Add-Type -AssemblyName System.Windows.Forms
[System.Windows.Forms.Cursor]::Position = [System.Drawing.Point]::new({x}, {y})
Start-Sleep -Milliseconds 50
Add-Type -TypeDefinition '
using System;
using System.Runtime.InteropServices;
public static class NativeMouse {{
    [DllImport("user32.dll")]
    public static extern void mouse_event(uint flags, uint dx, uint dy, uint data, IntPtr extra);
    public const uint LeftDown = 0x02;
    public const uint LeftUp = 0x04;
}}
'
[NativeMouse]::mouse_event([NativeMouse]::LeftDown, 0, 0, 0, [IntPtr]::Zero)
Start-Sleep -Milliseconds 50
[NativeMouse]::mouse_event([NativeMouse]::LeftUp, 0, 0, 0, [IntPtr]::Zero)
"""


def _current_os() -> str:
    platform = sys.platform
    if platform.startswith("win"):
        return "windows"
    if platform.startswith("linux"):
        return "linux"
    if platform.startswith("freebsd"):
        return "freebsd"
    return platform


def _run(args: Sequence[str]) -> None:
    subprocess.run(
        list(args),
        check=True,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
    )


class Controller:
    """Clicks on the screen through PowerShell on Windows and xdotool elsewhere."""

    def __init__(self, os_type: Optional[str] = None) -> None:
        self.os_name = os_type if os_type is not None else _current_os()

    def click_accept_button(self, x: int, y: int) -> bool:
        """Click at (x, y); return whether the click went through."""
        try:
            if self.os_name == "windows":
                self._click_windows(x, y)
            else:
                self._click_unix(x, y)
        except (OSError, subprocess.CalledProcessError):
            return False
        return True

    @staticmethod
    def _click_windows(x: int, y: int) -> None:
        script = _WINDOWS_CLICK_SCRIPT.format(x=x, y=y)
        _run(["powershell", "-Command", script])

    @staticmethod
    def _click_unix(x: int, y: int) -> None:
        _run(["xdotool", "mousemove", str(x), str(y)])
        time.sleep(_CLICK_PAUSE)
        _run(["xdotool", "click", "1"])

    def is_system_supported(self) -> bool:
        """Tell whether clicking is possible on this system."""
        if self.os_name == "windows":
            return True
        return shutil.which("xdotool") is not None