"""Focused-window screenshots via mss + Pillow.

On macOS the frontmost application's top-level window bounds come from
Quartz; elsewhere the monitor under the mouse pointer is captured instead.
A missing window or any capture failure yields ``None``.
"""

from __future__ import annotations

import base64
import io
import sys
import time
from typing import Any, Optional

from logger import get_logger

try:
    import mss
except Exception:  # pragma: no cover
    mss = None  # type: ignore

try:
    from PIL import Image
except Exception:  # pragma: no cover
    Image = None  # type: ignore

try:
    import Quartz
    from AppKit import NSWorkspace
except Exception:  # pragma: no cover
    Quartz = None  # type: ignore
    NSWorkspace = None  # type: ignore

try:
    from pynput.mouse import Controller as MouseController
except Exception:  # pragma: no cover
    MouseController = None  # type: ignore

logger = get_logger(__name__)

Region = dict[str, int]


class FocusedWindowCapture:
    def __init__(self, min_size: int = 32) -> None:
        self._min_size = min_size

    def capture_focused_window(self, timeout_s: float) -> Optional[Any]:
        if mss is None or Image is None:
            logger.warning("mss/Pillow not installed, screenshots disabled")
            return None
        deadline = time.monotonic() + timeout_s
        try:
            region = self._focused_region()
        except Exception as exc:
            logger.warning("Window lookup failed: %s", exc)
            return None
        if region is None:
            logger.info("No focused window found")
            return None
        if time.monotonic() > deadline:
            logger.info("Window lookup exceeded %.2fs, skipping screenshot", timeout_s)
            return None
        try:
            return self._grab(region)
        except Exception as exc:
            logger.warning("Screenshot failed: %s", exc)
            return None

    def _focused_region(self) -> Optional[Region]:
        if sys.platform == "darwin" and Quartz is not None and NSWorkspace is not None:
            return self._frontmost_window_region()
        return self._monitor_under_pointer()

    def _frontmost_window_region(self) -> Optional[Region]:
        app = NSWorkspace.sharedWorkspace().frontmostApplication()
        if app is None:
            return None
        pid = app.processIdentifier()
        options = Quartz.kCGWindowListOptionOnScreenOnly | Quartz.kCGWindowListExcludeDesktopElements
        infos = Quartz.CGWindowListCopyWindowInfo(options, Quartz.kCGNullWindowID) or []
        for info in infos:
            if info.get("kCGWindowOwnerPID") != pid or info.get("kCGWindowLayer", 0) != 0:
                continue
            bounds = info.get("kCGWindowBounds") or {}
            region = {
                "left": int(bounds.get("X", 0)),
                "top": int(bounds.get("Y", 0)),
                "width": int(bounds.get("Width", 0)),
                "height": int(bounds.get("Height", 0)),
            }
            if region["width"] >= self._min_size and region["height"] >= self._min_size:
                return region
        return None

    def _monitor_under_pointer(self) -> Optional[Region]:
        with mss.mss() as sct:
            monitors = sct.monitors[1:] or sct.monitors
        if not monitors:
            return None
        if MouseController is None:
            return dict(monitors[0])
        x, y = MouseController().position
        for mon in monitors:
            if mon["left"] <= x < mon["left"] + mon["width"] and mon["top"] <= y < mon["top"] + mon["height"]:
                return dict(mon)
        return dict(monitors[0])

    def _grab(self, region: Region) -> Any:
        with mss.mss() as sct:
            shot = sct.grab(region)
        return Image.frombytes("RGB", shot.size, shot.bgra, "raw", "BGRX")


def encode_jpeg(image: Any, max_side: int = 1568, quality: int = 85) -> bytes:
    """Downscale so the longest side fits ``max_side`` and JPEG-encode."""
    img = image.convert("RGB")
    if max(img.size) > max_side:
        img = img.copy()
        img.thumbnail((max_side, max_side))
    buf = io.BytesIO()
    img.save(buf, format="JPEG", quality=quality)
    return buf.getvalue()


def to_data_url(image: Any, max_side: int = 1568, quality: int = 85) -> str:
    b64 = base64.b64encode(encode_jpeg(image, max_side, quality)).decode("ascii")
    return f"data:image/jpeg;base64,{b64}"
