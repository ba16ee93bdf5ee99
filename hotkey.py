"""Global multi-chord hotkey adapter based on pynput."""

from __future__ import annotations

import threading
from typing import Callable, Hashable, Iterable, Mapping, Optional

from logger import get_logger

try:
    from pynput import keyboard
except Exception:  # pragma: no cover
    keyboard = None  # type: ignore

logger = get_logger(__name__)

ChordCallback = Callable[[str], None]


class ChordTracker:
    """Tracks held keys and reports chord press/release edges.

    A chord fires ``press`` once when its last key goes down and ``release``
    once when any of its keys goes up; OS key auto-repeat does not re-fire.
    """

    def __init__(self, chords: Mapping[str, Iterable[Hashable]]) -> None:
        self._chords = {name: frozenset(keys) for name, keys in chords.items()}
        self._held: set[Hashable] = set()
        self._active: set[str] = set()
        self._lock = threading.Lock()

    @property
    def active(self) -> frozenset[str]:
        with self._lock:
            return frozenset(self._active)

    def press(self, key: Hashable) -> list[str]:
        with self._lock:
            self._held.add(key)
            fired = [
                name
                for name, keys in self._chords.items()
                if name not in self._active and keys <= self._held
            ]
            self._active.update(fired)
            return fired

    def release(self, key: Hashable) -> list[str]:
        with self._lock:
            self._held.discard(key)
            fired = [name for name in self._active if key in self._chords[name]]
            self._active.difference_update(fired)
            return fired

    def reset(self) -> list[str]:
        with self._lock:
            fired = list(self._active)
            self._held.clear()
            self._active.clear()
            return fired


class GlobalHotkeyAdapter:
    def __init__(self, chords: Iterable[str]) -> None:
        self._chords = list(chords)
        self._listener: Optional[object] = None
        self._tracker: Optional[ChordTracker] = None

    def start(self, on_press: ChordCallback, on_release: ChordCallback) -> None:
        if keyboard is None:
            raise RuntimeError("pynput is not installed")

        parsed = {chord: keyboard.HotKey.parse(chord) for chord in self._chords}
        self._tracker = ChordTracker(parsed)
        tracker = self._tracker

        def _canonical(key: object) -> object:
            listener = self._listener
            return listener.canonical(key) if listener is not None else key

        def _on_press(key: object) -> None:
            for chord in tracker.press(_canonical(key)):
                logger.debug("Chord pressed: %s", chord)
                on_press(chord)

        def _on_release(key: object) -> None:
            for chord in tracker.release(_canonical(key)):
                logger.debug("Chord released: %s", chord)
                on_release(chord)

        self._listener = keyboard.Listener(on_press=_on_press, on_release=_on_release)
        self._listener.start()
        logger.info("Listening for hotkeys: %s", ", ".join(self._chords))

    def stop(self) -> None:
        listener = self._listener
        if listener is not None:
            listener.stop()
            self._listener = None
        if self._tracker is not None:
            self._tracker.reset()


def is_valid_chord(chord: str) -> bool:
    """Whether ``chord`` parses as a pynput hotkey such as ``<ctrl>+<alt>+m``."""
    if not chord.strip():
        return False
    if keyboard is None:
        return True
    try:
        keyboard.HotKey.parse(chord)
    except ValueError:
        return False
    return True
