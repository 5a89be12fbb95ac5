"""
Device contracts the interpreter talks to, and headless implementations.

A display receives the 32 framebuffer rows (one int per row, bit 63 is the
leftmost column) whenever a cycle changed them. A keyboard reports which of
the 16 keypad keys are down. A speaker is told when the tone starts and stops.
"""

from typing import Iterable, List, Protocol, Sequence, Set


class Display(Protocol):
    def draw_frame(self, rows: Sequence[int]) -> None: ...


class Keyboard(Protocol):
    def pressed_keys(self) -> Set[int]: ...


class Speaker(Protocol):
    def beep(self) -> None: ...

    def pause(self) -> None: ...


class FrameRecorder:
    """Display that keeps a copy of every frame it is given."""

    def __init__(self):
        self.frames: List[tuple] = []

    def draw_frame(self, rows):
        self.frames.append(tuple(rows))

    @property
    def last_frame(self):
        return self.frames[-1] if self.frames else None


class StaticKeyboard:
    """Keyboard whose state is set by hand (tests, scripted runs)."""

    def __init__(self, pressed: Iterable[int] = ()):
        self.pressed = set(pressed)

    def press(self, key: int):
        self.pressed.add(key)

    def release(self, key: int):
        self.pressed.discard(key)

    def pressed_keys(self):
        return set(self.pressed)


class NullSpeaker:
    """Speaker that only counts calls."""

    def __init__(self):
        self.beeps = 0
        self.pauses = 0
        self.playing = False

    def beep(self):
        self.beeps += 1
        self.playing = True

    def pause(self):
        self.pauses += 1
        self.playing = False
