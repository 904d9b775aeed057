"""Ancestry of the elements open at the current point of a sanitizing pass."""

from __future__ import annotations

from collections.abc import Iterator
from enum import Enum


class FrameState(Enum):
    KEPT = "kept"
    UNWRAPPED = "unwrapped"
    ESCAPED = "escaped"
    DISCARDING = "discarding"


class Frame:
    __slots__ = ("name", "state")

    def __init__(self, name: str, state: FrameState) -> None:
        self.name = name
        self.state = state

    @property
    def kept(self) -> bool:
        return self.state is FrameState.KEPT

    @property
    def discarding(self) -> bool:
        return self.state is FrameState.DISCARDING

    def __repr__(self) -> str:
        return f"Frame({self.name!r}, {self.state.value})"


class ElementStack:
    """Index-addressed stack of open element frames.

    Frames live in a plain list and are only ever removed from the end. A
    count of discarding frames makes `currently_discarding()` O(1).

    Kept frames are the elements that appear in the output, so they are the
    stack a browser sees when it re-parses that output.
    """

    __slots__ = ("_discarding", "_frames")

    def __init__(self) -> None:
        self._frames: list[Frame] = []
        self._discarding = 0

    def __len__(self) -> int:
        return len(self._frames)

    @property
    def top(self) -> Frame | None:
        return self._frames[-1] if self._frames else None

    def push(self, name: str, state: FrameState) -> Frame:
        frame = Frame(name, state)
        self._frames.append(frame)
        if frame.discarding:
            self._discarding += 1
        return frame

    def pop(self, name: str) -> Frame | None:
        """Pop the top frame if it belongs to `name`.

        A close tag that does not match the top frame is an orphan; it is
        ignored and None is returned.
        """
        frame = self.top
        if frame is None or frame.name != name:
            return None
        self._frames.pop()
        if frame.discarding:
            self._discarding -= 1
        return frame

    def currently_discarding(self) -> bool:
        return self._discarding > 0

    def kept_frames(self) -> Iterator[Frame]:
        """Yield the kept frames, innermost first."""
        for frame in reversed(self._frames):
            if frame.kept:
                yield frame

    def kept_parent(self) -> Frame | None:
        """The innermost kept frame: the output parent of new content."""
        return next(self.kept_frames(), None)

    def close_through(self, target: Frame) -> list[Frame]:
        """End every kept frame from the top down to `target`, inclusive.

        The frames stay on the stack but become UNWRAPPED, so their own end
        tags later write nothing. Returns them innermost first.
        """
        closed: list[Frame] = []
        for frame in reversed(self._frames):
            if frame.kept:
                frame.state = FrameState.UNWRAPPED
                closed.append(frame)
            if frame is target:
                break
        return closed

    def drain(self) -> list[Frame]:
        """Pop every remaining frame, innermost first."""
        frames = self._frames[::-1]
        self._frames.clear()
        self._discarding = 0
        return frames
