"""Binding environment: a stack of frames with explicit export."""

from __future__ import annotations

from collections.abc import Mapping

from .errors import DuplicateBinding, UnboundName
from .values import Value


class Frame:
    def __init__(self, parent: "Frame | None" = None) -> None:
        self.parent = parent
        self.bindings: dict[str, Value] = {}
        self.exports: list[str] = []

    def find(self, name: str) -> "Frame | None":
        frame: Frame | None = self
        while frame is not None:
            if name in frame.bindings:
                return frame
            frame = frame.parent
        return None

    def exported_values(self) -> dict[str, Value]:
        return {name: self.bindings[name] for name in self.exports}


class Environment:
    """Frames pushed per block and per function call.

    A block frame's parent is the frame that was current when it was pushed;
    a function frame's parent is the function's closure. Popping always
    returns to the previously current frame.
    """

    def __init__(self, root: Frame | None = None) -> None:
        self._stack: list[Frame] = [root if root is not None else Frame()]

    @property
    def current(self) -> Frame:
        return self._stack[-1]

    @property
    def root(self) -> Frame:
        return self._stack[0]

    @property
    def depth(self) -> int:
        return len(self._stack)

    def push_frame(self, parent: Frame | None = None) -> Frame:
        frame = Frame(parent=self.current if parent is None else parent)
        self._stack.append(frame)
        return frame

    def pop_frame(self, export_to_parent: bool) -> Frame:
        if len(self._stack) == 1:
            raise RuntimeError("cannot pop the root frame")
        frame = self._stack.pop()
        if export_to_parent and frame.parent is not None:
            for name in frame.exports:
                # replaces any same-named parent entry with the exported binding
                frame.parent.bindings[name] = frame.bindings[name]
        return frame

    def bind(self, name: str, value: Value) -> None:
        frame = self.current
        if name in frame.bindings:
            raise DuplicateBinding(f"Name {name!r} is already bound in this scope")
        frame.bindings[name] = value

    def lookup(self, name: str) -> Value:
        frame = self.current.find(name)
        if frame is None:
            raise UnboundName(f"Unbound name {name!r}")
        return frame.bindings[name]

    def get(self, name: str) -> Value | None:
        frame = self.current.find(name)
        if frame is None:
            return None
        return frame.bindings[name]

    def mark_exported(self, name: str) -> None:
        frame = self.current
        if name not in frame.bindings:
            raise UnboundName(f"Cannot export {name!r}: not bound in this scope")
        if name not in frame.exports:
            frame.exports.append(name)

    def bind_all(self, values: Mapping[str, Value], *, exported: bool = False) -> None:
        for name, value in values.items():
            self.bind(name, value)
            if exported:
                self.mark_exported(name)
