"""Small value types and helpers shared across the package."""

from __future__ import annotations

import os
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

NAMESPACE = "walksnail-osd-tool"

T = TypeVar("T")


@dataclass(frozen=True)
class Coordinates(Generic[T]):
    """A point on a plane; hashable so it can be stored in sets."""

    x: T
    y: T


@dataclass(frozen=True)
class Dimension(Generic[T]):
    """A width and height pair."""

    width: T
    height: T

    def __str__(self) -> str:
        return f"{self.width}x{self.height}"


@dataclass
class AppUpdate:
    """Settings for the application update check."""

    check_on_startup: bool = True


def command_to_cli(program: Any, args: Iterable[Any]) -> str:
    """Render a program and its arguments as a single command line.

    Arguments that contain a space are wrapped in double quotes.
    """
    rendered = []
    for arg in args:
        text = os.fsdecode(arg) if isinstance(arg, (bytes, os.PathLike)) else str(arg)
        rendered.append(f'"{text}"' if " " in text else text)
    program_text = os.fsdecode(program) if isinstance(program, (bytes, os.PathLike)) else str(program)
    return f"{program_text} {' '.join(rendered)}"