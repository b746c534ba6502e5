"""A received snapshot together with its parsed name."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from .name import NameInfo
from .snapshot import Snapshot


@dataclass
class Update:
    """A snapshot and its name info, with an optional close callback."""

    snapshot: Optional[Snapshot] = None
    name_info: Optional[NameInfo] = None
    on_close: Optional[Callable[["Update"], None]] = None

    def close(self) -> None:
        """Run the close callback once and drop the snapshot."""
        callback = self.on_close
        if callback is not None:
            callback(self)
        self.on_close = None
        self.snapshot = None

    def __enter__(self) -> "Update":
        return self

    def __exit__(self, *args) -> None:
        self.close()