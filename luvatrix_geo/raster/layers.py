from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np


@dataclass
class LayerCache:
    """Keyed base-frame template; redrawn only when its key changes."""

    frame_key: tuple[Any, ...] | None = None
    frame_template: np.ndarray | None = None

    def lookup(self, key: tuple[Any, ...]) -> np.ndarray | None:
        if self.frame_key != key or self.frame_template is None:
            return None
        return self.frame_template.copy()

    def store(self, key: tuple[Any, ...], frame: np.ndarray) -> None:
        self.frame_key = key
        self.frame_template = frame.copy()

    def invalidate(self) -> None:
        self.frame_key = None
        self.frame_template = None
