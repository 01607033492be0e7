"""Brick registry"""

from __future__ import annotations

import logging
from typing import Iterable

from brickrun.config import RuntimeSettings
from brickrun.exceptions import BrickNotFoundError, RegistryError

from .base import Brick

log = logging.getLogger(__name__)


class BrickRegistry:
    """Maps registry ids (e.g. ``@brickrun/for-each``) to bricks."""

    def __init__(self, bricks: Iterable[Brick] = ()):
        self._bricks: dict[str, Brick] = {}
        self.register(*bricks)

    def register(self, *bricks: Brick, replace: bool = True) -> None:
        for brick in bricks:
            if not getattr(brick, "id", None):
                raise RegistryError(f"Brick has no id: {brick!r}")
            if brick.id in self._bricks and not replace:
                raise RegistryError(f"Brick already registered: {brick.id}")
            if brick.id in self._bricks:
                log.debug("Replacing brick %s", brick.id)
            self._bricks[brick.id] = brick

    def lookup(self, brick_id: str) -> Brick:
        """Get a brick by id.

        Raises:
            BrickNotFoundError: If no brick is registered under ``brick_id``.
        """
        if brick_id in self._bricks:
            return self._bricks[brick_id]
        raise BrickNotFoundError(brick_id)

    def __contains__(self, brick_id: object) -> bool:
        return brick_id in self._bricks

    def __len__(self) -> int:
        return len(self._bricks)

    def all(self) -> list[Brick]:
        return sorted(self._bricks.values(), key=lambda b: b.id)

    def clear(self) -> None:
        self._bricks.clear()


def default_registry(settings: RuntimeSettings | None = None) -> BrickRegistry:
    """Registry with the control-flow and utility bricks."""
    from .builtin import builtin_bricks
    from .control_flow import control_flow_bricks

    retry = settings.retry if settings is not None else None
    return BrickRegistry([*control_flow_bricks(retry), *builtin_bricks()])
