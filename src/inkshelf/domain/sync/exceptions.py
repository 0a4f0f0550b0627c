"""Synchronization errors."""

from inkshelf.core.errors import InkshelfError


class SyncCollision(InkshelfError):
    """Target file is newer than its source beyond the timestamp tolerance.

    Not raised: collisions are collected in the plan, logged, and resolved
    in favour of the source.
    """

    def __init__(self, path: str, source_mtime: float, target_mtime: float):
        self.path = path
        self.source_mtime = source_mtime
        self.target_mtime = target_mtime
        super().__init__(
            f"{path}: target is newer than source by "
            f"{target_mtime - source_mtime:.1f}s, overwriting with source"
        )
