"""JSON save files for worlds.

A save file holds one World serialized as a single JSON document, with the
location map keyed by ``"x,y"`` strings. Writes go to a temporary sibling
file that replaces the target in one step, so a crash never leaves a half
written save behind.

Storage location: ``StorageSettings.save_dir`` (default ``./saves``)
"""

from __future__ import annotations

import json
import os
from pathlib import Path

from pydantic import ValidationError

from infinite_adventure.core.config import get_settings
from infinite_adventure.core.exceptions import PersistenceError
from infinite_adventure.core.logging import get_logger
from infinite_adventure.models.world import World


logger = get_logger(__name__)

SAVE_SUFFIX = ".json"


class SaveManager:
    """Reads and writes world saves in one directory.

    Example:
        >>> saves = SaveManager("saves")
        >>> saves.create_new_save("first", world)
        'first.json'
        >>> saves.load_world("first.json").current_pos
        (0, 0)
    """

    def __init__(self, save_dir: str | Path | None = None) -> None:
        """Initialize the manager, creating the directory if needed.

        Args:
            save_dir: Directory holding save files; defaults to the configured one.
        """
        self.save_dir = Path(save_dir) if save_dir is not None else get_settings().storage.save_dir
        try:
            self.save_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise PersistenceError(
                f"Cannot create save directory: {exc}",
                path=str(self.save_dir),
            ) from exc

    def path_for(self, filename: str) -> Path:
        """Resolve a bare save filename inside the save directory."""
        if not filename or Path(filename).name != filename or filename in (".", ".."):
            raise PersistenceError(f"Invalid save filename: {filename!r}", path=filename)
        return self.save_dir / filename

    def save_world(self, filename: str, world: World) -> Path:
        """Write ``world`` to ``filename``, replacing any previous save.

        Returns:
            Path of the written file.

        Raises:
            PersistenceError: If the file cannot be written.
        """
        path = self.path_for(filename)
        tmp_path = path.with_name(f"{path.name}.tmp")
        payload = world.model_dump_json(indent=2)

        try:
            tmp_path.write_text(payload, encoding="utf-8")
            os.replace(tmp_path, path)
        except OSError as exc:
            tmp_path.unlink(missing_ok=True)
            raise PersistenceError(f"Failed to write save: {exc}", path=str(path)) from exc

        logger.info("World saved", path=str(path), locations=len(world.locations))
        return path

    def load_world(self, filename: str) -> World:
        """Read a world back from ``filename``.

        Raises:
            PersistenceError: If the file is missing, unreadable, or does not
                hold a valid world.
        """
        path = self.path_for(filename)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise PersistenceError(f"Save not found: {filename}", path=str(path)) from exc
        except OSError as exc:
            raise PersistenceError(f"Failed to read save: {exc}", path=str(path)) from exc

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise PersistenceError(f"Save is not valid JSON: {exc.msg}", path=str(path)) from exc
        if not isinstance(data, dict):
            raise PersistenceError("Save does not contain a world object", path=str(path))

        try:
            # Validate from Python data so "x,y" keys go through the location decoder
            world = World.model_validate(data)
        except ValidationError as exc:
            raise PersistenceError(
                f"Save does not match the world format ({exc.error_count()} errors)",
                path=str(path),
                details={"errors": [error["msg"] for error in exc.errors()[:5]]},
            ) from exc

        logger.info("World loaded", path=str(path), locations=len(world.locations))
        return world

    def create_new_save(self, name: str, world: World) -> str:
        """Save ``world`` under ``name`` with the ``.json`` suffix added.

        Returns:
            The filename that was written.
        """
        filename = f"{name}{SAVE_SUFFIX}"
        self.save_world(filename, world)
        return filename


__all__ = [
    "SAVE_SUFFIX",
    "SaveManager",
]
