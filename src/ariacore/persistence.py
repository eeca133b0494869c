# src/ariacore/persistence.py
"""
JSON snapshot store for agent state.

Saves the dictionary produced by ``LearningAgent.export_state()`` and
loads it back for ``import_state()``.  Uses aiofiles for asynchronous
file operations; writes go to a temporary file that is then renamed over
the target so a crash mid-write never leaves a truncated snapshot.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import aiofiles
import aiofiles.os as aios

from .exceptions import PersistenceError

logger = logging.getLogger(__name__)


class StateStore:
    """
    Single-file JSON persistence for one agent's snapshot.

    Args:
        path: Path to the snapshot file (``~`` is expanded).

    Example:
        >>> store = StateStore("~/.local/share/ariacore/aria.json")
        >>> await store.save(agent.export_state())
        >>> snapshot = await store.load()
    """

    def __init__(self, path: str = "~/.local/share/ariacore/state.json") -> None:
        self._path = Path(os.path.expanduser(path))

    @property
    def path(self) -> Path:
        return self._path

    async def save(self, snapshot: Dict[str, Any]) -> None:
        """
        Atomically write ``snapshot`` to disk.

        Raises:
            PersistenceError: If serialization or file I/O fails.
        """
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        try:
            content = json.dumps(snapshot, indent=2, default=str)
            await aios.makedirs(self._path.parent, exist_ok=True)
            async with aiofiles.open(tmp_path, mode="w", encoding="utf-8") as f:
                await f.write(content)
            await aios.replace(tmp_path, self._path)
            logger.debug(f"Agent state saved to {self._path}")
        except TypeError as e:
            logger.error(f"Error serializing agent state: {e}")
            raise PersistenceError(f"Failed to serialize agent state: {e}")
        except OSError as e:
            logger.error(f"Error writing agent state to {self._path}: {e}")
            raise PersistenceError(f"Failed to write state file {self._path}: {e}")

    async def load(self) -> Optional[Dict[str, Any]]:
        """
        Read the snapshot, or None if no snapshot has been saved yet.

        Raises:
            PersistenceError: If the file is corrupted or cannot be read.
        """
        if not await aios.path.exists(self._path):
            logger.debug(f"No agent state found at {self._path}")
            return None

        try:
            async with aiofiles.open(self._path, mode="r", encoding="utf-8") as f:
                content = await f.read()
            data = json.loads(content)
        except json.JSONDecodeError as e:
            logger.error(f"Error decoding agent state from {self._path}: {e}")
            raise PersistenceError(f"Corrupted state file {self._path}: {e}")
        except OSError as e:
            logger.error(f"Error reading agent state from {self._path}: {e}")
            raise PersistenceError(f"Failed to read state file {self._path}: {e}")

        if not isinstance(data, dict):
            raise PersistenceError(f"State file {self._path} does not contain a JSON object")

        logger.debug(f"Agent state loaded from {self._path}")
        return data

    async def delete(self) -> None:
        """Remove the snapshot if present."""
        if await aios.path.exists(self._path):
            await aios.remove(self._path)
