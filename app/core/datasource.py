"""Object storage backends.

Only the accounting side lives here: the stats dashboard asks the datasource
how many bytes it occupies instead of trusting row metadata.
"""

import asyncio
import logging
import os
from abc import ABC, abstractmethod
from functools import lru_cache
from pathlib import Path

from app.core.config import settings

logger = logging.getLogger(__name__)


class Datasource(ABC):
    """Storage backend holding the stored objects."""

    name: str = "datasource"

    @abstractmethod
    async def full_size(self) -> int:
        """Total bytes occupied by every stored object."""


class LocalDatasource(Datasource):
    """Objects stored as plain files below a single directory."""

    name = "local"

    def __init__(self, directory: str | os.PathLike) -> None:
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    async def full_size(self) -> int:
        # Walking a big tree is blocking I/O, keep it off the event loop
        return await asyncio.to_thread(self._walk_size)

    def _walk_size(self) -> int:
        total = 0
        for path in self.directory.rglob("*"):
            if path.is_file():
                total += path.stat().st_size
        logger.debug(f"{self.name} datasource at {self.directory} holds {total} bytes")
        return total


# FastAPI dependency, one datasource per process
@lru_cache
def get_datasource() -> Datasource:
    return LocalDatasource(settings.DATASOURCE_DIRECTORY)
