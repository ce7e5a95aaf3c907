"""
The polling loop connecting the discoverer with the output file.
"""
import asyncio
import logging
import time
from typing import Optional

import attr

from .discoverer import Discoverer
from .metrics import LAST_REFRESH
from .target_file import TargetFile

LOGGER = logging.getLogger(__name__)


@attr.s
class Adapter:
    """Refreshes the output file every refresh seconds"""

    discoverer: Discoverer = attr.ib()
    target_file: TargetFile = attr.ib()
    refresh: int = attr.ib(default=30)
    last_refresh: Optional[float] = attr.ib(init=False, default=None)

    @property
    def ready(self) -> bool:
        """Whether at least one refresh has been completed"""
        return self.last_refresh is not None

    async def run(self, shutdown_event: asyncio.Event) -> None:
        """Refresh right away and then on every tick until shutdown_event is set"""
        LOGGER.info(f"Refreshing {self.target_file.path} every {self.refresh}s")

        while not shutdown_event.is_set():
            await self.run_once()

            try:
                await asyncio.wait_for(shutdown_event.wait(), timeout=self.refresh)
            except asyncio.TimeoutError:
                pass

        LOGGER.info("Stopped refreshing targets")

    async def run_once(self) -> None:
        """A single discovery and write cycle

        Errors writing the file are logged, the next tick tries again
        """
        groups = await self.discoverer.refresh()

        try:
            written = await self.target_file.write(groups)
        except OSError as err:
            LOGGER.error(f"Failed to write {self.target_file.path}: {err}")
            return

        if written:
            LOGGER.info(f"Wrote {len(groups)} targets to {self.target_file.path}")

        self.last_refresh = time.time()
        LAST_REFRESH.set(self.last_refresh)
