"""
The output file read by Prometheus.

Prometheus watches the file and re-reads it whenever it changes, so it must
never see a half-written file.  The content is therefore written to a
temporary file in the same directory which then replaces the output file in a
single rename.
"""
from getpass import getuser
import logging
import os
from pathlib import Path
import tempfile
from typing import Iterable, Optional

import aiofiles
import aiofiles.os
import attr

from .config import ConfigError
from .target_group import TargetGroup, file_sd_json

LOGGER = logging.getLogger(__name__)


@attr.s
class TargetFile:
    """Writes target groups to path whenever they change"""

    path: str = attr.ib()
    _last_content: Optional[str] = attr.ib(init=False, default=None)

    @property
    def directory(self) -> str:
        return os.path.dirname(os.path.abspath(self.path))

    def prepare(self) -> None:
        """Create the directory of the output file

        Will create all parent directories.

        Also tries to create a temporary file in that directory to check the
        ability of the current user to write new files to it.

        No error is thrown if the directory already exists.
        """
        try:
            Path(self.directory).mkdir(parents=True, exist_ok=True)
        except OSError as err:
            raise ConfigError(f"Could not create output directory {self.directory}: {err}")

        try:
            with tempfile.TemporaryFile(dir=self.directory) as _:
                LOGGER.info(f"Output directory is writable by current user {getuser()}")
        except OSError as err:
            raise ConfigError(f"Could not create file in output directory {self.directory}: {err}")

    async def write(self, groups: Iterable[TargetGroup]) -> bool:
        """Write the target groups unless the file already holds them

        Returns whether the file was written.  If the write fails the
        temporary file is removed and the error is raised.
        """
        content = file_sd_json(groups)

        if content == self._last_content:
            LOGGER.debug(f"Targets unchanged, not rewriting {self.path}")
            return False

        file_descriptor, temp_path = tempfile.mkstemp(
            dir=self.directory, prefix=f".{os.path.basename(self.path)}.", suffix=".tmp"
        )
        os.close(file_descriptor)

        try:
            async with aiofiles.open(temp_path, mode="w", encoding="utf-8") as temp_file:
                await temp_file.write(content)
                await temp_file.flush()
            # mkstemp creates files only readable by the owner
            os.chmod(temp_path, 0o644)
            await aiofiles.os.replace(temp_path, self.path)
        except OSError:
            if os.path.exists(temp_path):
                await aiofiles.os.remove(temp_path)
            raise

        self._last_content = content
        LOGGER.debug(f"Wrote {self.path}")
        return True
