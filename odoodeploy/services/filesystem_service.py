"""Filesystem service for stack directories and rendered files."""

import os
import stat
import tempfile
from pathlib import Path
from typing import Iterable, Optional

from odoodeploy.logger import DeployLogger
from odoodeploy.services.base import HostFilesystem


class FilesystemService(HostFilesystem):
    """Writes rendered files deterministically and creates directories."""

    def __init__(self, logger: Optional[DeployLogger] = None):
        self.logger = logger

    def dirs_exist(self, paths: Iterable[Path]) -> bool:
        return all(Path(p).is_dir() for p in paths)

    def ensure_dirs(self, paths: Iterable[Path]) -> None:
        for path in paths:
            Path(path).mkdir(parents=True, exist_ok=True)
            if self.logger:
                self.logger.log(f"Directory ready: {path}")

    def matches(
        self,
        path: Path,
        content: str,
        mode: Optional[int] = None,
        group: Optional[int] = None,
    ) -> bool:
        path = Path(path)
        if not path.is_file():
            return False
        info = path.stat()
        if mode is not None and stat.S_IMODE(info.st_mode) != mode:
            return False
        if group is not None and info.st_gid != group:
            return False
        return path.read_bytes() == content.encode("utf-8")

    def exists(self, path: Path) -> bool:
        return Path(path).is_file()

    def remove(self, path: Path) -> None:
        Path(path).unlink(missing_ok=True)

    def write_if_changed(
        self, path: Path, content: str, mode: int, group: Optional[int] = None
    ) -> bool:
        """
        Write content atomically unless the file already holds it.

        The file is written to a temporary sibling, chmod'ed (and chgrp'ed),
        then renamed over the target, so readers never observe a partial
        file or a file with the wrong permissions.

        Args:
            path: Target file
            content: Exact text to store
            mode: Permission bits for the file
            group: Numeric group owner, or None to keep the default

        Returns:
            True if the file was written, False if it was already identical
        """
        path = Path(path)
        if self.matches(path, content):
            self._set_permissions(path, mode, group)
            return False

        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.")
        try:
            with os.fdopen(fd, "wb") as tmp:
                tmp.write(content.encode("utf-8"))
            self._set_permissions(Path(tmp_name), mode, group)
            os.replace(tmp_name, path)
        except OSError:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

        if self.logger:
            self.logger.log(f"Wrote {path} ({len(content)} bytes, mode {oct(mode)})")
        return True

    @staticmethod
    def _set_permissions(path: Path, mode: int, group: Optional[int]) -> None:
        if group is not None:
            os.chown(path, -1, group)
        os.chmod(path, mode)
