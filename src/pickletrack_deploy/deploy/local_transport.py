"""
LocalTransport - Treat the current machine as the target host.

Used when the operator is logged in on the host itself (`release --local`,
`status --local`) and by the end-to-end tests, which point the layout root at
a temporary directory.
"""

import logging
import os
import shutil
from pathlib import Path
from typing import Optional, Sequence

from pickletrack_deploy.core import ProcessExecutor, ProcessResult, SubprocessExecutor
from .exceptions import TransportError
from .resources import RemotePath

logger = logging.getLogger(__name__)


class LocalTransport:
    """Runs commands with bash and copies files with shutil."""

    def __init__(self, process: Optional[ProcessExecutor] = None, shell: str = "bash"):
        self.process = process or SubprocessExecutor()
        self.shell = shell

    def describe(self) -> str:
        return "local://"

    def preflight(self) -> None:
        if shutil.which(self.shell) is None:
            raise TransportError(f"Shell '{self.shell}' not found in PATH")

    def run(self, command: str, cwd: Optional[RemotePath] = None) -> ProcessResult:
        if cwd is not None:
            command = f"cd {cwd.shell()} && {command}"
        logger.debug("local$ %s", command)
        try:
            return self.process.run([self.shell, "-c", command])
        except OSError as e:
            raise TransportError(f"Could not run '{command}' locally: {e}")

    def push(
        self,
        source: Path,
        destination: RemotePath,
        contents: bool = False,
        mirror: bool = False,
        exclude: Sequence[str] = ()
    ) -> None:
        target = Path(os.path.expandvars(destination.path))
        logger.debug("copy %s -> %s", source, target)
        try:
            if source.is_dir():
                dest = target if contents else target / source.name
                if mirror and dest.exists():
                    shutil.rmtree(dest)
                shutil.copytree(
                    source,
                    dest,
                    symlinks=True,
                    ignore=shutil.ignore_patterns(*exclude),
                    dirs_exist_ok=True
                )
            else:
                target.mkdir(parents=True, exist_ok=True)
                shutil.copy2(source, target / source.name)
        except (OSError, shutil.Error) as e:
            raise TransportError(f"Copy of {source} to {target} failed: {e}")
