"""
ReleaseSwitcher - activate the freshly built binary and the chosen snapshot.

Both links are replaced by rename (see RemoteSymlink.point_at), never by
remove-then-relink, so the server never sees a missing current.json.
"""

import re
from typing import List

from pickletrack_deploy.core import Logger
from .base import Stage, Transport, DeployedRelease
from .exceptions import SwitchError
from .resources import RemoteDirectory, RemoteFile, RemoteLayout, RemoteSymlink

# Snapshot setting that selects the newest dated snapshot on the host
LATEST_SNAPSHOT = "latest"

# Snapshots are named after the day they were scraped: YYYYMMDD.json
SNAPSHOT_PATTERN = re.compile(r"^\d{8}\.json$")


def list_snapshots(transport: Transport, layout: RemoteLayout) -> List[str]:
    """Dated snapshot names in the data directory, oldest first."""
    names = RemoteDirectory(transport, layout.data).list()
    return sorted(name for name in names if SNAPSHOT_PATTERN.match(name))


def read_deployed_release(transport: Transport, layout: RemoteLayout) -> DeployedRelease:
    """Current link targets on the host (None for a missing link)."""
    return DeployedRelease(
        binary_target=RemoteSymlink(transport, layout.binary_link).read_target(),
        data_target=RemoteSymlink(transport, layout.current_data_link).read_target(),
    )


class ReleaseSwitcher(Stage):
    """
    Repoints the active-binary link and the current-data link.

    Both targets are checked before either link changes, so a missing
    snapshot cannot leave the host with a new binary and old data.
    """

    name = "switch"
    description = "Activating release"

    def __init__(self, transport: Transport, layout: RemoteLayout, snapshot: str, logger: Logger):
        super().__init__(transport, logger)
        self.layout = layout
        self.snapshot = snapshot

    def select_snapshot(self) -> str:
        if self.snapshot != LATEST_SNAPSHOT:
            return self.snapshot
        if not RemoteDirectory(self.transport, self.layout.data).exists():
            raise SwitchError(
                f"Data directory {self.layout.data} does not exist on {self.transport.describe()}\n"
                f"Run 'pickletrack-deploy deploy' to ship the static assets first."
            )
        snapshots = list_snapshots(self.transport, self.layout)
        if not snapshots:
            raise SwitchError(
                f"No dated snapshots (YYYYMMDD.json) in {self.layout.data} "
                f"on {self.transport.describe()}"
            )
        return snapshots[-1]

    def _available_snapshots(self) -> str:
        if not RemoteDirectory(self.transport, self.layout.data).exists():
            return "(no data directory)"
        return ", ".join(list_snapshots(self.transport, self.layout)) or "(none)"

    def execute(self) -> DeployedRelease:
        snapshot = self.select_snapshot()

        # The link targets the kept copy of the current build output, never the output itself
        digest = RemoteFile(self.transport, self.layout.binary).digest()
        if digest is None:
            raise SwitchError(f"Cannot activate: binary {self.layout.binary} does not exist")
        binary = self.layout.build_copy(digest)
        if not RemoteFile(self.transport, binary).exists():
            raise SwitchError(
                f"Cannot activate: build {binary} does not exist\n"
                f"Run 'pickletrack-deploy release' to build it."
            )
        if not RemoteFile(self.transport, self.layout.snapshot(snapshot)).exists():
            raise SwitchError(
                f"Cannot activate: snapshot {snapshot} not found in {self.layout.data}\n"
                f"Available: {self._available_snapshots()}"
            )

        binary_link = RemoteSymlink(self.transport, self.layout.binary_link)
        data_link = RemoteSymlink(self.transport, self.layout.current_data_link)
        binary_link.check_replaceable()
        data_link.check_replaceable()

        self.log.info(f"  {self.layout.binary_link} -> {binary}")
        binary_target = binary_link.point_at(binary.path)

        # Relative target: the link keeps working if the data directory moves
        self.log.info(f"  {self.layout.current_data_link} -> {snapshot}")
        data_target = data_link.point_at(snapshot)

        return DeployedRelease(binary_target=binary_target, data_target=data_target)
