"""
ArtifactShipper - copy one release's artifacts to the host.

Order: create directories → clear the executable directory → manifest →
lockfile → source tree → static assets → operator scripts.
"""

from typing import List, TYPE_CHECKING

from pickletrack_deploy.core import Logger
from .base import Stage, Transport
from .exceptions import TransportError
from .resources import RemoteDirectory, RemoteLayout

if TYPE_CHECKING:
    from pickletrack_deploy.utils.config import ArtifactSet


class ArtifactShipper(Stage):
    """
    Ships the ReleaseArtifactSet to fixed remote directories.

    The active-binary link in the executable directory survives the clearing
    step, so a failed build later on leaves the running release untouched.
    Snapshots already on the host are never deleted.
    """

    name = "ship"
    description = "Shipping artifacts"

    def __init__(
        self,
        transport: Transport,
        layout: RemoteLayout,
        artifacts: 'ArtifactSet',
        logger: Logger
    ):
        super().__init__(transport, logger)
        self.layout = layout
        self.artifacts = artifacts

    def execute(self) -> List[str]:
        missing = self.artifacts.missing()
        if missing:
            raise TransportError(
                "Local artifacts missing, nothing was copied:\n"
                + "\n".join(f"  - {path}" for path in missing)
                + "\n\nRun the deploy from the project root or set project_root in the config."
            )

        for path in self.layout.directories():
            RemoteDirectory(self.transport, path).ensure()

        removed = RemoteDirectory(self.transport, self.layout.bin).clear(
            keep=[self.layout.binary_name]
        )
        if removed:
            self.log.debug(f"Removed from {self.layout.bin}: {', '.join(removed)}")

        layout, artifacts = self.layout, self.artifacts
        steps = [
            (artifacts.manifest, layout.release, dict()),
            (artifacts.lockfile, layout.release, dict()),
            (artifacts.source, layout.release.child(artifacts.source.name),
             dict(contents=True, mirror=True)),
            (artifacts.static, layout.static,
             dict(contents=True, exclude=[layout.current_data_name])),
            (artifacts.scripts, layout.bin,
             dict(contents=True, exclude=[layout.binary_name])),
        ]

        shipped = []
        for source, destination, options in steps:
            self.log.info(f"  {source} -> {destination}")
            self.transport.push(source, destination, **options)
            shipped.append(str(source))
        return shipped
