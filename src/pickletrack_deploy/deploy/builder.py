"""RemoteBuilder - compile the release binary on the host."""

from pickletrack_deploy.core import Logger
from .base import Stage, Transport
from .exceptions import BuildError
from .resources import RemoteDirectory, RemoteFile, RemoteLayout


class RemoteBuilder(Stage):
    """
    Runs the build command inside the release directory.

    The compiler writes to a fixed output path, so the result is copied to
    builds/<name>-<sha256 prefix> and the active-binary link only ever points
    at such a copy. Touches no symlink: whatever happens here, the deployed
    release is the one that was active before the deploy started.
    """

    name = "build"
    description = "Building release binary"

    def __init__(self, transport: Transport, layout: RemoteLayout, command: str, logger: Logger):
        super().__init__(transport, logger)
        self.layout = layout
        self.command = command

    def execute(self) -> str:
        release_dir = self.layout.release
        if not RemoteDirectory(self.transport, release_dir).exists():
            raise BuildError(
                f"Release directory {release_dir} does not exist on {self.transport.describe()}\n"
                f"Run 'pickletrack-deploy deploy' to ship the sources first."
            )

        result = self.record(self.transport.run(self.command, cwd=release_dir))
        if result.returncode != 0:
            raise BuildError(
                f"Build failed on {self.transport.describe()}\n\n"
                f"Last lines of build output:\n{result.output[-1000:]}\n\n"
                f"Debug:\n"
                f"  cd {release_dir} && {self.command}\n"
                f"  (a missing toolchain means the host was never provisioned: "
                f"run 'pickletrack-deploy provision')",
                output=result.output
            )

        output = RemoteFile(self.transport, self.layout.binary)
        digest = output.digest() if output.exists() else None
        if digest is None:
            raise BuildError(
                f"Build reported success but {self.layout.binary} was not produced\n"
                f"Check layout.build_output in the deploy config."
            )

        build = self.layout.build_copy(digest)
        RemoteDirectory(self.transport, self.layout.builds).ensure()
        output.copy_to(build)
        self.log.debug(f"Build {digest} kept at {build}")
        return build.path
