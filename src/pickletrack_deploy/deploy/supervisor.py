"""ServiceRestarter - ask the external process supervisor to restart the server."""

from pickletrack_deploy.core import Logger
from .base import Stage, Transport
from .exceptions import RestartError
from .resources import RemoteLayout


class ServiceRestarter(Stage):
    """
    Runs the restart command from the executable directory.

    The supervisor is a black box; its own retries and health checks are not
    ours to manage. A failure here leaves the links valid but the running
    process possibly on the previous release.
    """

    name = "restart"
    description = "Restarting service"

    def __init__(self, transport: Transport, layout: RemoteLayout, command: str, logger: Logger):
        super().__init__(transport, logger)
        self.layout = layout
        self.command = command

    def execute(self) -> str:
        result = self.record(self.transport.run(self.command, cwd=self.layout.bin))
        if result.returncode != 0:
            raise RestartError(
                f"Restart command failed on {self.transport.describe()}: {self.command}\n"
                f"Exit status: {result.returncode}\n"
                f"Output: {result.output.strip() or '(none)'}\n\n"
                f"The new release is activated on disk; the running process may still be the old one.\n"
                f"Restart it by hand: cd {self.layout.bin} && {self.command}",
                output=result.output
            )
        return self.command
