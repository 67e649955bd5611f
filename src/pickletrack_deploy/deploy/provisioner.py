"""Provisioner - install the compiler toolchain and build packages on a fresh host."""

from typing import Sequence, List

from pickletrack_deploy.core import Logger
from .base import Stage, Transport
from .exceptions import ProvisionError

# A failing download piped into an installer must fail the step
STEP_PREFIX = "set -o pipefail; "


class Provisioner(Stage):
    """
    Runs the install commands in order and stops at the first failure.
    Each step runs with pipefail set, so `curl ... | sh` fails when curl does.

    Not idempotent: re-running an installer may fail or do nothing depending
    on the package manager. A failure leaves the host half provisioned; there
    is no retry and no cleanup.
    """

    name = "provision"
    description = "Installing toolchain and system packages"

    def __init__(self, transport: Transport, commands: Sequence[str], logger: Logger):
        super().__init__(transport, logger)
        self.commands = list(commands)

    def execute(self) -> List[str]:
        completed = []
        for index, command in enumerate(self.commands, start=1):
            self.log.info(f"  ({index}/{len(self.commands)}) {command}")
            result = self.record(self.transport.run(STEP_PREFIX + command))
            if result.returncode != 0:
                raise ProvisionError(
                    f"Provisioning step failed on {self.transport.describe()}: {command}\n"
                    f"Exit status: {result.returncode}\n\n"
                    f"Last lines of output:\n{result.output[-1000:]}\n\n"
                    f"Steps already applied: {len(completed)} of {len(self.commands)}.\n"
                    f"The host is partially provisioned; finish the remaining steps by hand.",
                    output=result.output
                )
            completed.append(command)
        return completed
