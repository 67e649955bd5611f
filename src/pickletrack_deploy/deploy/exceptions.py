"""
Deployment exceptions.

One base class and one class per failure kind. Every kind aborts the rest of
the pipeline; none are retried.
"""


class DeploymentError(Exception):
    """
    Base class for every pipeline failure.

    Attributes:
        output: Captured output of the failing command (may be empty)
    """

    kind = "deployment"

    def __init__(self, message: str, output: str = ""):
        super().__init__(message)
        self.output = output


class TransportError(DeploymentError):
    """
    Connection, authentication or copy failure.

    Nothing beyond the steps that already completed has changed.
    """

    kind = "transport"


class ProvisionError(DeploymentError):
    """
    Toolchain or system package install failure.

    The host is left partially provisioned and must be repaired by hand.
    """

    kind = "provision"


class BuildError(DeploymentError):
    """
    Remote compilation failure.

    The deployed release is unchanged because no symlink has been touched.
    """

    kind = "build"


class SwitchError(DeploymentError):
    """
    Symlink activation failure.

    A link may still point at the previous release; links are only ever
    replaced by rename, so none is left half-written.
    """

    kind = "switch"


class RestartError(DeploymentError):
    """
    Supervisor restart failure.

    The deployed release on disk is valid; only the running process may be stale.
    """

    kind = "restart"
