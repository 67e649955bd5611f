"""
Transport protocol, stage base class and result types.

A deploy is a fixed sequence of stages run over one Transport. Each stage
turns a raised DeploymentError into a failed StageResult; the Pipeline stops
at the first failure.
"""

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol, Optional, Sequence, Any, List, TYPE_CHECKING, runtime_checkable

from pickletrack_deploy.core import Logger, ProcessResult
from .exceptions import DeploymentError

if TYPE_CHECKING:
    from .resources import RemotePath


@dataclass(frozen=True)
class DeployedRelease:
    """
    The pair of symlink targets that define what the host is serving.

    Attributes:
        binary_target: Target of the active-binary link (None if absent)
        data_target: Target of the current-data link (None if absent)
    """
    binary_target: Optional[str]
    data_target: Optional[str]


@dataclass
class StageResult:
    """
    Outcome of one pipeline stage.

    Attributes:
        name: Stage name (e.g. "build")
        success: Whether the stage completed
        error: Typed error when success is False
        output: Captured output of the commands the stage ran
        value: Stage-specific return value (e.g. DeployedRelease for "switch")
        duration_seconds: Wall time spent in the stage
    """
    name: str
    success: bool
    error: Optional[DeploymentError] = None
    output: str = ""
    value: Any = None
    duration_seconds: float = 0.0


@dataclass
class PipelineResult:
    """
    Outcome of a pipeline run.

    Attributes:
        target: Description of the host the pipeline ran against
        stages: Results of the stages that ran, in order
        skipped: Names of the stages that never ran because an earlier one failed
        release: DeployedRelease produced by the switch stage, if it ran
    """
    target: str
    stages: List[StageResult] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    release: Optional[DeployedRelease] = None

    @property
    def success(self) -> bool:
        return all(stage.success for stage in self.stages) and not self.skipped

    @property
    def failed_stage(self) -> Optional[StageResult]:
        for stage in self.stages:
            if not stage.success:
                return stage
        return None

    @property
    def error(self) -> Optional[DeploymentError]:
        failed = self.failed_stage
        return failed.error if failed else None

    @property
    def exit_code(self) -> int:
        return 0 if self.success else 1


@runtime_checkable
class Transport(Protocol):
    """
    Interface for reaching the target host.

    Implementations:
        - SSHTransport: ssh + rsync to user@host (the normal deploy path)
        - LocalTransport: bash + shutil on this machine (on-host release, tests)
    """

    def describe(self) -> str:
        """Human-readable target, e.g. "ec2-user@34.229.210.131:22"."""
        ...

    def preflight(self) -> None:
        """
        Verify the host is reachable before any state is changed.

        Raises:
            TransportError: If the host cannot be reached non-interactively
        """
        ...

    def run(self, command: str, cwd: Optional['RemotePath'] = None) -> ProcessResult:
        """
        Run a shell command on the host and block until it completes.

        A non-zero exit status of the command itself is returned, not raised;
        the calling stage decides which error kind it maps to.

        Raises:
            TransportError: If the command could not be delivered to the host
        """
        ...

    def push(
        self,
        source: Path,
        destination: 'RemotePath',
        contents: bool = False,
        mirror: bool = False,
        exclude: Sequence[str] = ()
    ) -> None:
        """
        Copy a local file or directory into a remote directory.

        Args:
            source: Local file or directory
            destination: Remote directory receiving the copy
            contents: Copy the children of source rather than source itself
            mirror: Delete remote files that no longer exist locally
            exclude: Entry names that are never copied

        Raises:
            TransportError: If the copy fails
        """
        ...


class Stage:
    """
    One step of the release pipeline.

    Subclasses implement execute(), raising the DeploymentError kind that
    matches their failure. run() wraps execute() into a StageResult so the
    orchestrator never has to catch exceptions itself.
    """

    name = "stage"
    description = "Running stage"

    def __init__(self, transport: Transport, logger: Logger):
        self.transport = transport
        self.log = logger
        self._outputs: List[str] = []

    def execute(self) -> Any:
        raise NotImplementedError

    def record(self, result: ProcessResult) -> ProcessResult:
        """Keep a command's output for the stage log."""
        if result.output:
            self._outputs.append(result.output)
            self.log.debug(result.output.rstrip())
        return result

    def run(self) -> StageResult:
        self._outputs = []
        started = time.monotonic()
        try:
            value = self.execute()
        except DeploymentError as e:
            if e.output and e.output not in self._outputs:
                self._outputs.append(e.output)
            output = "\n".join(self._outputs)
            return StageResult(
                name=self.name,
                success=False,
                error=e,
                output=output,
                duration_seconds=time.monotonic() - started
            )
        return StageResult(
            name=self.name,
            success=True,
            output="\n".join(self._outputs),
            value=value,
            duration_seconds=time.monotonic() - started
        )
