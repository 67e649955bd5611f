"""
Pipeline - run stages in order and stop at the first failure.

    deploy     preflight → ship → build → switch → restart
    provision  preflight → provision
    release    preflight → build → switch [→ restart]

No stage runs concurrently with another and nothing already applied is
undone when a later stage fails.
"""

from typing import List, Sequence, TYPE_CHECKING

from pickletrack_deploy.core import Logger
from .base import Stage, Transport, PipelineResult, DeployedRelease
from .builder import RemoteBuilder
from .preflight import ConnectionCheck
from .provisioner import Provisioner
from .shipper import ArtifactShipper
from .supervisor import ServiceRestarter
from .switcher import ReleaseSwitcher

if TYPE_CHECKING:
    from pickletrack_deploy.utils.config import DeployConfig


class Pipeline:
    """Sequential, fail-fast composition of stages over one transport."""

    def __init__(self, transport: Transport, stages: Sequence[Stage], logger: Logger):
        self.transport = transport
        self.stages: List[Stage] = list(stages)
        self.log = logger

    @property
    def stage_names(self) -> List[str]:
        return [stage.name for stage in self.stages]

    def run(self) -> PipelineResult:
        result = PipelineResult(target=self.transport.describe())
        total = len(self.stages)

        for index, stage in enumerate(self.stages, start=1):
            self.log.info(f"[{index}/{total}] {stage.description}...")
            stage_result = stage.run()
            result.stages.append(stage_result)

            if isinstance(stage_result.value, DeployedRelease):
                result.release = stage_result.value

            if not stage_result.success:
                self.log.error(f"{stage.name} failed ({stage_result.error.kind} error)")
                self.log.error(str(stage_result.error))
                result.skipped = [s.name for s in self.stages[index:]]
                break

        return result


def deploy_pipeline(
    config: 'DeployConfig',
    transport: Transport,
    logger: Logger,
    restart: bool = True
) -> Pipeline:
    """Ship, build, switch and (optionally) restart."""
    stages: List[Stage] = [
        ConnectionCheck(transport, logger),
        ArtifactShipper(transport, config.layout, config.artifacts, logger),
    ]
    stages += _release_stages(config, transport, logger, restart)
    return Pipeline(transport, stages, logger)


def release_pipeline(
    config: 'DeployConfig',
    transport: Transport,
    logger: Logger,
    restart: bool = False
) -> Pipeline:
    """Build and switch from sources already on the host (restart only on request)."""
    stages: List[Stage] = [ConnectionCheck(transport, logger)]
    stages += _release_stages(config, transport, logger, restart)
    return Pipeline(transport, stages, logger)


def provision_pipeline(config: 'DeployConfig', transport: Transport, logger: Logger) -> Pipeline:
    """Install the toolchain on a fresh host."""
    return Pipeline(
        transport,
        [
            ConnectionCheck(transport, logger),
            Provisioner(transport, config.provision_commands, logger),
        ],
        logger
    )


def _release_stages(
    config: 'DeployConfig',
    transport: Transport,
    logger: Logger,
    restart: bool
) -> List[Stage]:
    stages: List[Stage] = [
        RemoteBuilder(transport, config.layout, config.build_command, logger),
        ReleaseSwitcher(transport, config.layout, config.snapshot, logger),
    ]
    if restart:
        stages.append(ServiceRestarter(transport, config.layout, config.restart_command, logger))
    return stages
