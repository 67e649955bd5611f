"""
Release pipeline for the Pickletrack web server.

Stages (run in order by Pipeline, first failure stops the run):
    - ConnectionCheck: tools present, passwordless SSH
    - Provisioner: toolchain + system packages (fresh hosts only)
    - ArtifactShipper: manifest, lockfile, sources, static assets, scripts
    - RemoteBuilder: cargo release build on the host
    - ReleaseSwitcher: atomic repoint of the binary and current-data links
    - ServiceRestarter: restart through the external supervisor

Public API:
    - Transport: Protocol interface (SSHTransport, LocalTransport)
    - TransportFactory: Parse target strings
    - Pipeline and deploy/release/provision builders
    - StageResult, PipelineResult, DeployedRelease: Result types
    - DeploymentError and its kinds: Exceptions
"""

from .base import Transport, Stage, StageResult, PipelineResult, DeployedRelease
from .exceptions import (
    DeploymentError,
    TransportError,
    ProvisionError,
    BuildError,
    SwitchError,
    RestartError,
)
from .resources import RemotePath, RemoteLayout, RemoteDirectory, RemoteFile, RemoteSymlink
from .ssh_transport import SSHTransport
from .local_transport import LocalTransport
from .factory import TransportFactory
from .provisioner import Provisioner
from .shipper import ArtifactShipper
from .builder import RemoteBuilder
from .switcher import ReleaseSwitcher, list_snapshots, read_deployed_release
from .supervisor import ServiceRestarter
from .preflight import ConnectionCheck
from .pipeline import Pipeline, deploy_pipeline, release_pipeline, provision_pipeline

__all__ = [
    # Protocol and types
    "Transport",
    "Stage",
    "StageResult",
    "PipelineResult",
    "DeployedRelease",

    # Exceptions
    "DeploymentError",
    "TransportError",
    "ProvisionError",
    "BuildError",
    "SwitchError",
    "RestartError",

    # Remote paths
    "RemotePath",
    "RemoteLayout",
    "RemoteDirectory",
    "RemoteFile",
    "RemoteSymlink",

    # Transports
    "SSHTransport",
    "LocalTransport",
    "TransportFactory",

    # Stages
    "ConnectionCheck",
    "Provisioner",
    "ArtifactShipper",
    "RemoteBuilder",
    "ReleaseSwitcher",
    "ServiceRestarter",
    "list_snapshots",
    "read_deployed_release",

    # Orchestration
    "Pipeline",
    "deploy_pipeline",
    "release_pipeline",
    "provision_pipeline",
]
