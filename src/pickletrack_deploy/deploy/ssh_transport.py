"""
SSHTransport - Reach the target host over SSH.

Commands run through `ssh`, files are copied with `rsync -e ssh`.
Every call blocks until the remote side has finished.
"""

import logging
import re
from pathlib import Path
from typing import Optional, Sequence, List

from pickletrack_deploy.core import (
    ProcessExecutor,
    ProcessResult,
    ToolLocator,
    SubprocessExecutor,
    SystemToolLocator,
)
from .exceptions import TransportError
from .resources import RemotePath

logger = logging.getLogger(__name__)

# ssh reserves exit status 255 for its own (connection/auth) failures
SSH_TRANSPORT_FAILURE = 255

# Diagnostics ssh itself prints when it exits 255; a remote command may also exit 255
SSH_ERROR_PATTERN = re.compile(
    r"^ssh: |^ssh_exchange_identification|^kex_exchange_identification"
    r"|Connection (refused|timed out|reset|closed)|Permission denied \(|"
    r"Host key verification failed|Could not resolve hostname|No route to host|"
    r"Network is unreachable|Connection to \S+ closed",
    re.MULTILINE
)


class SSHTransport:
    """
    Runs commands and copies files over SSH.

    Target hosts: the single EC2 instance serving Pickletrack, or any Linux VM
    Requirements: passwordless SSH, rsync on both ends
    """

    def __init__(
        self,
        user: str,
        host: str,
        ssh_port: int = 22,
        identity_file: Optional[str] = None,
        connect_timeout: int = 10,
        process: Optional[ProcessExecutor] = None,
        tools: Optional[ToolLocator] = None
    ):
        """
        Initialize SSH transport.

        Args:
            user: SSH username (e.g., "ec2-user")
            host: IP or hostname (e.g., "34.229.210.131")
            ssh_port: SSH port (default: 22)
            identity_file: Private key passed with -i (default: ssh's own choice)
            connect_timeout: Seconds before a connection attempt is abandoned
            process: Process executor (injected in tests)
            tools: Tool locator (injected in tests)
        """
        self.user = user
        self.host = host
        self.ssh_port = ssh_port
        self.identity_file = identity_file
        self.connect_timeout = connect_timeout
        self.process = process or SubprocessExecutor()
        self.tools = tools or SystemToolLocator()

    def describe(self) -> str:
        return f"{self.user}@{self.host}:{self.ssh_port}"

    @property
    def _login(self) -> str:
        """user@host, with IPv6 literals bracketed for rsync."""
        if ':' in self.host:
            return f"{self.user}@[{self.host}]"
        return f"{self.user}@{self.host}"

    def _ssh_options(self) -> List[str]:
        options = ["-p", str(self.ssh_port), "-o", f"ConnectTimeout={self.connect_timeout}"]
        if self.identity_file:
            options += ["-i", self.identity_file]
        return options

    def _ssh_cmd(self, command: str) -> List[str]:
        """Build SSH command with custom port (X11 forwarding disabled)."""
        return ["ssh", "-x", *self._ssh_options(), f"{self.user}@{self.host}", command]

    def _check_tools(self) -> None:
        missing = [tool for tool in ("ssh", "rsync") if not self.tools.has_tool(tool)]
        if missing:
            raise TransportError(
                f"Required tools not found in PATH: {', '.join(missing)}\n"
                f"Install them locally before deploying:\n"
                f"  sudo apt install openssh-client rsync\n"
                f"  # or equivalent for your distro"
            )

    def _check_passwordless_ssh(self) -> None:
        """
        Verify passwordless SSH is configured.

        Raises:
            TransportError: If passwordless SSH is not set up
        """
        port_flag = f"-p {self.ssh_port} " if self.ssh_port != 22 else ""
        test_cmd = [
            "ssh",
            *self._ssh_options(),
            "-o", "PasswordAuthentication=no",
            "-o", "BatchMode=yes",  # Fail immediately if password needed
            f"{self.user}@{self.host}",
            "echo OK"
        ]

        result = self.process.run(test_cmd)

        if result.returncode != 0:
            raise TransportError(
                f"Passwordless SSH not configured for {self.user}@{self.host}\n\n"
                f"Deploys run unattended and need key-based SSH authentication.\n\n"
                f"Setup:\n"
                f"  1. Copy your key to the host:\n"
                f"     ssh-copy-id {port_flag}{self.user}@{self.host}\n"
                f"     (or set identity_file in the deploy config to the instance key)\n\n"
                f"  2. Test it worked (should NOT ask for a password):\n"
                f"     ssh {port_flag}{self.user}@{self.host} \"echo OK\"\n\n"
                f"ssh said: {result.output.strip() or '(nothing)'}",
                output=result.output
            )

    def preflight(self) -> None:
        self._check_tools()
        self._check_passwordless_ssh()

    def run(self, command: str, cwd: Optional[RemotePath] = None) -> ProcessResult:
        """
        Run command on the host.

        Exit status 255 with an ssh diagnostic on stderr raises TransportError.
        A remote command that exits 255 without one is returned like any
        other failure.
        """
        if cwd is not None:
            command = f"cd {cwd.shell()} && {command}"
        logger.debug("%s$ %s", self._login, command)

        result = self.process.run(self._ssh_cmd(command))

        if result.returncode == SSH_TRANSPORT_FAILURE and SSH_ERROR_PATTERN.search(result.stderr):
            raise TransportError(
                f"SSH connection to {self.describe()} failed\n"
                f"Command: {command}\n"
                f"Error: {result.stderr.strip() or 'exit status 255'}\n\n"
                f"Troubleshooting:\n"
                f"  1. Verify SSH access: ssh -p {self.ssh_port} {self.user}@{self.host}\n"
                f"  2. Check network: ping {self.host}\n"
                f"  3. Check the instance security group allows port {self.ssh_port}",
                output=result.output
            )
        return result

    def push(
        self,
        source: Path,
        destination: RemotePath,
        contents: bool = False,
        mirror: bool = False,
        exclude: Sequence[str] = ()
    ) -> None:
        """rsync source into destination/ on the host."""
        src = str(source).rstrip('/') + ('/' if contents else '')
        rsync_cmd = [
            "rsync",
            "-a",
            *[f"--exclude={name}" for name in exclude],
            "-e", " ".join(["ssh", *self._ssh_options()]),
        ]
        if mirror:
            rsync_cmd.append("--delete")
        rsync_cmd += [src, f"{self._login}:{destination.copy_target()}/"]
        logger.debug("$ %s", " ".join(rsync_cmd))

        result = self.process.run(rsync_cmd)

        if result.returncode != 0:
            raise TransportError(
                f"rsync of {source} to {self.host}:{destination} failed\n"
                f"Command: {' '.join(rsync_cmd)}\n"
                f"Error: {result.stderr.strip() or f'exit status {result.returncode}'}\n\n"
                f"Troubleshooting:\n"
                f"  1. Verify SSH access: ssh -p {self.ssh_port} {self.user}@{self.host}\n"
                f"  2. Check disk space on the host: ssh {self.user}@{self.host} df -h\n"
                f"  3. Verify write permissions: ssh {self.user}@{self.host} ls -ld ~",
                output=result.output
            )
