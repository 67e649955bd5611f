"""
TransportFactory - Parse target strings and route to the matching transport.

Format-based routing:
    user@host              → SSHTransport
    user@host:2222         → SSHTransport with custom SSH port
    user@[fe80::1]:2222    → SSHTransport with IPv6
    local://               → LocalTransport (run on this machine)
"""

from typing import Optional, Union

from .local_transport import LocalTransport
from .ssh_transport import SSHTransport


class TransportFactory:
    """Factory for parsing target strings into transports."""

    @staticmethod
    def from_target_string(
        target: str,
        identity_file: Optional[str] = None,
        connect_timeout: int = 10
    ) -> Union[SSHTransport, LocalTransport]:
        """
        Parse target string and return the transport that reaches it.

        Args:
            target: Target connection string
            identity_file: Private key for SSH targets
            connect_timeout: SSH connect timeout in seconds

        Formats:
            user@host              → SSHTransport(user, host, port=22)
            user@host:2222         → SSHTransport(user, host, port=2222)
            user@[fe80::1]         → SSHTransport(user, "fe80::1", port=22)
            user@[fe80::1]:2222    → SSHTransport(user, "fe80::1", port=2222)
            local://               → LocalTransport()

        Raises:
            ValueError: If format not recognized

        Example:
            transport = TransportFactory.from_target_string("ec2-user@34.229.210.131")
            transport.preflight()
            transport.run("uname -a")
        """
        if not target:
            raise ValueError("No deploy target configured (expected user@host or local://)")

        if target == 'local://':
            return LocalTransport()

        if '@' in target:
            # Parse SSH format: user@host[:port]
            # Also handle IPv6: user@[fe80::1][:port]
            user, host_part = target.split('@', 1)
            if not user:
                raise ValueError(f"Missing user in target: {target}")

            if host_part.startswith('['):
                # IPv6: user@[fe80::1] or user@[fe80::1]:2222
                bracket_end = host_part.find(']')
                if bracket_end == -1:
                    raise ValueError(f"Malformed IPv6 address: {target}")
                host = host_part[1:bracket_end]
                remainder = host_part[bracket_end+1:]
                port_str = remainder[1:] if remainder.startswith(':') else '22'
            elif ':' in host_part:
                host, port_str = host_part.rsplit(':', 1)
            else:
                host, port_str = host_part, '22'

            if not host:
                raise ValueError(f"Missing host in target: {target}")
            try:
                port = int(port_str)
            except ValueError:
                raise ValueError(f"Invalid SSH port in target: {target}")

            return SSHTransport(
                user,
                host,
                ssh_port=port,
                identity_file=identity_file,
                connect_timeout=connect_timeout
            )

        raise ValueError(
            f"Unknown target format: {target}\n"
            f"Expected: user@host | user@host:port | user@[ipv6]:port | local://"
        )

    @staticmethod
    def from_config(config, local: bool = False) -> Union[SSHTransport, LocalTransport]:
        """Transport for a DeployConfig (or this machine when local is set)."""
        if local:
            return LocalTransport()
        return TransportFactory.from_target_string(
            config.target,
            identity_file=config.identity_file,
            connect_timeout=config.connect_timeout
        )
