"""ConnectionCheck - make sure the host is reachable before anything changes."""

from .base import Stage


class ConnectionCheck(Stage):
    """Runs the transport's preflight checks (tools present, passwordless SSH)."""

    name = "preflight"
    description = "Checking connection"

    def execute(self) -> str:
        self.transport.preflight()
        return self.transport.describe()
