"""Protocol definitions for dependency injection.

This module defines Protocol-based abstractions for the external dependencies
of the release pipeline: console output, local subprocesses, tool discovery
and configuration loading. Any class implementing these methods satisfies the
Protocol without explicit inheritance.

Benefits:
- Easy to mock in tests (just implement the methods)
- No inheritance required (more Pythonic)
- Type-safe with mypy/pyright
- Clear interface contracts
"""

from dataclasses import dataclass
from typing import Protocol, Dict, Any, Optional, List


class Logger(Protocol):
    """Abstraction for logging operations.

    Every pipeline stage reports progress through this interface instead of
    calling print() directly.
    """

    def info(self, message: str) -> None:
        """Log informational message."""
        ...

    def warning(self, message: str) -> None:
        """Log warning message."""
        ...

    def error(self, message: str) -> None:
        """Log error message."""
        ...

    def debug(self, message: str) -> None:
        """Log debug message."""
        ...


@dataclass
class ProcessResult:
    """Completed local process.

    Attributes:
        args: Command that was executed
        returncode: Exit status (0 on success)
        stdout: Captured standard output
        stderr: Captured standard error
    """
    args: List[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def output(self) -> str:
        """Combined stdout and stderr, in that order."""
        if self.stdout and self.stderr:
            return f"{self.stdout.rstrip()}\n{self.stderr}"
        return self.stdout or self.stderr


class ProcessExecutor(Protocol):
    """Abstraction for process execution.

    Wraps subprocess.run to enable testing without spawning real processes.
    """

    def run(
        self,
        cmd: List[str],
        cwd: Optional[str] = None,
        env: Optional[Dict[str, str]] = None
    ) -> ProcessResult:
        """Execute command to completion and capture its output."""
        ...


class ToolLocator(Protocol):
    """Abstraction for external tool discovery.

    Wraps shutil.which() to enable testing without requiring
    tools to be installed (ssh, rsync, etc.).
    """

    def find_tool(self, tool_name: str) -> Optional[str]:
        """Find tool in PATH and return absolute path, or None if not found."""
        ...

    def has_tool(self, tool_name: str) -> bool:
        """Check if tool exists in PATH."""
        ...


class ConfigLoader(Protocol):
    """Abstraction for configuration file loading.

    Wraps YAML loading to enable testing with mock configurations
    without requiring actual config files.
    """

    def exists(self, path: str) -> bool:
        """Check whether a configuration file is present."""
        ...

    def load_yaml(self, path: str) -> Dict[str, Any]:
        """Load YAML file and return parsed dictionary."""
        ...
