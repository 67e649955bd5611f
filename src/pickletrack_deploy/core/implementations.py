"""Production implementations of dependency injection protocols.

This module provides real implementations that wrap actual external dependencies
(console, subprocess, PATH lookup, YAML files). These are used in production code.

For testing, use mocks or test doubles instead of these implementations.
"""

import shutil
import subprocess
import sys
import yaml
from pathlib import Path
from typing import Dict, Any, Optional, List

from pickletrack_deploy.core.protocols import ProcessResult


class ConsoleLogger:
    """Production logger that prints to console (stdout/stderr)."""

    def __init__(self, verbose: bool = False):
        """Initialize logger; debug messages are only shown when verbose."""
        self.verbose = verbose

    def info(self, message: str) -> None:
        """Print info message to stdout."""
        print(message)

    def warning(self, message: str) -> None:
        """Print warning message to stdout."""
        print(f"Warning: {message}")

    def error(self, message: str) -> None:
        """Print error message to stderr."""
        print(f"Error: {message}", file=sys.stderr)

    def debug(self, message: str) -> None:
        """Print debug message to stdout."""
        if self.verbose:
            print(f"Debug: {message}")


class SubprocessExecutor:
    """Production process executor using real subprocess.run."""

    def run(
        self,
        cmd: List[str],
        cwd: Optional[str] = None,
        env: Optional[Dict[str, str]] = None
    ) -> ProcessResult:
        """Execute command to completion and capture its output."""
        completed = subprocess.run(
            cmd,
            cwd=cwd,
            env=env,
            capture_output=True,
            text=True
        )
        return ProcessResult(
            args=list(cmd),
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or ""
        )


class SystemToolLocator:
    """Production tool locator using real shutil.which."""

    def find_tool(self, tool_name: str) -> Optional[str]:
        """Find tool in PATH."""
        return shutil.which(tool_name)

    def has_tool(self, tool_name: str) -> bool:
        """Check if tool exists in PATH."""
        return self.find_tool(tool_name) is not None


class YamlConfigLoader:
    """Production config loader using real YAML parser."""

    def exists(self, path: str) -> bool:
        """Check whether a configuration file is present."""
        return Path(path).is_file()

    def load_yaml(self, path: str) -> Dict[str, Any]:
        """Load YAML file and return parsed dictionary (empty file -> {})."""
        with open(path, 'r') as f:
            return yaml.safe_load(f) or {}
