"""Core dependency injection infrastructure for pickletrack-deploy.

This module provides Protocol-based abstractions so that every stage of the
release pipeline can be exercised in tests without a real host. All external
dependencies (console, subprocess, tool lookup, YAML files) are abstracted via
Protocols with production implementations.

Design:
- Protocol-based abstractions (typing.Protocol) for structural typing
- Production implementations for real-world use
- Easy mocking for unit tests
"""

from pickletrack_deploy.core.protocols import (
    Logger,
    ProcessExecutor,
    ProcessResult,
    ToolLocator,
    ConfigLoader,
)

from pickletrack_deploy.core.implementations import (
    ConsoleLogger,
    SubprocessExecutor,
    SystemToolLocator,
    YamlConfigLoader,
)

__all__ = [
    # Protocols
    "Logger",
    "ProcessExecutor",
    "ProcessResult",
    "ToolLocator",
    "ConfigLoader",
    # Implementations
    "ConsoleLogger",
    "SubprocessExecutor",
    "SystemToolLocator",
    "YamlConfigLoader",
]
