"""Deploy configuration: YAML file merged over built-in defaults"""
import copy
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from pickletrack_deploy.core import ConfigLoader, YamlConfigLoader
from pickletrack_deploy.deploy.resources import RemoteLayout, HOME
from pickletrack_deploy.deploy.switcher import LATEST_SNAPSHOT

DEFAULT_CONFIG_PATH = "deploy/pickletrack.yaml"
CONFIG_ENV_VAR = "PICKLETRACK_DEPLOY_CONFIG"


DEFAULTS: Dict[str, Any] = {
    "target": "ec2-user@34.229.210.131",
    "identity_file": None,
    "project_root": ".",
    "ssh": {
        "connect_timeout": 10,
    },
    "artifacts": {
        "manifest": "Cargo.toml",
        "lockfile": "Cargo.lock",
        "source": "src",
        "static": "static",
        "scripts": "deploy/aws",
    },
    "layout": {
        "root": HOME,
        "release_dir": "release",
        "static_dir": "static",
        "data_dir": "static/data",
        "bin_dir": "bin",
        "binary_name": "pickletrack",
        "build_output": "target/release/server",
        "builds_dir": "builds",
        "current_data_name": "current.json",
    },
    "build": {
        "command": 'source "$HOME/.cargo/env" && cargo build --release --locked',
    },
    "release": {
        "snapshot": LATEST_SNAPSHOT,
    },
    "service": {
        "restart_command": "./restart.sh",
    },
    "provision": {
        "commands": [
            "curl https://sh.rustup.rs -sSf | sh -s -- -y",
            'sudo yum groupinstall -y "Development Tools"',
            "sudo yum install -y openssl-devel",
        ],
    },
}


@dataclass(frozen=True)
class ArtifactSet:
    """
    Local files shipped by one deploy.

    Attributes:
        manifest: Build manifest (Cargo.toml)
        lockfile: Dependency lockfile (Cargo.lock)
        source: Source tree directory
        static: Static assets directory (contents are shipped)
        scripts: Operator scripts directory (contents are shipped)
    """
    manifest: Path
    lockfile: Path
    source: Path
    static: Path
    scripts: Path

    def missing(self) -> List[Path]:
        """Artifacts that are not present locally."""
        expected = [
            (self.manifest, Path.is_file),
            (self.lockfile, Path.is_file),
            (self.source, Path.is_dir),
            (self.static, Path.is_dir),
            (self.scripts, Path.is_dir),
        ]
        return [path for path, check in expected if not check(path)]


@dataclass(frozen=True)
class DeployConfig:
    """Validated deploy configuration."""
    target: str
    identity_file: Optional[str]
    connect_timeout: int
    artifacts: ArtifactSet
    layout: RemoteLayout
    build_command: str
    snapshot: str
    restart_command: str
    provision_commands: Tuple[str, ...]


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _require_str(section: Dict[str, Any], key: str, where: str) -> str:
    value = section.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Config value '{where}.{key}' must be a non-empty string")
    return value


def _check_keys(section: Dict[str, Any], allowed: Dict[str, Any], where: str) -> None:
    unknown = sorted(set(section) - set(allowed))
    if unknown:
        raise ValueError(f"Unknown config key(s) in {where}: {', '.join(unknown)}")


def resolve_config_path(path: Optional[str] = None, exists: Callable[[str], bool] = os.path.isfile) -> str:
    """
    Explicit path, then $PICKLETRACK_DEPLOY_CONFIG, then the nearest
    deploy/pickletrack.yaml in the working directory or one of its parents.

    Falls back to the plain relative default path when no checkout is found.
    """
    explicit = path or os.environ.get(CONFIG_ENV_VAR)
    if explicit:
        return explicit

    directory = os.getcwd()
    while True:
        candidate = os.path.join(directory, DEFAULT_CONFIG_PATH)
        if exists(candidate):
            return candidate
        parent = os.path.dirname(directory)
        if parent == directory:
            return DEFAULT_CONFIG_PATH
        directory = parent


def build_config(raw: Dict[str, Any], base_dir: Optional[str] = None) -> DeployConfig:
    """Validate a raw (already merged) config dictionary.

    A relative project_root is taken relative to base_dir (the directory of
    the config file), or to the working directory when there is no file.

    Raises:
        ValueError: If a key is unknown or a value has the wrong shape
    """
    if not isinstance(raw, dict):
        raise ValueError("Deploy config must be a mapping")
    _check_keys(raw, DEFAULTS, "top level")
    for section in ("ssh", "artifacts", "layout", "build", "release", "service", "provision"):
        if not isinstance(raw[section], dict):
            raise ValueError(f"Config section '{section}' must be a mapping")
        _check_keys(raw[section], DEFAULTS[section], section)

    root = os.path.expanduser(_require_str(raw, "project_root", "top level"))
    if base_dir is not None and not os.path.isabs(root):
        root = os.path.normpath(os.path.join(base_dir, root))
    root = Path(root)
    artifacts = ArtifactSet(**{
        name: root / _require_str(raw["artifacts"], name, "artifacts")
        for name in DEFAULTS["artifacts"]
    })

    layout_values = {
        name: _require_str(raw["layout"], name, "layout")
        for name in DEFAULTS["layout"]
    }
    if layout_values["root"] == "~" or layout_values["root"].startswith("~/"):
        layout_values["root"] = HOME + layout_values["root"][1:]
    for name in ("binary_name", "current_data_name"):
        if "/" in layout_values[name]:
            raise ValueError(f"Config value 'layout.{name}' must be a plain file name")
    layout = RemoteLayout(**layout_values)

    snapshot = _require_str(raw["release"], "snapshot", "release")
    if "/" in snapshot:
        raise ValueError("Config value 'release.snapshot' must be a file name in the data directory")
    if snapshot == layout.current_data_name:
        raise ValueError("Config value 'release.snapshot' cannot be the current-data link itself")

    commands = raw["provision"].get("commands")
    if not isinstance(commands, list) or not all(isinstance(c, str) and c.strip() for c in commands):
        raise ValueError("Config value 'provision.commands' must be a list of shell commands")

    timeout = raw["ssh"].get("connect_timeout")
    if not isinstance(timeout, int) or isinstance(timeout, bool) or timeout <= 0:
        raise ValueError("Config value 'ssh.connect_timeout' must be a positive integer")

    identity = raw.get("identity_file")
    if identity is not None and not isinstance(identity, str):
        raise ValueError("Config value 'identity_file' must be a path")

    return DeployConfig(
        target=_require_str(raw, "target", "top level"),
        identity_file=os.path.expanduser(identity) if identity else None,
        connect_timeout=timeout,
        artifacts=artifacts,
        layout=layout,
        build_command=_require_str(raw["build"], "command", "build"),
        snapshot=snapshot,
        restart_command=_require_str(raw["service"], "restart_command", "service"),
        provision_commands=tuple(commands),
    )


def load_config(path: Optional[str] = None, loader: Optional[ConfigLoader] = None) -> DeployConfig:
    """Load deploy config, falling back to defaults when the file is absent.

    Args:
        path: Config file (default: $PICKLETRACK_DEPLOY_CONFIG or the checkout's deploy/pickletrack.yaml)
        loader: Config loader (injected in tests)

    Returns:
        Validated DeployConfig

    Raises:
        ValueError: If an explicitly requested file is missing or the config is invalid
    """
    loader = loader or YamlConfigLoader()
    config_path = resolve_config_path(path, exists=loader.exists)
    base_dir = None

    if loader.exists(config_path):
        overrides = loader.load_yaml(config_path)
        if not isinstance(overrides, dict):
            raise ValueError(f"{config_path}: expected a mapping at the top level")
        base_dir = os.path.dirname(os.path.abspath(config_path))
    elif path is not None:
        raise ValueError(f"Config file not found: {config_path}")
    else:
        overrides = {}

    return build_config(_deep_merge(DEFAULTS, overrides), base_dir=base_dir)
