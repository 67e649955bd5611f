"""Shared fixtures: a fake Pickletrack checkout and a fake host directory.

The host is a temporary directory used as layout root through LocalTransport,
so the real shell commands (mkdir, find, ln, mv, readlink) run against it.
"""
import stat
from unittest.mock import Mock

import pytest

from pickletrack_deploy.utils.config import DEFAULTS, build_config, _deep_merge


@pytest.fixture
def project_dir(tmp_path):
    """Local checkout with manifest, lockfile, sources, static assets and scripts."""
    project = tmp_path / "project"
    (project / "src" / "bin" / "server").mkdir(parents=True)
    (project / "static" / "data").mkdir(parents=True)
    (project / "deploy" / "aws").mkdir(parents=True)

    (project / "Cargo.toml").write_text('[package]\nname = "pickletrack"\n')
    (project / "Cargo.lock").write_text("# locked\n")
    (project / "src" / "bin" / "server" / "main.rs").write_text("fn main() {}\n")
    (project / "static" / "index.html").write_text("<html></html>\n")
    (project / "static" / "data" / "20170901.json").write_text("[]\n")

    restart = project / "deploy" / "aws" / "restart.sh"
    restart.write_text("#!/bin/bash\necho restarted >> restarts.txt\n")
    restart.chmod(restart.stat().st_mode | stat.S_IXUSR)
    (project / "deploy" / "aws" / "release.sh").write_text("#!/bin/bash\n")
    return project


@pytest.fixture
def host_dir(tmp_path):
    host = tmp_path / "host"
    host.mkdir()
    return host


@pytest.fixture
def make_config(project_dir, host_dir):
    """Build a DeployConfig for the fake project/host, with optional overrides."""
    def _make(**overrides):
        raw = {
            "target": "local://",
            "project_root": str(project_dir),
            "layout": {"root": str(host_dir)},
            "build": {
                "command": (
                    f'. "{host_dir}/.toolchain/env" && mkdir -p target/release '
                    f'&& cp src/bin/server/main.rs target/release/server'
                ),
            },
            "release": {"snapshot": "20170901.json"},
            "provision": {
                "commands": [
                    f'mkdir -p "{host_dir}/.toolchain"',
                    f'echo "export TOOLCHAIN=1" > "{host_dir}/.toolchain/env"',
                ],
            },
        }
        return build_config(_deep_merge(_deep_merge(DEFAULTS, raw), overrides))
    return _make


@pytest.fixture
def provisioned(host_dir):
    """Host with the fake toolchain already installed."""
    (host_dir / ".toolchain").mkdir()
    (host_dir / ".toolchain" / "env").write_text("export TOOLCHAIN=1\n")
    return host_dir


@pytest.fixture
def quiet_logger():
    return Mock()

