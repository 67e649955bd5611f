"""End-to-end tests of the release pipeline against a fake host.

LocalTransport runs the real shell commands with the layout root pointed at a
temporary directory, so symlinks, clearing and copying are checked on disk.
"""
import hashlib
import os

from pickletrack_deploy.deploy import (
    LocalTransport,
    TransportError,
    ProvisionError,
    BuildError,
    SwitchError,
    RestartError,
    DeployedRelease,
    deploy_pipeline,
    release_pipeline,
    provision_pipeline,
    read_deployed_release,
)


class RecordingTransport(LocalTransport):
    """LocalTransport that remembers every command and can fail the Nth copy."""

    def __init__(self, fail_on_push=None):
        super().__init__()
        self.commands = []
        self.pushes = 0
        self.fail_on_push = fail_on_push

    def run(self, command, cwd=None):
        self.commands.append(command)
        return super().run(command, cwd=cwd)

    def push(self, source, destination, **kwargs):
        self.pushes += 1
        if self.pushes == self.fail_on_push:
            raise TransportError(f"connection reset while copying {source}")
        super().push(source, destination, **kwargs)


def binary_link(host):
    return host / "bin" / "pickletrack"


def data_link(host):
    return host / "static" / "data" / "current.json"


def build_copy(host, source="fn main() {}\n"):
    """Path of the kept build for a fake binary with the given contents."""
    digest = hashlib.sha256(source.encode()).hexdigest()[:12]
    return host / "release" / "builds" / f"server-{digest}"


class TestSuccessfulDeploy:
    """Deploy against a provisioned host."""

    def test_both_links_resolve_to_readable_files(self, make_config, provisioned, quiet_logger):
        """After a successful deploy both links lead to existing, readable files."""
        config = make_config()
        result = deploy_pipeline(config, LocalTransport(), quiet_logger).run()

        assert result.success, result.error
        assert result.exit_code == 0
        assert [s.name for s in result.stages] == ["preflight", "ship", "build", "switch", "restart"]

        for link in (binary_link(provisioned), data_link(provisioned)):
            assert link.is_symlink()
            assert link.resolve().is_file()
            assert os.access(link, os.R_OK)

        assert binary_link(provisioned).read_text() == "fn main() {}\n"

    def test_current_data_link_targets_snapshot_name_exactly(self, make_config, provisioned, quiet_logger):
        """Choosing 20170901.json makes current.json point at exactly that name."""
        config = make_config()
        result = deploy_pipeline(config, LocalTransport(), quiet_logger).run()

        assert result.success, result.error
        assert os.readlink(data_link(provisioned)) == "20170901.json"
        assert result.release.data_target == "20170901.json"

    def test_binary_link_targets_kept_build_copy(self, make_config, provisioned, quiet_logger):
        """The link never targets the compiler's output path, which the next build overwrites."""
        config = make_config()
        result = deploy_pipeline(config, LocalTransport(), quiet_logger).run()

        expected = str(build_copy(provisioned))
        assert build_copy(provisioned).read_text() == "fn main() {}\n"
        assert os.readlink(binary_link(provisioned)) == expected
        assert result.release == DeployedRelease(binary_target=expected, data_target="20170901.json")

    def test_stale_file_in_executable_dir_is_removed(self, make_config, provisioned, quiet_logger):
        """A leftover old-binary disappears; fresh operator scripts arrive."""
        bin_dir = provisioned / "bin"
        bin_dir.mkdir()
        (bin_dir / "old-binary").write_text("stale")

        result = deploy_pipeline(make_config(), LocalTransport(), quiet_logger).run()

        assert result.success, result.error
        assert not (bin_dir / "old-binary").exists()
        assert (bin_dir / "restart.sh").is_file()
        assert (bin_dir / "release.sh").is_file()

    def test_restart_runs_from_executable_dir(self, make_config, provisioned, quiet_logger):
        result = deploy_pipeline(make_config(), LocalTransport(), quiet_logger).run()

        assert result.success, result.error
        assert (provisioned / "bin" / "restarts.txt").read_text() == "restarted\n"

    def test_artifacts_land_in_fixed_directories(self, make_config, provisioned, quiet_logger):
        deploy_pipeline(make_config(), LocalTransport(), quiet_logger).run()

        release = provisioned / "release"
        assert (release / "Cargo.toml").is_file()
        assert (release / "Cargo.lock").is_file()
        assert (release / "src" / "bin" / "server" / "main.rs").is_file()
        assert (provisioned / "static" / "index.html").is_file()
        assert (provisioned / "static" / "data" / "20170901.json").is_file()

    def test_source_tree_is_mirrored(self, make_config, project_dir, provisioned, quiet_logger):
        """Files deleted locally do not linger in the shipped source tree."""
        config = make_config()
        (project_dir / "src" / "removed.rs").write_text("// gone soon\n")
        deploy_pipeline(config, LocalTransport(), quiet_logger).run()
        assert (provisioned / "release" / "src" / "removed.rs").exists()

        (project_dir / "src" / "removed.rs").unlink()
        result = deploy_pipeline(config, LocalTransport(), quiet_logger).run()

        assert result.success, result.error
        assert not (provisioned / "release" / "src" / "removed.rs").exists()

    def test_snapshots_on_host_are_kept(self, make_config, provisioned, quiet_logger):
        """Snapshots written on the host by the scraper survive a deploy."""
        data = provisioned / "static" / "data"
        data.mkdir(parents=True)
        (data / "20170830.json").write_text("[]\n")

        result = deploy_pipeline(make_config(), LocalTransport(), quiet_logger).run()

        assert result.success, result.error
        assert (data / "20170830.json").is_file()

    def test_local_current_data_link_is_not_shipped(self, make_config, project_dir, provisioned, quiet_logger):
        """A current.json link in the local checkout never overwrites the host's link."""
        os.symlink("20170901.json", project_dir / "static" / "data" / "current.json")
        config = make_config(release={"snapshot": "20170901.json"})

        result = deploy_pipeline(config, LocalTransport(), quiet_logger).run()

        assert result.success, result.error
        assert os.readlink(data_link(provisioned)) == "20170901.json"


class TestIdempotentRelease:
    """Re-running release with unchanged inputs."""

    def test_same_inputs_give_same_link_targets(self, make_config, provisioned, quiet_logger):
        config = make_config()
        assert deploy_pipeline(config, LocalTransport(), quiet_logger).run().success

        first = read_deployed_release(LocalTransport(), config.layout)
        second_run = release_pipeline(config, LocalTransport(), quiet_logger).run()
        second = read_deployed_release(LocalTransport(), config.layout)

        assert second_run.success, second_run.error
        assert first == second
        assert second_run.release == second

    def test_switch_leaves_no_staging_links(self, make_config, provisioned, quiet_logger):
        config = make_config()
        deploy_pipeline(config, LocalTransport(), quiet_logger).run()
        release_pipeline(config, LocalTransport(), quiet_logger).run()

        assert not (provisioned / "bin" / ".pickletrack.new").exists()
        assert not (provisioned / "static" / "data" / ".current.json.new").is_symlink()

    def test_latest_selects_newest_snapshot(self, make_config, project_dir, provisioned, quiet_logger):
        (project_dir / "static" / "data" / "20170902.json").write_text("[]\n")
        (project_dir / "static" / "data" / "notes.json").write_text("{}\n")
        config = make_config(release={"snapshot": "latest"})

        result = deploy_pipeline(config, LocalTransport(), quiet_logger).run()

        assert result.success, result.error
        assert os.readlink(data_link(provisioned)) == "20170902.json"

    def test_release_does_not_restart_by_default(self, make_config, provisioned, quiet_logger):
        config = make_config()
        deploy_pipeline(config, LocalTransport(), quiet_logger).run()

        result = release_pipeline(config, LocalTransport(), quiet_logger).run()

        assert result.success, result.error
        assert [s.name for s in result.stages] == ["preflight", "build", "switch"]
        assert (provisioned / "bin" / "restarts.txt").read_text() == "restarted\n"

    def test_release_with_restart(self, make_config, provisioned, quiet_logger):
        config = make_config()
        deploy_pipeline(config, LocalTransport(), quiet_logger).run()

        result = release_pipeline(config, LocalTransport(), quiet_logger, restart=True).run()

        assert result.success, result.error
        assert (provisioned / "bin" / "restarts.txt").read_text() == "restarted\nrestarted\n"

    def test_rebuild_gets_its_own_copy(self, make_config, project_dir, provisioned, quiet_logger):
        config = make_config()
        deploy_pipeline(config, LocalTransport(), quiet_logger).run()
        (project_dir / "src" / "bin" / "server" / "main.rs").write_text("fn main() { v2 }\n")

        result = deploy_pipeline(config, LocalTransport(), quiet_logger).run()

        assert result.success, result.error
        assert os.readlink(binary_link(provisioned)) == str(build_copy(provisioned, "fn main() { v2 }\n"))
        assert build_copy(provisioned).read_text() == "fn main() {}\n"


class TestFailures:
    """Failing stages stop the pipeline and leave the active release alone."""

    def test_build_failure_keeps_previous_binary(self, make_config, provisioned, quiet_logger):
        """A failed build leaves the binary link's target byte-identical."""
        assert deploy_pipeline(make_config(), LocalTransport(), quiet_logger).run().success
        before_target = os.readlink(binary_link(provisioned))
        before_bytes = binary_link(provisioned).read_bytes()

        broken = make_config(build={"command": "echo 'error[E0425]: cannot find value' >&2; exit 101"})
        result = deploy_pipeline(broken, LocalTransport(), quiet_logger).run()

        assert not result.success
        assert result.exit_code == 1
        assert isinstance(result.error, BuildError)
        assert "E0425" in result.failed_stage.output
        assert result.skipped == ["switch", "restart"]
        assert os.readlink(binary_link(provisioned)) == before_target
        assert binary_link(provisioned).read_bytes() == before_bytes

    def test_ship_failure_partway_runs_no_build_or_switch(self, make_config, provisioned, quiet_logger):
        """Losing the connection mid-copy halts before anything is activated."""
        config = make_config()
        transport = RecordingTransport(fail_on_push=3)

        result = deploy_pipeline(config, transport, quiet_logger).run()

        assert isinstance(result.error, TransportError)
        assert result.failed_stage.name == "ship"
        assert result.skipped == ["build", "switch", "restart"]
        assert transport.pushes == 3
        assert not any("target/release" in c for c in transport.commands)
        assert not any("ln -sfn" in c for c in transport.commands)
        assert not binary_link(provisioned).is_symlink()
        assert not data_link(provisioned).is_symlink()

    def test_missing_local_artifact_copies_nothing(self, make_config, project_dir, provisioned, quiet_logger):
        (project_dir / "Cargo.lock").unlink()
        transport = RecordingTransport()

        result = deploy_pipeline(make_config(), transport, quiet_logger).run()

        assert isinstance(result.error, TransportError)
        assert "Cargo.lock" in str(result.error)
        assert transport.pushes == 0
        assert transport.commands == []

    def test_switch_failure_keeps_running_binary(self, make_config, project_dir, provisioned, quiet_logger):
        """A new build followed by a failed switch leaves the active binary's bytes alone."""
        assert deploy_pipeline(make_config(), LocalTransport(), quiet_logger).run().success
        before_target = os.readlink(binary_link(provisioned))
        (project_dir / "src" / "bin" / "server" / "main.rs").write_text("fn main() { v2 }\n")

        result = deploy_pipeline(
            make_config(release={"snapshot": "20991231.json"}), LocalTransport(), quiet_logger
        ).run()

        assert isinstance(result.error, SwitchError)
        assert result.stages[2].name == "build" and result.stages[2].success
        assert os.readlink(binary_link(provisioned)) == before_target
        assert binary_link(provisioned).read_bytes() == b"fn main() {}\n"
        assert os.readlink(data_link(provisioned)) == "20170901.json"

    def test_latest_before_any_deploy_is_a_switch_error(self, make_config, provisioned, quiet_logger):
        """Releasing with no data directory on the host fails as a switch, not a transport error."""
        server = provisioned / "release" / "src" / "bin" / "server"
        server.mkdir(parents=True)
        (server / "main.rs").write_text("fn main() {}\n")
        config = make_config(release={"snapshot": "latest"})

        result = release_pipeline(config, LocalTransport(), quiet_logger).run()

        assert isinstance(result.error, SwitchError)
        assert "static/data" in str(result.error)
        assert not binary_link(provisioned).is_symlink()

    def test_missing_snapshot_switches_nothing(self, make_config, provisioned, quiet_logger):
        """Both targets are checked before either link changes."""
        config = make_config(release={"snapshot": "20991231.json"})

        result = deploy_pipeline(config, LocalTransport(), quiet_logger).run()

        assert isinstance(result.error, SwitchError)
        assert "20991231.json" in str(result.error)
        assert not binary_link(provisioned).is_symlink()
        assert not data_link(provisioned).is_symlink()

    def test_regular_file_in_place_of_link_is_not_replaced(self, make_config, provisioned, quiet_logger):
        data = provisioned / "static" / "data"
        data.mkdir(parents=True)
        (data / "current.json").write_text("[] # hand-copied\n")

        result = deploy_pipeline(make_config(), LocalTransport(), quiet_logger).run()

        assert isinstance(result.error, SwitchError)
        assert (data / "current.json").read_text() == "[] # hand-copied\n"
        assert not binary_link(provisioned).is_symlink()

    def test_restart_failure_keeps_valid_release(self, make_config, provisioned, quiet_logger):
        """Links stay valid when only the supervisor trigger fails."""
        config = make_config(service={"restart_command": "exit 3"})

        result = deploy_pipeline(config, LocalTransport(), quiet_logger).run()

        assert isinstance(result.error, RestartError)
        assert result.exit_code == 1
        assert result.release is not None
        assert binary_link(provisioned).resolve().is_file()
        assert data_link(provisioned).resolve().is_file()


class TestProvisioning:
    """Deploying to a host with no toolchain."""

    def test_deploy_without_provision_fails_with_build_error(self, make_config, host_dir, quiet_logger):
        result = deploy_pipeline(make_config(), LocalTransport(), quiet_logger).run()

        assert isinstance(result.error, BuildError)
        assert not binary_link(host_dir).is_symlink()
        assert not binary_link(host_dir).exists()

    def test_provision_then_deploy_succeeds(self, make_config, host_dir, quiet_logger):
        config = make_config()

        provision = provision_pipeline(config, LocalTransport(), quiet_logger).run()
        assert provision.success, provision.error
        assert (host_dir / ".toolchain" / "env").is_file()

        result = deploy_pipeline(config, LocalTransport(), quiet_logger).run()

        assert result.success, result.error
        assert binary_link(host_dir).resolve().is_file()

    def test_failing_install_step_stops_provisioning(self, make_config, host_dir, quiet_logger):
        config = make_config(provision={"commands": [
            f'touch "{host_dir}/step1"',
            "exit 1",
            f'touch "{host_dir}/step3"',
        ]})

        result = provision_pipeline(config, LocalTransport(), quiet_logger).run()

        assert isinstance(result.error, ProvisionError)
        assert (host_dir / "step1").exists()
        assert not (host_dir / "step3").exists()

    def test_failed_download_piped_into_installer_stops_provisioning(self, make_config, host_dir, quiet_logger):
        """`curl ... | sh` must fail when curl does, even though sh exits 0 on empty input."""
        config = make_config(provision={"commands": [
            "false | sh -s -- -y",
            f'touch "{host_dir}/step2"',
        ]})

        result = provision_pipeline(config, LocalTransport(), quiet_logger).run()

        assert isinstance(result.error, ProvisionError)
        assert "false | sh -s -- -y" in str(result.error)
        assert not (host_dir / "step2").exists()
