"""
Typed handles for paths on the target host.

The host filesystem is the only place deploy state lives. Instead of issuing
loose shell commands, stages go through these handles, each of which checks
its preconditions before mutating and its postconditions afterwards:

    RemoteDirectory.ensure()    post: directory exists
    RemoteDirectory.clear()     pre: directory exists; post: only kept entries remain
    RemoteSymlink.point_at()    pre: target is an existing file, link is absent or a symlink
                                post: link reads back the target and resolves to a file
"""

import posixpath
import shlex
from dataclasses import dataclass
from typing import Iterable, List, Optional

from .base import Transport
from .exceptions import TransportError, SwitchError

HOME = "$HOME"


def shell_quote(path: str) -> str:
    """
    Double-quote a remote path for the remote shell.

    Unlike shlex.quote(), $VARIABLES stay expandable so "$HOME/bin" resolves on
    the host rather than on the machine running the deploy.
    """
    escaped = path.replace('\\', '\\\\').replace('"', '\\"').replace('`', '\\`')
    return f'"{escaped}"'


@dataclass(frozen=True)
class RemotePath:
    """
    A path on the target host: a root (usually $HOME) plus a relative part.

    Attributes:
        root: Absolute path or shell expression ("$HOME")
        relative: Path below root, "" for the root itself
    """
    root: str
    relative: str = ""

    @property
    def path(self) -> str:
        if not self.relative:
            return self.root
        return posixpath.join(self.root, self.relative)

    @property
    def name(self) -> str:
        return posixpath.basename(self.path)

    def shell(self) -> str:
        return shell_quote(self.path)

    def copy_target(self) -> str:
        """Destination spelling for rsync (paths under $HOME are given relative to it)."""
        if self.root == HOME:
            return self.relative or "."
        return self.path

    def child(self, name: str) -> 'RemotePath':
        return RemotePath(self.root, posixpath.join(self.relative, name) if self.relative else name)

    def __str__(self) -> str:
        return self.path


@dataclass(frozen=True)
class RemoteLayout:
    """
    Fixed directory layout on the target host.

    Attributes:
        root: Base of every other path (default $HOME)
        release_dir: Manifest, lockfile, source tree and build output
        static_dir: Static assets shipped with each deploy
        data_dir: Dated snapshots and the current-data link
        bin_dir: Operator scripts and the active-binary link
        binary_name: Name of the active-binary link inside bin_dir
        build_output: Compiled binary, relative to release_dir
        builds_dir: Content-named copies of each build, relative to release_dir
        current_data_name: Name of the current-data link inside data_dir
    """
    root: str = HOME
    release_dir: str = "release"
    static_dir: str = "static"
    data_dir: str = "static/data"
    bin_dir: str = "bin"
    binary_name: str = "pickletrack"
    build_output: str = "target/release/server"
    builds_dir: str = "builds"
    current_data_name: str = "current.json"

    @property
    def release(self) -> RemotePath:
        return RemotePath(self.root, self.release_dir)

    @property
    def static(self) -> RemotePath:
        return RemotePath(self.root, self.static_dir)

    @property
    def data(self) -> RemotePath:
        return RemotePath(self.root, self.data_dir)

    @property
    def bin(self) -> RemotePath:
        return RemotePath(self.root, self.bin_dir)

    @property
    def binary(self) -> RemotePath:
        return self.release.child(self.build_output)

    @property
    def builds(self) -> RemotePath:
        return self.release.child(self.builds_dir)

    def build_copy(self, digest: str) -> RemotePath:
        """Where the build with the given content digest is kept (the binary link target)."""
        return self.builds.child(f"{posixpath.basename(self.build_output)}-{digest}")

    @property
    def binary_link(self) -> RemotePath:
        return self.bin.child(self.binary_name)

    @property
    def current_data_link(self) -> RemotePath:
        return self.data.child(self.current_data_name)

    def snapshot(self, name: str) -> RemotePath:
        return self.data.child(name)

    def directories(self) -> List[RemotePath]:
        """Directories every deploy expects to exist."""
        return [self.release, self.static, self.data, self.bin]


class RemoteFile:
    """A regular file on the host (symlinks are followed)."""

    def __init__(self, transport: Transport, path: RemotePath):
        self.transport = transport
        self.path = path

    def exists(self) -> bool:
        return self.transport.run(f"test -f {self.path.shell()}").returncode == 0

    def digest(self) -> Optional[str]:
        """First 12 hex digits of the file's SHA-256, or None if it cannot be read."""
        result = self.transport.run(f"sha256sum {self.path.shell()}")
        fields = result.stdout.split()
        if result.returncode != 0 or not fields:
            return None
        return fields[0][:12]

    def copy_to(self, destination: RemotePath) -> None:
        """
        Copy under a temporary name next to destination, then rename into place.

        Raises:
            TransportError: If the copy does not exist afterwards
        """
        parent = RemotePath(destination.root, posixpath.dirname(destination.relative))
        staging = parent.child(f".{destination.name}.tmp").shell()
        result = self.transport.run(
            f"cp {self.path.shell()} {staging} && mv -f {staging} {destination.shell()}"
        )
        if result.returncode != 0 or not RemoteFile(self.transport, destination).exists():
            raise TransportError(
                f"Could not copy {self.path} to {destination} on {self.transport.describe()}\n"
                f"Error: {result.output.strip() or 'file missing after copy'}",
                output=result.output
            )


class RemoteDirectory:
    """A directory on the host."""

    def __init__(self, transport: Transport, path: RemotePath):
        self.transport = transport
        self.path = path

    def exists(self) -> bool:
        return self.transport.run(f"test -d {self.path.shell()}").returncode == 0

    def ensure(self) -> None:
        """
        Create the directory if needed. Re-creating an existing one is a no-op.

        Raises:
            TransportError: If the directory does not exist afterwards
        """
        result = self.transport.run(f"mkdir -p {self.path.shell()}")
        if result.returncode != 0 or not self.exists():
            raise TransportError(
                f"Could not create {self.path} on {self.transport.describe()}\n"
                f"Error: {result.output.strip() or 'directory missing after mkdir'}",
                output=result.output
            )

    def list(self) -> List[str]:
        """
        Names of the directory's entries, hidden ones included.

        Raises:
            TransportError: If the directory cannot be listed
        """
        result = self.transport.run(f"ls -1A {self.path.shell()}")
        if result.returncode != 0:
            raise TransportError(
                f"Could not list {self.path} on {self.transport.describe()}\n"
                f"Error: {result.output.strip()}",
                output=result.output
            )
        return [line for line in result.stdout.splitlines() if line]

    def clear(self, keep: Iterable[str] = ()) -> List[str]:
        """
        Delete every entry except those named in keep.

        Returns:
            Names of the entries that were removed

        Raises:
            TransportError: If the directory is missing or an entry survives
        """
        keep = list(keep)
        if not self.exists():
            raise TransportError(f"Cannot clear {self.path}: directory does not exist")

        before = self.list()
        parts = ["find", self.path.shell(), "-mindepth 1 -maxdepth 1"]
        parts += [f"! -name {shlex.quote(name)}" for name in keep]
        parts.append("-exec rm -rf {} +")
        result = self.transport.run(" ".join(parts))
        if result.returncode != 0:
            raise TransportError(
                f"Could not clear {self.path} on {self.transport.describe()}\n"
                f"Error: {result.output.strip()}",
                output=result.output
            )

        leftover = [name for name in self.list() if name not in keep]
        if leftover:
            raise TransportError(f"Entries survived clearing {self.path}: {', '.join(leftover)}")
        return [name for name in before if name not in keep]


class RemoteSymlink:
    """
    A symlink on the host that is only ever replaced by rename.

    point_at() writes the new link under a temporary name next to the old one
    and renames it into place, so readers always see either the old target or
    the new one, never a missing file.
    """

    def __init__(self, transport: Transport, path: RemotePath):
        self.transport = transport
        self.path = path

    @property
    def _staging(self) -> RemotePath:
        parent = RemotePath(self.path.root, posixpath.dirname(self.path.relative))
        return parent.child(f".{self.path.name}.new")

    def _target_path(self, target: str) -> str:
        """Where target lives on the host (relative targets are relative to the link)."""
        if posixpath.isabs(target) or target.startswith("$"):
            return target
        return posixpath.join(posixpath.dirname(self.path.path), target)

    def _expand(self, target: str) -> str:
        if "$" not in target:
            return target
        result = self.transport.run(f"printf '%s' {shell_quote(target)}")
        return result.stdout

    def read_target(self) -> Optional[str]:
        """Raw link target, or None if the link does not exist."""
        result = self.transport.run(f"readlink {self.path.shell()}")
        if result.returncode != 0:
            return None
        return result.stdout.strip()

    def resolves(self) -> bool:
        """True if the link exists and leads to a regular file."""
        link = self.path.shell()
        return self.transport.run(f"test -L {link} && test -f {link}").returncode == 0

    def check_replaceable(self) -> None:
        """
        Raises:
            SwitchError: If something other than a symlink sits at the link path
        """
        link = self.path.shell()
        check = self.transport.run(f"test ! -e {link} || test -L {link}")
        if check.returncode != 0:
            raise SwitchError(
                f"Refusing to replace {self.path}: it exists and is not a symlink\n"
                f"Move it out of the way by hand, then re-run the release.",
                output=check.output
            )

    def point_at(self, target: str) -> str:
        """
        Atomically repoint the link.

        Args:
            target: Absolute path (may start with $HOME) or a name relative
                to the link's directory

        Returns:
            The target as stored in the link

        Raises:
            SwitchError: If a precondition or postcondition does not hold
        """
        link = self.path.shell()
        target_file = shell_quote(self._target_path(target))

        check = self.transport.run(f"test -f {target_file}")
        if check.returncode != 0:
            raise SwitchError(
                f"Refusing to point {self.path} at {target}: target is not an existing file",
                output=check.output
            )
        self.check_replaceable()

        staging = self._staging.shell()
        result = self.transport.run(
            f"ln -sfn {shell_quote(target)} {staging} && mv -Tf {staging} {link}"
        )
        if result.returncode != 0:
            raise SwitchError(
                f"Could not activate {self.path} -> {target} on {self.transport.describe()}\n"
                f"Error: {result.output.strip()}\n\n"
                f"The previous link (if any) is still in place.",
                output=result.output
            )

        expected = self._expand(target)
        actual = self.read_target()
        if actual != expected or not self.resolves():
            raise SwitchError(
                f"{self.path} does not resolve to {expected} after switching (found {actual})"
            )
        return actual
