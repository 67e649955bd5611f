"""Status command - show the deployed release without changing anything"""
from pickletrack_deploy.deploy import (
    TransportFactory,
    TransportError,
    RemoteSymlink,
    list_snapshots,
    read_deployed_release,
)
from pickletrack_deploy.utils.config import load_config


def setup_parser(parser):
    """Setup argument parser for status command"""
    parser.add_argument(
        '--local',
        action='store_true',
        help='Inspect this machine instead of the configured target'
    )


def execute(args):
    """Execute status command"""
    try:
        config = load_config(args.config)
        transport = TransportFactory.from_config(config, local=args.local)
    except ValueError as e:
        print(f"Error: {e}")
        return 1

    layout = config.layout
    try:
        transport.preflight()
        release = read_deployed_release(transport, layout)
        binary_ok = RemoteSymlink(transport, layout.binary_link).resolves()
        data_ok = RemoteSymlink(transport, layout.current_data_link).resolves()
        snapshots = list_snapshots(transport, layout) if release.data_target else []
    except TransportError as e:
        print(f"Error: {e}")
        return 1

    def describe(target, ok):
        if target is None:
            return "(not set)"
        return target if ok else f"{target}  ✗ dangling"

    print(f"Target: {transport.describe()}")
    print(f"  {layout.binary_link}: {describe(release.binary_target, binary_ok)}")
    print(f"  {layout.current_data_link}: {describe(release.data_target, data_ok)}")
    if snapshots:
        print(f"\nSnapshots in {layout.data} ({len(snapshots)}):")
        for name in snapshots:
            marker = "*" if name == release.data_target else " "
            print(f"  {marker} {name}")

    healthy = (release.binary_target is None or binary_ok) and (release.data_target is None or data_ok)
    return 0 if healthy else 1
