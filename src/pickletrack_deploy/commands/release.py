"""Release command - build and activate sources already on the host"""
from pickletrack_deploy.core import ConsoleLogger
from pickletrack_deploy.deploy import TransportFactory, release_pipeline
from pickletrack_deploy.utils.config import load_config
from pickletrack_deploy.utils.report import print_summary


def setup_parser(parser):
    """Setup argument parser for release command"""
    parser.add_argument(
        '--local',
        action='store_true',
        help='Run on this machine (when logged in on the host itself)'
    )
    parser.add_argument(
        '--restart',
        action='store_true',
        help='Also restart the service after activating the release'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Show build output'
    )


def execute(args):
    """Execute release command"""
    try:
        config = load_config(args.config)
        transport = TransportFactory.from_config(config, local=args.local)
    except ValueError as e:
        print(f"Error: {e}")
        return 1

    logger = ConsoleLogger(verbose=args.verbose)

    print("=" * 80)
    print(f"RELEASE on {transport.describe()}")
    print("=" * 80)

    pipeline = release_pipeline(config, transport, logger, restart=args.restart)
    result = pipeline.run()
    print_summary(result, logger)
    return result.exit_code
