"""Provision command - install the toolchain on a fresh host"""
from pickletrack_deploy.core import ConsoleLogger
from pickletrack_deploy.deploy import TransportFactory, provision_pipeline
from pickletrack_deploy.utils.config import load_config
from pickletrack_deploy.utils.report import print_summary


def setup_parser(parser):
    """Setup argument parser for provision command"""
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Show installer output'
    )


def execute(args):
    """Execute provision command"""
    try:
        config = load_config(args.config)
        transport = TransportFactory.from_config(config)
    except ValueError as e:
        print(f"Error: {e}")
        return 1

    logger = ConsoleLogger(verbose=args.verbose)

    print("=" * 80)
    print(f"PROVISION {transport.describe()}")
    print("=" * 80)
    print("Intended for freshly created hosts; installers are not guaranteed to be re-runnable.")
    print()

    result = provision_pipeline(config, transport, logger).run()
    print_summary(result, logger)
    return result.exit_code
