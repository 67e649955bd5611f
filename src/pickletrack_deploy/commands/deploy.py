"""Deploy command - ship, build, switch and restart"""
from pickletrack_deploy.core import ConsoleLogger
from pickletrack_deploy.deploy import TransportFactory, deploy_pipeline
from pickletrack_deploy.utils.config import load_config
from pickletrack_deploy.utils.report import print_summary, write_stage_logs


def setup_parser(parser):
    """Setup argument parser for deploy command"""
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Show command output as it is captured'
    )
    parser.add_argument(
        '--log-dir',
        help='Write per-stage logs and metadata.json to this directory'
    )


def execute(args):
    """Execute deploy command"""
    try:
        config = load_config(args.config)
        transport = TransportFactory.from_config(config)
    except ValueError as e:
        print(f"Error: {e}")
        return 1

    logger = ConsoleLogger(verbose=args.verbose)

    print("=" * 80)
    print(f"PICKLETRACK DEPLOY → {transport.describe()}")
    print("=" * 80)

    result = deploy_pipeline(config, transport, logger).run()

    if args.log_dir:
        logs = write_stage_logs(result, args.log_dir)
        for error in logs['errors']:
            logger.warning(f"Log export: {error}")
        print(f"Logs written to {args.log_dir}/")

    print_summary(result, logger)
    return result.exit_code
