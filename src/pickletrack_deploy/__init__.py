"""
pickletrack-deploy - Release pipeline for the Pickletrack web server

Provisions the EC2 host, ships build artifacts to it, builds the release
binary remotely and activates binary + data snapshot through symlinks.
"""
import argparse
import logging
import sys

__version__ = "1.0.0"


def main(argv=None):
    """Main CLI entry point"""
    from pickletrack_deploy.commands import deploy, provision, release, status

    parser = argparse.ArgumentParser(
        prog='pickletrack-deploy',
        description='Pickletrack release pipeline',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog='''
Examples:
  pickletrack-deploy provision           # One-time toolchain install on a new host
  pickletrack-deploy deploy              # Ship, build, activate, restart
  pickletrack-deploy release --local     # Build + activate, run on the host itself
  pickletrack-deploy status              # Show active binary and snapshot

The target host and paths come from deploy/pickletrack.yaml
(or $PICKLETRACK_DEPLOY_CONFIG, or --config).
        '''
    )
    parser.add_argument(
        '--config',
        help='Deploy config file (default: deploy/pickletrack.yaml)'
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')

    subparsers = parser.add_subparsers(dest='command', help='Command to execute')

    # Deploy command
    deploy_parser = subparsers.add_parser('deploy', help='Ship, build, activate and restart')
    deploy.setup_parser(deploy_parser)

    # Provision command
    provision_parser = subparsers.add_parser('provision', help='Install toolchain on a fresh host')
    provision.setup_parser(provision_parser)

    # Release command
    release_parser = subparsers.add_parser('release', help='Build and activate shipped sources')
    release.setup_parser(release_parser)

    # Status command
    status_parser = subparsers.add_parser('status', help='Show the deployed release')
    status.setup_parser(status_parser)

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    logging.basicConfig(
        level=logging.DEBUG if getattr(args, 'verbose', False) else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s'
    )

    # Dispatch to command handler
    try:
        if args.command == 'deploy':
            sys.exit(deploy.execute(args))
        elif args.command == 'provision':
            sys.exit(provision.execute(args))
        elif args.command == 'release':
            sys.exit(release.execute(args))
        elif args.command == 'status':
            sys.exit(status.execute(args))
    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
        sys.exit(130)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        import traceback
        traceback.print_exc()
        sys.exit(1)
