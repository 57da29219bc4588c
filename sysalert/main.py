"""Main entry point for the sysalert agent"""

import sys
import argparse

from sysalert import __version__
from sysalert.config.settings import load_config, resolve_config_path
from sysalert.errors import ConfigurationError
from sysalert.utils.logger import setup_logger

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_COLLECTION_FAILED = 2


def parse_args(argv=None):
    """Parse command-line arguments"""
    parser = argparse.ArgumentParser(
        prog='sysalert',
        description='System health monitoring and alerting agent'
    )

    parser.add_argument(
        '--config',
        '-c',
        type=str,
        default=None,
        help='Path to configuration file (YAML). Defaults to $CONFIG, then ./sysalert.yaml'
    )

    parser.add_argument(
        '--log-level',
        '-l',
        type=str,
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        default=None,
        help='Override log level'
    )

    parser.add_argument(
        '--once',
        action='store_true',
        help='Run a single cycle and exit (for cron)'
    )

    parser.add_argument(
        '--check-config',
        action='store_true',
        help='Validate configuration and rules, then exit'
    )

    parser.add_argument(
        '--version',
        '-v',
        action='version',
        version=f'sysalert v{__version__}'
    )

    return parser.parse_args(argv)


def main(argv=None):
    """Main entry point"""
    args = parse_args(argv)
    config_path = resolve_config_path(args.config)

    try:
        config = load_config(config_path)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_FATAL

    # Override log level from command line
    if args.log_level:
        config['agent']['log_level'] = args.log_level

    logger = setup_logger(config)
    logger.info(f"sysalert v{__version__}")
    if config_path:
        logger.info(f"Loaded configuration from: {config_path}")
    else:
        logger.info("Using default configuration")

    # Imported here so --version and config errors stay cheap
    from sysalert.agent import Agent

    try:
        agent = Agent(config)
    except ConfigurationError as e:
        logger.critical(f"Configuration error: {e}")
        return EXIT_FATAL
    except Exception as e:
        logger.critical(f"Fatal error during startup: {e}", exc_info=True)
        return EXIT_FATAL

    if args.check_config:
        logger.info(f"Configuration OK: {len(agent.rules)} rules, {len(agent.channels)} channels")
        agent.stop()
        return EXIT_OK

    if args.once:
        report = agent.run_once()
        if report.snapshot is None:
            return EXIT_COLLECTION_FAILED
        return EXIT_OK

    try:
        agent.start()
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user")
    return EXIT_OK


if __name__ == '__main__':
    sys.exit(main())
