"""
Command line entry point

Usage:
    mint-tracker --config config/config.yml
"""

import argparse
import asyncio
import sys
from typing import List, Optional

import yaml

from mint_tracker.core.config import ConfigurationManager
from mint_tracker.core.logger import setup_logging, get_logger
from mint_tracker.pipeline import run_pipeline


DEFAULT_CONFIG_PATH = "config/config.yml"


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Attribute candy machine mints to known bot addresses"
    )
    parser.add_argument(
        "--config",
        default=DEFAULT_CONFIG_PATH,
        help=f"Path to YAML/JSON config (default: {DEFAULT_CONFIG_PATH})"
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    try:
        config = ConfigurationManager(args.config).load_config()
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        setup_logging()
        get_logger(__name__).error("config_invalid", path=args.config, error=str(e))
        return 1

    setup_logging(
        level=config.log_config.level,
        format=config.log_config.format,
        output_file=config.log_config.output_file
    )
    logger = get_logger(__name__)

    try:
        asyncio.run(run_pipeline(config))
    except KeyboardInterrupt:
        logger.warning("pipeline_interrupted")
        return 130
    except Exception:
        logger.error("pipeline_failed", exc_info=True)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
