#!/usr/bin/env python
"""
Regression Calibration - Main Entry Point
Grid-searches learning rate and epoch count for a univariate linear regression
fitted by batch gradient descent, writing the best combination per grid.
"""
import sys
import logging
import argparse
import traceback
from contextlib import contextmanager
from pathlib import Path

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent))

from modules.config_manager import ConfigurationManager
from modules.logging_config import LoggingConfigurator
from modules.data_manager import DataManager
from modules.grid_search import GridSearchEngine
from utils.exceptions import CalibrationException, ConfigurationError

TASK_ENCODING = "utf-8"


def parse_arguments(argv=None):
    """
    Parse command-line arguments.

    Returns:
        argparse.Namespace: Parsed command-line arguments.
    """
    parser = argparse.ArgumentParser(
        description="Linear regression calibration - concurrent hyperparameter grid search",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )

    parser.add_argument(
        "--config",
        type=str,
        default="config/config.json",
        help="Path to the configuration JSON file"
    )

    parser.add_argument(
        "--tasks",
        type=str,
        default=None,
        help="File of JSON hyperparameter grid records ('-' or omitted: tasks.input_path, else stdin)"
    )

    parser.add_argument(
        "--threads",
        type=int,
        default=None,
        help="Override execution.threads (0 = sequential, -1 = all cores)"
    )

    parser.add_argument(
        "--batch-size",
        type=int,
        default=None,
        help="Override execution.batch_size (grids a reader takes per request)"
    )

    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose (DEBUG) logging"
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate configuration and dataset without reading any grid"
    )

    return parser.parse_args(argv)


def apply_overrides(config: dict, args: argparse.Namespace) -> None:
    """Apply CLI overrides on top of the validated configuration."""
    if args.threads is not None:
        if args.threads < -1:
            raise ConfigurationError(f"--threads must be >= -1, got {args.threads}")
        config['execution']['threads'] = args.threads
    if args.batch_size is not None:
        if args.batch_size < 1:
            raise ConfigurationError(f"--batch-size must be >= 1, got {args.batch_size}")
        config['execution']['batch_size'] = args.batch_size
    if args.tasks is not None:
        config['tasks']['input_path'] = args.tasks
    if args.verbose:
        config['logging']['level'] = 'DEBUG'


@contextmanager
def open_task_stream(input_path):
    """
    Yield the task stream: a file when a path is configured, stdin otherwise.

    Undecodable bytes are kept as surrogate escapes so the record holding them
    is rejected on its own instead of failing the read.
    """
    if input_path in (None, '', '-'):
        if hasattr(sys.stdin, 'reconfigure'):
            sys.stdin.reconfigure(encoding=TASK_ENCODING, errors='surrogateescape')
        yield sys.stdin
        return
    path = Path(input_path)
    if not path.is_file():
        raise ConfigurationError(f"Task file not found: {path}")
    with open(path, 'r', encoding=TASK_ENCODING, errors='surrogateescape') as f:
        yield f


def main(argv=None):
    """
    Main orchestration function.

    Returns:
        int: Exit code (0 for success, 1 for errors)
    """
    logger = None

    try:
        args = parse_arguments(argv)

        # 1. Load and validate configuration
        config_manager = ConfigurationManager(config_path=args.config)
        config = config_manager.load_and_validate()
        apply_overrides(config, args)
        if args.threads is not None:
            config_manager.resolve_thread_budget()

        # 2. Setup logging
        logging_configurator = LoggingConfigurator(config)
        logging_configurator.setup()
        logger = logging_configurator.get_logger('calibrate')

        logger.info(f"Configuration loaded from: {args.config}")
        logger.info(
            f"Execution - threads: {config['execution']['threads']}, "
            f"batch size: {config['execution']['batch_size']}, "
            f"tasks: {config['tasks']['input_path'] or 'stdin'}"
        )

        # 3. Dataset (rejected here if empty or constant, before any grid is read)
        dataset = DataManager(config, logger).execute()

        if args.dry_run:
            logger.info("Dry run mode: validation complete. Exiting without running the grid search.")
            return 0

        # 4. Grid search
        engine = GridSearchEngine(config, logger)
        with open_task_stream(config['tasks']['input_path']) as stream:
            summary = engine.execute(dataset, stream)

        return 0 if summary.grids_failed == 0 else 1

    except CalibrationException as e:
        msg = f"Calibration Error: {str(e)}"
        if logger:
            logger.critical(msg, exc_info=True)
        else:
            print(f"\n[ERROR] {msg}", file=sys.stderr)
        return 1

    except KeyboardInterrupt:
        if logger:
            logger.warning("Run interrupted by user (Ctrl+C)")
        else:
            print("\n[INTERRUPTED] Run interrupted by user.", file=sys.stderr)
        return 130

    except Exception as e:
        msg = f"Unexpected Error: {str(e)}"
        if logger:
            logger.critical(msg, exc_info=True)
        else:
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
