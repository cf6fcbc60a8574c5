#!/usr/bin/env python
"""
Reusable Holdout Simulator - Main Entry Point
Runs the adaptive feature-selection simulation against a Thresholdout-guarded holdout.
"""
import sys
import logging
import argparse
import traceback
from pathlib import Path

from reusable_holdout.config_manager import ConfigurationManager
from reusable_holdout.logging_config import LoggingConfigurator
from reusable_holdout.model_factory import ClassifierFactory
from reusable_holdout.simulation_driver import SimulationDriver
from reusable_holdout.utils import constants
from reusable_holdout.utils.exceptions import ReusableHoldoutError


def parse_arguments(argv=None):
    """
    Parse command-line arguments.

    Returns:
        argparse.Namespace: Parsed command-line arguments.
    """
    parser = argparse.ArgumentParser(
        description="Reusable Holdout Simulator - adaptive feature selection with Thresholdout",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )

    parser.add_argument(
        "--config",
        type=str,
        default="config/config.json",
        help="Path to the configuration JSON file"
    )

    parser.add_argument(
        "--classifier",
        type=str,
        default="glm",
        choices=ClassifierFactory.get_available_classifiers(),
        help="Classifier used to fit every candidate subset"
    )

    parser.add_argument(
        "--replicates",
        type=int,
        default=1,
        help="Number of independent replicates (each with its own split and random stream)"
    )

    parser.add_argument(
        "--n-jobs",
        type=int,
        default=1,
        help="Parallel workers for replicates (each replicate itself runs sequentially)"
    )

    parser.add_argument(
        "--run-id",
        type=str,
        default=None,
        help="Optional run identifier (defaults to timestamp if not provided)"
    )

    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose (DEBUG) logging"
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate configuration and setup without running the simulation"
    )

    return parser.parse_args(argv)


def setup_run_directory(config: dict, run_id: str, logger: logging.Logger = None) -> Path:
    """
    Create the run directory and its numbered top-level layout.

    Returns:
        Path: Absolute run directory.
    """
    base_results_dir = config.get('outputs', {}).get('base_results_dir', 'results')
    run_dir = Path(f"{base_results_dir}_{run_id}").absolute()
    for name in constants.TOP_LEVEL_RESULT_DIRS:
        (run_dir / name).mkdir(parents=True, exist_ok=True)
    if logger:
        logger.info(f"Created run directory: {run_dir}")
    return run_dir


def main(argv=None):
    """
    Simulation orchestration function.

    Returns:
        int: Exit code (0 for success, 1 for errors, 130 on interrupt)
    """
    logger = None

    try:
        args = parse_arguments(argv)

        print("\n" + "=" * 80)
        print("    REUSABLE HOLDOUT SIMULATION (THRESHOLDOUT)")
        print("=" * 80 + "\n")

        # ---------------------------------------------------------------
        # PHASE 0: INITIALIZATION & VALIDATION
        # ---------------------------------------------------------------
        config_manager = ConfigurationManager(config_path=args.config)
        config = config_manager.load_and_validate()

        if args.verbose:
            config['logging']['level'] = 'DEBUG'
            config['simulation']['verbose'] = True

        logging_configurator = LoggingConfigurator(config)
        logging_configurator.setup()
        logger = logging_configurator.get_logger('simulation')

        logger.info(f"Configuration loaded from: {args.config}")

        if args.replicates < 1:
            raise ReusableHoldoutError(f"--replicates must be >= 1, got {args.replicates}")

        if args.run_id:
            config_manager.run_id = args.run_id
        run_id = config_manager.generate_run_id()

        if config['outputs'].get('save_results', False):
            run_dir = setup_run_directory(config, run_id, logger)
            config['outputs']['base_results_dir'] = str(run_dir)
            config_manager.save_artifacts(str(run_dir))
            logger.info(f"Output Directory: {run_dir}")

        sim = config['simulation']
        logger.info(
            f"Run ID: {run_id} | classifier={args.classifier}, rounds={sim['n_adapt_rounds']}, "
            f"threshold={sim['thresholdout_threshold']}, sigma={sim['thresholdout_sigma']}, "
            f"noise={sim['thresholdout_noise_distribution']}, budget={sim['thresholdout_budget']}"
        )

        if args.dry_run:
            logger.info("Dry run mode: validation complete. Exiting without running the simulation.")
            print("\n[SUCCESS] Configuration validated successfully.")
            return 0

        # ---------------------------------------------------------------
        # PHASE 1: SIMULATION
        # ---------------------------------------------------------------
        logger.info("\n" + "=" * 60)
        logger.info("PHASE 1: ADAPTIVE SELECTION WITH THRESHOLDOUT")
        logger.info("=" * 60)

        driver = SimulationDriver(config, logger)
        if args.replicates == 1:
            report = driver.execute(classifier=args.classifier)
            summary = driver.last_result.summary()
            logger.info(
                f"Selected {summary['num_features']} features; final test AUC "
                f"{summary['final_test_auc']:.4f}, thresholdout AUC {summary['final_thresholdout_auc']}"
            )
        else:
            report = driver.execute_replicates(
                args.replicates, classifier=args.classifier, n_jobs=args.n_jobs
            )

        # ---------------------------------------------------------------
        # COMPLETION
        # ---------------------------------------------------------------
        logger.info("\n" + "-" * 60)
        logger.info("SIMULATION COMPLETED SUCCESSFULLY")
        logger.info(f"Report rows: {len(report)}")
        logger.info("-" * 60 + "\n")

        print("\n[SUCCESS] Simulation completed.")
        return 0

    except ReusableHoldoutError as e:
        msg = f"Simulation Error: {str(e)}"
        print(f"\n[ERROR] {msg}")
        if logger:
            logger.critical(msg, exc_info=True)
        else:
            traceback.print_exc()
        return 1

    except KeyboardInterrupt:
        print("\n[INTERRUPTED] Simulation interrupted by user.")
        if logger:
            logger.warning("Simulation interrupted by user (Ctrl+C)")
        return 130

    except Exception as e:
        msg = f"Unexpected Error: {str(e)}"
        print(f"\n[CRITICAL] {msg}")
        if logger:
            logger.critical(msg, exc_info=True)
        else:
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
