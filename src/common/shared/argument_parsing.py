"""Shared argument parsing utilities for CLI scripts."""

import argparse


def add_config_dir_argument(parser: argparse.ArgumentParser) -> None:
    """Add --config-dir argument to parser."""
    parser.add_argument(
        "--config-dir",
        type=str,
        default="config",
        help="Path to configuration directory (default: config)",
    )


def add_sweep_run_argument(parser: argparse.ArgumentParser, required: bool = True) -> None:
    """Add --sweep-run argument to parser."""
    parser.add_argument(
        "--sweep-run",
        type=str,
        required=required,
        help="Name (run id) of the parent sweep job",
    )


def add_output_dir_argument(parser: argparse.ArgumentParser) -> None:
    """Add --output-dir argument to parser."""
    parser.add_argument(
        "--output-dir",
        type=str,
        default=None,
        help="Local folder for the aggregated table (overrides collection.yaml)",
    )
