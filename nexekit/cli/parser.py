"""
nexekit CLI argument parser.

This module implements the command-line interface for nexekit using argparse.
"""

import argparse
import importlib
import logging
import sys
from pathlib import Path
from typing import List, Optional

from nexekit import __version__
from nexekit.core.exceptions import NexeKitError, OperationCancelled
from nexekit.core.locking import LockTimeout

logger = logging.getLogger(__name__)


class CLI:
    """nexekit command-line interface."""

    def __init__(self):
        """Initialize CLI with argument parser."""
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        """
        Create argument parser with all subcommands.

        Returns:
            Configured ArgumentParser instance
        """
        parser = argparse.ArgumentParser(
            prog="nexekit",
            description="nexekit - compile Node.js applications into native executables",
            epilog='Use "nexekit COMMAND --help" for command-specific help',
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )

        # Global options
        parser.add_argument(
            "--version", action="version", version=f"nexekit {__version__}"
        )
        parser.add_argument(
            "--verbose", "-v", action="store_true", help="Enable verbose output"
        )
        parser.add_argument(
            "--quiet",
            "-q",
            action="store_true",
            help="Enable minimal output (errors only)",
        )
        parser.add_argument(
            "--config",
            type=Path,
            metavar="PATH",
            help="Path to configuration file (default: ./nexekit.yaml)",
        )

        subparsers = parser.add_subparsers(
            dest="command", help="Available commands", metavar="COMMAND"
        )

        self._add_build_command(subparsers)
        self._add_cleanup_command(subparsers)

        return parser

    def _add_build_command(self, subparsers):
        """Add 'build' subcommand."""
        parser = subparsers.add_parser(
            "build",
            help="Compile an application into an executable",
            description="Bundle an application, embed it into the Node.js "
            "source and build a standalone executable",
        )
        parser.add_argument(
            "-i", "--input", type=Path, metavar="ENTRY", help="Application entry script"
        )
        parser.add_argument(
            "-o", "--output", type=Path, metavar="PATH", help="Output executable path"
        )
        parser.add_argument(
            "-r",
            "--runtime",
            metavar="VERSION",
            help="Node.js version: 'latest' or a release number such as 4.2.1",
        )
        parser.add_argument(
            "-t",
            "--temp",
            type=Path,
            metavar="DIR",
            help="Cache directory for Node.js sources (default: ./.nexekit)",
        )
        parser.add_argument(
            "-f",
            "--flags",
            action="store_true",
            help="Pass all command line flags through to the application",
        )
        parser.add_argument(
            "-j",
            "--jobs",
            type=int,
            metavar="N",
            help="Parallel make jobs (POSIX only)",
        )
        parser.add_argument(
            "--dist-url", metavar="URL", help="Node.js distribution server"
        )
        parser.add_argument(
            "--sha256", metavar="DIGEST", help="Expected SHA-256 of the source archive"
        )
        parser.add_argument(
            "--no-verify",
            action="store_true",
            help="Skip checksum verification against SHASUMS256.txt",
        )
        parser.add_argument(
            "--build-timeout",
            type=float,
            metavar="SECONDS",
            help="Time limit for each native build command",
        )

    def _add_cleanup_command(self, subparsers):
        """Add 'cleanup' subcommand."""
        parser = subparsers.add_parser(
            "cleanup",
            help="Remove cached Node.js sources",
            description="Remove downloaded archives and extracted source trees",
        )
        parser.add_argument(
            "-t", "--temp", type=Path, metavar="DIR", help="Cache directory"
        )
        parser.add_argument(
            "-r", "--runtime", metavar="VERSION", help="Only remove this version"
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Show what would be removed without removing",
        )
        parser.add_argument(
            "--lock-timeout",
            type=float,
            default=30,
            metavar="SECONDS",
            help="Wait this long for a running build to release a version",
        )

    def parse_args(self, args: Optional[List[str]] = None):
        """
        Parse command-line arguments.

        Args:
            args: Arguments to parse (uses sys.argv if None)

        Returns:
            Parsed arguments namespace
        """
        return self.parser.parse_args(args)

    def run(self, args: Optional[List[str]] = None) -> int:
        """
        Run CLI with given arguments.

        Args:
            args: Arguments to parse (uses sys.argv if None)

        Returns:
            Exit code (0 for success, non-zero for error)
        """
        parsed_args = self.parse_args(args)

        self._configure_logging(parsed_args)

        if not parsed_args.command:
            self.parser.print_help()
            return 1

        try:
            return self._dispatch_command(parsed_args)
        except (KeyboardInterrupt, OperationCancelled):
            logger.info("Operation cancelled")
            return 130  # Standard exit code for SIGINT
        except (NexeKitError, LockTimeout) as e:
            logger.error(f"Error: {e}")
            if parsed_args.verbose:
                import traceback

                traceback.print_exc()
            return 1

    def _configure_logging(self, args):
        """
        Configure logging based on verbose/quiet flags.

        Args:
            args: Parsed arguments with verbose/quiet flags
        """
        if args.verbose:
            level = logging.DEBUG
            format_str = "%(levelname)s [%(name)s] %(message)s"
        elif args.quiet:
            level = logging.ERROR
            format_str = "%(levelname)s: %(message)s"
        else:
            level = logging.INFO
            format_str = "%(message)s"

        logging.basicConfig(
            level=level,
            format=format_str,
            force=True,  # Reconfigure if already configured
        )

    def _dispatch_command(self, args) -> int:
        """
        Dispatch to appropriate command handler.

        Args:
            args: Parsed arguments with command field

        Returns:
            Exit code from command handler
        """
        command_map = {
            "build": "nexekit.cli.commands.build",
            "cleanup": "nexekit.cli.commands.cleanup",
        }

        module_name = command_map.get(args.command)
        if not module_name:
            logger.error(f"Unknown command: {args.command}")
            return 1

        module = importlib.import_module(module_name)
        return module.run(args)


def main():
    """Main entry point for CLI."""
    cli = CLI()
    sys.exit(cli.run())


if __name__ == "__main__":
    main()
