#!/usr/bin/env python3
"""
TFDIFF CLI - Targeted Plan Arguments
------------------------------------
Compares the Terraform configuration in the current directory against a base
revision and prints the matching `-target` arguments on stdout:

    terraform plan $(tfdiff)

Everything else (errors, the optional report, logging) goes to stderr.

Author: tfdiff Team
Date: 2026-10-18
"""

import sys
import argparse
import logging
from typing import List, Optional

from rich.markup import escape
from rich.panel import Panel

from tfdiff.cli.formatter import TargetFormatter, console
from tfdiff.config import Settings, load_settings
from tfdiff.core.engine import DiffEngine
from tfdiff.core.errors import ConfigError, ParseError, SourceError
from tfdiff.parsing.pipeline import DocumentParser
from tfdiff.sources.revision import (
    DirectorySource,
    GitRevisionSource,
    RevisionSource,
    resolve_base_branch,
)

__version__ = "0.1.0"

EXIT_OK = 0
EXIT_SOURCE_ERROR = 1
EXIT_PARSE_ERROR = 2
EXIT_INTERRUPTED = 130


class TfDiffCLI:
    """
    CLI wrapper that turns command-line options into one DiffEngine run and
    writes the targeting line.
    """

    def __init__(self):
        self.parser = argparse.ArgumentParser(
            prog="tfdiff",
            description="tfdiff - print -target arguments for the Terraform declarations changed since a base revision",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog="Example: terraform plan $(tfdiff -b main)"
        )
        self._setup_args()

    def _setup_args(self):
        """Configures the command-line flags."""
        self.parser.add_argument("--version", action="version", version=f"tfdiff v{__version__}")
        self.parser.add_argument("-b", "--base", help="Base revision (default: master, else main)")
        self.parser.add_argument("--target", help="Target revision (default: the working copy)")
        self.parser.add_argument("--base-dir", help="Read the base side from a plain directory")
        self.parser.add_argument("--target-dir", help="Read the target side from a plain directory")
        self.parser.add_argument("--pattern", help="File name pattern (default: *.tf)")
        self.parser.add_argument("--config", help="Settings file (default: ./.tfdiff.yml if present)")
        self.parser.add_argument("--report", action="store_true", help="Show a change table on stderr")
        self.parser.add_argument("--track-references", action="store_true", default=None,
                                 help="Treat changed references (var.a -> var.b) as changes")
        self.parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging on stderr")

    def print_header(self, subtitle: str):
        """Renders the tfdiff header on stderr."""
        console.print(Panel.fit(
            f"[bold cyan]tfdiff v{__version__}[/bold cyan]",
            title=f"[bold white]{subtitle}[/bold white]",
            border_style="cyan"
        ))

    def _configure_logging(self, verbose: bool):
        logging.basicConfig(
            level=logging.DEBUG if verbose else logging.WARNING,
            format="%(levelname)s %(name)s: %(message)s",
            stream=sys.stderr,
        )

    def _sources(self, args: argparse.Namespace, settings: Settings):
        """Builds the (base, target) revision sources from the options."""
        base: RevisionSource
        if args.base_dir:
            base = DirectorySource(args.base_dir, settings.pattern)
        else:
            revision = args.base or resolve_base_branch(".", settings.base_branches)
            base = GitRevisionSource(revision, ".", settings.pattern)

        target: RevisionSource
        if args.target_dir:
            target = DirectorySource(args.target_dir, settings.pattern)
        elif args.target:
            target = GitRevisionSource(args.target, ".", settings.pattern)
        else:
            target = DirectorySource(".", settings.pattern)
        return base, target

    def _fail(self, label: str, error: Exception, code: int) -> int:
        console.print(f"[bold red]{label}:[/bold red] {escape(str(error))}", soft_wrap=True)
        return code

    def run(self, argv: Optional[List[str]] = None) -> int:
        """Primary entry point. Returns the process exit code."""
        args = self.parser.parse_args(argv)
        self._configure_logging(args.verbose)

        try:
            settings = load_settings(args.config).override(
                pattern=args.pattern,
                track_references=args.track_references,
            )
            base_source, target_source = self._sources(args, settings)
            engine = DiffEngine(DocumentParser(track_references=settings.track_references))
            report = engine.run(base_source, target_source)
        except ConfigError as e:
            return self._fail("Configuration error", e, EXIT_SOURCE_ERROR)
        except SourceError as e:
            return self._fail("Source error", e, EXIT_SOURCE_ERROR)
        except ParseError as e:
            return self._fail("Parse error", e, EXIT_PARSE_ERROR)

        formatter = TargetFormatter(settings.target_flag, settings.noop_flag)
        if args.report:
            self.print_header("Change Report")
            formatter.print_report(report)

        sys.stdout.write(report.render(formatter))
        sys.stdout.flush()
        return EXIT_OK


def main():
    """Application entry point with interrupt handling."""
    try:
        sys.exit(TfDiffCLI().run())
    except KeyboardInterrupt:
        console.print("\n[bold red]Terminated by user.[/bold red]")
        sys.exit(EXIT_INTERRUPTED)


if __name__ == "__main__":
    main()
