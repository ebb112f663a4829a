"""Main CLI entry point for dupetrace."""

import argparse
import logging
import sys
from typing import List, Optional

import requests

from . import __version__
from .analysis import analyze
from .formatters import OutputFormatter
from .graph_builder import DependencyGraphBuilder
from .models import DependencyRef, OutputFormat, RootStrategy
from .parsers import INPUT_FORMATS, FileParser, InputParseError

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_MISSING_DEPENDENCY = 2
EXIT_DUPLICATES = 3


def setup_logging(verbose: bool = False, log_level: Optional[str] = None):
    """Configure logging based on verbosity flags."""
    if log_level:
        level = getattr(logging, log_level.upper(), logging.WARNING)
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING

    logging.basicConfig(
        level=level,
        format='%(levelname)s: %(message)s',
        stream=sys.stderr,
    )


def run(args) -> int:
    """Load the input, analyze it and write the report."""
    setup_logging(args.verbose, args.loglevel)

    input_file = args.input
    logger.info(f"Input: {input_file} (format={args.input_format or 'auto'})")
    logger.info(f"Output: {args.output} (format={args.output_format})")

    try:
        listing = FileParser.load(input_file, args.input_format, args.ecosystem)
        roots: List[DependencyRef] = [DependencyRef.parse(r) for r in args.root]
        project_name = listing.project_name
        if args.manifest:
            manifest_roots, manifest_project = FileParser.parse_manifest(args.manifest, listing)
            roots.extend(manifest_roots)
            project_name = manifest_project or project_name
        if not roots:
            roots = listing.roots
    except (InputParseError, OSError, requests.RequestException) as e:
        logger.error(f"Error parsing input file: {e}")
        print(f"Error parsing input file: {e}", file=sys.stderr)
        return EXIT_ERROR

    if args.project_name:
        project_name = args.project_name

    if args.root_strategy:
        strategy = RootStrategy(args.root_strategy)
        if strategy == RootStrategy.INFERRED and roots:
            logger.warning(f"Ignoring {len(roots)} supplied root(s): --roots inferred uses "
                           f"packages nothing depends on")
    else:
        strategy = RootStrategy.MANIFEST if roots else RootStrategy.INFERRED

    builder = DependencyGraphBuilder()
    builder.set_root_strategy(strategy)
    builder.set_roots(roots)
    builder.set_project_name(project_name)
    try:
        graph = builder.build(listing.records, source=input_file)
    except InputParseError as e:
        logger.error(f"Error building dependency graph: {e}")
        print(f"Error building dependency graph: {e}", file=sys.stderr)
        return EXIT_ERROR

    report = analyze(graph, all_dependents=args.all_dependents)
    logger.info(f"{len(report.groups)} duplicated packages, "
                f"{len(report.unreachable)} versions not reachable from any root")
    output = OutputFormatter.format(report, OutputFormat(args.output_format))

    try:
        if args.output == '-':
            sys.stdout.write(output)
            sys.stdout.flush()
        else:
            with open(args.output, 'w', encoding='utf-8') as f:
                f.write(output)
            logger.info(f"Output written to: {args.output}")
    except OSError as e:
        logger.error(f"Error writing output: {e}")
        print(f"Error writing output: {e}", file=sys.stderr)
        return EXIT_ERROR

    if report.missing:
        logger.warning(f"{len(report.missing)} dependency reference(s) could not be resolved")
        return EXIT_MISSING_DEPENDENCY
    if args.deny_duplicates and report.has_duplicates:
        return EXIT_DUPLICATES
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='dupetrace',
        description='Find packages locked at more than one version and show what pulls each one in'
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    parser.add_argument('input', nargs='?', default='Cargo.lock',
                        help='Lockfile, JSON listing or CycloneDX SBOM, path or URL (default: Cargo.lock)')
    parser.add_argument('--format', dest='output_format', default=OutputFormat.TEXT.value,
                        choices=[f.value for f in OutputFormat],
                        help='Output format (text, json). Default: text')
    parser.add_argument('-o', '--output', default='-',
                        help='Output file (default: stdout, use - for stdout)')
    parser.add_argument('--format-in', dest='input_format', choices=INPUT_FORMATS,
                        help='Input format (cargo, json, sbom). Default: detected from the file name')
    parser.add_argument('--ecosystem', default='generic',
                        help='Package URL type for JSON listings without a system field. Default: generic')
    parser.add_argument('--roots', dest='root_strategy',
                        choices=[s.value for s in RootStrategy],
                        help='How roots are chosen (inferred, manifest). '
                             'Default: manifest when roots are supplied, else inferred')
    parser.add_argument('--root', action='append', default=[], metavar='NAME[@VERSION]',
                        help='Explicit root package, repeatable')
    parser.add_argument('--manifest', help='Cargo.toml to read root dependencies from')
    parser.add_argument('--project-name', help='Label shown in front of every path')
    parser.add_argument('--all-dependents', action='store_true',
                        help='Show one path per direct dependent instead of a single shortest path')
    parser.add_argument('--deny-duplicates', action='store_true',
                        help=f'Exit with status {EXIT_DUPLICATES} when duplicates are found')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Verbose output')
    parser.add_argument('--loglevel',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='Set log level')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    try:
        return run(args)
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR


if __name__ == '__main__':
    sys.exit(main())
