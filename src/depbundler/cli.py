# -*- coding: utf-8 -*-
import argparse
import logging
import sys

from depbundler import root_logger
from depbundler.bundling import DEFAULT_OUTPUT
from depbundler.bundling import collect_dependencies
from depbundler.bundling import create_bundle
from depbundler.errors import FatalError
from depbundler.metadata import strategies
from depbundler.resolution import DEFAULT_MAX_DEPTH


logger = logging.getLogger(__name__)


def add_resolution_arguments(parser):
    """Adds the options shared by every subcommand that resolves dependencies."""
    parser.add_argument('executable', metavar='EXECUTABLE', help=(
        'The ELF executable whose shared library dependencies should be resolved.'
    ))

    parser.add_argument('-L', '--library-path', metavar='DIRECTORY', action='append',
        dest='library_paths', default=[],
        help=(
            'An additional directory to search for libraries before the system library '
            'directories and LD_LIBRARY_PATH. The argument can be used more than once, or '
            'given a colon separated list of directories.'
        ),
    )

    parser.add_argument('-s', '--strategy', choices=sorted(strategies), default='elf', help=(
        'How the dependencies are discovered. "elf" reads the dynamic section of every '
        'library and searches for them itself, "ldd" trusts the output of the ldd tool.'
    ))

    parser.add_argument('--ldd', metavar='LDD_PATH', default='ldd', help=(
        'The dynamic linker query tool used by the "ldd" strategy.'
    ))

    parser.add_argument('-i', '--ignore', metavar='PATTERN', action='append', default=[],
        help=(
            'A filename pattern for libraries that should be left out of the bundle, in addition '
            'to the dynamic loader and virtual objects. Shell style wildcards are supported, and '
            'patterns prefixed with "re:" are treated as regular expressions.'
        ),
    )

    parser.add_argument('--ignore-libc', action='store_true', help=(
        'Leave the C library out of the bundle, assuming that the target system provides it.'
    ))

    parser.add_argument('--max-depth', metavar='DEPTH', type=int, default=DEFAULT_MAX_DEPTH,
        help=(
            'The longest chain of library dependencies that will be followed before giving up.'
        ),
    )

    parser.add_argument('-q', '--quiet', action='store_true', help=(
        'Suppress warning messages.'
    ))

    parser.add_argument('-v', '--verbose', action='store_true', help=(
        'Output additional informational messages.'
    ))


def parse_args(args=None, namespace=None):
    """Constructs an argument parser and parses the arguments. The default behavior is
    to parse the arguments from `sys.argv`. A dictionary is returned rather than the
    typical namespace produced by `argparse`."""
    formatter = argparse.ArgumentDefaultsHelpFormatter
    parser = argparse.ArgumentParser(formatter_class=formatter, description=(
        'Copy an ELF executable together with all of the shared libraries that it '
        'transitively depends on into a self-contained directory.'
    ))
    subparsers = parser.add_subparsers(dest='command', metavar='COMMAND')
    subparsers.required = True

    bundle_parser = subparsers.add_parser('bundle', formatter_class=formatter, help=(
        'Create a bundle directory containing the executable, its libraries, and an env.sh script.'
    ))
    add_resolution_arguments(bundle_parser)
    bundle_parser.add_argument('-o', '--output', metavar='OUTPUT_DIRECTORY',
        default=DEFAULT_OUTPUT,
        help=(
            'The directory where the bundle will be created. The libraries will be placed in '
            'its "libs" subdirectory.'
        ),
    )

    list_parser = subparsers.add_parser('list', formatter_class=formatter, help=(
        'Print the libraries that would be bundled without copying anything.'
    ))
    add_resolution_arguments(list_parser)

    return vars(parser.parse_args(args, namespace))


def configure_logging(quiet, verbose, suppress_stdout=False):
    # Set the level.
    log_level = logging.WARN
    if quiet and not verbose:
        log_level = logging.ERROR
    elif verbose and not quiet:
        log_level = logging.INFO
    root_logger.setLevel(log_level)

    class StderrFilter(logging.Filter):
        def filter(self, record):
            return record.levelno in (logging.WARN, logging.ERROR)

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_formatter = logging.Formatter('%(levelname)s: %(message)s')
    stderr_handler.setFormatter(stderr_formatter)
    stderr_handler.addFilter(StderrFilter())
    root_logger.addHandler(stderr_handler)

    # We won't even configure/add the stdout handler if this is specified.
    if suppress_stdout:
        return

    class StdoutFilter(logging.Filter):
        def filter(self, record):
            return record.levelno in (logging.DEBUG, logging.INFO)

    stdout_formatter = logging.Formatter('%(message)s')
    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(stdout_formatter)
    stdout_handler.addFilter(StdoutFilter())
    root_logger.addHandler(stdout_handler)


def report_not_found(names):
    for name in names:
        print('Library %s not found' % name)


def list_dependencies(**args):
    dependencies, ignored = collect_dependencies(**args)
    for name, path in dependencies.items():
        print('%s => %s' % (name, path or 'not found'))


def main(args=None, namespace=None):
    args = parse_args(args, namespace)

    # Handle the CLI specific options here, removing them from `args` in the process.
    command = args.pop('command')
    quiet, verbose = args.pop('quiet'), args.pop('verbose')
    configure_logging(quiet=quiet, verbose=verbose)

    try:
        if command == 'list':
            list_dependencies(**args)
        else:
            bundle = create_bundle(**args)
            report_not_found(bundle.not_found)
    except FatalError as fatal_error:
        logger.error('Fatal error encountered, exiting.')
        logger.error(fatal_error, exc_info=verbose)
        sys.exit(1)
