# -*- coding: utf-8 -*-
"""Patterns for libraries that are excluded from bundles because every target system
is expected to provide them. The filtering always runs on the complete closure, so the
dependencies of an ignored library are still discovered and bundled."""

import fnmatch
import logging
import os
import re


logger = logging.getLogger(__name__)

# The dynamic loader is always provided by the target system.
LOADER_PATTERNS = ['ld-linux*.so*', 'ld-musl-*.so*', 'ld64.so*']
# Virtual objects injected by the kernel, there's no file to copy.
VIRTUAL_DSO_PATTERNS = ['linux-vdso.so*', 'linux-gate.so*', 'linux-vdso32.so*', 'linux-vdso64.so*']
LIBC_PATTERNS = ['libc.so']

version_suffix_regex = re.compile(r'(\.\d+)+$')


def default_ignore_patterns(ignore_libc=False):
    """Returns a new list of the patterns that are ignored unless overridden."""
    patterns = LOADER_PATTERNS + VIRTUAL_DSO_PATTERNS
    if ignore_libc:
        patterns = patterns + LIBC_PATTERNS
    return list(patterns)


class IgnorePattern(object):
    """A pattern matched against the base filename of a dependency.

    Patterns are shell style globs, or regular expressions when prefixed with "re:". Either
    way, a trailing version suffix on the filename is tolerated so that "libc.so" will match
    "libc.so.6".
    """
    def __init__(self, pattern):
        self.pattern = pattern
        if pattern.startswith('re:'):
            self.regex = re.compile(pattern[3:])
        else:
            self.regex = re.compile(fnmatch.translate(pattern))

    def __eq__(self, other):
        return isinstance(other, IgnorePattern) and self.pattern == other.pattern

    def __hash__(self):
        return hash(self.pattern)

    def __repr__(self):
        return '<IgnorePattern(pattern="%s")>' % self.pattern

    def matches(self, dependency):
        """Whether the dependency name or path should be ignored."""
        basename = os.path.basename(dependency)
        if self.regex.match(basename):
            return True
        unversioned = version_suffix_regex.sub('', basename)
        return unversioned != basename and bool(self.regex.match(unversioned))


def compile_patterns(patterns):
    return [pattern if isinstance(pattern, IgnorePattern) else IgnorePattern(pattern)
            for pattern in patterns]


def is_ignored(dependency, patterns):
    return any(pattern.matches(dependency) for pattern in compile_patterns(patterns))


def filter_dependencies(dependencies, patterns):
    """Removes every entry matching any of the ignore patterns.

    Args:
        dependencies (DependencySet): The complete, unfiltered closure.
        patterns (:obj:`list`): Pattern strings or `IgnorePattern` instances.
    Returns:
        :obj:`tuple`: The frozen `DependencySet` of kept entries, and a sorted list of the
            names that were ignored.
    """
    patterns = compile_patterns(patterns)
    ignored = sorted(name for name in dependencies if is_ignored(name, patterns))
    for name in ignored:
        logger.info('Ignoring "%s".' % name)
    kept = dependencies.without(ignored)
    return kept.freeze(), ignored
