# -*- coding: utf-8 -*-
import logging
import os
from collections import OrderedDict
from collections import deque

from depbundler.errors import DependencyDepthError
from depbundler.errors import MissingFileError
from depbundler.errors import UnexpectedDirectoryError
from depbundler.metadata import ElfMetadataReader
from depbundler.metadata import create_reader
from depbundler.search_paths import LIBRARY_PATH_VARIABLE
from depbundler.search_paths import LibraryResolver


logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 256


class DependencySet(object):
    """An insertion ordered collection of library names and their resolved paths.

    Every entry is keyed by the library's filename, with the resolved absolute path (or
    `None` when it couldn't be found) as the value. This keeps membership checks well
    defined regardless of which reader produced the entries.
    """
    def __init__(self, items=()):
        self._entries = OrderedDict()
        self.frozen = False
        for name, path in items:
            self.add(name, path)

    def __contains__(self, name):
        return name in self._entries

    def __eq__(self, other):
        return isinstance(other, DependencySet) and dict(self._entries) == dict(other._entries)

    def __iter__(self):
        return iter(self._entries)

    def __len__(self):
        return len(self._entries)

    def __repr__(self):
        return '<DependencySet(%s)>' % ', '.join(self._entries)

    def add(self, name, path=None):
        """Adds `name` if it isn't already present, filling in a previously unknown path."""
        if self.frozen:
            raise RuntimeError('The dependency set has been finalized and cannot be modified.')
        if self._entries.get(name) is None:
            self._entries[name] = path

    def freeze(self):
        """Marks the set as final, any further additions will raise a `RuntimeError`."""
        self.frozen = True
        return self

    def items(self):
        return list(self._entries.items())

    def path(self, name):
        return self._entries[name]

    def without(self, names):
        """Returns a new set excluding the specified names."""
        names = set(names)
        return DependencySet((name, path) for (name, path) in self.items() if name not in names)

    @property
    def names(self):
        """:obj:`set` of :obj:`str`: All of the library names in the set."""
        return set(self._entries)

    @property
    def not_found(self):
        """:obj:`list` of :obj:`str`: The names that couldn't be resolved, sorted."""
        return sorted(name for (name, path) in self._entries.items() if path is None)

    @property
    def resolved(self):
        """:obj:`dict`: A mapping of names to paths for the entries that were resolved."""
        return OrderedDict((name, path) for (name, path) in self._entries.items() if path)


def _check_root(executable):
    if not os.path.exists(executable):
        raise MissingFileError('The "%s" file was not found.' % executable)
    if os.path.isdir(executable):
        raise UnexpectedDirectoryError('"%s" is a directory, not a file.' % executable)
    return os.path.normpath(os.path.abspath(executable))


def resolve_closure(executable, resolver, reader=None, max_depth=DEFAULT_MAX_DEPTH):
    """Walks the `DT_NEEDED` graph breadth first, starting at `executable`.

    Every name is marked as seen before its own dependencies are read, so cycles and
    libraries reachable along several paths are only ever explored once. Names that the
    `resolver` can't find are kept in the result without a path and are not explored.

    Args:
        executable (str): The path to the root executable.
        resolver (LibraryResolver): Used to find every library name, at every level.
        reader (ElfMetadataReader, optional): Extracts the direct dependencies from a file.
        max_depth (int, optional): The longest dependency chain that will be followed.
    Returns:
        DependencySet: The transitive dependencies, not including `executable` itself.
    """
    reader = reader or ElfMetadataReader()
    assert not reader.resolves_paths, \
        'Readers that resolve paths themselves must be used with `query_closure()`.'

    root = _check_root(executable)
    seen = {root}
    # A slash name can point at a file that was already explored under another name.
    explored = {root}
    dependencies = DependencySet()
    queue = deque([(root, 0)])
    while queue:
        path, depth = queue.popleft()
        for name in reader.direct_dependencies(path):
            if name in seen:
                continue
            seen.add(name)

            library_path = resolver.resolve(name)
            dependencies.add(name, library_path)
            if library_path is None:
                logger.warning('Library "%s" (required by "%s") was not found.' % (name, path))
                continue

            if library_path in explored:
                continue
            explored.add(library_path)
            if depth + 1 > max_depth:
                raise DependencyDepthError(
                    ('The dependency chain through "%s" is more than %d libraries deep. ' %
                     (library_path, max_depth)) +
                    'The `max_depth` limit can be raised if this is expected.')
            logger.debug('Found "%s" at "%s".' % (name, library_path))
            queue.append((library_path, depth + 1))

    return dependencies


def query_closure(executable, reader):
    """Uses a path resolving reader to get the complete closure in a single step."""
    assert reader.resolves_paths, 'The reader must resolve paths itself.'
    root = _check_root(executable)
    dependencies = DependencySet()
    for name, path in reader.resolved_dependencies(root):
        if path is None:
            logger.warning('Library "%s" was not found by "%s".' % (name, reader.ldd))
        dependencies.add(name, path)
    return dependencies


def resolve_dependencies(executable, strategy='elf', library_paths=(), environment=None,
                         ldd=None, max_depth=DEFAULT_MAX_DEPTH):
    """Computes the unfiltered dependency closure of an executable.

    Args:
        executable (str): The path to the root executable.
        strategy (str, optional): Either "elf" to parse the binaries directly, or "ldd" to
            trust the output of the linker query tool.
        library_paths (:obj:`list` of :obj:`str`, optional): Extra directories that take
            precedence over the built-in ones.
        environment (dict, optional): The environment used for `LD_LIBRARY_PATH`.
        ldd (str, optional): The query tool to run for the "ldd" strategy.
        max_depth (int, optional): The longest dependency chain followed by the "elf" strategy.
    Returns:
        DependencySet: The raw closure, before any ignore patterns are applied.
    """
    if environment is None:
        environment = dict(os.environ)

    if strategy == 'ldd':
        # The linker does its own searching, so the user directories are handed to it.
        if library_paths:
            query_environment = dict(environment)
            query_environment[LIBRARY_PATH_VARIABLE] = ':'.join(
                list(library_paths) + [environment.get(LIBRARY_PATH_VARIABLE, '')]).rstrip(':')
        else:
            query_environment = environment
        reader = create_reader('ldd', ldd=ldd, environment=query_environment)
        return query_closure(executable, reader)

    reader = create_reader(strategy)
    resolver = LibraryResolver(library_paths, environment=environment)
    return resolve_closure(executable, resolver, reader=reader, max_depth=max_depth)
