# -*- coding: utf-8 -*-
"""Finds bare library names on disk using three tiers of search directories.

The tiers are consulted in a fixed order: the directories supplied by the user, then
`SYSTEM_LIBRARY_DIRECTORIES`, then the entries of `LD_LIBRARY_PATH`. The first directory
containing a file with exactly the requested name wins."""

import logging
import os


logger = logging.getLogger(__name__)

SYSTEM_LIBRARY_DIRECTORIES = ['/lib', '/usr/lib', '/lib64', '/usr/lib64', '/usr/local/lib']
LIBRARY_PATH_VARIABLE = 'LD_LIBRARY_PATH'


def split_search_path(value):
    """Splits a colon separated list of directories, dropping any empty components."""
    if not value:
        return []
    return [directory for directory in value.split(':') if directory]


def build_search_path(extra_paths=(), environment=None):
    """Constructs the ordered list of directories to search for libraries.

    Args:
        extra_paths (:obj:`list` of :obj:`str`, optional): User supplied directories, these
            take precedence over everything else. Entries may themselves be colon separated.
        environment (dict, optional): The environment to read `LD_LIBRARY_PATH` from, this
            defaults to `os.environ`.
    Returns:
        :obj:`list` of :obj:`str`: Normalized absolute directories, each listed only once.
    """
    if environment is None:
        environment = os.environ

    user_directories = []
    for entry in extra_paths or []:
        user_directories += split_search_path(entry)
    environment_directories = split_search_path(environment.get(LIBRARY_PATH_VARIABLE, ''))

    search_path = []
    for directory in user_directories + SYSTEM_LIBRARY_DIRECTORIES + environment_directories:
        directory = os.path.normpath(os.path.abspath(directory))
        if directory not in search_path:
            search_path.append(directory)
    return search_path


class LibraryResolver(object):
    """Resolves library names to absolute paths.

    Attributes:
        search_path (:obj:`list` of :obj:`str`): The ordered directories that get searched.
    """
    def __init__(self, extra_paths=(), environment=None):
        self.search_path = build_search_path(extra_paths, environment=environment)
        self._cache = {}

    def __repr__(self):
        return '<LibraryResolver(search_path=%r)>' % self.search_path

    def resolve(self, name):
        """Returns the absolute path for the library `name`, or `None` if it can't be found."""
        if name in self._cache:
            return self._cache[name]

        path = None
        if os.sep in name:
            # The linker uses names with a slash as paths without searching.
            if os.path.isfile(name):
                path = os.path.normpath(os.path.abspath(name))
        else:
            for directory in self.search_path:
                candidate = os.path.join(directory, name)
                if os.path.isfile(candidate):
                    path = candidate
                    break

        if path:
            logger.debug('Resolved "%s" to "%s".' % (name, path))
        self._cache[name] = path
        return path


def find_library(name, extra_paths=(), environment=None):
    """Convenience wrapper that resolves a single library name."""
    return LibraryResolver(extra_paths, environment=environment).resolve(name)
