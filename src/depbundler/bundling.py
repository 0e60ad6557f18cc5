# -*- coding: utf-8 -*-
import logging
import os
import shutil
import stat

from depbundler.errors import MaterializationError
from depbundler.errors import MissingFileError
from depbundler.errors import UnexpectedDirectoryError
from depbundler.filtering import default_ignore_patterns
from depbundler.filtering import filter_dependencies
from depbundler.resolution import DEFAULT_MAX_DEPTH
from depbundler.resolution import resolve_dependencies
from depbundler.templating import render_env_script


logger = logging.getLogger(__name__)

DEFAULT_OUTPUT = 'output'
LIBRARY_DIRECTORY_NAME = 'libs'
ENV_SCRIPT_NAME = 'env.sh'


def resolve_file_path(path):
    """Returns the normalized absolute path to an existing file.

    If the file is not found, or if it is a directory, appropriate exceptions will be thrown.
    """
    if not os.path.exists(path):
        raise MissingFileError('The "%s" file was not found.' % path)
    if os.path.isdir(path):
        raise UnexpectedDirectoryError('"%s" is a directory, not a file.' % path)
    return os.path.normpath(os.path.abspath(path))


def copy_file(source, destination):
    """Copies the file contents and permissions, wrapping any failure in a fatal error."""
    try:
        shutil.copy(source, destination)
    except (IOError, OSError, shutil.Error) as error:
        raise MaterializationError(
            'The "%s" file could not be copied to "%s": %s' % (source, destination, error))
    logger.info('%s => %s' % (source, destination))
    return destination


class Bundle(object):
    """The on-disk layout of a bundle and utilities for populating it.

    Attributes:
        output_directory (str): The absolute root of the bundle, the executable goes here.
        library_directory (str): The absolute directory that libraries are copied into.
        env_script_path (str): The location of the environment script.
        executable_path (str): The path of the copied executable (or `None` until copied).
        library_files (:obj:`list` of :obj:`str`): The paths of the copied libraries.
        not_found (:obj:`list` of :obj:`str`): Library names that couldn't be copied because
            no path was resolved for them.
    """
    def __init__(self, output_directory=DEFAULT_OUTPUT,
                 library_directory_name=LIBRARY_DIRECTORY_NAME):
        self.output_directory = os.path.normpath(os.path.abspath(output_directory))
        self.library_directory = os.path.join(self.output_directory, library_directory_name)
        self.env_script_path = os.path.join(self.output_directory, ENV_SCRIPT_NAME)
        self.executable_path = None
        self.library_files = []
        self.not_found = []

    def __repr__(self):
        return '<Bundle(output_directory="%s")>' % self.output_directory

    def create_directories(self):
        """Creates the output and library directories, this must happen before any copying."""
        for directory in (self.output_directory, self.library_directory):
            if os.path.isdir(directory):
                continue
            try:
                os.makedirs(directory)
            except OSError as error:
                raise MaterializationError(
                    'The "%s" directory could not be created: %s' % (directory, error))
            logger.info('Created directory "%s".' % directory)

    def copy_executable(self, path):
        """Copies the root executable into the output directory."""
        path = resolve_file_path(path)
        destination = os.path.join(self.output_directory, os.path.basename(path))
        self.executable_path = copy_file(path, destination)
        return self.executable_path

    def copy_libraries(self, dependencies):
        """Copies every resolved dependency into the library directory.

        Args:
            dependencies (DependencySet): The filtered dependencies.
        Returns:
            :obj:`list` of :obj:`str`: The paths of the copied libraries.
        """
        destinations = {}
        for name, path in dependencies.items():
            if path is None:
                logger.info('Library "%s" not found, skipping it.' % name)
                self.not_found.append(name)
                continue

            # The linker looks libraries up by the requested name, not the resolved one.
            filename = os.path.basename(name)
            destination = os.path.join(self.library_directory, filename)
            if destination in destinations:
                logger.warning('Skipping "%s" because "%s" was already copied to "%s".'
                               % (path, destinations[destination], destination))
                continue
            destinations[destination] = path
            self.library_files.append(copy_file(path, destination))

        return self.library_files

    def write_env_script(self):
        """Writes out the environment script and marks it as executable."""
        content = render_env_script(self.output_directory, self.library_directory)
        try:
            with open(self.env_script_path, 'w') as f:
                f.write(content)
            st = os.stat(self.env_script_path)
            os.chmod(self.env_script_path, st.st_mode | stat.S_IEXEC)
        except (IOError, OSError) as error:
            raise MaterializationError(
                'The "%s" script could not be written: %s' % (self.env_script_path, error))
        logger.info('Wrote "%s".' % self.env_script_path)
        return self.env_script_path

    def materialize(self, executable, dependencies):
        """Creates the complete bundle for an executable and its filtered dependencies."""
        self.create_directories()
        self.copy_executable(executable)
        self.copy_libraries(dependencies)
        self.write_env_script()
        return self


def collect_dependencies(executable, library_paths=(), strategy='elf', ignore=None,
                         ignore_libc=False, ldd=None, max_depth=DEFAULT_MAX_DEPTH,
                         environment=None):
    """Resolves and filters the dependencies of an executable without writing anything.

    Returns:
        :obj:`tuple`: The frozen `DependencySet` of libraries to bundle, and the sorted names
            that were ignored.
    """
    executable = resolve_file_path(executable)
    dependencies = resolve_dependencies(
        executable, strategy=strategy, library_paths=library_paths, environment=environment,
        ldd=ldd, max_depth=max_depth,
    )
    patterns = default_ignore_patterns(ignore_libc=ignore_libc)
    if ignore:
        patterns += ignore
    return filter_dependencies(dependencies, patterns)


def create_bundle(executable, output=DEFAULT_OUTPUT, library_paths=(), strategy='elf',
                  ignore=None, ignore_libc=False, ldd=None, max_depth=DEFAULT_MAX_DEPTH,
                  environment=None):
    """Handles the creation of the full bundle.

    Args:
        executable (str): The executable to bundle.
        output (str, optional): The bundle directory, created if it doesn't exist.
        library_paths (:obj:`list` of :obj:`str`, optional): Directories that are searched
            before the system library directories.
        strategy (str, optional): Either "elf" or "ldd", see `depbundler.metadata`.
        ignore (:obj:`list` of :obj:`str`, optional): Additional ignore patterns.
        ignore_libc (bool, optional): Whether to leave the C library out of the bundle.
        ldd (str, optional): The query tool to use for the "ldd" strategy.
        max_depth (int, optional): The longest dependency chain that will be followed.
        environment (dict, optional): Used in place of `os.environ` during resolution.
    Returns:
        Bundle: The materialized bundle.
    """
    dependencies, ignored = collect_dependencies(
        executable, library_paths=library_paths, strategy=strategy, ignore=ignore,
        ignore_libc=ignore_libc, ldd=ldd, max_depth=max_depth, environment=environment,
    )
    bundle = Bundle(output)
    bundle.materialize(executable, dependencies)

    logger.info('Successfully created "%s" with %d libraries.'
                % (bundle.output_directory, len(bundle.library_files)))
    return bundle
