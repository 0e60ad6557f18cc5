# -*- coding: utf-8 -*-
"""Readers that extract the shared library requirements of ELF binaries.

Two interchangeable strategies are provided. The `ElfMetadataReader` parses the
`DT_NEEDED` entries out of the dynamic section of a file and reports bare library
names, leaving it to a `LibraryResolver` to find them on disk. The `LinkerQueryReader`
instead runs `ldd` and trusts its (already transitive) resolution, reporting the
library names together with the paths that the linker picked. A run uses one or
the other, never both."""

import io
import logging
import os
import re
import struct
import zlib
from subprocess import PIPE
from subprocess import Popen

from elftools.common.exceptions import ELFError
from elftools.construct.core import ConstructError
from elftools.elf.dynamic import DynamicSection
from elftools.elf.dynamic import DynamicSegment
from elftools.elf.elffile import ELFFile

from depbundler.errors import DependencyQueryError
from depbundler.errors import InvalidElfBinaryError
from depbundler.errors import MissingFileError
from depbundler.errors import UnexpectedDirectoryError
from depbundler.errors import UnreadableFileError


logger = logging.getLogger(__name__)

ELF_MAGIC = b'\x7fELF'


def detect_elf_binary(filename):
    """Returns `True` if a file has an ELF header."""
    if not os.path.exists(filename):
        raise MissingFileError('The "%s" file was not found.' % filename)

    with open(filename, 'rb') as f:
        first_four_bytes = f.read(4)

    return first_four_bytes == ELF_MAGIC


def _decode(value):
    if isinstance(value, bytes):
        return value.decode('utf-8', 'replace')
    return value


def _needed_from_dynamic(dynamic):
    return [_decode(tag.needed) for tag in dynamic.iter_tags()
            if tag.entry.d_tag == 'DT_NEEDED']


def parse_needed_libraries(data, name='<bytes>'):
    """Extracts the directly required library names from the raw bytes of an ELF file.

    Args:
        data (bytes): The complete contents of an executable or shared library.
        name (str, optional): A label for the data that is used in error messages.
    Returns:
        :obj:`list` of :obj:`str`: The `DT_NEEDED` entries in the order that they're declared.
            Statically linked binaries produce an empty list.
    """
    if data[:4] != ELF_MAGIC:
        raise InvalidElfBinaryError('The "%s" file is not a binary ELF file.' % name)

    try:
        elf = ELFFile(io.BytesIO(data))
        for section in elf.iter_sections():
            if isinstance(section, DynamicSection):
                return _needed_from_dynamic(section)

        # Stripped section headers still leave the PT_DYNAMIC segment behind.
        for segment in elf.iter_segments():
            if isinstance(segment, DynamicSegment):
                return _needed_from_dynamic(segment)
    except (AssertionError, ConstructError, ELFError, IndexError, KeyError, OverflowError,
            ValueError, struct.error, zlib.error) as error:
        # Corrupt offsets and counts surface as a variety of errors from the parser.
        raise InvalidElfBinaryError(
            'The "%s" file could not be parsed as an ELF binary: %s' % (name, error))

    return []


def read_needed_libraries(path):
    """Reads a file from disk and returns its directly required library names."""
    if not os.path.exists(path):
        raise MissingFileError('The "%s" file was not found.' % path)
    if os.path.isdir(path):
        raise UnexpectedDirectoryError('"%s" is a directory, not a file.' % path)
    try:
        with open(path, 'rb') as f:
            data = f.read()
    except (IOError, OSError) as error:
        raise UnreadableFileError('The "%s" file could not be read: %s' % (path, error))
    return parse_needed_libraries(data, name=path)


def parse_dependencies_from_ldd_output(content):
    """Takes the output of `ldd` as a string or list of lines and parses the dependencies.

    Returns:
        :obj:`list` of :obj:`tuple`: `(name, path)` pairs in the order that they were
            listed, where `path` is `None` for libraries that the linker couldn't find.
    """
    if isinstance(content, str):
        content = content.split('\n')

    dependencies = []
    for line in content:
        line = line.strip()
        if not line:
            continue

        # The memory address annotation is meaningless outside of the traced process.
        line = re.sub(r'\s*\(0x[0-9a-fA-F]+\)\s*$', '', line)

        if '=>' in line:
            name, target = (part.strip() for part in line.split('=>', 1))
            if target == 'not found':
                dependencies.append((name, None))
            elif target.startswith('/'):
                dependencies.append((name, os.path.normpath(target)))
            # Anything else (e.g. "linux-vdso.so.1 =>") has no file behind it.
            continue

        # The linker itself is listed without an arrow, virtual objects have no path at all.
        if line.startswith('/'):
            dependencies.append((os.path.basename(line), line))

    return dependencies


class ElfMetadataReader(object):
    """Reads `DT_NEEDED` entries directly from the files on disk.

    Attributes:
        resolves_paths (bool): Always `False`, the names need to be resolved separately.
    """
    resolves_paths = False

    def __repr__(self):
        return '<ElfMetadataReader()>'

    def direct_dependencies(self, path):
        """Returns the list of library names that the file at `path` directly requires."""
        return read_needed_libraries(path)


class LinkerQueryReader(object):
    """Delegates resolution to the platform's `ldd` tool.

    Attributes:
        ldd (str): The query tool that will be invoked with the executable as its only argument.
        environment (dict): The environment that the tool is run with (`None` to inherit).
        resolves_paths (bool): Always `True`, the tool reports the transitive set with paths.
    """
    resolves_paths = True

    def __init__(self, ldd='ldd', environment=None):
        self.ldd = ldd or 'ldd'
        self.environment = environment

    def __repr__(self):
        return '<LinkerQueryReader(ldd="%s")>' % self.ldd

    def run(self, path):
        """Runs the query tool on `path` and returns its standard output and error."""
        if not detect_elf_binary(path):
            raise InvalidElfBinaryError('The "%s" file is not a binary ELF file.' % path)

        logger.debug('Running "%s %s".' % (self.ldd, path))
        try:
            process = Popen([self.ldd, path], stdout=PIPE, stderr=PIPE, env=self.environment)
        except OSError as error:
            raise DependencyQueryError(
                'The "%s" dependency query tool could not be run: %s' % (self.ldd, error))
        stdout, stderr = process.communicate()
        stdout, stderr = stdout.decode('utf-8', 'replace'), stderr.decode('utf-8', 'replace')
        # Statically linked executables make `ldd` exit with an error, but have no dependencies.
        static = 'not a dynamic executable' in stdout + stderr
        if process.returncode != 0 and not static and \
                not parse_dependencies_from_ldd_output(stdout):
            raise DependencyQueryError(
                'The "%s" dependency query tool failed on "%s": %s'
                % (self.ldd, path, stderr.strip() or 'exit status %d' % process.returncode))
        return stdout, stderr

    def resolved_dependencies(self, path):
        """Returns the `(name, path)` pairs for the full closure of the file at `path`."""
        stdout, stderr = self.run(path)
        return parse_dependencies_from_ldd_output(stdout)


strategies = {
    'elf': ElfMetadataReader,
    'ldd': LinkerQueryReader,
}


def create_reader(strategy='elf', ldd=None, environment=None):
    """Constructs the reader for the named strategy, either "elf" or "ldd"."""
    if strategy not in strategies:
        raise ValueError('Unknown dependency strategy "%s", expected one of: %s.'
                         % (strategy, ', '.join(sorted(strategies))))
    if strategy == 'ldd':
        return LinkerQueryReader(ldd=ldd, environment=environment)
    return ElfMetadataReader()
