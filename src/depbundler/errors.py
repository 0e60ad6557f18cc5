# -*- coding: utf-8 -*-
class FatalError(Exception):
    """Base class for exceptions that should terminate program execution."""
    pass


class DependencyDepthError(FatalError):
    """Signifies that a dependency chain was deeper than the configured limit."""
    pass


class DependencyQueryError(FatalError):
    """Signifies that the dynamic linker query tool could not produce a dependency list."""
    pass


class InvalidElfBinaryError(FatalError):
    """Signifies that a file was expected to be an ELF binary, but wasn't."""
    pass


class MaterializationError(FatalError):
    """Signifies that the bundle directories or files could not be written."""
    pass


class MissingFileError(FatalError):
    """Signifies that a file was not found."""
    pass


class UnexpectedDirectoryError(FatalError):
    """Signifies that a path was unexpectedly a directory."""
    pass


class UnreadableFileError(FatalError):
    """Signifies that a file exists but its contents couldn't be read."""
    pass
