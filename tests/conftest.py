# -*- coding: utf-8 -*-
import os
import stat
import struct

import pytest

from depbundler import root_logger


DT_NULL = 0
DT_NEEDED = 1
SHT_STRTAB = 3
SHT_DYNAMIC = 6


def align(data, boundary=8):
    return data + b'\x00' * (-len(data) % boundary)


def build_elf(needed=()):
    """Constructs a minimal little endian ELF64 shared object with the given `DT_NEEDED` entries.

    The file only contains the section headers, `.dynstr`, `.dynamic` and `.shstrtab`, which
    is all that the dependency parsing looks at. An empty `needed` produces a file without a
    dynamic section, the same as a statically linked binary.
    """
    dynstr = b'\x00'
    offsets = []
    for name in needed:
        offsets.append(len(dynstr))
        dynstr += name.encode('utf-8') + b'\x00'
    dynamic = b''.join(struct.pack('<qQ', DT_NEEDED, offset) for offset in offsets)
    dynamic += struct.pack('<qQ', DT_NULL, 0)
    shstrtab = b'\x00.dynstr\x00.dynamic\x00.shstrtab\x00'

    body = align(b'\x00' * 64)
    dynstr_offset = len(body)
    body = align(body + dynstr)
    dynamic_offset = len(body)
    body = align(body + dynamic)
    shstrtab_offset = len(body)
    body = align(body + shstrtab)
    section_headers_offset = len(body)

    def section_header(name, type, offset, size, link=0, entsize=0):
        name_offset = shstrtab.index(name.encode('ascii') + b'\x00') if name else 0
        return struct.pack('<IIQQQQIIQQ', name_offset, type, 0, 0, offset, size, link, 0, 1,
                           entsize)

    section_headers = [
        section_header(None, 0, 0, 0),
        section_header('.dynstr', SHT_STRTAB, dynstr_offset, len(dynstr)),
        section_header('.shstrtab', SHT_STRTAB, shstrtab_offset, len(shstrtab)),
    ]
    if needed:
        section_headers.append(section_header(
            '.dynamic', SHT_DYNAMIC, dynamic_offset, len(dynamic), link=1, entsize=16))

    e_ident = b'\x7fELF' + b'\x02\x01\x01\x00' + b'\x00' * 8
    header = struct.pack(
        '<16sHHIQQQIHHHHHH', e_ident, 3, 62, 1, 0, 0, section_headers_offset, 0, 64, 56, 0,
        64, len(section_headers), 2,
    )
    return header + body[64:] + b''.join(section_headers)


def write_elf(path, needed=()):
    """Writes an executable ELF file to `path`, creating any missing parent directories."""
    path = str(path)
    parent = os.path.dirname(path)
    if not os.path.exists(parent):
        os.makedirs(parent)
    with open(path, 'wb') as f:
        f.write(build_elf(needed))
    os.chmod(path, os.stat(path).st_mode | stat.S_IEXEC)
    return path


@pytest.fixture
def elf_writer():
    return write_elf


@pytest.fixture(autouse=True)
def reset_logging():
    """Removes any handlers added by `configure_logging()` so that tests stay independent."""
    yield
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
    root_logger.setLevel(0)
