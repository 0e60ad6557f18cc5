# -*- coding: utf-8 -*-
import random

import pytest

from depbundler.filtering import IgnorePattern
from depbundler.filtering import compile_patterns
from depbundler.filtering import default_ignore_patterns
from depbundler.filtering import filter_dependencies
from depbundler.filtering import is_ignored
from depbundler.resolution import DependencySet


@pytest.mark.parametrize('pattern,dependency,expected', [
    ('ld-linux*.so*', 'ld-linux-x86-64.so.2', True),
    ('ld-linux*.so*', '/lib64/ld-linux-x86-64.so.2', True),
    ('ld-linux*.so*', 'ld-linux-aarch64.so.1', True),
    ('linux-vdso.so*', 'linux-vdso.so.1', True),
    ('libc.so', 'libc.so', True),
    ('libc.so', 'libc.so.6', True),
    ('libc.so', '/lib/x86_64-linux-gnu/libc.so.6', True),
    ('libc.so', 'libcrypt.so.1', False),
    ('libc.so', 'libc.so.6.backup', False),
    ('libc.so', 'libcurl.so.4', False),
    ('re:^libgl(ib)?-.*', 'libglib-2.0.so.0', True),
    ('re:^libgl(ib)?-.*', 'libgobject-2.0.so.0', False),
    ('re:^libm\\.so$', 'libm.so.6', True),
])
def test_ignore_pattern_matches(pattern, dependency, expected):
    assert IgnorePattern(pattern).matches(dependency) == expected


def test_default_ignore_patterns():
    patterns = default_ignore_patterns()
    assert not is_ignored('libc.so.6', patterns), 'The C library is bundled by default.'
    assert is_ignored('ld-linux-x86-64.so.2', patterns)
    assert is_ignored('linux-vdso.so.1', patterns)
    assert is_ignored('libc.so.6', default_ignore_patterns(ignore_libc=True))

    patterns.append('libextra.so')
    assert 'libextra.so' not in default_ignore_patterns(), \
        'A fresh list should be returned every time.'


def test_compile_patterns():
    existing = IgnorePattern('libfoo.so')
    patterns = compile_patterns([existing, 'libbar.so'])
    assert patterns[0] is existing
    assert patterns[1] == IgnorePattern('libbar.so')


def test_loader_is_in_the_raw_closure_but_not_the_filtered_one():
    raw = DependencySet([
        ('libfoo.so.1', '/usr/lib/libfoo.so.1'),
        ('ld-linux-x86-64.so.2', '/lib64/ld-linux-x86-64.so.2'),
        ('libc.so.6', '/lib/libc.so.6'),
    ])
    kept, ignored = filter_dependencies(raw, default_ignore_patterns())
    assert 'ld-linux-x86-64.so.2' in raw, 'Filtering should not modify the raw closure.'
    assert 'ld-linux-x86-64.so.2' not in kept
    assert ignored == ['ld-linux-x86-64.so.2']
    assert kept.names == {'libfoo.so.1', 'libc.so.6'}


def test_filtering_is_independent_of_order():
    entries = [('lib%d.so' % index, '/lib/lib%d.so' % index) for index in range(20)]
    entries += [('ld-linux.so.2', None), ('linux-gate.so.1', None), ('libc.so.6', '/lib/libc.so.6')]
    patterns = default_ignore_patterns(ignore_libc=True)
    results = set()
    for seed in range(5):
        random.Random(seed).shuffle(entries)
        kept, ignored = filter_dependencies(DependencySet(entries), patterns)
        results.add((frozenset(kept.items()), tuple(ignored)))
    assert len(results) == 1, 'The same entries should always be kept and ignored.'
    [(kept, ignored)] = results
    assert ignored == ('ld-linux.so.2', 'libc.so.6', 'linux-gate.so.1')
    assert len(kept) == 20


def test_filtered_set_is_frozen():
    kept, ignored = filter_dependencies(DependencySet([('libfoo.so', None)]), [])
    assert kept.names == {'libfoo.so'}
    with pytest.raises(RuntimeError):
        kept.add('libbar.so')
