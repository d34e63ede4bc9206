"""
Tests for the animation registry.
"""

import os
import stat
import tempfile
import unittest
import uuid
from unittest.mock import MagicMock

from keyfx.animations.descriptor import parse_declaration
from keyfx.animations.registry import AnimationRegistry
from keyfx.animations.session import AnimationSession
from keyfx.animations.transport import MockTransport
from tests.helpers import info_lines, write_animation

GUID_A = '{aaaaaaaa-0000-0000-0000-000000000001}'
GUID_B = '{bbbbbbbb-0000-0000-0000-000000000002}'
GUID_C = '{cccccccc-0000-0000-0000-000000000003}'


class TestAnimationRegistry(unittest.TestCase):
    """Test scanning and listing animations."""

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.declarations = {}
        self.loader = MagicMock(side_effect=self._load)
        self.registry = AnimationRegistry(self.temp_dir.name, loader=self.loader,
                                          transport_factory=MockTransport)

    def tearDown(self):
        self.temp_dir.cleanup()

    def _load(self, path, timeout):
        lines = self.declarations.get(os.path.basename(path))
        return parse_declaration(lines, path) if lines is not None else None

    def _add(self, filename, lines, executable=True):
        path = os.path.join(self.temp_dir.name, filename)
        with open(path, 'w') as f:
            f.write('#!/bin/sh\n')
        if executable:
            os.chmod(path, os.stat(path).st_mode | stat.S_IXUSR)
        self.declarations[filename] = lines
        return path

    def test_empty_until_scanned(self):
        self._add('wave', info_lines(GUID_A, 'Wave'))
        self.assertEqual(len(self.registry), 0)
        self.assertEqual(self.registry.list(), [])

    def test_scan(self):
        self._add('wave', info_lines(GUID_A, 'Wave'))
        self._add('broken', ['name Broken'])
        self._add('notes.txt', info_lines(GUID_B, 'Notes'), executable=False)
        os.mkdir(os.path.join(self.temp_dir.name, 'subdir'))

        self.assertEqual(self.registry.scan(), 1)
        self.assertIn(GUID_A, self.registry)
        self.assertIn(uuid.UUID(GUID_A), self.registry)
        self.assertNotIn(GUID_B, self.registry)
        self.assertEqual(self.loader.call_count, 2)
        self.loader.assert_any_call(os.path.join(self.temp_dir.name, 'wave'), 1.0)

    def test_duplicate_guid_keeps_first(self):
        self._add('a_wave', info_lines(GUID_A, 'First'))
        self._add('b_wave', info_lines(GUID_A, 'Second'))

        self.assertEqual(self.registry.scan(), 1)
        self.assertEqual(self.registry.get(GUID_A).name, 'First')

    def test_rescan_replaces_entries(self):
        path = self._add('wave', info_lines(GUID_A, 'Wave'))
        self.registry.scan()
        os.remove(path)
        self._add('ripple', info_lines(GUID_B, 'Ripple'))

        self.registry.scan()
        listed = [str(d.guid) for d in self.registry.list()]
        self.assertEqual(listed, [str(uuid.UUID(GUID_B))])
        self.assertIsNone(self.registry.get(GUID_A))

    def test_missing_directory(self):
        registry = AnimationRegistry(os.path.join(self.temp_dir.name, 'nope'), loader=self.loader)
        self.assertEqual(registry.scan(), 0)
        self.loader.assert_not_called()

    def test_list_sorted_by_name(self):
        self._add('1', info_lines(GUID_A, 'Zebra'))
        self._add('2', info_lines(GUID_B, 'Aurora'))
        self._add('3', info_lines(GUID_C, 'Matrix'))
        self.registry.scan()

        self.assertEqual([d.name for d in self.registry.list()], ['Aurora', 'Matrix', 'Zebra'])

    def test_list_disambiguates_names(self):
        self._add('1', info_lines(GUID_A, 'Wave'))
        self._add('2', info_lines(GUID_B, 'Wave'))
        self._add('3', info_lines(GUID_C, 'Wave'))
        self.registry.scan()

        listed = [d.name for d in self.registry.list()]
        self.assertEqual(len(set(listed)), 3)
        self.assertIn('Wave ' + GUID_A.upper(), listed)
        self.assertIn('Wave ' + GUID_B.upper(), listed)
        self.assertIn('Wave ' + GUID_C.upper(), listed)
        # Listing again doesn't rename twice
        self.assertEqual([d.name for d in self.registry.list()], listed)

    def test_copy(self):
        self._add('wave', info_lines(GUID_A, 'Wave'))
        self.registry.scan()

        session = self.registry.copy(GUID_A)
        self.assertIsInstance(session, AnimationSession)
        self.assertFalse(session.initialized)
        self.assertIs(session.transport_factory, MockTransport)
        # The session's descriptor is independent of the registry's
        session.descriptor.name = 'Changed'
        self.assertEqual(self.registry.get(GUID_A).name, 'Wave')

        self.assertIsNone(self.registry.copy(GUID_B))
        self.assertIsNone(self.registry.copy('not-a-guid'))


class TestRegistryWithExecutables(unittest.TestCase):
    """Test scanning real animation executables."""

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()

    def tearDown(self):
        self.temp_dir.cleanup()

    def test_scan_skips_hung_executable(self):
        write_animation(self.temp_dir.name, 'good', info_lines(GUID_A, 'Good'))
        write_animation(self.temp_dir.name, 'hung', info_lines(GUID_B, 'Hung'), hang=True)

        registry = AnimationRegistry(self.temp_dir.name, info_timeout=0.5)
        self.assertEqual(registry.scan(), 1)
        self.assertEqual([d.name for d in registry.list()], ['Good'])


if __name__ == '__main__':
    unittest.main()
