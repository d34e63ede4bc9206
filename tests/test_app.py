"""
Tests for configuration loading and the service entry point.
"""

import configparser
import io
import os
import tempfile
import unittest
from unittest.mock import MagicMock, patch

from keyfx import app
from keyfx.config import load_config
from tests.helpers import info_lines, write_animation


class TestConfig(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()

    def tearDown(self):
        self.temp_dir.cleanup()

    def test_load_config(self):
        path = os.path.join(self.temp_dir.name, 'config.ini')
        with open(path, 'w') as f:
            f.write("[DEFAULT]\nLOG_LEVEL = DEBUG\n\n[ANIMATIONS]\nFPS = 30\nDIRECTORY = %(home)s/anims\n")

        config = load_config(path)
        self.assertEqual(config.get('DEFAULT', 'LOG_LEVEL'), 'DEBUG')
        self.assertEqual(config.getint('ANIMATIONS', 'FPS'), 30)
        # Values are taken literally
        self.assertEqual(config.get('ANIMATIONS', 'DIRECTORY'), '%(home)s/anims')

    def test_missing_config_uses_defaults(self):
        config = load_config(os.path.join(self.temp_dir.name, 'missing.ini'))
        self.assertFalse(config.has_section('ANIMATIONS'))
        self.assertEqual(config.getint('ANIMATIONS', 'FPS', fallback=60), 60)


class TestApp(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()

    def tearDown(self):
        self.temp_dir.cleanup()

    def test_parse_arguments(self):
        args = app.parse_arguments([])
        self.assertEqual(args.config, 'config.ini')
        self.assertFalse(args.list)
        self.assertIsNone(args.port)

        args = app.parse_arguments(['--config', 'other.ini', '--list', '--port', '8080'])
        self.assertEqual(args.config, 'other.ini')
        self.assertTrue(args.list)
        self.assertEqual(args.port, 8080)

    def test_create_manager(self):
        keymap_path = os.path.join(self.temp_dir.name, 'keymap.json')
        with open(keymap_path, 'w') as f:
            f.write('{"esc": [0, 0], "f1": [2, 0], "bad": "x"}')

        config = configparser.ConfigParser(interpolation=None)
        config.read_dict({'ANIMATIONS': {
            'DIRECTORY': self.temp_dir.name,
            'INFO_TIMEOUT': '2.5',
            'FPS': '30',
            'KEYMAP': keymap_path,
        }})
        manager = app.create_manager(config)

        self.assertEqual(manager.registry.animation_dir, self.temp_dir.name)
        self.assertEqual(manager.registry.info_timeout, 2.5)
        self.assertEqual(manager.fps, 30)
        self.assertEqual(sorted(manager.keymap), ['esc', 'f1'])

    def test_create_manager_defaults(self):
        manager = app.create_manager(configparser.ConfigParser())
        self.assertEqual(manager.registry.animation_dir, os.path.join(os.getcwd(), 'animations'))
        self.assertEqual(manager.registry.info_timeout, 1.0)
        self.assertEqual(manager.fps, 60)
        self.assertEqual(len(manager.keymap), 0)

    def test_main_list(self):
        anim_dir = os.path.join(self.temp_dir.name, 'animations')
        os.mkdir(anim_dir)
        write_animation(anim_dir, 'wave', info_lines(name='Wave'))
        config_path = os.path.join(self.temp_dir.name, 'config.ini')
        with open(config_path, 'w') as f:
            f.write(f"[ANIMATIONS]\nDIRECTORY = {anim_dir}\n")

        with patch('sys.stdout', new_callable=io.StringIO) as stdout:
            self.assertEqual(app.main(['--config', config_path, '--list']), 0)
        self.assertIn('{11111111-2222-3333-4444-555555555555}  Wave 1.0  (Tester, 2024)', stdout.getvalue())

    @patch('keyfx.app.create_app')
    def test_main_serves(self, mock_create_app):
        socketio = MagicMock()
        mock_create_app.return_value = (MagicMock(), socketio)
        config_path = os.path.join(self.temp_dir.name, 'config.ini')
        with open(config_path, 'w') as f:
            f.write(f"[ANIMATIONS]\nDIRECTORY = {self.temp_dir.name}\n\n[SERVER]\nHOST = 0.0.0.0\nPORT = 5001\n")

        with patch.object(app.AnimationManager, 'start_playback') as start_playback, \
                patch.object(app.AnimationManager, 'shutdown') as shutdown:
            self.assertEqual(app.main(['--config', config_path, '--port', '6000']), 0)
            start_playback.assert_called_once()
            shutdown.assert_called_once()

        args, kwargs = socketio.run.call_args
        self.assertEqual(kwargs['host'], '0.0.0.0')
        self.assertEqual(kwargs['port'], 6000)


if __name__ == '__main__':
    unittest.main()
