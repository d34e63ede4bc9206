"""
Helpers for building fake animations and registries in tests.
"""

import os
import stat
import sys
import textwrap

from keyfx.animations.descriptor import parse_declaration
from keyfx.animations.registry import AnimationRegistry
from keyfx.animations.transport import MockTransport

DEFAULT_RUN = """
for line in sys.stdin:
    if line.startswith('frame '):
        print('begin frame')
        print('argb a ff00ff00')
        print('end frame')
        sys.stdout.flush()
"""


def info_lines(guid='{11111111-2222-3333-4444-555555555555}', name='Test', extra=()):
    """A complete declaration plus any extra records."""
    lines = [
        f'guid {guid}',
        f'name {name}',
        'version 1.0',
        'year 2024',
        'author Tester',
        'license MIT',
        'description A%20test%20animation',
    ]
    lines.extend(extra)
    return lines


def write_animation(directory, filename, lines=None, run_body=DEFAULT_RUN, hang=False, executable=True):
    """
    Write a Python script that speaks the animation protocol.

    Args:
        directory: Where to create the script
        filename: Script file name
        lines: Declaration printed for --ckb-info
        run_body: Python code executed for --ckb-run
        hang: Sleep instead of answering --ckb-info
        executable: Set the executable bit

    Returns:
        Path of the script
    """
    lines = info_lines() if lines is None else lines
    source = f"#!{sys.executable}\n"
    source += "import sys\nimport time\n"
    source += f"INFO = {list(lines)!r}\n"
    source += "if '--ckb-info' in sys.argv[1:]:\n"
    if hang:
        source += "    time.sleep(10)\n"
    source += "    for line in INFO:\n        print(line)\n"
    source += "elif '--ckb-run' in sys.argv[1:]:\n"
    source += textwrap.indent(textwrap.dedent(run_body).strip() or 'pass', '    ') + "\n"

    path = os.path.join(directory, filename)
    with open(path, 'w') as f:
        f.write(source)
    if executable:
        os.chmod(path, os.stat(path).st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


WAVE = '{aaaaaaaa-0000-0000-0000-000000000001}'
TYPER = '{bbbbbbbb-0000-0000-0000-000000000002}'
LIVE = '{cccccccc-0000-0000-0000-000000000003}'


def make_registry():
    """A registry holding three animations that run on mock transports."""
    registry = AnimationRegistry('/anims', transport_factory=MockTransport)
    for guid, name, extra in (
        (WAVE, 'Wave', []),
        (TYPER, 'Typer', ['kpmode name']),
        (LIVE, 'Live', ['parammode live', 'param long speed Speed: "" 3 1 10']),
    ):
        descriptor = parse_declaration(info_lines(guid, name, extra), f'/anims/{name.lower()}')
        registry.animations[descriptor.guid] = descriptor
    return registry
