#!/usr/bin/env python3
"""
Knight Rider scanner animation for keyfx.

A bright bar sweeps left to right and back across the keys, leaving a
fading tail behind it. One sweep in each direction takes one duration.

    knight_rider.py --ckb-info    describe the animation
    knight_rider.py --ckb-run     run it over stdin/stdout
"""

import sys
from urllib.parse import quote, unquote

INFO = [
    "guid {5bd9e1e4-3c1f-4a3b-9f0e-6a1c3f0d2a11}",
    "name " + quote("Knight Rider"),
    "version 1.0",
    "year 2024",
    "author " + quote("Go-Kart Team"),
    "license GPLv2",
    "description " + quote("A scanner bar sweeping back and forth with a fading tail."),
    "kpmode none",
    "time duration",
    "repeat on",
    "preempt on",
    "parammode static",
    "param rgb color " + quote("Color:") + " %20 ff0000",
    "param long tail " + quote("Tail length:") + " " + quote(" keys") + " 3 0 20",
    "param double duration " + quote("Sweep time:") + " s 2.0",
]


def print_info():
    for line in INFO:
        print(line)


def scanner_colors(keys, position, tail_length, color, forward):
    """
    Compute the colors of one scanner frame.

    Args:
        keys: Mapping of key name to (x, y)
        position: Current column of the scanner (can be fractional)
        tail_length: Number of columns in the fade-out trail
        color: Base RGB color
        forward: Direction of travel, the tail trails behind

    Returns:
        Mapping of key name to ARGB value
    """
    red, green, blue = (color >> 16) & 0xff, (color >> 8) & 0xff, color & 0xff
    colors = {}
    for key, (x, _) in keys.items():
        distance = (position - x) if forward else (x - position)
        if -0.5 <= distance <= 0.5:
            brightness = 1.0
        elif 0.5 < distance <= tail_length + 0.5 and tail_length > 0:
            brightness = (tail_length + 0.5 - distance) / (tail_length + 1)
        else:
            brightness = 0.0
        alpha = int(255 * brightness)
        colors[key] = (alpha << 24) | (red << 16) | (green << 8) | blue
    return colors


def run():
    keys = {}
    params = {}
    phase = 0.0
    running = False
    for line in sys.stdin:
        words = line.strip().split(' ')
        if words[0] == 'key' and len(words) == 3 and not running:
            x, y = words[2].split(',')
            keys[words[1]] = (int(x), int(y))
        elif words[0] == 'param' and len(words) == 3:
            params[words[1]] = unquote(words[2])
        elif words == ['begin', 'run']:
            running = True
        elif words[0] == 'start':
            phase = 0.0
        elif words[0] == 'frame' and len(words) == 2 and running:
            phase = (phase + float(words[1])) % 1.0
            width = max([x for x, _ in keys.values()] or [0])
            forward = phase < 0.5
            sweep = phase * 2 if forward else (1.0 - phase) * 2
            colors = scanner_colors(keys, sweep * width,
                                    int(params.get('tail', '3') or 3),
                                    int(params.get('color', 'ff0000') or 'ff0000', 16),
                                    forward)
            print('begin frame')
            for key, argb in colors.items():
                print(f'argb {key} {argb:08x}')
            print('end frame')
            sys.stdout.flush()
    print('end run')


if __name__ == '__main__':
    if '--ckb-info' in sys.argv[1:]:
        print_info()
    elif '--ckb-run' in sys.argv[1:]:
        run()
    else:
        print(__doc__.strip())
        sys.exit(1)
