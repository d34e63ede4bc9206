#!/usr/bin/env python3
"""
Color Splash animation for keyfx.

Every key press drops a splash of color that spreads out as a ring from
the pressed key and fades away. Time is absolute: each frame command
carries the seconds elapsed since the previous one.

    color_splash.py --ckb-info    describe the animation
    color_splash.py --ckb-run     run it over stdin/stdout
"""

import math
import sys
from urllib.parse import quote, unquote

INFO = [
    "guid {b7f3c2a0-81d4-4e55-a2c6-0d9e4f6b7c22}",
    "name " + quote("Color Splash"),
    "version 1.0",
    "year 2024",
    "author " + quote("Go-Kart Team"),
    "license GPLv2",
    "description " + quote("Splashes of color ripple out from every key you press."),
    "kpmode position",
    "time absolute",
    "repeat off",
    "parammode live",
    "param argb color " + quote("Splash color:") + " %20 ff00a0ff",
    "param double speed " + quote("Speed:") + " " + quote(" keys/s") + " 12 1 100",
    "param double decay " + quote("Fade time:") + " s 0.6 0.1 5",
]


def print_info():
    for line in INFO:
        print(line)


class Splash:
    def __init__(self, x, y):
        self.x = x
        self.y = y
        self.age = 0.0


def splash_colors(keys, splashes, color, speed, decay):
    """Mapping of key name to ARGB value for the active splashes."""
    base = color & 0xffffff
    base_alpha = (color >> 24) & 0xff
    colors = {}
    for key, (x, y) in keys.items():
        strength = 0.0
        for splash in splashes:
            radius = splash.age * speed
            distance = math.hypot(x - splash.x, y - splash.y)
            ring = max(0.0, 1.0 - abs(distance - radius) / 2.0)
            fade = max(0.0, 1.0 - splash.age / decay)
            strength = max(strength, ring * fade)
        colors[key] = (int(base_alpha * strength) << 24) | base
    return colors


def run():
    keys = {}
    params = {}
    splashes = []
    running = False
    for line in sys.stdin:
        words = line.strip().split(' ')
        if words[0] == 'key' and len(words) == 3:
            if not running:
                x, y = words[2].split(',')
                keys[words[1]] = (int(x), int(y))
            elif words[2] == 'down':
                x, y = words[1].split(',')
                splashes.append(Splash(int(x), int(y)))
        elif words[0] == 'param' and len(words) == 3:
            params[words[1]] = unquote(words[2])
        elif words == ['begin', 'run']:
            running = True
        elif words[0] == 'frame' and len(words) == 2 and running:
            decay = float(params.get('decay') or 0.6)
            for splash in splashes:
                splash.age += float(words[1])
            splashes = [splash for splash in splashes if splash.age < decay]
            colors = splash_colors(keys, splashes,
                                   int(params.get('color') or 'ff00a0ff', 16),
                                   float(params.get('speed') or 12),
                                   decay)
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
