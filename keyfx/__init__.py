"""
keyfx - host for external key lighting animations.
"""

__version__ = '0.1.0'
