"""
Key position lookup used to lay out animations on a device.

The device layer owns the real key geometry; keyfx only needs to know
where each logical key sits on an integer grid.
"""

import json
import logging
from typing import Dict, Iterable, Iterator, NamedTuple, Optional, Tuple

# Configure logging
logger = logging.getLogger(__name__)


class KeyPos(NamedTuple):
    x: int
    y: int


class KeyMap:
    """Maps key identifiers to integer positions."""

    def __init__(self, positions: Optional[Dict[str, Tuple[int, int]]] = None):
        self._positions: Dict[str, KeyPos] = {}
        for key, (x, y) in (positions or {}).items():
            self._positions[key] = KeyPos(int(x), int(y))

    @classmethod
    def load(cls, path: str) -> 'KeyMap':
        """
        Load a key map from a JSON file of the form {"key": [x, y], ...}.

        Args:
            path: Path to the JSON file

        Returns:
            The loaded KeyMap (empty if the file can't be read)
        """
        try:
            with open(path, 'r') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.error(f"Error loading key map {path}: {e}")
            return cls()

        if not isinstance(data, dict):
            logger.warning(f"Invalid key map format: {path}")
            return cls()

        positions = {}
        for key, pos in data.items():
            if isinstance(pos, (list, tuple)) and len(pos) == 2:
                positions[key] = (pos[0], pos[1])
            else:
                logger.warning(f"Ignoring invalid position for key '{key}' in {path}")
        logger.info(f"Loaded key map with {len(positions)} keys from {path}")
        return cls(positions)

    def key(self, name: str) -> Optional[KeyPos]:
        """Position of a key, or None if the key is unknown."""
        return self._positions.get(name)

    def keys(self) -> Iterable[str]:
        return self._positions.keys()

    def to_dict(self) -> Dict[str, Tuple[int, int]]:
        return {key: (pos.x, pos.y) for key, pos in self._positions.items()}

    def __contains__(self, name: str) -> bool:
        return name in self._positions

    def __iter__(self) -> Iterator[str]:
        return iter(self._positions)

    def __len__(self) -> int:
        return len(self._positions)
