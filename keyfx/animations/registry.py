"""

This module provides the registry of installed animations.
It is responsible for:
- finding animation executables in the animations directory
- loading and validating their descriptors
- providing a sorted, uniquely named catalog
- creating sessions from registered animations

It is not responsible for:
- running animations (see session.py)
- deciding which keys an animation draws on

"""

import logging
import os
import uuid
from typing import Callable, Dict, List, Optional, Union

from .descriptor import DEFAULT_INFO_TIMEOUT, Descriptor, load_descriptor
from .session import AnimationSession, TransportFactory
from .transport import ProcessTransport

GuidLike = Union[str, uuid.UUID]


class AnimationRegistry:
    """Registry of animation descriptors keyed by guid"""

    def __init__(self, animation_dir: Optional[str] = None,
                 info_timeout: float = DEFAULT_INFO_TIMEOUT,
                 loader: Callable[[str, float], Optional[Descriptor]] = load_descriptor,
                 transport_factory: TransportFactory = ProcessTransport):
        self.logger = logging.getLogger(__name__)
        self.animation_dir = animation_dir or os.path.join(os.getcwd(), 'animations')
        self.info_timeout = info_timeout
        self.loader = loader
        self.transport_factory = transport_factory
        self.animations: Dict[uuid.UUID, Descriptor] = {}

    def _candidates(self) -> List[str]:
        """Executable regular files directly inside the animations directory"""
        if not os.path.isdir(self.animation_dir):
            self.logger.warning(f"Animation directory not found: {self.animation_dir}")
            return []
        candidates = []
        for name in sorted(os.listdir(self.animation_dir)):
            path = os.path.join(self.animation_dir, name)
            if os.path.isfile(path) and os.access(path, os.X_OK):
                candidates.append(path)
        return candidates

    def scan(self) -> int:
        """
        Rebuild the registry from the animations directory.

        Previously registered animations are always discarded first.

        Returns:
            Number of registered animations
        """
        self.animations = {}
        for path in self._candidates():
            descriptor = self.loader(path, self.info_timeout)
            if descriptor is None:
                continue
            if descriptor.guid in self.animations:
                self.logger.warning(f"Skipping {path}: guid {descriptor.guid_string} already registered "
                                    f"by {self.animations[descriptor.guid].path}")
                continue
            self.animations[descriptor.guid] = descriptor
            self.logger.info(f"Loaded animation: {descriptor.name} from {path}")
        self.logger.info(f"Registered {len(self.animations)} animations from {self.animation_dir}")
        return len(self.animations)

    def list(self) -> List[Descriptor]:
        """
        Registered animations sorted by name.

        Animations sharing a name are renamed to "<name> <GUID>" so every
        entry in the list is distinct.
        """
        by_name: Dict[str, List[Descriptor]] = {}
        for descriptor in self.animations.values():
            by_name.setdefault(descriptor.name, []).append(descriptor)
        for name, group in by_name.items():
            if len(group) < 2:
                continue
            for descriptor in group:
                descriptor.name = f"{name} {descriptor.guid_string}"
        return sorted(self.animations.values(), key=lambda d: d.name)

    @staticmethod
    def _key(guid: GuidLike) -> Optional[uuid.UUID]:
        if isinstance(guid, uuid.UUID):
            return guid
        try:
            return uuid.UUID(str(guid))
        except ValueError:
            return None

    def get(self, guid: GuidLike) -> Optional[Descriptor]:
        key = self._key(guid)
        return self.animations.get(key) if key else None

    def copy(self, guid: GuidLike) -> Optional[AnimationSession]:
        """
        Create a new, independent session for a registered animation.

        Args:
            guid: The animation's guid

        Returns:
            An uninitialized AnimationSession, or None if the guid is unknown
        """
        descriptor = self.get(guid)
        if descriptor is None:
            return None
        return AnimationSession(descriptor.copy(), self.transport_factory)

    def guids(self) -> List[uuid.UUID]:
        return list(self.animations)

    def __contains__(self, guid: GuidLike) -> bool:
        return self.get(guid) is not None

    def __len__(self) -> int:
        return len(self.animations)
