"""Feature records stored in a SpatialMap."""

import uuid
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Mapping, Optional

from shapely.geometry.base import BaseGeometry

from spatial_map.core.geometry import Envelope, envelope_of

FeatureId = uuid.UUID


def new_feature_id() -> FeatureId:
    """Allocate a fresh, never-reused feature identifier."""
    return uuid.uuid4()


@dataclass(frozen=True)
class Feature:
    """
    A stored geometry with its cached envelope and caller-defined properties.

    Features are immutable; properties are exposed as a read-only mapping.
    """

    id: FeatureId
    geometry: BaseGeometry
    envelope: Envelope
    properties: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not isinstance(self.properties, MappingProxyType):
            object.__setattr__(self, "properties", MappingProxyType(dict(self.properties)))

    def __hash__(self) -> int:
        return hash(self.id)

    @classmethod
    def create(
        cls,
        geometry: BaseGeometry,
        properties: Optional[Mapping[str, Any]] = None,
    ) -> "Feature":
        """Create a new feature with a fresh id and computed envelope."""
        return cls(
            id=new_feature_id(),
            geometry=geometry,
            envelope=envelope_of(geometry),
            properties=properties or {},
        )

    def moved_to(self, geometry: BaseGeometry) -> "Feature":
        """Return a copy relocated to ``geometry``; properties are kept."""
        return replace(self, geometry=geometry, envelope=envelope_of(geometry))
