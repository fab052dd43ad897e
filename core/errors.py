"""Error taxonomy for the zone geometry engine.

Zone-level errors (``DegeneratePolygon``, ``InvalidAnchorIndex``,
``ZeroScaleDimension``) are caught per zone and never abort a batch.
``NoFaceDetected`` is the only failure surfaced to callers as a single
"detection unavailable" status.
"""


class ZoneGeometryError(Exception):
    """Base class for every engine failure."""


class NoFaceDetected(ZoneGeometryError):
    """No usable landmarks this frame; callers keep the prior snapshot."""


class StaleSnapshot(NoFaceDetected):
    """No landmark snapshot has been taken yet; the detector is still warming up."""


class DegeneratePolygon(ZoneGeometryError):
    def __init__(self, target: str, count: int):
        super().__init__(f"polygon '{target}' has {count} points, needs >= 3")
        self.target = target
        self.count = count


class InvalidAnchorIndex(ZoneGeometryError):
    def __init__(self, zone_id: str, index: int, topology_size: int):
        super().__init__(
            f"zone '{zone_id}' anchors landmark {index} outside topology of {topology_size}"
        )
        self.zone_id = zone_id
        self.index = index
        self.topology_size = topology_size


class ZeroScaleDimension(ZoneGeometryError):
    """A reference bounding box collapsed to zero width or height."""


class PersistenceError(ZoneGeometryError):
    """A repository write failed; in-memory geometry stays applied."""
