from dataclasses import asdict, dataclass

DIRECTIONS = ("center", "left", "right", "up", "down")


@dataclass
class CalibrationState:
    center: bool = False
    left: bool = False
    right: bool = False
    up: bool = False
    down: bool = False

    @property
    def complete(self) -> bool:
        return all(getattr(self, d) for d in DIRECTIONS)

    def pending(self) -> list[str]:
        return [d for d in DIRECTIONS if not getattr(self, d)]

    def to_dict(self) -> dict:
        return {**asdict(self), "complete": self.complete}
