"""Per-channel intensity histogram of a pixel buffer."""

from dataclasses import dataclass

BINS = 256


@dataclass(frozen=True)
class Histogram:
    """
    Three 256-bin intensity counts (R, G, B).

    Derived from a pixel buffer and never persisted; recompute it whenever
    the analyzed image changes.
    """

    r: tuple[int, ...]
    g: tuple[int, ...]
    b: tuple[int, ...]

    def __post_init__(self) -> None:
        for name in ("r", "g", "b"):
            if len(getattr(self, name)) != BINS:
                raise ValueError(f"Channel '{name}' must have {BINS} bins")

    @classmethod
    def empty(cls) -> "Histogram":
        zeros = (0,) * BINS
        return cls(r=zeros, g=zeros, b=zeros)

    @property
    def max_count(self) -> int:
        """Largest bin across all three channels, used for vertical scaling."""
        return max(max(self.r), max(self.g), max(self.b))

    @property
    def total(self) -> int:
        """Number of pixels counted (every pixel lands in exactly one bin per channel)."""
        return sum(self.r)

    def is_empty(self) -> bool:
        return self.max_count == 0

    def channel(self, name: str) -> tuple[int, ...]:
        if name not in ("r", "g", "b"):
            raise ValueError(f"Unknown channel: {name}")
        return getattr(self, name)

    def polyline(self, channel: str, width: float, height: float) -> list[tuple[float, float]]:
        """
        Display coordinates of one channel curve in a ``width`` x ``height`` box.

        Counts are scaled by the shared maximum so the three curves are
        comparable. An empty histogram yields a flat line on the baseline.
        """
        counts = self.channel(channel)
        max_count = self.max_count
        points = []
        for i, count in enumerate(counts):
            x = (i / BINS) * width
            y = height if max_count == 0 else height - (count / max_count) * height
            points.append((x, y))
        return points

    def to_dict(self) -> dict[str, list[int]]:
        return {"r": list(self.r), "g": list(self.g), "b": list(self.b)}
