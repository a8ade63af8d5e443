"""
Film filter profiles and the static filter catalog.

A profile is an ordered chain of named adjustments written the way the
editor displays them, e.g. ``"sepia(0.3) contrast(1.1) hue-rotate(-5deg)"``.
"""

import re
from dataclasses import dataclass

SUPPORTED_OPERATIONS = ("sepia", "grayscale", "saturate", "contrast", "brightness", "hue-rotate")

NONE_FILTER_ID = "none"

# Manual adjustment slider ranges
ADJUSTMENT_RANGES = {
    "brightness": (0.5, 1.5),
    "contrast": (0.5, 1.5),
    "saturation": (0.0, 2.0),
}

_OPERATION_PATTERN = re.compile(r"([a-z-]+)\(\s*(-?\d+(?:\.\d+)?)\s*(deg|%)?\s*\)")


@dataclass(frozen=True)
class FilterOperation:
    """A single named adjustment with its numeric parameter.

    ``hue-rotate`` takes degrees; every other operation takes an amount
    where 1.0 means "full effect" (sepia, grayscale) or "unchanged"
    (saturate, contrast, brightness).
    """

    name: str
    value: float

    def __post_init__(self) -> None:
        if self.name not in SUPPORTED_OPERATIONS:
            raise ValueError(f"Unsupported filter operation: {self.name}")
        if self.name != "hue-rotate" and self.value < 0:
            raise ValueError(f"Negative amount for {self.name}: {self.value}")

    def to_css(self) -> str:
        if self.name == "hue-rotate":
            return f"hue-rotate({self.value:g}deg)"
        return f"{self.name}({self.value:g})"


def parse_effect(effect: str) -> tuple[FilterOperation, ...]:
    """
    Parse a CSS-style effect string into an ordered operation chain.

    Percent amounts are converted to fractions (``sepia(30%)`` == ``sepia(0.3)``).

    Raises:
        ValueError: If the string contains anything other than supported operations
    """
    operations = []
    position = 0
    text = effect.strip()
    for match in _OPERATION_PATTERN.finditer(text):
        if text[position : match.start()].strip():
            raise ValueError(f"Cannot parse filter effect near: {text[position:match.start()]!r}")
        name, raw_value, unit = match.groups()
        value = float(raw_value)
        if unit == "%":
            value /= 100.0
        operations.append(FilterOperation(name=name, value=value))
        position = match.end()
    if text[position:].strip():
        raise ValueError(f"Cannot parse filter effect near: {text[position:]!r}")
    return tuple(operations)


@dataclass(frozen=True)
class FilterProfile:
    """Immutable named filter referenced from photo records by ``id``."""

    id: str
    name: str
    operations: tuple[FilterOperation, ...] = ()

    @classmethod
    def from_effect(cls, profile_id: str, name: str, effect: str) -> "FilterProfile":
        return cls(id=profile_id, name=name, operations=parse_effect(effect))

    @property
    def effect(self) -> str:
        return " ".join(operation.to_css() for operation in self.operations)

    def is_identity(self) -> bool:
        return not self.operations


_CATALOG_DEFINITIONS = [
    ("none", "Original", ""),
    ("polaroid", "Polaroid Classic", "contrast(1.1) brightness(1.1) saturate(0.9) sepia(0.1)"),
    ("kodak_gold", "Kodak Gold", "saturate(1.3) brightness(1.05) contrast(1.1) hue-rotate(-5deg)"),
    ("fuji_velvia", "Fuji Velvia", "saturate(1.6) contrast(1.2) brightness(1.02)"),
    ("vintage_sepia", "Vintage Sepia", "sepia(0.6) contrast(1.1) brightness(1.05)"),
    ("bw_film", "Black & White Film", "grayscale(1) contrast(1.2) brightness(1.05)"),
    ("lomography", "Lomography", "saturate(1.5) contrast(1.3) brightness(0.95) hue-rotate(5deg)"),
    ("retro_warm", "Retro Warm", "sepia(0.3) saturate(1.2) brightness(1.08) contrast(1.1)"),
    ("cool_film", "Cool Film", "saturate(0.9) brightness(1.05) contrast(1.15) hue-rotate(10deg)"),
    ("high_contrast", "High Contrast", "contrast(1.4) saturate(1.1) brightness(0.98)"),
    ("vintage_warm", "Vintage Warm", "sepia(0.3) contrast(1.1) brightness(1.05)"),
    ("classic_bw", "Classic B&W", "grayscale(1) contrast(1.2)"),
    ("faded_film", "Faded Film", "contrast(0.85) brightness(1.1) saturate(0.7)"),
    ("golden_hour", "Golden Hour", "sepia(0.2) saturate(1.3) brightness(1.1)"),
    ("kodachrome", "Kodachrome", "saturate(1.5) contrast(1.2) hue-rotate(-5deg)"),
    ("cinestill", "Cinestill", "saturate(1.2) contrast(1.15) brightness(1.05) hue-rotate(5deg)"),
    ("cross_process", "Cross Process", "saturate(1.4) contrast(1.3) hue-rotate(10deg)"),
    ("bleach_bypass", "Bleach Bypass", "saturate(0.7) contrast(1.4)"),
    ("push_process", "Push Process", "contrast(1.3) brightness(0.95) saturate(1.1)"),
    ("velvia", "Velvia", "saturate(1.6) contrast(1.2)"),
]

FILTER_CATALOG: dict[str, FilterProfile] = {
    profile_id: FilterProfile.from_effect(profile_id, name, effect) for profile_id, name, effect in _CATALOG_DEFINITIONS
}


def list_filter_profiles() -> list[FilterProfile]:
    """All catalog profiles in display order, starting with ``none``."""
    return list(FILTER_CATALOG.values())


def get_filter_profile(profile_id: str | None) -> FilterProfile:
    """
    Look up a catalog profile. ``None`` and empty ids mean ``none``.

    Raises:
        KeyError: If the id is not in the catalog
    """
    if not profile_id:
        return FILTER_CATALOG[NONE_FILTER_ID]
    return FILTER_CATALOG[profile_id]


def adjustment_profile(brightness: float = 1.0, contrast: float = 1.0, saturation: float = 1.0) -> FilterProfile:
    """
    Build an ad-hoc profile from the manual adjustment sliders.

    Neutral values (1.0) are left out so an untouched panel is the identity.

    Raises:
        ValueError: If a value is outside its slider range
    """
    for name, value in (("brightness", brightness), ("contrast", contrast), ("saturation", saturation)):
        low, high = ADJUSTMENT_RANGES[name]
        if not low <= value <= high:
            raise ValueError(f"{name} must be between {low} and {high}, got {value}")

    operations = []
    if brightness != 1.0:
        operations.append(FilterOperation("brightness", brightness))
    if contrast != 1.0:
        operations.append(FilterOperation("contrast", contrast))
    if saturation != 1.0:
        operations.append(FilterOperation("saturate", saturation))
    return FilterProfile(id="custom", name="Custom", operations=tuple(operations))
