"""
User-tunable settings for the Fill & Sign editor.
"""
import json
import logging
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Optional, Tuple, Union

from fillsign.utils.resource_loader import get_config_dir

logger = logging.getLogger(__name__)

SETTINGS_FILE = "settings.json"

RGB = Tuple[float, float, float]


def hex_to_rgb01(value: str) -> RGB:
    """
    Convert ``#RGB`` or ``#RRGGBB`` into an RGB triple with channels in 0-1.

    Args:
        value: Hex colour string, leading ``#`` optional

    Returns:
        Tuple of (r, g, b) floats

    Raises:
        ValueError: If the string is not a valid hex colour
    """
    h = value.strip().lstrip("#")
    if len(h) == 3:
        h = "".join(c + c for c in h)
    if len(h) != 6:
        raise ValueError(f"Invalid colour: {value!r}")
    try:
        r, g, b = (int(h[i:i + 2], 16) for i in (0, 2, 4))
    except ValueError:
        raise ValueError(f"Invalid colour: {value!r}") from None
    return r / 255.0, g / 255.0, b / 255.0


def rgb01_to_hex(color: RGB) -> str:
    """Inverse of :func:`hex_to_rgb01`."""
    return "#" + "".join(f"{round(max(0.0, min(1.0, c)) * 255):02X}" for c in color)


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


@dataclass
class Settings:
    """Editor defaults and limits."""

    # Text annotations
    text_size_pt: float = 14.0
    text_size_min_pt: float = 8.0
    text_size_max_pt: float = 48.0
    text_color: str = "#1111FF"
    default_text: str = "Text"
    text_line_height: float = 1.2
    editor_font_family: str = "Helvetica"

    # Stamps
    stamp_width_pt: float = 180.0
    stamp_width_min_pt: float = 60.0
    stamp_width_max_pt: float = 600.0

    # View
    zoom_min: float = 0.5
    zoom_max: float = 3.0
    zoom_step: float = 0.1
    min_view_width_px: int = 320

    # Signature pad
    pad_width_px: int = 290
    pad_height_px: int = 140
    pad_stroke_width: float = 2.0

    # Typed signatures
    typed_font_family: str = "SignatureFont"
    typed_font_file: Optional[str] = None
    typed_size_px: int = 72
    typed_size_min_px: int = 24
    typed_size_max_px: int = 200
    typed_slant_deg: float = 0.0
    typed_slant_limit_deg: float = 25.0
    typed_padding_px: int = 12

    # Export
    output_name: str = "filled-signed.pdf"
    unicode_font_file: Optional[str] = None

    log_level: str = "INFO"

    def clamp_text_size(self, size_pt: float) -> float:
        return clamp(size_pt, self.text_size_min_pt, self.text_size_max_pt)

    def clamp_stamp_width(self, width_pt: float) -> float:
        return clamp(width_pt, self.stamp_width_min_pt, self.stamp_width_max_pt)

    def clamp_typed_size(self, size_px: int) -> int:
        return int(clamp(size_px, self.typed_size_min_px, self.typed_size_max_px))

    def clamp_slant(self, slant_deg: float) -> float:
        return clamp(slant_deg, -self.typed_slant_limit_deg, self.typed_slant_limit_deg)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "Settings":
        """Build settings from a dict, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            logger.warning("Ignoring unknown settings: %s", ", ".join(sorted(unknown)))
        settings = cls(**{k: v for k, v in data.items() if k in known})
        # Reject bad colours early rather than at first use
        hex_to_rgb01(settings.text_color)
        return settings


def default_settings_path() -> Path:
    return get_config_dir() / SETTINGS_FILE


def load_settings(path: Optional[Union[str, Path]] = None) -> Settings:
    """
    Load settings from JSON, falling back to defaults.

    Args:
        path: Optional settings file; defaults to ``settings.json`` in the
            user config directory

    Returns:
        Loaded settings, or defaults when the file is missing or malformed
    """
    path = Path(path) if path is not None else default_settings_path()
    if not path.exists():
        return Settings()

    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError("settings root must be an object")
        return Settings.from_dict(data)
    except (OSError, ValueError, TypeError) as e:
        logger.error("Failed to load settings from %s: %s", path, e)
        return Settings()


def save_settings(settings: Settings, path: Optional[Union[str, Path]] = None) -> Path:
    """Write settings as JSON and return the path written."""
    path = Path(path) if path is not None else default_settings_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(settings.to_dict(), f, indent=2)
    return path
