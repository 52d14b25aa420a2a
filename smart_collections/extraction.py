# smart_collections/extraction.py
"""
Normalizes the raw EXIF-like metadata blob attached to each asset into the three
keys the grouping strategies work on: capture date, filename prefix and camera.

The blob is an untyped key/value bag. Rather than scattering null checks through
the grouping code, each field we care about is resolved once into a tagged
MetadataField (absent, malformed or present) and the fallback chains are applied
to those.
"""
from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional
import re
import logging

logger = logging.getLogger(__name__)

UNKNOWN_DATE = "Unknown Date"
UNKNOWN_CAMERA = "Unknown Camera"

_DATE_PATTERN = re.compile(r'^(\d{4}):(\d{2}):(\d{2})')
_PREFIX_PATTERN = re.compile(r'^[A-Za-z_-]+')


class FieldState(Enum):
    ABSENT = 'absent'
    MALFORMED = 'malformed'
    PRESENT = 'present'


@dataclass(frozen=True)
class MetadataField:
    state: FieldState
    value: Optional[str] = None

    @property
    def is_present(self) -> bool:
        return self.state is FieldState.PRESENT

    @property
    def is_absent(self) -> bool:
        return self.state is FieldState.ABSENT


_ABSENT = MetadataField(FieldState.ABSENT)


def _read_field(blob: Mapping[str, Any], key: str) -> MetadataField:
    raw = blob.get(key)
    if raw is None:
        return _ABSENT
    if not isinstance(raw, str):
        return MetadataField(FieldState.MALFORMED)
    value = raw.strip()
    if not value:
        return _ABSENT
    return MetadataField(FieldState.PRESENT, value)


def _read_date_field(blob: Mapping[str, Any], key: str) -> MetadataField:
    field = _read_field(blob, key)
    if not field.is_present:
        return field
    match = _DATE_PATTERN.match(field.value)
    if not match:
        return MetadataField(FieldState.MALFORMED)
    year, month, day = match.groups()
    return MetadataField(FieldState.PRESENT, f"{year}-{month}-{day}")


@dataclass(frozen=True)
class ExifMetadata:
    """The subset of an asset's metadata blob the strategies consume."""
    date_time_original: MetadataField = _ABSENT
    create_date: MetadataField = _ABSENT
    make: MetadataField = _ABSENT
    model: MetadataField = _ABSENT

    @classmethod
    def from_blob(cls, blob: Any) -> ExifMetadata:
        """Resolve a raw blob. Anything that is not a mapping counts as no metadata."""
        if not isinstance(blob, Mapping):
            if blob is not None:
                logger.debug(f"Ignoring non-mapping metadata blob of type {type(blob).__name__}")
            return cls()
        return cls(
            date_time_original=_read_date_field(blob, 'DateTimeOriginal'),
            create_date=_read_date_field(blob, 'CreateDate'),
            make=_read_field(blob, 'Make'),
            model=_read_field(blob, 'Model'),
        )

    @property
    def capture_date_key(self) -> str:
        # CreateDate is only consulted when DateTimeOriginal is missing entirely;
        # a malformed DateTimeOriginal still resolves to the sentinel.
        chosen = self.create_date if self.date_time_original.is_absent else self.date_time_original
        return chosen.value if chosen.is_present else UNKNOWN_DATE

    @property
    def camera_key(self) -> str:
        parts = [f.value for f in (self.make, self.model) if f.is_present]
        return ' '.join(parts) if parts else UNKNOWN_CAMERA


def extract_date_key(exif_data: Any) -> str:
    """Returns the `YYYY-MM-DD` capture date key, or UNKNOWN_DATE."""
    return ExifMetadata.from_blob(exif_data).capture_date_key


def extract_camera_key(exif_data: Any) -> str:
    """Returns `"<Make> <Model>"` with blank sides omitted, or UNKNOWN_CAMERA."""
    return ExifMetadata.from_blob(exif_data).camera_key


def extract_filename_prefix(filename: Any) -> Optional[str]:
    """
    Returns the lower-cased leading run of ASCII letters, '_' and '-' in the
    filename, or None if the name starts with anything else.
    """
    if not isinstance(filename, str):
        return None
    match = _PREFIX_PATTERN.match(filename)
    return match.group(0).lower() if match else None
