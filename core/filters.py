"""
The filter set shared by the catalog view and saved searches.

Saved searches persist this as JSON text. Rows are read back through
`ProjectFilters.from_raw`, which only keeps the known keys with string values,
so a hand-edited or legacy row can never smuggle other shapes into a query.
"""
from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, replace
from typing import Any, Dict, Mapping, Optional

log = logging.getLogger("filters")

FILTER_KEYS = ("q", "region", "city", "phase", "property_type")

_SUMMARY_LABELS = (
    ("q", "Haku"),
    ("region", "Maakunta"),
    ("city", "Kaupunki"),
    ("phase", "Vaihe"),
    ("property_type", "Kohdetyyppi"),
)
NO_FILTERS_LABEL = "Ei suodattimia"


def _clean(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


@dataclass(frozen=True)
class ProjectFilters:
    q: Optional[str] = None
    region: Optional[str] = None
    city: Optional[str] = None
    phase: Optional[str] = None
    property_type: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "ProjectFilters":
        if not data:
            return cls()
        return cls(**{key: _clean(data.get(key)) for key in FILTER_KEYS})

    @classmethod
    def from_raw(cls, raw: Any) -> "ProjectFilters":
        """Validate a stored value (JSON text, dict or None)."""
        if raw is None or raw == "":
            return cls()
        if isinstance(raw, (bytes, str)):
            try:
                raw = json.loads(raw)
            except ValueError:
                log.warning("Unreadable saved filters, treating as empty", extra={"raw": str(raw)[:200]})
                return cls()
        if not isinstance(raw, Mapping):
            log.warning("Saved filters are not an object, treating as empty", extra={"type": type(raw).__name__})
            return cls()
        return cls.from_mapping(raw)

    def to_dict(self) -> Dict[str, str]:
        """Only the keys that constrain anything."""
        return {key: value for key, value in asdict(self).items() if value}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, sort_keys=True)

    def is_empty(self) -> bool:
        return not self.to_dict()

    def without_city(self) -> "ProjectFilters":
        return replace(self, city=None)

    def summary(self) -> str:
        parts = [f"{label}: {getattr(self, key)}" for key, label in _SUMMARY_LABELS if getattr(self, key)]
        return " • ".join(parts) if parts else NO_FILTERS_LABEL


__all__ = ["FILTER_KEYS", "NO_FILTERS_LABEL", "ProjectFilters"]
