"""
Catalog view logic: filter option sets, record matching, map-viewport
intersection and "load more" pagination.

Everything here works on normalized project dicts (see
`core.db.projects.normalize_project`) and has no I/O.
"""
from __future__ import annotations

import hashlib
import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional

from core.db.projects import has_coords
from core.filters import ProjectFilters

PAGE_SIZE = 30

FINNISH_REGIONS = (
    "Ahvenanmaa",
    "Etelä-Karjala",
    "Etelä-Pohjanmaa",
    "Etelä-Savo",
    "Kainuu",
    "Kanta-Häme",
    "Keski-Pohjanmaa",
    "Keski-Suomi",
    "Kymenlaakso",
    "Lappi",
    "Pirkanmaa",
    "Pohjanmaa",
    "Pohjois-Karjala",
    "Pohjois-Pohjanmaa",
    "Pohjois-Savo",
    "Päijät-Häme",
    "Satakunta",
    "Uusimaa",
    "Varsinais-Suomi",
)

SEARCHABLE_FIELDS = (
    "name",
    "region",
    "city",
    "phase",
    "location",
    "developer",
    "builder",
    "property_type",
    "additional_info",
)

# Finnish alphabet puts å, ä, ö after z.
_FI_COLLATION = str.maketrans({"å": "{", "ä": "|", "ö": "}"})


def fi_sort_key(value: str):
    folded = value.casefold()
    return (folded.translate(_FI_COLLATION), value)


def uniq_sorted(values: Iterable[Optional[str]]) -> List[str]:
    cleaned = {(v or "").strip() for v in values}
    cleaned.discard("")
    return sorted(cleaned, key=fi_sort_key)


@dataclass(frozen=True)
class FilterOptions:
    regions: List[str]
    cities: List[str]
    phases: List[str]
    property_types: List[str]


def filter_options(projects: List[Dict], region: Optional[str] = None) -> FilterOptions:
    """Option sets from the loaded data; cities follow the selected region."""
    city_base = [p for p in projects if (p.get("region") or "") == region] if region else projects
    return FilterOptions(
        regions=uniq_sorted(p.get("region") for p in projects),
        cities=uniq_sorted(p.get("city") for p in city_base),
        phases=uniq_sorted(p.get("phase") for p in projects),
        property_types=uniq_sorted(p.get("property_type") for p in projects),
    )


def reconcile_filters(filters: ProjectFilters, options: FilterOptions) -> ProjectFilters:
    """Drop a selected city that the selected region no longer offers."""
    if filters.city and filters.city not in options.cities:
        return filters.without_city()
    return filters


def searchable_text(project: Dict) -> str:
    return " ".join(str(project.get(name) or "") for name in SEARCHABLE_FIELDS).lower()


def project_matches(project: Dict, filters: ProjectFilters) -> bool:
    if filters.region and (project.get("region") or "") != filters.region:
        return False
    if filters.city and project.get("city") != filters.city:
        return False
    if filters.phase and project.get("phase") != filters.phase:
        return False
    if filters.property_type and (project.get("property_type") or "") != filters.property_type:
        return False

    needle = (filters.q or "").strip().lower()
    if not needle:
        return True
    return needle in searchable_text(project)


@dataclass(frozen=True)
class MapBounds:
    south: float
    west: float
    north: float
    east: float

    def contains(self, lat: float, lng: float) -> bool:
        return self.south <= lat <= self.north and self.west <= lng <= self.east

    @classmethod
    def from_params(cls, params: Mapping[str, str]) -> Optional["MapBounds"]:
        """All four edges or nothing; unparsable, non-finite or inverted values mean no viewport."""
        try:
            south, west, north, east = (float(params[k]) for k in ("south", "west", "north", "east"))
        except (KeyError, TypeError, ValueError):
            return None
        if not all(math.isfinite(v) for v in (south, west, north, east)):
            return None
        if south > north or west > east:
            return None
        return cls(south=south, west=west, north=north, east=east)

    def to_params(self) -> Dict[str, str]:
        return {
            "south": f"{self.south:.5f}",
            "west": f"{self.west:.5f}",
            "north": f"{self.north:.5f}",
            "east": f"{self.east:.5f}",
        }


def view_state_key(filters: ProjectFilters, bounds: Optional[MapBounds], limit_to_map: bool) -> str:
    """Fingerprint of everything that resets pagination when it changes."""
    parts = [filters.to_json(), "1" if limit_to_map else "0"]
    if bounds is not None:
        parts.append(",".join(bounds.to_params().values()))
    return hashlib.sha1("|".join(parts).encode("utf-8")).hexdigest()[:12]


def resolve_shown(requested: Optional[str], requested_key: Optional[str], current_key: str) -> int:
    """
    Number of list rows to reveal. Starts at one batch; grows only when the
    load-more link was issued for the very same view state.
    """
    if not requested or requested_key != current_key:
        return PAGE_SIZE
    try:
        shown = int(requested)
    except ValueError:
        return PAGE_SIZE
    return max(PAGE_SIZE, shown)


@dataclass
class CatalogView:
    filtered: List[Dict]
    with_coords: List[Dict]
    no_coords: List[Dict]
    in_bounds: List[Dict]
    listed: List[Dict]
    visible: List[Dict]
    shown: int
    state_key: str
    limit_to_map: bool
    bounds: Optional[MapBounds] = None
    options: Optional[FilterOptions] = None
    filters: ProjectFilters = field(default_factory=ProjectFilters)

    @property
    def map_count(self) -> int:
        return len(self.in_bounds) if self.limit_to_map else len(self.with_coords)

    @property
    def has_more(self) -> bool:
        return len(self.listed) > self.shown

    @property
    def next_shown(self) -> int:
        return self.shown + PAGE_SIZE


def build_catalog(
    projects: List[Dict],
    filters: ProjectFilters,
    *,
    bounds: Optional[MapBounds] = None,
    limit_to_map: bool = True,
    shown: Optional[str] = None,
    shown_key: Optional[str] = None,
) -> CatalogView:
    options = filter_options(projects, filters.region)
    filters = reconcile_filters(filters, options)

    filtered = [p for p in projects if project_matches(p, filters)]
    with_coords = [p for p in filtered if has_coords(p)]
    no_coords = [p for p in filtered if not has_coords(p)]

    if limit_to_map and bounds is not None:
        in_bounds = [p for p in with_coords if bounds.contains(p["latitude"], p["longitude"])]
    else:
        in_bounds = with_coords

    # Records without coordinates are never hidden by the viewport.
    listed = in_bounds + no_coords if limit_to_map else filtered

    key = view_state_key(filters, bounds, limit_to_map)
    count = resolve_shown(shown, shown_key, key)

    return CatalogView(
        filtered=filtered,
        with_coords=with_coords,
        no_coords=no_coords,
        in_bounds=in_bounds,
        listed=listed,
        visible=listed[:count],
        shown=count,
        state_key=key,
        limit_to_map=limit_to_map,
        bounds=bounds,
        options=options,
        filters=filters,
    )


__all__ = [
    "PAGE_SIZE",
    "FINNISH_REGIONS",
    "SEARCHABLE_FIELDS",
    "fi_sort_key",
    "uniq_sorted",
    "FilterOptions",
    "filter_options",
    "reconcile_filters",
    "searchable_text",
    "project_matches",
    "MapBounds",
    "view_state_key",
    "resolve_shown",
    "CatalogView",
    "build_catalog",
]
