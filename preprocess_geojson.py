#!/usr/bin/env python3
"""
Shared geometry helpers for the Vietnam boundary preprocessing scripts.

Raw administrative GeoJSON is far too heavy for the browser map, so every
feature goes through the same steps before it is written out:

- Douglas-Peucker simplification of each polygon ring (tolerance in degrees)
- Rounding of the surviving coordinates to a fixed number of decimals
- A label centre computed as the mean of all output vertices

The province and ward scripts (preprocess_provinces.py, preprocess_wards.py)
only differ in how they group and serialize the resulting regions.

REGION SCHEMA (one entry of provinces.json / wards/{provinceId}.json):

{
  "id": "01",
  "name": "Thành phố Hà Nội",
  "type": "Thành phố",
  "area": 3359.84,
  "population": 8587100,
  "density": 2556.0,
  "center": [105.7003, 21.0245],
  "polygons": [[[lon, lat], [lon, lat], ...], ...]
}
"""

import json
import math
import os
from typing import Dict, Any, Optional, List, Iterator

# Configuration - Edit these values as needed
# Tolerance is in decimal degrees: 0.001 ~ 100m, 0.005 ~ 500m, 0.01 ~ 1km
DATASETS = {
    "provinces": {
        "inputFile": "data/vietnam-provinces.geojson",
        "outputFile": "public/provinces.json",
        "simplificationTolerance": 0.008,  # ~800m, whole-country zoom
        "coordinatePrecision": 4,          # ~11m
        "centerPrecision": 4,
        "progressEvery": 10,
    },
    "wards": {
        "inputFile": "data/vietnam-wards.geojson",
        "outputDir": "public/wards",
        "simplificationTolerance": 0.0005,  # ~50m, wards are viewed up close
        "coordinatePrecision": 5,           # ~1.1m
        "centerPrecision": 5,
        "progressEvery": 1000,
    },
}

# GeoJSON property names for each administrative level
PROVINCE_FIELDS = {
    "id": "ma_tinh",
    "name": "ten_tinh",
    "type": "loai",
    "area": "dtich_km2",
    "population": "dan_so",
    "density": "matdo_km2",
}

WARD_FIELDS = {
    "id": "ma_xa",
    "name": "ten_xa",
    "type": "loai",
    "area": "dtich_km2",
    "population": "dan_so",
    "density": "matdo_km2",
    "provinceId": "ma_tinh",
    "provinceName": "ten_tinh",
}

POLYGON_TYPES = ('Polygon', 'MultiPolygon')

# Exceptions that mark a single feature as unusable without stopping the run
FEATURE_ERRORS = (TypeError, ValueError, KeyError, IndexError, AttributeError, ArithmeticError)


class GeoJSONInputError(Exception):
    """Raised when an input file is missing or is not a usable FeatureCollection."""


def load_feature_collection(filepath: str) -> Dict[str, Any]:
    """
    Load a whole GeoJSON FeatureCollection into memory.

    Args:
        filepath: Path to the GeoJSON file

    Returns:
        The parsed FeatureCollection

    Raises:
        GeoJSONInputError: if the file is missing, unparseable or not a FeatureCollection
    """
    if not os.path.exists(filepath):
        raise GeoJSONInputError(f"File not found: {filepath}")

    # Plain json keeps coordinates at full precision; bad geometry is handled per feature
    try:
        with open(filepath, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (ValueError, UnicodeDecodeError) as e:
        raise GeoJSONInputError(f"Could not parse {filepath}: {e}") from e

    if not isinstance(data, dict) or data.get('type') != 'FeatureCollection':
        raise GeoJSONInputError(f"{filepath} is not a FeatureCollection")

    return data


def write_compact_json(data: Any, output_file: str) -> int:
    """
    Serialize data without any whitespace and write it in one go.

    Returns:
        Size of the written file in bytes
    """
    json_str = json.dumps(data, separators=(',', ':'), ensure_ascii=False)
    encoded = json_str.encode('utf-8')

    with open(output_file, 'wb') as f:
        f.write(encoded)

    return len(encoded)


def perpendicular_distance(point: List[float], line_start: List[float], line_end: List[float]) -> float:
    """
    Calculate the distance from a point to the infinite line through two anchors.

    The projection parameter is not clamped to the segment, so points beyond
    either anchor are measured against the extended line.

    Args:
        point: [lon, lat] coordinate
        line_start: [lon, lat] first anchor
        line_end: [lon, lat] second anchor

    Returns:
        Distance in degrees
    """
    x, y = point[0], point[1]
    x1, y1 = line_start[0], line_start[1]
    dx = line_end[0] - x1
    dy = line_end[1] - y1

    # Closed rings start and end on the same point
    if dx == 0 and dy == 0:
        return math.sqrt((x - x1) ** 2 + (y - y1) ** 2)

    t = ((x - x1) * dx + (y - y1) * dy) / (dx * dx + dy * dy)
    nearest_x = x1 + t * dx
    nearest_y = y1 + t * dy

    return math.sqrt((x - nearest_x) ** 2 + (y - nearest_y) ** 2)


def douglas_peucker(points: List[List[float]], tolerance: float) -> List[List[float]]:
    """
    Douglas-Peucker line simplification algorithm.

    Works on an explicit stack of (start, end) index ranges instead of
    recursing, so very long rings cannot exhaust the recursion limit. The
    result is the same as the recursive form that joins left[:-1] + right.

    Args:
        points: List of [lon, lat] coordinate pairs
        tolerance: Maximum perpendicular distance for point removal

    Returns:
        Simplified list of coordinate pairs
    """
    if len(points) <= 2:
        return points

    keep = [False] * len(points)
    keep[0] = keep[-1] = True
    stack = [(0, len(points) - 1)]

    while stack:
        start, end = stack.pop()
        if end - start < 2:
            continue

        # Find the point with maximum distance from the anchor line
        max_distance = 0
        max_index = start
        for i in range(start + 1, end):
            distance = perpendicular_distance(points[i], points[start], points[end])
            if distance > max_distance:
                max_distance = distance
                max_index = i

        if max_distance > tolerance and max_index > start:
            keep[max_index] = True
            stack.append((start, max_index))
            stack.append((max_index, end))

    return [point for point, kept in zip(points, keep) if kept]


def simplify_ring(ring: List[List[float]], tolerance: float) -> List[List[float]]:
    """
    Simplify a polygon ring, falling back to the raw ring when it degenerates.

    If simplification leaves fewer than 4 points, the first (at most 10)
    points of the original ring are returned instead.
    """
    simplified = douglas_peucker(ring, tolerance)

    if len(simplified) < 4:
        return ring[:min(len(ring), 10)]

    return simplified


def round_value(value: float, precision: int) -> float:
    """Round a number to `precision` decimal places."""
    factor = 10 ** precision
    # Halves round up, like Math.round in the map front end
    return math.floor(value * factor + 0.5) / factor


def round_coordinate(point: List[float], precision: int = 4) -> List[float]:
    """Round a [lon, lat] pair to reduce output size."""
    return [round_value(point[0], precision), round_value(point[1], precision)]


def iter_rings(geometry: Dict[str, Any]) -> Iterator[List[List[float]]]:
    """Yield every ring of a Polygon or MultiPolygon; other types yield nothing."""
    geometry_type = geometry.get('type', '')
    coordinates = geometry.get('coordinates') or []

    if geometry_type == 'Polygon':
        yield from coordinates
    elif geometry_type == 'MultiPolygon':
        for polygon in coordinates:
            yield from polygon


def count_geometry_points(geometry: Optional[Dict[str, Any]]) -> int:
    """Count the raw vertices of a polygonal geometry."""
    if not geometry:
        return 0
    return sum(len(ring) for ring in iter_rings(geometry))


def process_feature(feature: Dict[str, Any], tolerance: float, precision: int = 4,
                    center_precision: Optional[int] = None,
                    fields: Dict[str, str] = PROVINCE_FIELDS) -> Optional[Dict[str, Any]]:
    """
    Simplify one boundary feature into a region record.

    Args:
        feature: GeoJSON Feature with a Polygon or MultiPolygon geometry
        tolerance: Douglas-Peucker tolerance in degrees
        precision: Decimal places kept for polygon vertices
        center_precision: Decimal places kept for the centre (defaults to precision)
        fields: Mapping from region keys to GeoJSON property names

    Returns:
        The region dict, or None when the feature has nothing drawable
    """
    properties = feature.get('properties')
    geometry = feature.get('geometry')

    if properties is None or not geometry:
        return None

    if center_precision is None:
        center_precision = precision

    polygons = []
    total_lon = 0.0
    total_lat = 0.0
    point_count = 0

    for ring in iter_rings(geometry):
        if len(ring) < 3:
            continue

        # Simplify on the original coordinates, round only the output
        rounded = [round_coordinate(coord, precision) for coord in simplify_ring(ring, tolerance)]
        polygons.append(rounded)

        for lon, lat in rounded:
            total_lon += lon
            total_lat += lat
            point_count += 1

    if not polygons:
        return None

    return {
        'id': properties.get(fields['id']),
        'name': properties.get(fields['name']),
        'type': properties.get(fields['type']),
        'area': round_value(properties.get(fields['area']) or 0, 2),
        'population': properties.get(fields['population']),
        'density': round_value(properties.get(fields['density']) or 0, 2),
        'center': [
            round_value(total_lon / point_count, center_precision),
            round_value(total_lat / point_count, center_precision),
        ],
        'polygons': polygons,
    }


def count_region_points(region: Dict[str, Any]) -> int:
    """Count the vertices kept in a simplified region."""
    return sum(len(polygon) for polygon in region['polygons'])


def new_stats() -> Dict[str, int]:
    """Create the counters an assembler run updates."""
    return {
        'total': 0,
        'processed': 0,
        'skipped': 0,
        'original_points': 0,
        'simplified_points': 0,
    }


def reduction_percent(stats: Dict[str, int]) -> float:
    """Share of input vertices removed by simplification, in percent."""
    if not stats['original_points']:
        return 0.0
    return (1 - stats['simplified_points'] / stats['original_points']) * 100


def print_progress(index: int, total: int, progress_every: int):
    if progress_every and (index + 1) % progress_every == 0:
        print(f"Processed {index + 1}/{total} features")


def print_summary(stats: Dict[str, int]):
    """Print the point reduction achieved by a run."""
    print("\nSimplification results:")
    print(f"  Features processed: {stats['processed']:,}/{stats['total']:,}")
    if stats['skipped']:
        print(f"  Features skipped: {stats['skipped']:,}")
    print(f"  Original points: {stats['original_points']:,}")
    print(f"  Simplified points: {stats['simplified_points']:,}")
    print(f"  Reduction: {reduction_percent(stats):.1f}%")


def format_size(size: int) -> str:
    if size >= 1024 * 1024:
        return f"{size / 1024 / 1024:.2f} MB"
    return f"{size / 1024:.2f} KB"
