#!/usr/bin/env python3
"""
Simplify Vietnam province boundaries into a single provinces.json for the map.

OUTPUT SCHEMA (minified, no whitespace):

{
  "bounds": {"minLon": n, "maxLon": n, "minLat": n, "maxLat": n,
             "centerLon": n, "centerLat": n},
  "provinces": [<region>, ...]    // same order as the input features
}

See preprocess_geojson.py for the region schema.

Usage: python3 preprocess_provinces.py [input_geojson] [output_json]
"""

import os
import sys
from typing import Dict, Any, Optional, List

from preprocess_geojson import (
    DATASETS,
    FEATURE_ERRORS,
    PROVINCE_FIELDS,
    GeoJSONInputError,
    count_geometry_points,
    count_region_points,
    format_size,
    load_feature_collection,
    new_stats,
    print_progress,
    print_summary,
    process_feature,
    round_value,
    write_compact_json,
)

CONFIG = DATASETS["provinces"]


def calculate_bounds(regions: List[Dict[str, Any]], precision: int = 4) -> Optional[Dict[str, float]]:
    """Calculate the bounding box and its midpoint over every region vertex."""
    min_lon, min_lat = float('inf'), float('inf')
    max_lon, max_lat = float('-inf'), float('-inf')

    for region in regions:
        for polygon in region['polygons']:
            for lon, lat in polygon:
                min_lon = min(min_lon, lon)
                max_lon = max(max_lon, lon)
                min_lat = min(min_lat, lat)
                max_lat = max(max_lat, lat)

    if min_lon == float('inf'):
        return None

    return {
        'minLon': round_value(min_lon, precision),
        'maxLon': round_value(max_lon, precision),
        'minLat': round_value(min_lat, precision),
        'maxLat': round_value(max_lat, precision),
        'centerLon': round_value((min_lon + max_lon) / 2, precision),
        'centerLat': round_value((min_lat + max_lat) / 2, precision),
    }


def assemble_provinces(features: List[Dict[str, Any]],
                       tolerance: float = CONFIG["simplificationTolerance"],
                       precision: int = CONFIG["coordinatePrecision"],
                       center_precision: Optional[int] = CONFIG["centerPrecision"],
                       stats: Optional[Dict[str, int]] = None,
                       progress_every: int = CONFIG["progressEvery"]) -> Dict[str, Any]:
    """
    Simplify every province feature and compute the country-wide bounds.

    Features that cannot be simplified are skipped and counted in `stats`;
    they never abort the run.
    """
    if stats is None:
        stats = new_stats()

    provinces = []
    total = len(features)
    stats['total'] += total

    for index, feature in enumerate(features):
        try:
            stats['original_points'] += count_geometry_points(feature.get('geometry'))
            region = process_feature(feature, tolerance, precision, center_precision, PROVINCE_FIELDS)
        except FEATURE_ERRORS as e:
            print(f"  Warning: failed to process feature {index}: {e}")
            region = None

        if region is None:
            stats['skipped'] += 1
        else:
            provinces.append(region)
            stats['processed'] += 1
            stats['simplified_points'] += count_region_points(region)

        print_progress(index, total, progress_every)

    return {
        'bounds': calculate_bounds(provinces, precision),
        'provinces': provinces,
    }


def write_provinces(dataset: Dict[str, Any], output_file: str) -> int:
    """Write provinces.json, creating its directory if needed."""
    output_dir = os.path.dirname(output_file)
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)
    return write_compact_json(dataset, output_file)


def preprocess_provinces(input_file: str, output_file: str) -> Dict[str, Any]:
    """Run the full province pipeline from raw GeoJSON to provinces.json."""
    print("Reading GeoJSON file...")
    geojson_data = load_feature_collection(input_file)
    features = geojson_data.get('features', [])
    print(f"Found {len(features)} features")

    tolerance = CONFIG["simplificationTolerance"]
    print(f"Simplifying with tolerance: {tolerance} degrees...")

    stats = new_stats()
    dataset = assemble_provinces(features, tolerance, stats=stats)
    print_summary(stats)

    print("\nGenerating JSON file...")
    json_size = write_provinces(dataset, output_file)
    original_size = os.path.getsize(input_file)

    print("\nFile sizes:")
    print(f"  Original GeoJSON: {format_size(original_size)}")
    print(f"  provinces.json: {format_size(json_size)} ({json_size:,} bytes)")
    if original_size:
        print(f"  Total reduction: {(1 - json_size / original_size) * 100:.1f}%")
    print(f"\nOutput file: {output_file}")

    return stats


if __name__ == "__main__":
    input_file = sys.argv[1] if len(sys.argv) > 1 else CONFIG["inputFile"]
    output_file = sys.argv[2] if len(sys.argv) > 2 else CONFIG["outputFile"]

    try:
        preprocess_provinces(input_file, output_file)
    except GeoJSONInputError as e:
        print(f"Error: {e}")
        sys.exit(1)
