#!/usr/bin/env python3
"""
Group Vietnam ward boundaries by province and simplify them for the map.

Writes one minified file per province plus an index:

  wards/{provinceId}.json   {"provinceId": "01", "provinceName": "...", "wards": [<region>, ...]}
  wards/index.json          [{"id": "01", "name": "...", "wardCount": 126}, ...]

The index follows the order in which provinces first appear in the input,
not alphabetical order; the map loads provinces in that order.

Usage: python3 preprocess_wards.py [input_geojson] [output_directory]
"""

import os
import sys
from typing import Dict, Any, Optional, List

from preprocess_geojson import (
    DATASETS,
    FEATURE_ERRORS,
    WARD_FIELDS,
    GeoJSONInputError,
    count_geometry_points,
    count_region_points,
    format_size,
    load_feature_collection,
    new_stats,
    print_progress,
    print_summary,
    process_feature,
    write_compact_json,
)

CONFIG = DATASETS["wards"]


def assemble_wards(features: List[Dict[str, Any]],
                   tolerance: float = CONFIG["simplificationTolerance"],
                   precision: int = CONFIG["coordinatePrecision"],
                   center_precision: Optional[int] = CONFIG["centerPrecision"],
                   stats: Optional[Dict[str, int]] = None,
                   progress_every: int = CONFIG["progressEvery"]) -> Dict[str, Dict[str, Any]]:
    """
    Simplify ward features and group them by their province code.

    Args:
        features: GeoJSON ward features
        tolerance: Douglas-Peucker tolerance in degrees
        precision: Decimal places kept for vertices
        center_precision: Decimal places kept for ward centres
        stats: Counters to update (see preprocess_geojson.new_stats)
        progress_every: Print progress every N features (0 disables it)

    Returns:
        Province groups keyed by province code, in first-seen order
    """
    if stats is None:
        stats = new_stats()

    groups = {}
    total = len(features)
    stats['total'] += total

    for index, feature in enumerate(features):
        properties = {}
        province_id = None

        try:
            properties = feature.get('properties') or {}
            province_id = properties.get(WARD_FIELDS['provinceId'])
            stats['original_points'] += count_geometry_points(feature.get('geometry'))
            ward = process_feature(feature, tolerance, precision, center_precision, WARD_FIELDS)
        except FEATURE_ERRORS as e:
            print(f"  Warning: failed to process feature {index}: {e}")
            ward = None

        if ward is not None and province_id is None:
            print(f"  Warning: ward {ward['id']} ({ward['name']}) has no province code")
            ward = None

        if ward is not None and not is_safe_file_stem(province_id):
            print(f"  Warning: ward {ward['id']} has unusable province code {province_id!r}")
            ward = None

        if ward is None:
            stats['skipped'] += 1
        else:
            if province_id not in groups:
                groups[province_id] = {
                    'provinceId': province_id,
                    'provinceName': properties.get(WARD_FIELDS['provinceName']),
                    'wards': [],
                }
            groups[province_id]['wards'].append(ward)
            stats['processed'] += 1
            stats['simplified_points'] += count_region_points(ward)

        print_progress(index, total, progress_every)

    return groups


def is_safe_file_stem(code: Any) -> bool:
    """Whether a province code can be used as a file name inside the output directory."""
    name = str(code)
    return name == os.path.basename(name) and '\\' not in name and name not in ('', '.', '..')


def build_ward_index(groups: Dict[str, Dict[str, Any]]) -> List[Dict[str, Any]]:
    """List every province group with its ward count, keeping group order."""
    return [
        {
            'id': province_id,
            'name': group['provinceName'],
            'wardCount': len(group['wards']),
        }
        for province_id, group in groups.items()
    ]


def write_ward_files(groups: Dict[str, Dict[str, Any]], output_dir: str) -> int:
    """
    Write one JSON file per province group and the index file.

    Returns:
        Total bytes written across all files
    """
    for province_id in groups:
        if not is_safe_file_stem(province_id):
            raise ValueError(f"Province code {province_id!r} cannot be used as a file name")

    os.makedirs(output_dir, exist_ok=True)
    total_size = 0

    for province_id, group in groups.items():
        output_file = os.path.join(output_dir, f"{province_id}.json")
        file_size = write_compact_json(group, output_file)
        total_size += file_size
        print(f"  {province_id} ({group['provinceName']}): {len(group['wards'])} wards, {file_size / 1024:.1f} KB")

    index_file = os.path.join(output_dir, 'index.json')
    total_size += write_compact_json(build_ward_index(groups), index_file)

    return total_size


def preprocess_wards(input_file: str, output_dir: str) -> Dict[str, int]:
    """Run the full ward pipeline from raw GeoJSON to per-province files."""
    print("Reading ward GeoJSON file...")
    geojson_data = load_feature_collection(input_file)
    features = geojson_data.get('features', [])
    print(f"Found {len(features)} ward features")

    tolerance = CONFIG["simplificationTolerance"]
    print(f"Simplifying with tolerance: {tolerance} degrees...")

    stats = new_stats()
    groups = assemble_wards(features, tolerance, stats=stats)
    print_summary(stats)

    print(f"\nGenerating {len(groups)} province ward files...")
    total_output_size = write_ward_files(groups, output_dir)
    original_size = os.path.getsize(input_file)

    print("\nSummary:")
    print(f"  Provinces processed: {len(groups)}")
    print(f"  Total wards: {stats['processed']:,}")
    print(f"  Original file: {format_size(original_size)}")
    print(f"  Total output: {format_size(total_output_size)}")
    if original_size:
        print(f"  Size reduction: {(1 - total_output_size / original_size) * 100:.1f}%")
    print(f"\nOutput directory: {output_dir}")

    return stats


if __name__ == "__main__":
    input_file = sys.argv[1] if len(sys.argv) > 1 else CONFIG["inputFile"]
    output_dir = sys.argv[2] if len(sys.argv) > 2 else CONFIG["outputDir"]

    try:
        preprocess_wards(input_file, output_dir)
    except GeoJSONInputError as e:
        print(f"Error: {e}")
        sys.exit(1)
