#!/usr/bin/env python3
"""
Merge administrative API metadata into the province boundary GeoJSON.

Boundary features carry the GeoJSON province code (ma_tinh) while the API
metadata is keyed by its own code (mahc). Matched features get the API's
area, population and merger details; density is recomputed from them.

Usage: python3 merge_metadata.py [boundaries_geojson] [metadata_json] [output_geojson]
"""

import json
import math
import os
import sys
from typing import Dict, Any, List, Tuple

import geojson

from preprocess_geojson import GeoJSONInputError, load_feature_collection

GEOJSON_FILE = "data/vietnam-provinces.geojson"
METADATA_FILE = "data/provinces-metadata.json"
OUTPUT_FILE = "data/vietnam-provinces-merged.geojson"

# GeoJSON ma_tinh -> API mahc, after the 2025 reorganization into 34 units
GEOJSON_TO_MAHC = {
    '01': 1,   # Hà Nội
    '04': 7,   # Cao Bằng
    '08': 8,   # Tuyên Quang (merged with Hà Giang)
    '11': 13,  # Điện Biên
    '12': 14,  # Lai Châu
    '14': 15,  # Sơn La
    '15': 9,   # Lào Cai (merged with Yên Bái)
    '19': 10,  # Thái Nguyên (merged with Bắc Kạn)
    '20': 11,  # Lạng Sơn
    '22': 3,   # Quảng Ninh
    '24': 2,   # Bắc Ninh (merged with Bắc Giang)
    '25': 12,  # Phú Thọ (merged with Vĩnh Phúc, Hòa Bình)
    '31': 4,   # Hải Phòng (merged with Hải Dương)
    '33': 5,   # Hưng Yên (merged with Thái Bình)
    '37': 6,   # Ninh Bình (merged with Hà Nam, Nam Định)
    '38': 16,  # Thanh Hóa
    '40': 17,  # Nghệ An
    '42': 18,  # Hà Tĩnh
    '44': 19,  # Quảng Trị (merged with Quảng Bình)
    '46': 20,  # Huế
    '48': 21,  # Đà Nẵng (merged with Quảng Nam)
    '51': 22,  # Quảng Ngãi (merged with Kon Tum)
    '52': 24,  # Gia Lai (merged with Bình Định)
    '56': 23,  # Khánh Hòa (merged with Ninh Thuận)
    '66': 25,  # Đắk Lắk (merged with Phú Yên)
    '68': 26,  # Lâm Đồng (merged with Đắk Nông, Bình Thuận)
    '75': 28,  # Đồng Nai (merged with Bình Phước)
    '79': 29,  # TP.HCM (merged with Bà Rịa-Vũng Tàu, Bình Dương)
    '80': 27,  # Tây Ninh (merged with Long An)
    '82': 31,  # Đồng Tháp (merged with Tiền Giang)
    '86': 30,  # Vĩnh Long (merged with Bến Tre, Trà Vinh)
    '91': 32,  # An Giang (merged with Kiên Giang)
    '92': 33,  # Cần Thơ (merged with Sóc Trăng, Hậu Giang)
    '96': 34,  # Cà Mau (merged with Bạc Liêu)
}


def load_metadata(filepath: str) -> List[Dict[str, Any]]:
    """Load the list of province metadata records fetched from the API."""
    if not os.path.exists(filepath):
        raise GeoJSONInputError(f"Metadata file not found: {filepath}")

    try:
        with open(filepath, 'r', encoding='utf-8') as f:
            metadata = json.load(f)
    except (ValueError, UnicodeDecodeError) as e:
        raise GeoJSONInputError(f"Could not parse {filepath}: {e}") from e

    if not isinstance(metadata, list):
        raise GeoJSONInputError(f"{filepath} does not contain a list of provinces")

    return metadata


def apply_metadata(properties: Dict[str, Any], mahc: int, meta: Dict[str, Any]):
    """Copy API metadata onto a feature's properties in place."""
    properties['mahc'] = mahc
    properties['admin_center'] = meta.get('adminCenter')
    properties['before_merger'] = meta.get('beforeMerger')
    properties['admin_units'] = meta.get('adminUnits')
    properties['is_merged'] = meta.get('isMerged')
    properties['api_longitude'] = meta.get('longitude')
    properties['api_latitude'] = meta.get('latitude')

    area = meta.get('area') or 0
    population = meta.get('population') or 0

    if area > 0:
        properties['dtich_km2'] = area
    if population > 0:
        properties['dan_so'] = population
        if (properties.get('dtich_km2') or 0) > 0:
            properties['matdo_km2'] = math.floor(population / properties['dtich_km2'] + 0.5)


def merge_province_metadata(features: List[Dict[str, Any]],
                            metadata: List[Dict[str, Any]]) -> Tuple[int, int]:
    """
    Enrich province features with API metadata.

    Returns:
        (matched, unmatched) feature counts
    """
    metadata_by_mahc = {meta.get('mahc'): meta for meta in metadata}
    matched = 0
    unmatched = 0

    for feature in features:
        properties = feature.get('properties') or {}
        province_code = properties.get('ma_tinh')
        mahc = GEOJSON_TO_MAHC.get(province_code)

        if mahc is None:
            print(f"  Warning: no mapping for province {province_code} ({properties.get('ten_tinh')})")
            unmatched += 1
            continue

        meta = metadata_by_mahc.get(mahc)
        if meta is None:
            print(f"  Warning: no metadata for mahc {mahc} (province {province_code})")
            unmatched += 1
            continue

        apply_metadata(properties, mahc, meta)
        print(f"  ✓ {properties.get('ten_tinh')} -> mahc {mahc} ({meta.get('name')})")
        matched += 1

    return matched, unmatched


def merge_metadata(geojson_file: str, metadata_file: str, output_file: str) -> Tuple[int, int]:
    print("Loading GeoJSON...")
    data = load_feature_collection(geojson_file)
    features = data.get('features', [])
    print(f"Loaded {len(features)} features from GeoJSON")

    print("\nLoading metadata...")
    metadata = load_metadata(metadata_file)
    print(f"Loaded {len(metadata)} provinces from metadata")

    print("\nMerging data...")
    matched, unmatched = merge_province_metadata(features, metadata)

    print("\nSaving merged GeoJSON...")
    output_dir = os.path.dirname(output_file)
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)
    with open(output_file, 'w', encoding='utf-8') as f:
        geojson.dump(data, f, ensure_ascii=False)

    print("\n=== Summary ===")
    print(f"Features matched: {matched}")
    print(f"Features unmatched: {unmatched}")
    print(f"Output: {output_file}")

    return matched, unmatched


if __name__ == "__main__":
    geojson_file = sys.argv[1] if len(sys.argv) > 1 else GEOJSON_FILE
    metadata_file = sys.argv[2] if len(sys.argv) > 2 else METADATA_FILE
    output_file = sys.argv[3] if len(sys.argv) > 3 else OUTPUT_FILE

    try:
        merge_metadata(geojson_file, metadata_file, output_file)
    except GeoJSONInputError as e:
        print(f"Error: {e}")
        sys.exit(1)
