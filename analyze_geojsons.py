#!/usr/bin/env python3
"""
Report feature counts and sizes of raw GeoJSON inputs and generated map data.

Usage: python3 analyze_geojsons.py [directory]
"""

import os
import sys
import json
import gzip
from collections import Counter

import geojson


def analyze_geojson(filepath):
    with open(filepath, 'r', encoding='utf-8') as f:
        data = geojson.load(f)
    features = data.get('features', [])
    geom_types = Counter()
    for feat in features:
        geom = feat.get('geometry') or {}
        gtype = geom.get('type', 'Unknown')
        geom_types[gtype] += 1
    return {
        'feature_count': len(features),
        'geometry_types': dict(geom_types)
    }


def analyze_artifact(filepath):
    """Count regions and vertices in a provinces.json, ward file or ward index."""
    with open(filepath, 'r', encoding='utf-8') as f:
        data = json.load(f)

    if isinstance(data, list):
        # wards/index.json
        return {
            'region_count': sum(entry.get('wardCount', 0) for entry in data),
            'group_count': len(data),
            'point_count': 0,
        }

    regions = data.get('provinces') or data.get('wards') or []
    return {
        'region_count': len(regions),
        'group_count': 1,
        'point_count': sum(len(polygon) for region in regions for polygon in region.get('polygons', [])),
    }


def get_file_size(filepath):
    return os.path.getsize(filepath)


def get_gzipped_size(filepath):
    with open(filepath, 'rb') as f_in:
        gzipped = gzip.compress(f_in.read())
    return len(gzipped)


def main(directory):
    files = sorted(f for f in os.listdir(directory) if f.endswith(('.geojson', '.json')))
    print(f"Analyzing {len(files)} files in '{directory}':\n")
    for fname in files:
        path = os.path.join(directory, fname)
        print(f"{fname}")
        if fname.endswith('.geojson'):
            stats = analyze_geojson(path)
            print(f"  Features: {stats['feature_count']}")
            print(f"  Geometry types: {stats['geometry_types']}")
        else:
            stats = analyze_artifact(path)
            print(f"  Regions: {stats['region_count']}")
            if stats['point_count']:
                print(f"  Points: {stats['point_count']:,}")
        size = get_file_size(path)
        gzsize = get_gzipped_size(path)
        print(f"  Size: {size/1024:.1f} KB (uncompressed), {gzsize/1024:.1f} KB (gzipped)")
        print()


if __name__ == '__main__':
    main(sys.argv[1] if len(sys.argv) > 1 else 'public')
