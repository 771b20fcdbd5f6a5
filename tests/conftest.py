import json

import pytest


def make_feature(coordinates, geometry_type='Polygon', **properties):
    return {
        'type': 'Feature',
        'properties': properties,
        'geometry': {'type': geometry_type, 'coordinates': coordinates},
    }


def make_province(code, name, coordinates, geometry_type='Polygon'):
    return make_feature(coordinates, geometry_type, ma_tinh=code, ten_tinh=name, loai='Tỉnh',
                        dtich_km2=1234.5678, dan_so=100000, matdo_km2=81.0049)


def make_ward(code, province_code, coordinates, province_name=None):
    return make_feature(coordinates, ma_xa=code, ten_xa=f"Xã {code}", loai='Xã',
                        dtich_km2=12.3456, dan_so=5000, matdo_km2=405.0123,
                        ma_tinh=province_code, ten_tinh=province_name or f"Tỉnh {province_code}")


@pytest.fixture
def square_ring():
    return [[105.0, 21.0], [105.1, 21.0], [105.1, 21.1], [105.0, 21.1], [105.0, 21.0]]


@pytest.fixture
def write_geojson(tmp_path):
    def _write(features, name='input.geojson'):
        path = tmp_path / name
        path.write_text(json.dumps({'type': 'FeatureCollection', 'features': features}), encoding='utf-8')
        return str(path)
    return _write
