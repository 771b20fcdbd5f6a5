import json
import os
import runpy
import sys

import pytest

from conftest import make_ward
from preprocess_geojson import new_stats
from preprocess_wards import assemble_wards, build_ward_index, preprocess_wards, write_ward_files

RING = [[105.8, 21.0], [105.81, 21.0], [105.81, 21.01], [105.8, 21.01], [105.8, 21.0]]


def test_groups_follow_first_seen_order():
    features = [
        make_ward('00001', 'A', [RING]),
        make_ward('00002', 'B', [RING]),
        make_ward('00003', 'A', [RING]),
    ]
    groups = assemble_wards(features, progress_every=0)

    assert list(groups) == ['A', 'B']
    assert [w['id'] for w in groups['A']['wards']] == ['00001', '00003']
    assert [w['id'] for w in groups['B']['wards']] == ['00002']
    assert build_ward_index(groups) == [
        {'id': 'A', 'name': 'Tỉnh A', 'wardCount': 2},
        {'id': 'B', 'name': 'Tỉnh B', 'wardCount': 1},
    ]


def test_index_is_not_sorted_alphabetically():
    features = [
        make_ward('26734', '79', [RING], 'TP. Hồ Chí Minh'),
        make_ward('00004', '01', [RING], 'Hà Nội'),
        make_ward('00991', '04', [RING], 'Cao Bằng'),
    ]
    index = build_ward_index(assemble_wards(features, progress_every=0))
    assert [entry['id'] for entry in index] == ['79', '01', '04']


def test_group_is_created_only_for_successful_wards():
    features = [
        make_ward('00001', 'A', RING[:2]),
        make_ward('00002', 'B', [RING]),
    ]
    features[0]['geometry']['type'] = 'LineString'

    stats = new_stats()
    groups = assemble_wards(features, stats=stats, progress_every=0)

    assert list(groups) == ['B']
    assert stats['skipped'] == 1
    assert stats['processed'] == 1


def test_ward_without_province_code_is_skipped(capsys):
    ward = make_ward('00001', 'A', [RING])
    del ward['properties']['ma_tinh']

    stats = new_stats()
    groups = assemble_wards([ward], stats=stats, progress_every=0)

    assert groups == {}
    assert stats['skipped'] == 1
    assert 'has no province code' in capsys.readouterr().out


def test_wards_use_finer_precision():
    ring = [[105.812346, 21.0], [105.82, 21.0], [105.82, 21.01], [105.812346, 21.01], [105.812346, 21.0]]
    groups = assemble_wards([make_ward('00001', 'A', [ring])], progress_every=0)
    ward = groups['A']['wards'][0]

    assert ward['polygons'][0][0] == [105.81235, 21.0]
    assert len(str(ward['center'][0]).split('.')[1]) <= 5


def test_write_ward_files(tmp_path):
    features = [
        make_ward('00001', '79', [RING]),
        make_ward('00002', '01', [RING]),
        make_ward('00003', '79', [RING]),
    ]
    groups = assemble_wards(features, progress_every=0)
    output_dir = tmp_path / 'wards'

    total_size = write_ward_files(groups, str(output_dir))

    assert sorted(os.listdir(output_dir)) == ['01.json', '79.json', 'index.json']
    assert total_size == sum(p.stat().st_size for p in output_dir.iterdir())

    province = json.loads((output_dir / '79.json').read_text(encoding='utf-8'))
    assert province['provinceId'] == '79'
    assert province['provinceName'] == 'Tỉnh 79'
    assert [w['id'] for w in province['wards']] == ['00001', '00003']

    index_text = (output_dir / 'index.json').read_text(encoding='utf-8')
    assert index_text == (
        '[{"id":"79","name":"Tỉnh 79","wardCount":2},'
        '{"id":"01","name":"Tỉnh 01","wardCount":1}]'
    )


def test_preprocess_wards(tmp_path, write_geojson, capsys):
    features = [make_ward(f"{i:05d}", '01' if i % 2 else '02', [RING]) for i in range(6)]
    input_file = write_geojson(features, 'wards.geojson')
    output_dir = tmp_path / 'public' / 'wards'

    stats = preprocess_wards(input_file, str(output_dir))

    assert stats['processed'] == 6
    index = json.loads((output_dir / 'index.json').read_text(encoding='utf-8'))
    assert index == [
        {'id': '02', 'name': 'Tỉnh 02', 'wardCount': 3},
        {'id': '01', 'name': 'Tỉnh 01', 'wardCount': 3},
    ]
    out = capsys.readouterr().out
    assert 'Provinces processed: 2' in out
    assert 'Reduction:' in out


def test_cli_exits_non_zero_on_unparseable_input(tmp_path, monkeypatch, capsys):
    input_file = tmp_path / 'wards.geojson'
    input_file.write_text('not json', encoding='utf-8')
    output_dir = tmp_path / 'wards'
    monkeypatch.setattr(sys, 'argv', ['preprocess_wards.py', str(input_file), str(output_dir)])

    with pytest.raises(SystemExit) as exc_info:
        runpy.run_module('preprocess_wards', run_name='__main__')

    assert exc_info.value.code == 1
    assert 'Error: Could not parse' in capsys.readouterr().out
    assert not output_dir.exists()


@pytest.mark.parametrize('province_code', ['../evil', 'a/b', '..', ''])
def test_ward_with_unusable_province_code_is_skipped(tmp_path, province_code, capsys):
    features = [make_ward('00001', province_code, [RING]), make_ward('00002', '01', [RING])]
    stats = new_stats()
    groups = assemble_wards(features, stats=stats, progress_every=0)

    assert list(groups) == ['01']
    assert stats['skipped'] == 1
    assert stats['processed'] == 1
    assert 'unusable province code' in capsys.readouterr().out

    output_dir = tmp_path / 'out' / 'wards'
    write_ward_files(groups, str(output_dir))
    assert sorted(os.listdir(output_dir)) == ['01.json', 'index.json']
    assert sorted(os.listdir(tmp_path / 'out')) == ['wards']


def test_write_ward_files_refuses_path_like_codes(tmp_path):
    groups = {'../x': {'provinceId': '../x', 'provinceName': 'X', 'wards': []}}
    output_dir = tmp_path / 'wards'

    with pytest.raises(ValueError, match='cannot be used as a file name'):
        write_ward_files(groups, str(output_dir))

    assert not output_dir.exists()
    assert not (tmp_path / 'x.json').exists()
