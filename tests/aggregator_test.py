from license_scanner.models.package import Occurrence
from license_scanner.models.package import PackageFinding
from license_scanner.models.package import RepositoryResult
from license_scanner.services.aggregator import aggregate
from license_scanner.services.aggregator import AggregationMap

BLACKLIST = ['GPL-3.0', 'AGPL-3.0']


def results():
    return [
        RepositoryResult('A', [PackageFinding('left-pad', '1.0.0', 'MIT')]),
        RepositoryResult('B', [PackageFinding('foo-lib', '2.1.0', 'Unknown')]),
        RepositoryResult(
            'C', [
                PackageFinding('bar', '3.0.0', 'GPL-3.0'),
                PackageFinding('baz', '1.0.0', 'AGPL-3.0'),
            ],
        ),
        RepositoryResult(
            'D', [
                PackageFinding('bar', '3.0.0', 'GPL-3.0'),
                PackageFinding('bar', '2.0.0', 'AGPL-3.0'),
                PackageFinding('foo-lib', '2.2.0', 'Unknown'),
            ],
        ),
    ]


def test_allowed_license_is_not_reported():
    aggregation = aggregate(results()[:1], BLACKLIST)
    assert aggregation.is_empty
    assert 'left-pad' not in aggregation.blacklisted
    assert 'left-pad' not in aggregation.missing


def test_unknown_license_goes_to_missing_only():
    aggregation = aggregate(results(), BLACKLIST)
    assert aggregation.missing.get('foo-lib', 'Unknown') == [
        Occurrence('B', '2.1.0'), Occurrence('D', '2.2.0'),
    ]
    assert 'foo-lib' not in aggregation.blacklisted


def test_blacklisted_occurrences_are_not_collapsed():
    aggregation = aggregate(results(), BLACKLIST)
    assert aggregation.blacklisted.get('bar', 'GPL-3.0') == [
        Occurrence('C', '3.0.0'), Occurrence('D', '3.0.0'),
    ]


def test_duplicate_occurrence_in_same_repo_is_kept():
    result = RepositoryResult(
        'A', [PackageFinding('bar', '3.0.0', 'GPL-3.0')] * 2,
    )
    aggregation = aggregate([result], BLACKLIST)
    assert aggregation.blacklisted.get('bar', 'GPL-3.0') == [Occurrence('A', '3.0.0')] * 2


def test_grouping_and_insertion_order():
    aggregation = aggregate(results(), BLACKLIST)
    assert [
        (name, [license for license, _ in licenses])
        for name, licenses in aggregation.blacklisted
    ] == [('bar', ['GPL-3.0', 'AGPL-3.0']), ('baz', ['AGPL-3.0'])]


def test_reordering_inputs_keeps_keys_and_multisets():
    forward = aggregate(results(), BLACKLIST)
    backward = aggregate(list(reversed(results())), BLACKLIST)

    def sort_key(entry):
        return entry['repo'], entry['version']

    for attr in ('blacklisted', 'missing'):
        left = getattr(forward, attr).to_dict()
        right = getattr(backward, attr).to_dict()
        assert set(left) == set(right)
        for name in left:
            assert set(left[name]) == set(right[name])
            for license in left[name]:
                assert sorted(left[name][license], key=sort_key) == \
                    sorted(right[name][license], key=sort_key)


def test_license_both_unknown_and_blacklisted_lands_in_both():
    result = RepositoryResult('A', [PackageFinding('odd', '1', 'Unknown')])
    aggregation = aggregate([result], ['Unknown'])
    assert 'odd' in aggregation.blacklisted
    assert 'odd' in aggregation.missing


def test_aggregation_map_basics():
    amap = AggregationMap()
    assert not amap
    assert len(amap) == 0
    amap.add('bar', 'GPL-3.0', Occurrence('C', '3.0.0'))
    amap.add('bar', 'GPL-2.0', Occurrence('C', '2.0.0'))
    assert amap
    assert len(amap) == 1
    assert amap.get('missing', 'x') == []
    assert amap.to_dict() == {
        'bar': {
            'GPL-3.0': [{'repo': 'C', 'version': '3.0.0'}],
            'GPL-2.0': [{'repo': 'C', 'version': '2.0.0'}],
        },
    }
