from template_pricing.engine.range_resolver import OrderedRange, resolve, resolve_index


def test_inclusive_at_both_ends():
    ranges = [OrderedRange(1, 200, 'a'), OrderedRange(201, 250, 'b')]
    assert resolve(ranges, 1).value == 'a'
    assert resolve(ranges, 200).value == 'a'
    assert resolve(ranges, 201).value == 'b'
    assert resolve(ranges, 250).value == 'b'


def test_not_found_is_none():
    ranges = [OrderedRange(1, 200, 'a')]
    assert resolve(ranges, 0.5) is None
    assert resolve(ranges, 200.01) is None
    assert resolve([], 10) is None
    assert resolve_index(ranges, 500) is None


def test_earlier_overlapping_range_wins():
    """Order is significant: a narrow range listed first overrides a broader one."""
    narrow_first = [OrderedRange(100, 150, 'narrow'), OrderedRange(0, 300, 'broad')]
    broad_first = [OrderedRange(0, 300, 'broad'), OrderedRange(100, 150, 'narrow')]

    for value in range(100, 151):
        assert resolve(narrow_first, value).value == 'narrow'
        assert resolve(broad_first, value).value == 'broad'
    assert resolve(narrow_first, 200).value == 'broad'


def test_none_value_distinguishable_from_miss():
    ranges = [OrderedRange(0, 10, None)]
    matched = resolve(ranges, 5)
    assert matched is not None
    assert matched.value is None


def test_resolve_index_returns_first_match():
    ranges = [OrderedRange(0, 50, 'x'), OrderedRange(40, 100, 'y'), OrderedRange(40, 100, 'z')]
    assert resolve_index(ranges, 45) == 0
    assert resolve_index(ranges, 60) == 1
