import pytest

from device_agent.agent.coordinates import denormalize, denormalize_point


@pytest.mark.parametrize("dimension", [1080, 2400])
def test_denormalize_matches_floor_over_whole_grid(dimension):
    for n in range(1000):
        value = denormalize(n, dimension)
        assert value == (n * dimension) // 1000
        assert 0 <= value < dimension


def test_denormalize_is_monotonic():
    values = [denormalize(n, 1080) for n in range(1000)]
    assert values == sorted(values)


def test_denormalize_center_of_phone_screen():
    assert denormalize_point(500, 500, (1080, 2400)) == (540, 1200)


def test_out_of_range_input_is_clamped():
    assert denormalize(-20, 1080) == 0
    assert denormalize(1500, 1080) == denormalize(999, 1080)
    assert denormalize(1000, 2400) < 2400


def test_non_positive_dimension_rejected():
    with pytest.raises(ValueError):
        denormalize(10, 0)
