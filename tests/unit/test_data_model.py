"""
Unit tests for the data model.

Tests attributes, items and tuples including:
- Attribute validation and domain normalisation
- Item distance table (continuous strict, discrete lenient)
- Tuple distance, average distance, equality
"""

import pytest

from qtminer.data.attribute import ContinuousAttribute, DiscreteAttribute
from qtminer.data.item import ContinuousItem, DiscreteItem, item_distance
from qtminer.data.tuple import Tuple
from qtminer.utils.error_handling import ConfigurationError, DatasetError, DistanceError


@pytest.fixture
def outlook():
    return DiscreteAttribute("outlook", 0, ("sunny", "rain", "overcast"))


@pytest.fixture
def temperature():
    return ContinuousAttribute("temperature", 1, 0.0, 30.0)


@pytest.mark.unit
class TestAttributes:
    """Test suite for attribute schema objects."""

    def test_discrete_domain_is_sorted(self, outlook):
        assert outlook.values == ("overcast", "rain", "sunny")
        assert outlook.number_of_distinct_values == 3
        assert list(outlook) == ["overcast", "rain", "sunny"]

    def test_discrete_domain_deduplicates(self):
        attribute = DiscreteAttribute("wind", 0, ["weak", "strong", "weak"])
        assert attribute.values == ("strong", "weak")

    def test_discrete_membership(self, outlook):
        assert "rain" in outlook
        assert "snow" not in outlook

    def test_discrete_str(self, outlook):
        assert str(outlook) == "outlook [overcast, rain, sunny]"

    @pytest.mark.parametrize("values", [(), None, "sunny", ("sunny", 3)])
    def test_discrete_rejects_bad_domain(self, values):
        with pytest.raises(ConfigurationError):
            DiscreteAttribute("outlook", 0, values)

    @pytest.mark.parametrize("name,index", [("", 0), ("x", -1), ("x", True)])
    def test_rejects_bad_name_or_index(self, name, index):
        with pytest.raises(ConfigurationError):
            DiscreteAttribute(name, index, ("a",))

    def test_continuous_scaling(self, temperature):
        assert temperature.get_scaled_value(0.0) == 0.0
        assert temperature.get_scaled_value(30.0) == 1.0
        assert temperature.get_scaled_value(15.0) == pytest.approx(0.5)

    def test_continuous_scaled_range(self, temperature):
        for value in (0.0, 3.3, 12.0, 29.9, 30.0):
            assert 0.0 <= temperature.get_scaled_value(value) <= 1.0

    @pytest.mark.parametrize("low,high", [(1.0, 1.0), (2.0, 1.0)])
    def test_continuous_requires_min_below_max(self, low, high):
        with pytest.raises(ConfigurationError):
            ContinuousAttribute("t", 0, low, high)

    def test_continuous_str(self, temperature):
        assert str(temperature) == "temperature [0.0, 30.0]"

    def test_attributes_are_frozen(self, temperature):
        with pytest.raises(Exception):
            temperature.min_value = 5.0


@pytest.mark.unit
class TestItemDistance:
    """Test suite for the item distance table."""

    def test_continuous_distance_is_scaled(self, temperature):
        a = ContinuousItem(temperature, 0.0)
        b = ContinuousItem(temperature, 15.0)
        assert a.distance(b) == pytest.approx(0.5)
        assert b.distance(a) == pytest.approx(0.5)

    def test_continuous_against_discrete_fails(self, temperature, outlook):
        with pytest.raises(DistanceError):
            ContinuousItem(temperature, 1.0).distance(DiscreteItem(outlook, "rain"))

    def test_continuous_against_none_fails(self, temperature):
        with pytest.raises(DistanceError):
            ContinuousItem(temperature, 1.0).distance(None)

    def test_continuous_different_attribute_fails(self, temperature):
        other = ContinuousAttribute("humidity", 2, 0.0, 100.0)
        with pytest.raises(DistanceError):
            ContinuousItem(temperature, 1.0).distance(ContinuousItem(other, 1.0))

    def test_same_name_other_bounds_reports_ranges(self, temperature):
        widened = ContinuousAttribute("temperature", 1, 0.0, 99.0)
        with pytest.raises(DistanceError) as exc_info:
            ContinuousItem(temperature, 1.0).distance(ContinuousItem(widened, 1.0))
        assert "[0.0, 99.0]" in str(exc_info.value)
        assert exc_info.value.details["right_range"] == [0.0, 99.0]
        assert exc_info.value.details["left_range"] == [temperature.min_value, temperature.max_value]

    def test_discrete_distance(self, outlook):
        sunny = DiscreteItem(outlook, "sunny")
        rain = DiscreteItem(outlook, "rain")
        assert sunny.distance(sunny) == 0.0
        assert sunny.distance(DiscreteItem(outlook, "sunny")) == 0.0
        assert sunny.distance(rain) == 1.0
        assert rain.distance(sunny) == 1.0

    def test_discrete_is_lenient(self, outlook, temperature):
        sunny = DiscreteItem(outlook, "sunny")
        assert sunny.distance(None) == 1.0
        assert sunny.distance("sunny") == 1.0
        assert sunny.distance(ContinuousItem(temperature, 3.0)) == 1.0

    def test_item_distance_function(self, outlook):
        assert item_distance(DiscreteItem(outlook, "rain"), DiscreteItem(outlook, "rain")) == 0.0

    def test_item_str(self, outlook, temperature):
        assert str(DiscreteItem(outlook, "rain")) == "rain"
        assert str(ContinuousItem(temperature, 3)) == "3.0"

    def test_items_reject_bad_values(self, outlook, temperature):
        with pytest.raises(DatasetError):
            DiscreteItem(outlook, None)
        with pytest.raises(DatasetError):
            ContinuousItem(temperature, None)
        with pytest.raises(DatasetError):
            ContinuousItem(temperature, "hot")


@pytest.mark.unit
class TestTuple:
    """Test suite for Tuple."""

    def _tuple(self, outlook, temperature, symbol, value):
        return Tuple.of([DiscreteItem(outlook, symbol), ContinuousItem(temperature, value)])

    def test_size_must_be_positive(self):
        with pytest.raises(ConfigurationError):
            Tuple(0)

    def test_add_and_get(self, outlook):
        tuple_ = Tuple(2)
        item = DiscreteItem(outlook, "rain")
        tuple_.add(item, 1)
        assert tuple_.get(1) is item
        assert tuple_[0] is None
        assert len(tuple_) == 2
        assert not tuple_.is_complete()

    def test_add_out_of_range(self, outlook):
        with pytest.raises(IndexError):
            Tuple(1).add(DiscreteItem(outlook, "rain"), 1)

    def test_distance_sums_items(self, outlook, temperature):
        a = self._tuple(outlook, temperature, "sunny", 0.0)
        b = self._tuple(outlook, temperature, "rain", 15.0)
        assert a.distance(b) == pytest.approx(1.5)
        assert b.distance(a) == pytest.approx(1.5)

    def test_distance_to_self_is_zero(self, outlook, temperature):
        a = self._tuple(outlook, temperature, "sunny", 7.0)
        assert a.distance(a) == 0.0

    def test_distance_errors(self, outlook, temperature):
        a = self._tuple(outlook, temperature, "sunny", 0.0)
        with pytest.raises(DistanceError):
            a.distance(None)
        with pytest.raises(DistanceError):
            a.distance(Tuple.of([DiscreteItem(outlook, "rain")]))
        incomplete = Tuple(2)
        incomplete.add(DiscreteItem(outlook, "rain"), 0)
        with pytest.raises(DistanceError):
            a.distance(incomplete)

    def test_avg_distance(self, discrete_data):
        centroid = discrete_data.get_item_set(0)
        # Row 0 -> 0, row 1 -> 1, row 2 -> 1
        assert centroid.avg_distance(discrete_data, [0, 1, 2]) == pytest.approx(2 / 3)
        assert centroid.avg_distance(discrete_data, []) == 0.0

    def test_avg_distance_errors(self, discrete_data):
        centroid = discrete_data.get_item_set(0)
        with pytest.raises(IndexError):
            centroid.avg_distance(discrete_data, [99])
        with pytest.raises(ValueError):
            centroid.avg_distance(None, [0])
        with pytest.raises(ValueError):
            centroid.avg_distance(discrete_data, None)

    def test_equality_and_hash(self, outlook, temperature):
        a = self._tuple(outlook, temperature, "sunny", 7.0)
        b = self._tuple(outlook, temperature, "sunny", 7.0)
        c = self._tuple(outlook, temperature, "rain", 7.0)
        assert a == b
        assert hash(a) == hash(b)
        assert a != c

    def test_str(self, outlook, temperature):
        assert str(self._tuple(outlook, temperature, "sunny", 7)) == "sunny, 7.0"

    def test_sort_key_orders_values(self, outlook, temperature):
        a = self._tuple(outlook, temperature, "rain", 7.0)
        b = self._tuple(outlook, temperature, "sunny", 1.0)
        assert sorted([b, a], key=Tuple.sort_key) == [a, b]
