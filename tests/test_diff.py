"""Unit tests for the equality diff engine and its rendered output."""

import io

import numpy as np

from ensurance import diff
from ensurance.modifiers import Modifiers
from ensurance.writer import TextMessageWriter
from tests.conftest import make_array, make_jagged


def render(expected, actual, modifiers: Modifiers | None = None) -> str:
    result = diff.compare(expected, actual, modifiers)
    assert not result.equal, "values unexpectedly equal"
    writer = TextMessageWriter()
    diff.display_differences(writer, expected, actual, result, modifiers)
    return str(writer)


class TestCompare:
    """Tests for diff.compare equality and failure points."""

    def test_equal_scalars(self):
        """Equal values have no failure points."""
        result = diff.compare(5, 5.0)
        assert result.equal
        assert result.failure_points == ()

    def test_none_handling(self):
        """None only equals None."""
        assert diff.compare(None, None).equal
        assert not diff.compare(None, 0).equal
        assert not diff.compare("", None).equal

    def test_ignore_case(self):
        """Strings compare case-insensitively with the modifier."""
        assert not diff.compare("Hello", "HELLO").equal
        assert diff.compare("Hello", "HELLO", Modifiers(ignore_case=True)).equal

    def test_tolerance(self):
        """Numbers compare within the tolerance modifier."""
        assert diff.compare(1.0, 1.05, Modifiers(tolerance=0.1)).equal

    def test_comparer_overrides_equality(self):
        """A comparer decides scalar equality."""
        same_length = Modifiers(comparer=lambda x, y: len(x) - len(y))
        assert diff.compare("abc", "xyz", same_length).equal
        assert not diff.compare("abc", "xy", same_length).equal

    def test_list_and_tuple_walked(self):
        """Ordered collections of different types compare element-wise."""
        assert diff.compare([1, 2, 3], (1, 2, 3)).equal

    def test_nested_failure_points(self):
        """One failure point per nesting level, outermost first."""
        result = diff.compare([[1, 2], [3, 4]], [[1, 2], [3, 5]])
        assert not result.equal
        assert result.failure_points == (1, 1)

    def test_count_mismatch_failure_point(self):
        """A shorter side fails at its length."""
        assert diff.compare([1, 2, 3], [1, 2]).failure_points == (2,)

    def test_array_rank_mismatch_has_no_failure_point(self):
        """Arrays of different rank are unequal without a position."""
        result = diff.compare(make_array([1, 2, 3, 4]), make_array([1, 2, 3, 4], (2, 2)))
        assert not result.equal
        assert result.failure_points == ()

    def test_as_collection_ignores_shape(self):
        """As collections, arrays compare by their flat elements."""
        result = diff.compare(
            make_array([1, 2, 3, 4]),
            make_array([1, 2, 3, 4], (2, 2)),
            Modifiers(as_collection=True),
        )
        assert result.equal

    def test_sets_use_native_equality(self):
        """Sets are not walked."""
        assert diff.compare({1, 2, 3}, {3, 2, 1}).equal
        assert not diff.compare({1, 2}, {1, 3}).equal

    def test_mappings_compare_keys_then_values(self):
        """Mappings match on key sets, then on each value."""
        assert diff.compare({"a": 1, "b": 2}, {"b": 2, "a": 1}).equal
        assert not diff.compare({"a": 1}, {"a": 2}).equal
        assert not diff.compare({"a": 1}, {"b": 1}).equal
        assert not diff.compare({"a": 1}, {"a": 1, "b": 2}).equal

    def test_mapping_values_use_diff_rules(self):
        """Arrays, tolerance and case rules apply to mapping values."""
        assert diff.compare({"a": make_array([1, 2])}, {"a": make_array([1, 2])}).equal
        assert not diff.compare({"a": make_array([1, 2])}, {"a": make_array([1, 3])}).equal
        assert diff.compare({"x": 1.0}, {"x": 1.05}, Modifiers(tolerance=0.1)).equal
        assert diff.compare({"k": "ABC"}, {"k": "abc"}, Modifiers(ignore_case=True)).equal

    def test_mapping_mismatch_has_no_failure_point(self):
        """A nested difference inside a mapping value is not located."""
        result = diff.compare({"a": [1, 2]}, {"a": [1, 3]})
        assert not result.equal
        assert result.failure_points == ()

    def test_zero_dimensional_arrays_are_scalars(self):
        """A 0-d array compares as the scalar it holds."""
        assert diff.compare(np.array(5), np.array(5)).equal
        assert diff.compare(np.array(5), 5).equal
        assert diff.compare(2.5, np.array(2.5)).equal
        assert not diff.compare(np.array(5), np.array(6)).equal
        assert diff.compare(np.array(5), np.array(6)).failure_points == ()

    def test_scalar_against_array(self):
        """A scalar never equals an array."""
        assert not diff.compare(1, make_array([1])).equal

    def test_stream_offset(self):
        """Streams fail at the first differing byte, across blocks."""
        result = diff.compare(b"a" * 10, b"a" * 9 + b"b", buffer_size=4)
        assert not result.equal
        assert result.failure_points == (9,)

    def test_bytes_against_stream(self):
        """Bytes-like values and binary streams compare by content."""
        assert diff.compare(b"abc", io.BytesIO(b"abc")).equal
        assert diff.compare(bytearray(b"abc"), memoryview(b"abc")).equal

    def test_stream_positions_restored(self):
        """Comparing streams leaves both at their starting positions."""
        expected = io.BytesIO(b"abcdef")
        actual = io.BytesIO(b"abcdef")
        expected.seek(1)
        actual.seek(3)
        assert diff.compare(expected, actual).equal
        assert expected.tell() == 1
        assert actual.tell() == 3

        actual = io.BytesIO(b"abcxef")
        actual.seek(3)
        assert not diff.compare(expected, actual).equal
        assert actual.tell() == 3

    def test_stream_length_mismatch(self):
        """Streams of different length are unequal without a position."""
        result = diff.compare(b"abc", b"abcd")
        assert not result.equal
        assert result.failure_points == ()


class TestArrayMessages:
    """Tests for rendered array differences."""

    def test_rank_mismatch_header_only(self):
        """Different ranks show only the type header."""
        expected = make_array([1, 2, 3, 4])
        actual = make_array([1, 2, 3, 4], (2, 2))
        assert render(expected, actual) == "  Expected is <int64[4]>, actual is <int64[2,2]>\n"

    def test_missing_elements(self):
        """A shorter actual lists the missing elements."""
        assert render(make_array([1, 2, 3, 4, 5]), make_array([1, 2, 3])) == (
            "  Expected is <int64[5]>, actual is <int64[3]>\n"
            "  Values differ at index [3]\n"
            "  Missing:  < 4, 5 >"
        )

    def test_extra_elements(self):
        """A longer actual lists the extra elements, up to three."""
        assert render(make_array([1, 2, 3]), make_array([1, 2, 3, 4, 5, 6, 7])) == (
            "  Expected is <int64[3]>, actual is <int64[7]>\n"
            "  Values differ at index [3]\n"
            "  Extra:    < 4, 5, 6... >"
        )

    def test_same_shape(self):
        """Same-shaped arrays show one index and the differing values."""
        assert render(make_array([1, 2, 3]), make_array([1, 5, 3])) == (
            "  Expected and actual are both <int64[3]>\n"
            "  Values differ at index [1]\n"
            "  Expected: 2\n"
            "  But was:  5\n"
        )

    def test_two_dimensional(self):
        """Matrix indices are shown per dimension."""
        expected = make_array([1, 2, 3, 4], (2, 2))
        actual = make_array([1, 9, 3, 4], (2, 2))
        assert render(expected, actual) == (
            "  Expected and actual are both <int64[2,2]>\n"
            "  Values differ at index [0,1]\n"
            "  Expected: 2\n"
            "  But was:  9\n"
        )

    def test_three_dimensional(self):
        """Cube indices are shown per dimension."""
        expected = make_array(range(8), (2, 2, 2))
        actual = make_array([0, 1, 2, 3, 40, 5, 6, 7], (2, 2, 2))
        assert "  Values differ at index [1,0,0]\n" in render(expected, actual)

    def test_jagged(self):
        """Jagged arrays nest a header and index per level."""
        expected = make_jagged([1, 2], [3, 4], [5, 6, 7])
        actual = make_jagged([1, 2], [3, 4], [5, 6, 8])
        assert render(expected, actual) == (
            "  Expected and actual are both <object[3]>\n"
            "  Values differ at index [2]\n"
            "    Expected and actual are both <int64[3]>\n"
            "    Values differ at index [2]\n"
            "  Expected: 7\n"
            "  But was:  8\n"
        )

    def test_jagged_against_simple(self):
        """A scalar element against a nested array shows both values."""
        expected = make_array([1, 2, 3])
        actual = make_jagged([1, 2, 3], [4, 5])
        assert render(expected, actual) == (
            "  Expected is <int64[3]>, actual is <object[2]>\n"
            "  Values differ at index [0]\n"
            "  Expected: 1\n"
            "  But was:  < 1, 2, 3 >\n"
        )

    def test_as_collection_different_rank(self):
        """As collections, both positions are shown when shapes differ."""
        expected = make_array([1, 2, 3, 4])
        actual = make_array([1, 3, 2, 4], (2, 2))
        assert render(expected, actual, Modifiers(as_collection=True)) == (
            "  Expected is <int64[4]>, actual is <int64[2,2]>\n"
            "  Values differ at expected index [1], actual index [0,1]\n"
            "  Expected: 2\n"
            "  But was:  3\n"
        )

    def test_as_collection_same_rank(self):
        """Same rank but different shape also shows both positions."""
        expected = make_array([1, 2, 3, 4, 5, 6], (2, 3))
        actual = make_array([1, 2, 3, 0, 5, 6], (3, 2))
        message = render(expected, actual, Modifiers(as_collection=True))
        assert "  Values differ at expected index [1,0], actual index [1,1]\n" in message

    def test_different_shape_header_only(self):
        """Without as_collection, mismatched shapes stop at the header."""
        expected = make_array(range(6), (2, 3))
        actual = make_array(range(6), (3, 2))
        assert render(expected, actual) == "  Expected is <int64[2,3]>, actual is <int64[3,2]>\n"


class TestCollectionMessages:
    """Tests for rendered differences of general collections."""

    def test_string_elements(self):
        """Differing strings inside a list get the caret layout."""
        assert render(["one", "ten"], ["one", "three"]) == (
            "  Expected and actual are both <list> with 2 elements\n"
            "  Values differ at index [1]\n"
            "  Expected string length 3 but was 5. Strings differ at index 1.\n"
            '  Expected: "ten"\n'
            '  But was:  "three"\n'
            "  ------------^\n"
        )

    def test_types_and_sizes_use_each_count(self):
        """Each side's header shows its own element count."""
        message = render([1, 2, 3], (1, 2))
        assert message.startswith("  Expected is <list> with 3 elements, actual is <tuple> with 2 elements\n")

    def test_without_result_no_failure_lines(self):
        """Rendering without a result shows only the header."""
        writer = TextMessageWriter()
        diff.display_differences(writer, [1, 2], [1, 3])
        assert str(writer) == "  Expected and actual are both <list> with 2 elements\n"


class TestScalarMessages:
    """Tests for rendered scalar and string differences."""

    def test_same_length_strings(self):
        """Same-length strings report the shared length."""
        assert render("abc", "abd").startswith(
            "  String lengths are both 3. Strings differ at index 2.\n"
        )

    def test_tolerance_shown(self):
        """A tolerance modifier appears on the expected line."""
        assert render(1.0, 2.0, Modifiers(tolerance=0.1)) == (
            "  Expected: 1.0d +/- 0.1d\n"
            "  But was:  2.0d\n"
        )


class TestStreamMessages:
    """Tests for rendered stream differences."""

    def test_same_length(self):
        """Same-length streams report the differing offset."""
        assert render(b"abc", io.BytesIO(b"abd")) == (
            "  Stream lengths are both 3. Streams differ at offset 2.\n"
        )

    def test_different_length(self):
        """Different-length streams report both lengths."""
        assert render(b"abc", b"abcd") == "  Expected Stream length 3 but was 4.\n"

    def test_stream_position_preserved_for_length(self):
        """Measuring a stream restores its position."""
        stream = io.BytesIO(b"abcd")
        stream.seek(2)
        writer = TextMessageWriter()
        diff.display_differences(writer, b"abc", stream, diff.compare(b"abc", b"abcd"))
        assert stream.tell() == 2


class TestScenarios:
    """End-to-end rendering of representative failures."""

    def test_jagged_inner_difference(self):
        """Outer index 1 recurses to inner index 2."""
        expected = make_jagged([1, 2, 3], [4, 5, 6, 7], [8, 9])
        actual = make_jagged([1, 2, 3], [4, 5, 0, 7], [8, 9])
        assert diff.compare(expected, actual).failure_points == (1, 2)
        assert render(expected, actual) == (
            "  Expected and actual are both <object[3]>\n"
            "  Values differ at index [1]\n"
            "    Expected and actual are both <int64[4]>\n"
            "    Values differ at index [2]\n"
            "  Expected: 6\n"
            "  But was:  0\n"
        )

    def test_longer_expected_string(self):
        """A longer expected string reports both lengths and a caret."""
        assert render("three", "ten") == (
            "  Expected string length 5 but was 3. Strings differ at index 1.\n"
            '  Expected: "three"\n'
            '  But was:  "ten"\n'
            "  ------------^\n"
        )
