"""Tests for ring sanitizing and strict polygon validation."""

from __future__ import annotations

from routefinder.coordinates import ring_edges, sanitize_rings, validate_rings

_UNIT_SQUARE = [[0, 0], [0, 1], [1, 1], [1, 0], [0, 0]]


def test_sanitize_keeps_closed_numeric_ring():
    result = sanitize_rings([_UNIT_SQUARE])
    assert result == [[(0.0, 0.0), (0.0, 1.0), (1.0, 1.0), (1.0, 0.0), (0.0, 0.0)]]


def test_sanitize_is_idempotent():
    once = sanitize_rings([_UNIT_SQUARE, [[2, 2], [2, 3], [3, 3], [2, 2]]])
    assert once is not None
    assert sanitize_rings(once) == once


def test_sanitize_closes_open_ring():
    result = sanitize_rings([[[0, 0], [0, 1], [1, 1]]])
    assert result == [[(0.0, 0.0), (0.0, 1.0), (1.0, 1.0), (0.0, 0.0)]]


def test_sanitize_coerces_numeric_strings_and_drops_garbage():
    ring = [["0", "0"], [0, "1"], "junk", [None, 1], [True, 2], ["x", 3], [1], [1.0, 1.0], [1, 0, 250]]
    result = sanitize_rings([ring])
    assert result == [[(0.0, 0.0), (0.0, 1.0), (1.0, 1.0), (1.0, 0.0), (0.0, 0.0)]]


def test_sanitize_drops_non_finite_values():
    ring = [[0, 0], [float("nan"), 1], ["inf", 2], [0, 1], [1, 1]]
    result = sanitize_rings([ring])
    assert result == [[(0.0, 0.0), (0.0, 1.0), (1.0, 1.0), (0.0, 0.0)]]


def test_sanitize_reads_strings_as_plain_numeric_literals():
    ring = [["1_0", "0"], ["0x1", 1], [" 2 ", "2"], [3, 3]]
    assert sanitize_rings([ring]) == [[(1.0, 1.0), (2.0, 2.0), (3.0, 3.0), (1.0, 1.0)]]


def test_sanitize_rejects_python_only_number_spellings():
    ring = [
        ["Infinity", 0],
        ["nan", 0],
        ["", 0],
        ["1__0", 0],
        ["١", 0],
        ["0x1p3", 0],
        ["-0x1", 0],
        [".5", "-0.5"],
        ["1e1", "+2"],
        ["0b11", "0o7"],
    ]
    assert sanitize_rings([ring]) == [[(0.5, -0.5), (10.0, 2.0), (3.0, 7.0), (0.5, -0.5)]]


def test_sanitize_drops_short_rings():
    rings = [
        [[0, 0], [1, 1]],
        [[0, 0], [1, 1], [0, 0]],
        _UNIT_SQUARE,
    ]
    result = sanitize_rings(rings)
    assert result is not None
    assert len(result) == 1
    assert result[0][0] == (0.0, 0.0)


def test_sanitize_returns_none_when_nothing_survives():
    assert sanitize_rings([[[0, 0], [1, 1]], "ring", None]) is None
    assert sanitize_rings([]) is None
    assert sanitize_rings(None) is None
    assert sanitize_rings({"coordinates": _UNIT_SQUARE}) is None


def test_validate_accepts_well_formed_polygon():
    assert validate_rings([_UNIT_SQUARE]) == [[(0.0, 0.0), (0.0, 1.0), (1.0, 1.0), (1.0, 0.0), (0.0, 0.0)]]


def test_validate_rejects_open_ring():
    assert validate_rings([[[0, 0], [0, 1], [1, 1], [1, 0]]]) is None


def test_validate_rejects_string_coordinates():
    ring = [["0", "0"], [0, 1], [1, 1], [1, 0], ["0", "0"]]
    assert validate_rings([ring]) is None


def test_validate_rejects_if_any_ring_is_bad():
    assert validate_rings([_UNIT_SQUARE, [[0, 0], [1, 1], [0, 0]]]) is None
    assert validate_rings([]) is None
    assert validate_rings("polygon") is None


def test_ring_edges_pairs_consecutive_vertices():
    edges = ring_edges([(0.0, 0.0), (0.0, 1.0), (1.0, 1.0), (0.0, 0.0)])
    assert edges == [
        ((0.0, 0.0), (0.0, 1.0)),
        ((0.0, 1.0), (1.0, 1.0)),
        ((1.0, 1.0), (0.0, 0.0)),
    ]
