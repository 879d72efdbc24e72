"""Unit tests for signature coercion and stored-signature decoding."""

from __future__ import annotations

import json

import numpy as np
import pytest

from lost_trace.signature import as_signature, signature_from_json, signature_to_json


def test_signature_json_round_trip():
    """Test that a stored signature decodes to the same 128 values."""
    np.random.seed(0)
    sig = np.random.randn(128)

    decoded = signature_from_json(signature_to_json(sig))

    assert decoded.shape == (128,)
    assert np.allclose(decoded, sig)


@pytest.mark.parametrize(
    "text",
    [None, "", "not json", "[1, 2, 3]", json.dumps([0.0] * 129), '{"a": 1}'],
)
def test_malformed_stored_signature_is_absent(text):
    """Test that damaged stored signatures decode to None."""
    assert signature_from_json(text) is None


def test_as_signature_rejects_non_finite():
    """Test that NaN/inf signatures are treated as absent."""
    values = [0.0] * 128
    values[3] = float("inf")

    assert as_signature(values) is None
    assert as_signature([0.0] * 128) is not None


@pytest.mark.parametrize(
    "values",
    [
        ["0.1"] * 128,
        [True] * 128,
        [0.0] * 127 + [None],
        np.array(["0"] * 128),
    ],
)
def test_as_signature_rejects_non_numeric(values):
    """Test that numeric strings, booleans and objects are not signatures."""
    assert as_signature(values) is None


def test_stored_string_signature_is_absent():
    """Test that a JSON array of numeric strings does not decode."""
    assert signature_from_json(json.dumps(["0"] * 128)) is None


def test_as_signature_accepts_integers_and_single_row():
    """Test that integer lists and a (1, 128) array are accepted as float64."""
    from_ints = as_signature([0] * 128)
    from_row = as_signature(np.ones((1, 128), dtype=np.float32))

    assert from_ints.dtype == np.float64
    assert from_row.shape == (128,)
    assert from_row.dtype == np.float64
