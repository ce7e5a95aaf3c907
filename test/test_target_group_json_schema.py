"""
Contains tests utilizing the JSON schema that matches the exact format
expected by Prometheus inside file-based service discovery files.
"""
from contextlib import contextmanager
from string import ascii_letters

from hypothesis import given
import hypothesis.strategies as st
from jsonschema import validate, ValidationError
import pytest

from prometheus_hetzner_sd.target_group import LABEL_NAME_RE
from prometheus_hetzner_sd.target_group_schema import (
    FILE_SD_SCHEMA,
    TARGET_GROUP_OBJECT_SCHEMA,
)

UNICODE_VALUES = st.text(min_size=1)
LETTERS = st.text(alphabet=ascii_letters, min_size=1)
LABELS = st.dictionaries(st.from_regex(LABEL_NAME_RE, fullmatch=True), UNICODE_VALUES)


@contextmanager
def not_raises(exception):
    """Context manager to ensures that a particular exception was not raised

    Taken from:

    https://stackoverflow.com/questions/20274987/how-to-use-pytest-to-check-that-error-is-not-raised
    """
    try:
        yield
    except exception:
        pytest.fail(f"DID RAISE {exception}")


@given(LETTERS, LABELS)
def test_known_valid_schemas(host, labels):
    """Assert true for a number of known valid examples"""
    target_group_object = {
        "targets": [f"{host}", f"{host}:1"],
        "labels": labels,
    }

    with not_raises(ValidationError):
        validate(target_group_object, TARGET_GROUP_OBJECT_SCHEMA)
        validate([target_group_object], FILE_SD_SCHEMA)
        validate([target_group_object] * 2, FILE_SD_SCHEMA)


def test_empty_file_is_valid():
    """An inventory without servers is still a valid file"""
    with not_raises(ValidationError):
        validate([], FILE_SD_SCHEMA)


def test_invalid_schemas_empty_values():
    """Should throw an error for invalid schemas with empty values"""
    with pytest.raises(ValidationError):
        validate({}, TARGET_GROUP_OBJECT_SCHEMA)

    with pytest.raises(ValidationError):
        validate({}, FILE_SD_SCHEMA)

    with pytest.raises(ValidationError):
        validate([{}], FILE_SD_SCHEMA)


@given(LABELS)
def test_invalid_schemas_no_targets(labels):
    """Should throw an error for invalid schemas with no or empty targets"""
    with pytest.raises(ValidationError):
        validate({"labels": labels}, TARGET_GROUP_OBJECT_SCHEMA)

    with pytest.raises(ValidationError):
        validate([{"targets": [], "labels": labels}], FILE_SD_SCHEMA)


@given(LETTERS)
def test_invalid_schemas_no_labels(host):
    """Should throw an error for invalid schemas with no labels"""
    no_labels = {
        "targets": [f"{host}", f"{host}:1"],
    }
    with pytest.raises(ValidationError):
        validate(no_labels, TARGET_GROUP_OBJECT_SCHEMA)

    with pytest.raises(ValidationError):
        validate([no_labels], FILE_SD_SCHEMA)


@pytest.mark.parametrize("labels", [{"1abc": "v"}, {"with-dash": "v"}, {"number": 1}])
def test_invalid_schemas_bad_labels(labels):
    """Label names must be valid Prometheus label names with string values"""
    with pytest.raises(ValidationError):
        validate([{"targets": ["localhost"], "labels": labels}], FILE_SD_SCHEMA)


def test_invalid_schemas_extra_keys():
    """Prometheus does not know about any other keys"""
    with pytest.raises(ValidationError):
        validate(
            [{"targets": ["localhost"], "labels": {}, "source": "hetzner"}], FILE_SD_SCHEMA,
        )
