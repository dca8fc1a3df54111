"""
Unit tests for the parameter model and host record validation.
"""

import json
from unittest.mock import Mock

import pytest
from pydantic import ValidationError

from paramcascade.core.parameter import InputControl, Parameter, ParameterRef
from paramcascade.core.schema import CascadeDefinition, ParameterModel


class TestParameter:
    """Tests for the Parameter record."""

    def test_string_refs_coerced(self):
        param = Parameter("C", ["A", ParameterRef("B")])

        assert param.referenced_parameters == [ParameterRef("A"), ParameterRef("B")]

    def test_referenced_names_deduplicated(self):
        param = Parameter("C", ["B", "A", "B"])

        assert param.referenced_names == ["B", "A"]
        assert param.references("A")
        assert not param.references("C")

    def test_capabilities(self):
        select = Mock(is_selection=True)
        param = Parameter("A", refresh_handle=Mock(), input_control=select)

        assert param.is_refreshable
        assert param.has_selection_control
        assert not Parameter("B").is_refreshable
        assert not Parameter("B").has_selection_control

    def test_input_control_protocol(self):
        class Select:
            is_selection = True

            def add_change_listener(self, listener):
                pass

        assert isinstance(Select(), InputControl)

    def test_synthesize(self):
        param = Parameter.synthesize("X")

        assert param.synthetic
        assert param.referenced_parameters == []
        assert param.refresh_handle is None

    def test_identity_equality(self):
        """Parameters compare by identity, like host objects."""
        assert Parameter("A") != Parameter("A")


class TestParameterModel:
    """Tests for validating single host records."""

    def test_host_field_names(self):
        record = ParameterModel.model_validate({
            "paramName": "Service",
            "referencedParameters": [{"paramName": "Region"}, {"name": "Environment"}],
        })

        assert record.name == "Service"
        assert [r.name for r in record.referenced_parameters] == ["Region", "Environment"]

    def test_plain_string_refs(self):
        record = ParameterModel.model_validate({"name": "B", "referenced_parameters": ["A"]})

        assert record.referenced_parameters[0].name == "A"

    def test_null_refs(self):
        record = ParameterModel.model_validate({"name": "A", "referencedParameters": None})

        assert record.referenced_parameters == []

    def test_empty_name_rejected(self):
        with pytest.raises(ValidationError):
            ParameterModel.model_validate({"name": ""})

    def test_missing_name_rejected(self):
        with pytest.raises(ValidationError):
            ParameterModel.model_validate({"referencedParameters": []})

    def test_to_parameter_attaches_capabilities(self):
        handle = Mock()
        record = ParameterModel(name="B", referenced_parameters=["A"])

        param = record.to_parameter(refresh_handle=handle)

        assert isinstance(param, Parameter)
        assert param.referenced_names == ["A"]
        assert param.refresh_handle is handle


class TestCascadeDefinition:
    """Tests for cascade definitions."""

    def test_from_record_list(self):
        definition = CascadeDefinition.from_records([
            {"name": "A"},
            {"name": "B", "referencedParameters": ["A"]},
        ])

        assert definition.names == ["A", "B"]

    def test_from_wrapped_records(self):
        definition = CascadeDefinition.from_records(
            {"parameters": [{"paramName": "A"}]}
        )

        assert definition.names == ["A"]

    def test_to_parameters_by_name(self):
        handles = {"A": Mock()}
        controls = {"A": Mock(is_selection=True)}
        definition = CascadeDefinition.from_records([
            {"name": "A"},
            {"name": "B", "referencedParameters": ["A"]},
        ])

        a, b = definition.to_parameters(refresh_handles=handles, input_controls=controls)

        assert a.refresh_handle is handles["A"]
        assert a.input_control is controls["A"]
        assert b.refresh_handle is None
        assert b.referenced_names == ["A"]

    def test_from_file(self, tmp_path):
        path = tmp_path / "cascade.json"
        path.write_text(json.dumps([
            {"paramName": "Region"},
            {"paramName": "City", "referencedParameters": [{"paramName": "Region"}]},
        ]))

        definition = CascadeDefinition.from_file(path)

        assert definition.names == ["Region", "City"]

    def test_from_file_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            CascadeDefinition.from_file(tmp_path / "absent.json")

    def test_invalid_records(self):
        with pytest.raises(ValidationError):
            CascadeDefinition.from_records([{"referencedParameters": ["A"]}])
