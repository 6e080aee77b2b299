"""Tests for protocol manifest creation, validation, compatibility and merging."""

import dataclasses
import logging

import pytest

from fetchlink.digest import digest_manifest
from fetchlink.manifest import (
    HandlerDefinition,
    ModelDefinition,
    ProtocolManifest,
    are_compatible,
    create_manifest,
    create_simple_protocol,
    format_protocol_info,
    get_handler,
    get_model,
    get_model_names,
    merge_manifests,
    validate_manifest,
)

REQUEST = {"name": "Request", "schema": {"foo": "string"}}
RESPONSE = {"name": "Response", "schema": {"bar": "string"}}


class TestCreateManifest:
    def test_digest_computed(self):
        manifest = create_manifest("model1", "1.0", [REQUEST, RESPONSE])
        assert manifest.digest.startswith("proto:")
        assert manifest.digest == digest_manifest(manifest)

    def test_digest_independent_of_model_order(self):
        forward = create_manifest("model1", "1.0", [REQUEST, RESPONSE])
        backward = create_manifest("model1", "1.0", [RESPONSE, REQUEST])
        assert forward.digest == backward.digest

    def test_accepts_definitions_and_mappings(self):
        a = create_manifest("p", "1", [ModelDefinition("Request", {"foo": "string"})])
        b = create_manifest("p", "1", [REQUEST])
        assert a == b
        assert isinstance(b.models[0], ModelDefinition)

    def test_handlers_and_description_do_not_change_digest(self):
        bare = create_manifest("p", "1", [REQUEST])
        rich = create_manifest(
            "p",
            "1",
            [REQUEST],
            [{"name": "onRequest", "messageType": "Request"}],
            description="with handlers",
        )
        assert bare.digest == rich.digest
        assert rich.handlers[0] == HandlerDefinition("onRequest", "Request")

    def test_is_frozen(self):
        manifest = create_manifest("p", "1", [REQUEST])
        with pytest.raises(dataclasses.FrozenInstanceError):
            manifest.version = "2"

    def test_derived_copy_recomputes_digest(self):
        v1 = create_manifest("p", "1", [REQUEST])
        v2 = dataclasses.replace(v1, version="2")
        assert v2.digest != v1.digest
        assert v2.digest == create_manifest("p", "2", [REQUEST]).digest


class TestManifestWireForm:
    def test_round_trip(self):
        manifest = create_manifest(
            "p",
            "1.0",
            [REQUEST, RESPONSE],
            [{"name": "h", "messageType": "Request", "responseType": "Response"}],
            description="demo",
        )
        data = manifest.to_dict()
        assert data["digest"] == manifest.digest
        assert data["handlers"] == [
            {"name": "h", "messageType": "Request", "responseType": "Response"}
        ]
        assert ProtocolManifest.from_dict(data) == manifest

    def test_optional_fields_omitted(self):
        data = create_manifest("p", "1.0", [REQUEST]).to_dict()
        assert "description" not in data
        assert "description" not in data["models"][0]

    def test_stale_digest_is_recomputed_and_logged(self, caplog):
        data = create_manifest("p", "1.0", [REQUEST]).to_dict()
        data["digest"] = "proto:stale"
        with caplog.at_level(logging.WARNING, logger="fetchlink.manifest"):
            manifest = ProtocolManifest.from_dict(data)
        assert manifest.digest != "proto:stale"
        assert "proto:stale" in caplog.text


class TestValidateManifest:
    def test_valid_manifest(self):
        result = validate_manifest(create_manifest("p", "1.0", [REQUEST]))
        assert result.valid is True
        assert result.errors == []

    def test_missing_name_and_models_reports_both(self):
        result = validate_manifest({"version": "1.0"})
        assert result.valid is False
        assert len(result.errors) == 2
        assert "Missing or invalid protocol name" in result.errors
        assert "Missing or invalid models array" in result.errors

    def test_empty_models_rejected(self):
        result = validate_manifest({"name": "p", "version": "1", "models": []})
        assert result.errors == ["Protocol must define at least one model"]

    def test_bad_model_entries(self):
        result = validate_manifest(
            {
                "name": "p",
                "version": "1",
                "models": [{"schema": {}}, {"name": "M", "schema": "string"}, "junk"],
            }
        )
        assert result.errors == [
            "Model at index 0 missing name",
            "Model M missing or invalid schema",
            "Model at index 2 is not an object",
        ]

    def test_empty_version_and_name_on_dataclass(self):
        manifest = create_manifest("", "", [REQUEST])
        result = validate_manifest(manifest)
        assert result.errors == [
            "Missing or invalid protocol name",
            "Missing or invalid protocol version",
        ]

    def test_handler_without_message_type(self):
        result = validate_manifest(
            {"name": "p", "version": "1", "models": [REQUEST], "handlers": [{"name": "h"}]}
        )
        assert result.errors == ["Handler at index 0 missing messageType"]

    def test_non_mapping(self):
        assert validate_manifest("nope").valid is False


class TestCompatibility:
    def test_shared_model_is_compatible(self):
        a = create_manifest("a", "1", [REQUEST, RESPONSE])
        b = create_manifest("b", "7", [REQUEST, {"name": "Other", "schema": {}}])
        assert are_compatible(a, b) is True
        assert are_compatible(b, a) is True

    def test_same_names_different_schemas_incompatible(self):
        a = create_manifest("a", "1", [{"name": "Request", "schema": {"foo": "string"}}])
        b = create_manifest("b", "1", [{"name": "Request", "schema": {"foo": "int"}}])
        assert are_compatible(a, b) is False

    def test_field_order_does_not_matter(self):
        a = create_manifest("a", "1", [{"name": "M", "schema": {"x": 1, "y": 2}}])
        b = create_manifest("b", "1", [{"name": "M", "schema": {"y": 2, "x": 1}}])
        assert are_compatible(a, b) is True

    def test_accepts_wire_form(self):
        a = create_manifest("a", "1", [REQUEST])
        assert are_compatible(a.to_dict(), a) is True


class TestMerge:
    def test_models_deduplicated_handlers_concatenated(self):
        handler = {"name": "handleRequest", "messageType": "Request"}
        a = create_manifest("a", "1", [REQUEST, RESPONSE], [handler])
        b = create_manifest("b", "1", [REQUEST, {"name": "Other", "schema": {}}], [handler])

        merged = merge_manifests(a, b, "ab", "2.0")

        assert merged.name == "ab"
        assert merged.version == "2.0"
        assert get_model_names(merged) == ["Request", "Response", "Other"]
        assert len(merged.handlers) == 2
        assert merged.description == "Merged from a and b"
        assert merged.digest == create_manifest("ab", "2.0", merged.models).digest

    def test_first_occurrence_wins(self):
        a = create_manifest("a", "1", [ModelDefinition("Request", {"foo": "string"}, "from a")])
        b = create_manifest("b", "1", [ModelDefinition("Request", {"foo": "string"}, "from b")])
        merged = merge_manifests(a, b, "ab", "1")
        assert [m.description for m in merged.models] == ["from a"]

    def test_same_name_different_schema_kept(self):
        a = create_manifest("a", "1", [{"name": "Request", "schema": {"foo": "string"}}])
        b = create_manifest("b", "1", [{"name": "Request", "schema": {"foo": "int"}}])
        merged = merge_manifests(a, b, "ab", "1")
        assert get_model_names(merged) == ["Request", "Request"]


class TestLookups:
    def test_get_handler_first_match_wins(self):
        manifest = create_manifest(
            "p",
            "1",
            [REQUEST],
            [
                HandlerDefinition("first", "Request"),
                HandlerDefinition("second", "Request"),
            ],
        )
        assert get_handler(manifest, "Request").name == "first"

    def test_get_handler_missing(self):
        manifest = create_manifest("p", "1", [REQUEST])
        assert get_handler(manifest, "Request") is None

    def test_get_handler_exact_match(self):
        manifest = create_manifest("p", "1", [REQUEST], [HandlerDefinition("h", "Request")])
        assert get_handler(manifest, "request") is None

    def test_lookups_accept_wire_form(self):
        protocol = create_simple_protocol("echo", "1.0", {"text": "string"}, {"text": "string"})
        data = protocol.to_dict()
        assert get_handler(data, "Request").name == "handleRequest"
        assert get_model(data, "Response").schema == {"text": "string"}
        assert get_model_names(data) == ["Request", "Response"]

    def test_get_model(self):
        manifest = create_manifest("p", "1", [REQUEST, RESPONSE])
        assert get_model(manifest, "Response").schema == {"bar": "string"}
        assert get_model(manifest, "Missing") is None


class TestSimpleProtocol:
    def test_shape(self):
        manifest = create_simple_protocol("echo", "1.0", {"text": "string"}, {"text": "string"})
        assert get_model_names(manifest) == ["Request", "Response"]
        handler = get_handler(manifest, "Request")
        assert handler.name == "handleRequest"
        assert handler.response_type == "Response"
        assert manifest.description == "Simple request-response protocol for echo"

    def test_format_protocol_info(self):
        manifest = create_simple_protocol("echo", "1.0", {"text": "string"}, {"text": "string"})
        lines = format_protocol_info(manifest).splitlines()
        assert lines == [
            "Protocol: echo v1.0",
            f"Digest: {manifest.digest}",
            "Models: Request, Response",
            "Handlers: handleRequest",
            "Description: Simple request-response protocol for echo",
        ]


class TestSchemaIsolation:
    def test_mutating_source_schema_keeps_digest(self):
        schema = {"foo": "string"}
        manifest = create_manifest("p", "1.0", [{"name": "A", "schema": schema}])
        before = manifest.digest
        schema["bar"] = "int"
        assert manifest.digest == before
        assert digest_manifest(manifest) == before
        assert manifest.models[0].schema == {"foo": "string"}
        assert manifest.models[0].schema is not schema

    def test_mutating_nested_schema_keeps_model_digest(self):
        nested = {"x": "int"}
        model = ModelDefinition("A", {"point": nested})
        before = model.digest
        nested["y"] = "int"
        assert model.digest == before
        assert model.digest == ModelDefinition("A", {"point": {"x": "int"}}).digest

    def test_wire_form_is_a_copy(self):
        manifest = create_manifest("p", "1.0", [{"name": "A", "schema": {"o": {"k": 1}}}])
        data = manifest.to_dict()
        data["models"][0]["schema"]["o"]["k"] = 2
        assert manifest.models[0].schema == {"o": {"k": 1}}
        assert validate_manifest(manifest).valid is True
