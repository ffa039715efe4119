"""
Record codec and key scheme tests.

Covers the wire shape of Owner / Survey records, the decode-to-None rules
for absent or malformed state, and acceptance of legacy zero-valued state.

Run with: pytest tests/test_codec.py -v
"""

import json

import pytest

from landledger.codec import (
    Owner,
    Survey,
    canonical_json_bytes,
    decode_owner,
    decode_owner_index,
    decode_survey,
    decode_survey_index,
    encode_index,
    encode_owner,
    encode_survey,
    owner_key,
    quote_wrap,
    schema_errors,
    survey_key,
)


class TestKeyScheme:
    """Keys are the owner name and the decimal survey number."""

    def test_owner_key_is_name(self):
        assert owner_key("alice") == "alice"

    def test_survey_key_is_decimal(self):
        assert survey_key(101) == "101"
        assert survey_key(0) == "0"
        assert survey_key(2 ** 63 - 1) == "9223372036854775807"


class TestEncoding:
    """Records serialize to canonical JSON with their legacy wire names."""

    def test_owner_wire_fields(self):
        raw = encode_owner(Owner(name="alice", aadhar=1234, survey_numbers=[101, 102]))
        assert json.loads(raw) == {"name": "alice", "aadhar": 1234, "surveyNumbers": [101, 102]}

    def test_survey_wire_fields(self):
        raw = encode_survey(Survey(survey_no=101, area=500, location="Pune", owners=["alice"]))
        assert json.loads(raw) == {
            "surveyNo": 101,
            "area": 500,
            "location": "Pune",
            "owners": ["alice"],
        }

    def test_canonical_bytes_sorted_and_compact(self):
        assert canonical_json_bytes({"b": 1, "a": [2, 3]}) == b'{"a":[2,3],"b":1}'

    def test_canonical_bytes_reject_floats(self):
        with pytest.raises(ValueError, match="Float not allowed"):
            canonical_json_bytes({"area": 1.5})

    def test_encoding_is_deterministic(self):
        owner = Owner(name="ravi", aadhar=42, survey_numbers=[3, 1, 2])
        assert encode_owner(owner) == encode_owner(Owner(name="ravi", aadhar=42, survey_numbers=[3, 1, 2]))

    def test_unset_aadhar_encodes_as_null(self):
        assert json.loads(encode_owner(Owner(name="bob")))["aadhar"] is None

    def test_quote_wrap(self):
        assert quote_wrap(b'{"a":1}') == b"'{\"a\":1}'"


class TestDecoding:
    """Absent or unusable state decodes to None, never raises."""

    def test_owner_decode(self):
        raw = encode_owner(Owner(name="alice", aadhar=1234, survey_numbers=[101]))
        assert decode_owner(raw, "alice") == Owner(name="alice", aadhar=1234, survey_numbers=[101])

    def test_survey_decode(self):
        raw = encode_survey(Survey(survey_no=7, area=30, location="Nagpur", owners=["a", "b"]))
        survey = decode_survey(raw, 7)
        assert survey.area == 30
        assert survey.owners == ["a", "b"]
        assert survey.current_owner == "b"

    @pytest.mark.parametrize("raw", [None, b"", b"not json", b"\xff\xfe", b"[1,2]", b'{"aadhar":"x"}'])
    def test_unusable_owner_state_is_absent(self, raw):
        assert decode_owner(raw, "alice") is None

    @pytest.mark.parametrize("raw", [None, b"{", b'{"area":0}', b'{"area":-5}', b'{"location":"x"}'])
    def test_unusable_survey_state_is_absent(self, raw):
        assert decode_survey(raw, 101) is None

    def test_legacy_zero_aadhar_decodes_as_unset(self):
        # Shape written by the old transfer path for a brand-new buyer.
        raw = b'{"name":"","aadhar":0,"surveyNumbers":[101]}'
        owner = decode_owner(raw, "bob")
        assert owner is not None
        assert owner.aadhar is None
        assert owner.name == "bob"
        assert owner.survey_numbers == [101]

    def test_legacy_null_lists_decode_empty(self):
        owner = decode_owner(b'{"name":"a","aadhar":5,"surveyNumbers":null}', "a")
        survey = decode_survey(b'{"surveyNo":1,"area":5,"location":"x","owners":null}', 1)
        assert owner.survey_numbers == []
        assert survey.owners == []

    def test_out_of_range_survey_number_rejected(self):
        raw = json.dumps({"name": "a", "aadhar": 1, "surveyNumbers": [2 ** 63]}).encode()
        assert decode_owner(raw, "a") is None

    def test_bool_is_not_an_integer(self):
        assert decode_survey(b'{"area":true}', 1) is None


class TestIndexDecoding:
    """Indices decode to empty lists when absent or malformed."""

    def test_owner_index_roundtrip(self):
        assert decode_owner_index(encode_index(["alice", "bob"])) == ["alice", "bob"]

    def test_survey_index_roundtrip(self):
        assert decode_survey_index(encode_index([101, 102])) == [101, 102]

    @pytest.mark.parametrize("raw", [None, b"", b"null", b"{}", b"garbage"])
    def test_bad_owner_index_is_empty(self, raw):
        assert decode_owner_index(raw) == []

    def test_survey_index_rejects_strings(self):
        assert decode_survey_index(b'["101"]') == []


class TestSchemas:
    """Bundled schemas resolve their shared definitions."""

    def test_valid_owner_has_no_errors(self):
        assert schema_errors({"name": "a", "aadhar": 1, "surveyNumbers": [1]}, "owner") == []

    def test_survey_requires_area(self):
        errors = schema_errors({"surveyNo": 1}, "survey")
        assert errors and "area" in errors[0]

    def test_negative_survey_number_rejected_via_shared_def(self):
        assert schema_errors([-1], "survey-index")
