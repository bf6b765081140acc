"""Tests for the versioned sub-score storage format."""

import pytest

from talentmatch.domain.models import DimensionScore
from talentmatch.persistence.exceptions import SubscoreSchemaError
from talentmatch.persistence.subscores import (
    CURRENT_SCHEMA_VERSION,
    decode_dimensions,
    encode_dimensions,
    migrate_v1_to_v2,
)

V1_DOCUMENT = {
    "specializationMatch": {"score": 90, "explanation": "Prosecution focus"},
    "experienceFit": {"score": 70, "explanation": "Eight years"},
    "technicalBackground": {"score": 85, "explanation": "EE degree"},
    "locationMatch": {"score": 60, "explanation": "Remote"},
    "barAdmissions": {"score": 100, "explanation": "USPTO registered"},
}


class TestEncode:
    def test_current_version_tag(self):
        document = encode_dimensions(
            {"credentials": DimensionScore(score=80, explanation="Registered")}
        )

        assert document == {
            "schema_version": CURRENT_SCHEMA_VERSION,
            "dimensions": {"credentials": {"score": 80, "explanation": "Registered"}},
        }


class TestDecode:
    def test_current_version(self):
        document = {
            "schema_version": 2,
            "dimensions": {"leadership_and_bd": {"score": 40, "explanation": "Some"}},
        }

        decoded = decode_dimensions(document)

        assert decoded == {"leadership_and_bd": DimensionScore(score=40, explanation="Some")}

    def test_untagged_document_is_v1_and_migrated(self):
        decoded = decode_dimensions(V1_DOCUMENT)

        assert set(decoded) == {
            "specialization_match",
            "experience_fit",
            "technical_background",
            "location_and_language",
            "credentials",
        }
        assert decoded["credentials"].score == 100
        assert decoded["location_and_language"].explanation == "Remote"

    def test_explicit_v1_tag(self):
        decoded = decode_dimensions({"schema_version": 1, "dimensions": V1_DOCUMENT})
        assert decoded["specialization_match"].score == 90

    @pytest.mark.parametrize("document", [None, {}])
    def test_empty(self, document):
        assert decode_dimensions(document) == {}

    def test_unknown_version(self):
        with pytest.raises(SubscoreSchemaError, match="Unsupported"):
            decode_dimensions({"schema_version": 99, "dimensions": {}})

    @pytest.mark.parametrize("version", ["2", True, 2.0])
    def test_non_integer_version(self, version):
        with pytest.raises(SubscoreSchemaError, match="Invalid sub-score schema version"):
            decode_dimensions({"schema_version": version, "dimensions": {}})

    def test_not_a_mapping(self):
        with pytest.raises(SubscoreSchemaError, match="mapping"):
            decode_dimensions(["specialization_match"])

    def test_unknown_dimension(self):
        with pytest.raises(SubscoreSchemaError, match="Unknown sub-score dimensions"):
            decode_dimensions({"schema_version": 2, "dimensions": {"charisma": {"score": 5}}})

    def test_invalid_content(self):
        with pytest.raises(SubscoreSchemaError, match="Invalid sub-score content"):
            decode_dimensions(
                {"schema_version": 2, "dimensions": {"credentials": {"score": 150}}}
            )


class TestMigrateV1ToV2:
    def test_renames(self):
        migrated = migrate_v1_to_v2({"barAdmissions": {"score": 1}, "locationMatch": {"score": 2}})
        assert migrated == {"credentials": {"score": 1}, "location_and_language": {"score": 2}}

    def test_leadership_not_invented(self):
        assert "leadership_and_bd" not in migrate_v1_to_v2(V1_DOCUMENT)

    def test_unknown_v1_name(self):
        with pytest.raises(SubscoreSchemaError, match="Unknown v1"):
            migrate_v1_to_v2({"leadership": {"score": 10}})
