"""Tests for the questionnaire adapter in `adapters/questionnaire/normalizer.py`."""

import pytest

from adapters.questionnaire import ENTITY_MAP, QuestionnaireNormalizer, parse_yes_no
from riskengine.config import AppConfig
from riskengine.domain.models import (
    EscalationLevel,
    Gender,
    PlanSpecificity,
    RiskDomain,
)
from riskengine.errors import InvalidInputError
from riskengine.services.pipeline import AssessmentService


@pytest.fixture
def normalizer() -> QuestionnaireNormalizer:
    return QuestionnaireNormalizer()


class TestParseYesNo:
    @pytest.mark.parametrize("value", ["sim", "S", " yes ", "true", "1", True, 1])
    def test_true_answers(self, value) -> None:
        assert parse_yes_no(value) is True

    @pytest.mark.parametrize("value", ["não", "nao", "N", "no", "0", False, 0])
    def test_false_answers(self, value) -> None:
        assert parse_yes_no(value) is False

    @pytest.mark.parametrize("value", ["talvez", "", None])
    def test_unknown_answers(self, value) -> None:
        with pytest.raises(ValueError):
            parse_yes_no(value)


class TestAnswers:
    def test_answers_fill_their_domain_only(self, normalizer) -> None:
        data = normalizer.normalize(
            "user-1", {"diabetes.polyuria": "sim", "diabetes.polydipsia": "não"}
        )
        assert data.diabetes is not None
        assert data.diabetes.polyuria is True
        assert data.diabetes.polydipsia is False
        assert data.cardiovascular is None
        assert data.mental_health is None
        assert data.respiratory is None

    def test_unparseable_answer_names_the_field(self, normalizer) -> None:
        with pytest.raises(InvalidInputError) as exc_info:
            normalizer.normalize("user-1", {"diabetes.polyuria": "talvez"})
        assert exc_info.value.domain == "diabetes"
        assert exc_info.value.missing_fields == ["polyuria"]

    @pytest.mark.parametrize("question_id", ["diabetes.unknown_field", "renal.creatinine", "polyuria"])
    def test_unknown_question_id(self, normalizer, question_id: str) -> None:
        with pytest.raises(InvalidInputError, match="unknown question id"):
            normalizer.normalize("user-1", {question_id: True})

    def test_plan_specificity_passes_through(self, normalizer) -> None:
        data = normalizer.normalize("user-1", {"mental_health.plan_specificity": "vague"})
        assert data.mental_health.plan_specificity is PlanSpecificity.VAGUE

    def test_malformed_non_flag_answer(self, normalizer) -> None:
        with pytest.raises(InvalidInputError) as exc_info:
            normalizer.normalize("user-1", {"mental_health.plan_specificity": "detailed"})
        assert exc_info.value.missing_fields == ["plan_specificity"]


class TestEntities:
    def test_entities_set_flags(self, normalizer) -> None:
        data = normalizer.normalize("user-1", {}, entities=["dor_peito", "falta_ar_repouso"])
        assert data.cardiovascular.chest_pain is True
        assert data.cardiovascular.shortness_of_breath_at_rest is True
        assert data.diabetes is None

    def test_entities_are_normalized_and_kept(self, normalizer) -> None:
        data = normalizer.normalize("user-1", {}, entities=[" Cetose ", "dor_nas_costas", "  "])
        assert data.extracted_entities == ("cetose", "dor_nas_costas")
        assert data.diabetes.ketosis_symptoms is True

    def test_entity_overrides_negative_answer(self, normalizer) -> None:
        data = normalizer.normalize("user-1", {"diabetes.polyuria": "não"}, entities=["urina_frequente"])
        assert data.diabetes.polyuria is True

    def test_every_mapped_entity_targets_a_real_field(self, normalizer) -> None:
        for code in ENTITY_MAP:
            data = normalizer.normalize("user-1", {}, entities=[code])
            section, _, name = ENTITY_MAP[code].partition(".")
            assert getattr(data.block(RiskDomain(section)), name) is True

    def test_custom_entity_map(self) -> None:
        normalizer = QuestionnaireNormalizer({"wheeze": "respiratory.wheezing"})
        data = normalizer.normalize("user-1", {}, entities=["wheeze", "chiado"])
        assert data.respiratory.wheezing is True
        assert data.respiratory.cough is False


class TestDemographics:
    def test_portuguese_keys(self, normalizer) -> None:
        data = normalizer.normalize(
            "user-1", {}, demographics={"idade": "58", "sexo": "Masculino", "fumante": "sim"}
        )
        assert data.demographics.age == 58
        assert data.demographics.gender is Gender.MALE
        assert data.demographics.smoking is True

    def test_socioeconomic_factors(self, normalizer) -> None:
        data = normalizer.normalize(
            "user-1", {}, demographics={"socioeconomic_factors": ["low_income", "rural_location"]}
        )
        assert len(data.demographics.socioeconomic_factors) == 2

    def test_out_of_range_age(self, normalizer) -> None:
        with pytest.raises(InvalidInputError, match="demographics") as exc_info:
            normalizer.normalize("user-1", {}, demographics={"age": 200})
        assert exc_info.value.missing_fields == ["age"]

    @pytest.mark.parametrize(
        "answers,field",
        [
            ({"idade": "abc"}, "age"),
            ({"bmi": "heavy"}, "bmi"),
            ({"imc": [27]}, "bmi"),
            ({"fumante": "talvez"}, "smoking"),
            ({"sexo": "outro"}, "gender"),
        ],
    )
    def test_unparseable_values_name_the_field(self, normalizer, answers, field: str) -> None:
        with pytest.raises(InvalidInputError) as exc_info:
            normalizer.normalize("user-1", {}, demographics=answers)
        assert exc_info.value.domain == "demographics"
        assert exc_info.value.missing_fields == [field]

    def test_bmi_from_portuguese_key(self, normalizer) -> None:
        data = normalizer.normalize("user-1", {}, demographics={"imc": "31.5"})
        assert data.demographics.bmi == 31.5


def test_normalized_input_drives_assessment(normalizer) -> None:
    data = normalizer.normalize(
        "user-1",
        {"cardiovascular.palpitations": "não"},
        entities=["dor_peito", "falta_ar_repouso"],
        demographics={"idade": 62, "sexo": "f"},
    )
    outcome = AssessmentService(AppConfig()).assess(data)

    assert outcome.decision.level is EscalationLevel.IMMEDIATE
    assert outcome.composite.emergency_alerts[0].condition == "acute_coronary_syndrome_pattern"
    assert RiskDomain.DIABETES in outcome.insufficient_domains
