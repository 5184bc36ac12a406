"""
Questionnaire adapter: raw answers and OCR entities -> NormalizedAssessmentInput.

Question ids are ``"<domain>.<field>"`` paths (``"diabetes.polyuria"``). Entity codes
come from the upstream extraction layer in Portuguese (``sede_excessiva``) and are
mapped onto the same paths. A domain with no answered question and no mapped entity
stays ``None`` so the engine reports it as insufficient data instead of guessing.
"""

from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ValidationError

from riskengine.domain.models import (
    CardiovascularSymptoms,
    Demographics,
    DiabetesSymptoms,
    Gender,
    MentalHealthSymptoms,
    NormalizedAssessmentInput,
    RespiratorySymptoms,
    RiskDomain,
)
from riskengine.errors import InvalidInputError

BLOCK_MODELS: dict[RiskDomain, type[BaseModel]] = {
    RiskDomain.CARDIOVASCULAR: CardiovascularSymptoms,
    RiskDomain.DIABETES: DiabetesSymptoms,
    RiskDomain.MENTAL_HEALTH: MentalHealthSymptoms,
    RiskDomain.RESPIRATORY: RespiratorySymptoms,
}

ENTITY_MAP: dict[str, str] = {
    # Diabetes
    "sede_excessiva": "diabetes.polydipsia",
    "fome_excessiva": "diabetes.polyphagia",
    "urina_frequente": "diabetes.polyuria",
    "perda_peso": "diabetes.weight_loss",
    "perda_peso_rapida": "diabetes.rapid_weight_loss",
    "cansaco": "diabetes.fatigue",
    "visao_turva": "diabetes.blurred_vision",
    "cicatrizacao_lenta": "diabetes.slow_healing",
    "cetose": "diabetes.ketosis_symptoms",
    "halito_cetonico": "diabetes.ketosis_symptoms",
    # Cardiovascular
    "dor_peito": "cardiovascular.chest_pain",
    "falta_ar": "cardiovascular.shortness_of_breath",
    "falta_ar_repouso": "cardiovascular.shortness_of_breath_at_rest",
    "palpitacoes": "cardiovascular.palpitations",
    "desmaio": "cardiovascular.syncope",
    "dor_cabeca_intensa": "cardiovascular.severe_headache",
    "alteracao_visual": "cardiovascular.visual_changes",
    "pressao_alta": "cardiovascular.elevated_blood_pressure",
    # Mental health
    "ideacao_suicida": "mental_health.suicidal_ideation",
    "sintomas_psicoticos": "mental_health.psychotic_features",
    # Respiratory
    "ronco": "respiratory.snoring",
    "apneia_observada": "respiratory.observed_apnea",
    "chiado": "respiratory.wheezing",
    "dispneia": "respiratory.dyspnea",
    "aperto_peito": "respiratory.chest_tightness",
    "tosse": "respiratory.cough",
    "tosse_cronica": "respiratory.chronic_cough",
    "escarro": "respiratory.sputum_production",
    "febre": "respiratory.fever",
    "dificuldade_falar": "respiratory.unable_to_speak_full_sentences",
}

TRUE_ANSWERS = frozenset({"sim", "s", "yes", "y", "true", "1"})
FALSE_ANSWERS = frozenset({"nao", "não", "n", "no", "false", "0"})

GENDER_ANSWERS = {
    "m": Gender.MALE,
    "masculino": Gender.MALE,
    "male": Gender.MALE,
    "f": Gender.FEMALE,
    "feminino": Gender.FEMALE,
    "female": Gender.FEMALE,
}


def parse_yes_no(value: Any) -> bool:
    """Interpret a questionnaire answer as a boolean flag."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int | float):
        return value != 0
    if isinstance(value, str):
        v = value.strip().lower()
        if v in TRUE_ANSWERS:
            return True
        if v in FALSE_ANSWERS:
            return False
    raise ValueError(f"cannot interpret {value!r} as yes/no")


def _parse_gender(value: Any) -> Gender:
    gender = GENDER_ANSWERS.get(str(value).strip().lower())
    if gender is None:
        raise ValueError(f"unknown gender {value!r}")
    return gender


class QuestionnaireNormalizer:
    """Maps question ids and entity codes onto typed domain blocks."""

    def __init__(self, entity_map: Mapping[str, str] | None = None) -> None:
        self.entity_map = dict(ENTITY_MAP if entity_map is None else entity_map)

    def normalize(
        self,
        user_id: str,
        answers: Mapping[str, Any],
        entities: Iterable[str] = (),
        demographics: Mapping[str, Any] | None = None,
        assessed_at: datetime | None = None,
    ) -> NormalizedAssessmentInput:
        """
        Build the engine input for one questionnaire submission.

        Raises:
            InvalidInputError: an answer names an unknown question or cannot be parsed.
        """
        fields: dict[RiskDomain, dict[str, Any]] = {}

        for question_id, answer in answers.items():
            domain, name = self._resolve(question_id)
            fields.setdefault(domain, {})[name] = self._coerce(domain, name, answer)

        entity_list = [e.strip().lower() for e in entities if e.strip()]
        for code in entity_list:
            path = self.entity_map.get(code)
            if path is None:
                continue
            domain, name = self._resolve(path)
            # Extracted entities only ever add positive findings
            fields.setdefault(domain, {})[name] = True

        blocks = {domain.value: self._build_block(domain, values) for domain, values in fields.items()}

        payload: dict[str, Any] = {
            "user_id": user_id,
            "demographics": self._demographics(demographics or {}),
            "extracted_entities": tuple(entity_list),
            **blocks,
        }
        if assessed_at is not None:
            payload["assessed_at"] = assessed_at
        return NormalizedAssessmentInput(**payload)

    @staticmethod
    def _resolve(path: str) -> tuple[RiskDomain, str]:
        section, _, name = path.partition(".")
        try:
            domain = RiskDomain(section)
        except ValueError:
            raise InvalidInputError(section or path, detail=f"unknown question id {path!r}") from None
        if name not in BLOCK_MODELS[domain].model_fields:
            raise InvalidInputError(domain.value, detail=f"unknown question id {path!r}")
        return domain, name

    @staticmethod
    def _coerce(domain: RiskDomain, name: str, answer: Any) -> Any:
        if BLOCK_MODELS[domain].model_fields[name].annotation is not bool:
            return answer
        try:
            return parse_yes_no(answer)
        except ValueError as e:
            raise InvalidInputError(domain.value, missing_fields=[name], detail=str(e)) from e

    @staticmethod
    def _build_block(domain: RiskDomain, values: dict[str, Any]) -> BaseModel:
        try:
            return BLOCK_MODELS[domain].model_validate(values)
        except ValidationError as e:
            bad = sorted({str(err["loc"][0]) for err in e.errors() if err["loc"]})
            raise InvalidInputError(domain.value, missing_fields=bad, detail="malformed answer") from e

    @staticmethod
    def _demographics(raw: Mapping[str, Any]) -> Demographics:
        coercions = {
            "age": (("age", "idade"), int),
            "gender": (("gender", "sexo"), _parse_gender),
            "bmi": (("bmi", "imc"), float),
            "smoking": (("smoking", "fumante"), parse_yes_no),
        }
        values: dict[str, Any] = {}
        for name, (keys, parse) in coercions.items():
            answer = next((raw[k] for k in keys if raw.get(k) is not None), None)
            if answer is None:
                continue
            try:
                values[name] = parse(answer)
            except (TypeError, ValueError) as e:
                raise InvalidInputError("demographics", missing_fields=[name], detail=str(e)) from e
        if raw.get("socioeconomic_factors"):
            values["socioeconomic_factors"] = tuple(raw["socioeconomic_factors"])
        try:
            return Demographics.model_validate(values)
        except ValidationError as e:
            bad = sorted({str(err["loc"][0]) for err in e.errors() if err["loc"]})
            raise InvalidInputError(
                "demographics", missing_fields=bad, detail="malformed answer"
            ) from e
