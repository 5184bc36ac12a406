"""Questionnaire answers and extracted entities to engine input."""

from adapters.questionnaire.normalizer import ENTITY_MAP, QuestionnaireNormalizer, parse_yes_no

__all__ = ["ENTITY_MAP", "QuestionnaireNormalizer", "parse_yes_no"]
