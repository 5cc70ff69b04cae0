"""Pydantic models for the nested fields the LLM returns about a CV.

Each category is its own record type tagged with ``kind``. Items are
validated at the persistence boundary: strings are coerced to
``{"name": ...}``, unknown keys are ignored, and items that still fail
validation are dropped.
"""
import logging
from typing import Any, Dict, List, Literal, Optional, Type

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator, model_validator
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)


class LlmRecord(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore",
                              coerce_numbers_to_str=True)

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


def _loose_number(value):
    # "5", 5, "5 years" -> 5.0; anything else -> None
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        head = value.strip().split(" ")[0].replace(",", ".")
        try:
            return float(head)
        except ValueError:
            return None
    return None


def _string_list(value):
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, list):
        return [str(v) for v in value if v not in (None, "")]
    return []


class NamedRecord(LlmRecord):
    name: str

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value):
        value = value.strip()
        if not value:
            raise ValueError("name must not be blank")
        return value


class PersonalInfo(LlmRecord):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    full_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    nationality: Optional[str] = None
    linkedin_url: Optional[str] = None
    website_url: Optional[str] = None
    github_url: Optional[str] = None
    date_of_birth: Optional[str] = None


class TechnicalSkill(NamedRecord):
    kind: Literal["technical"] = "technical"
    category: Optional[str] = None
    level: Optional[str] = None
    years_of_experience: Optional[float] = None
    proficiency: Optional[float] = None
    certification: Optional[str] = None

    @field_validator("years_of_experience", "proficiency", mode="before")
    @classmethod
    def loose_numbers(cls, value):
        return _loose_number(value)


class SoftSkill(NamedRecord):
    kind: Literal["soft"] = "soft"
    category: Optional[str] = None
    level: Optional[str] = None
    years_of_experience: Optional[float] = None

    @field_validator("years_of_experience", mode="before")
    @classmethod
    def loose_numbers(cls, value):
        return _loose_number(value)


class LanguageSkill(NamedRecord):
    kind: Literal["language"] = "language"
    proficiency: Optional[str] = None
    certification: Optional[str] = None


class Certification(NamedRecord):
    kind: Literal["certification"] = "certification"
    issuer: Optional[str] = None
    date: Optional[str] = None
    expiry_date: Optional[str] = None
    credential_id: Optional[str] = None


class Education(LlmRecord):
    kind: Literal["education"] = "education"
    degree: Optional[str] = None
    institution: Optional[str] = None
    field_of_study: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def from_name(cls, data):
        if isinstance(data, dict) and "name" in data and "degree" not in data:
            data = {**data, "degree": data["name"]}
        return data

    @model_validator(mode="after")
    def has_degree_or_institution(self):
        if not (self.degree or self.institution):
            raise ValueError("education needs a degree or an institution")
        return self


class WorkExperience(LlmRecord):
    kind: Literal["work_experience"] = "work_experience"
    title: Optional[str] = None
    company: Optional[str] = None
    location: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    is_current: Optional[bool] = None
    description: Optional[str] = None
    achievements: List[str] = []
    skills: List[str] = []
    responsibilities: List[str] = []
    employment_type: Optional[str] = None
    industry: Optional[str] = None

    @field_validator("is_current", mode="before")
    @classmethod
    def loose_bool(cls, value):
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.lower() in ("true", "false"):
            return value.lower() == "true"
        return None

    @field_validator("achievements", "skills", "responsibilities", mode="before")
    @classmethod
    def string_lists(cls, value):
        return _string_list(value)

    @model_validator(mode="before")
    @classmethod
    def from_name(cls, data):
        if isinstance(data, dict) and "name" in data and "title" not in data:
            data = {**data, "title": data["name"]}
        return data

    @model_validator(mode="after")
    def has_title_or_company(self):
        if not (self.title or self.company):
            raise ValueError("work experience needs a title or a company")
        return self


class Project(NamedRecord):
    kind: Literal["project"] = "project"
    description: Optional[str] = None
    technologies: List[str] = []
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    url: Optional[str] = None

    @field_validator("technologies", mode="before")
    @classmethod
    def string_lists(cls, value):
        return _string_list(value)


def coerce_items(model: Type[LlmRecord], items) -> List[Dict[str, Any]]:
    """Validate a list of loosely-typed LLM items against ``model``."""
    if items is None:
        return []
    if not isinstance(items, list):
        items = [items]

    kept = []
    for item in items:
        if isinstance(item, str):
            item = {"name": item}
        if not isinstance(item, dict):
            logger.debug("Dropping %s item of type %s", model.__name__, type(item).__name__)
            continue
        # the tag is ours, never the model's
        item = {key: value for key, value in item.items() if key != "kind"}
        try:
            kept.append(model.model_validate(item).to_json())
        except ValidationError as e:
            logger.info("Dropping invalid %s item: %s", model.__name__, e.errors()[0].get("msg"))
    return kept


def coerce_personal_info(data) -> Dict[str, Any]:
    if not isinstance(data, dict):
        return {}
    try:
        return PersonalInfo.model_validate(data).model_dump(exclude_none=True)
    except ValidationError as e:
        logger.info("Dropping invalid personal info: %s", e.errors()[0].get("msg"))
        return {}
