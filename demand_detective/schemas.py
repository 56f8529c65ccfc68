"""Pydantic models and enums for the Detective de Demanda wizard API."""

from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class GenerationKind(str, Enum):
    """Enumerate the five content kinds, one per wizard step."""

    STRENGTHS = "strengths"
    PERSONAS = "personas"
    LISTENING = "listening"
    PILOT = "pilot"
    SCALING = "scaling"

    @property
    def step(self) -> int:
        """Return the wizard step number that owns this kind."""
        step_numbers = {
            GenerationKind.STRENGTHS: 1,
            GenerationKind.PERSONAS: 2,
            GenerationKind.LISTENING: 3,
            GenerationKind.PILOT: 4,
            GenerationKind.SCALING: 5,
        }
        return step_numbers[self]

    @property
    def persona_scoped(self) -> bool:
        """True for the kinds stored per persona name."""
        return self in PERSONA_SCOPED_KINDS


PERSONA_SCOPED_KINDS = frozenset(
    {GenerationKind.LISTENING, GenerationKind.PILOT, GenerationKind.SCALING}
)


class CamelModel(BaseModel):
    """Base model that speaks camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Generated records
# ---------------------------------------------------------------------------


class Strength(CamelModel):
    """A marketable strength and the problem it solves."""

    strength: str
    problem_solved: str
    example: str


class Demographics(CamelModel):
    age: str
    location: str


class Persona(CamelModel):
    """Buyer persona; ``name`` keys every per-persona artifact."""

    name: str
    role: str
    demographics: Demographics
    professional_background: str
    goals: List[str]
    challenges: List[str]
    tech_stack: List[str]
    digital_channels: List[str]


class SurveyTemplate(CamelModel):
    title: str
    questions: List[str]


class ListeningGuide(CamelModel):
    """Keywords, survey and interview questions for active listening."""

    monitoring_keywords: List[str]
    survey_template: SurveyTemplate
    interview_questions: List[str]


class PilotOffer(CamelModel):
    """A one-week, low-friction pilot service offer."""

    offer_title: str
    outcome: str
    pricing_model: str


class BlogPost(CamelModel):
    title: str
    keywords: str


class SeoPlan(CamelModel):
    blog_posts: List[BlogPost]


class AdCampaign(CamelModel):
    platform: str
    audience: str
    # "copy" would shadow BaseModel.copy
    ad_copy: str = Field(alias="copy")


class InfluencerCollaboration(CamelModel):
    profile: str
    idea: str


class ScalingStrategy(CamelModel):
    """SEO, paid ads and micro-influencer plays for one persona."""

    seo: SeoPlan
    ads: AdCampaign
    influencers: InfluencerCollaboration


# ---------------------------------------------------------------------------
# API payloads
# ---------------------------------------------------------------------------


class GenerationRequest(CamelModel):
    """Optional inputs for a generation call."""

    profile_text: Optional[str] = Field(
        default=None,
        description="Profile, CV or skills list; replaces the stored text before step 1 runs.",
    )
    persona: Optional[str] = Field(
        default=None,
        description="Persona name for steps 3-5; defaults to the selected persona.",
    )


class ProfileUpdate(CamelModel):
    profile_text: str


class PersonaSelection(CamelModel):
    name: str


class StepDefinition(CamelModel):
    """Expose metadata that describes a step to the UI."""

    step: int
    kind: GenerationKind
    title: str
    description: str


class StepStatus(StepDefinition):
    is_open: bool
    is_complete: bool


class ChecklistItem(CamelModel):
    label: str
    detail: str
    done: bool


class WizardStateView(CamelModel):
    """Everything the front-end needs to render a session."""

    session_id: str
    profile_text: str
    strengths: List[Strength]
    personas: List[Persona]
    listening_guides: Dict[str, ListeningGuide]
    pilot_offers: Dict[str, List[PilotOffer]]
    scaling_strategies: Dict[str, ScalingStrategy]
    selected_persona: str
    open_step: int
    loading: Optional[GenerationKind]
    last_error: Optional[str]
    steps: List[StepStatus]
    checklist: List[ChecklistItem]
