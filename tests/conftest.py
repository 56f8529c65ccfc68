from __future__ import annotations

from typing import Any, List

import pytest

from demand_detective.orchestrator import StepOrchestrator
from demand_detective.schemas import (
    AdCampaign,
    BlogPost,
    Demographics,
    InfluencerCollaboration,
    ListeningGuide,
    Persona,
    PilotOffer,
    ScalingStrategy,
    SeoPlan,
    Strength,
    SurveyTemplate,
)


def make_strength(problem: str = "reduces onboarding time", strength: str = "API design") -> Strength:
    return Strength(
        strength=strength,
        problem_solved=problem,
        example=f"Used {strength.lower()} to solve: {problem}.",
    )


def make_persona(name: str = "Alex Rivera", role: str = "Head of Platform") -> Persona:
    return Persona(
        name=name,
        role=role,
        demographics=Demographics(age="35-44", location="Centro tecnológico como Austin, TX"),
        professional_background="Ten years scaling B2B SaaS engineering teams.",
        goals=["Ship integrations faster", "Cut support tickets"],
        challenges=["Slow partner onboarding", "Undocumented APIs"],
        tech_stack=["Python", "Postman", "Jira"],
        digital_channels=["r/SaaS", "LinkedIn", "Software Engineering Daily"],
    )


def make_guide(title: str = "Encuesta rápida sobre integraciones") -> ListeningGuide:
    return ListeningGuide(
        monitoring_keywords=["api onboarding slow", "partner integration pain"],
        survey_template=SurveyTemplate(title=title, questions=["¿Q1?", "¿Q2?", "¿Q3?"]),
        interview_questions=["¿I1?", "¿I2?", "¿I3?", "¿I4?", "¿I5?"],
    )


def make_offers() -> List[PilotOffer]:
    return [
        PilotOffer(offer_title="Auditoría de API en una semana", outcome="Mapa de fricción", pricing_model="300 EUR"),
        PilotOffer(offer_title="Sprint de documentación", outcome="Guía de inicio", pricing_model="Gratis por testimonio"),
    ]


def make_strategy() -> ScalingStrategy:
    return ScalingStrategy(
        seo=SeoPlan(
            blog_posts=[
                BlogPost(title="Cómo reducir el onboarding de partners", keywords="onboarding api partners"),
                BlogPost(title="Errores comunes al documentar una API", keywords="documentar api errores"),
            ]
        ),
        ads=AdCampaign(platform="LinkedIn", audience="Heads of Platform en SaaS B2B", ad_copy="Integra partners en días."),
        influencers=InfluencerCollaboration(profile="Podcaster de ingeniería de plataformas", idea="Episodio conjunto"),
    )


class FakeGenerationClient:
    """Stand-in for ``GenerationClient`` that records calls and returns canned data."""

    def __init__(self) -> None:
        self.calls: List[tuple[str, tuple[Any, ...]]] = []
        self.error: Exception | None = None
        self.strengths: List[Strength] = [
            make_strength("reduces onboarding time", "API design"),
            make_strength("stabilises legacy services", "Backend engineering"),
            make_strength("shortens release cycles", "Python automation"),
        ]
        self.personas: List[Persona] = [
            make_persona("Alex Rivera", "Head of Platform"),
            make_persona("Marta Gómez", "CTO"),
        ]

    def _record(self, name: str, *args: Any) -> None:
        self.calls.append((name, args))
        if self.error is not None:
            raise self.error

    def generate_strengths(self, profile_text: str) -> List[Strength]:
        self._record("strengths", profile_text)
        return list(self.strengths)

    def generate_personas(self, strengths: Any) -> List[Persona]:
        self._record("personas", tuple(strengths))
        return list(self.personas)

    def generate_listening_guide(self, persona: Persona) -> ListeningGuide:
        self._record("listening", persona.name)
        return make_guide()

    def generate_pilot_offers(self, problem: str, persona: Persona) -> List[PilotOffer]:
        self._record("pilot", problem, persona.name)
        return make_offers()

    def generate_scaling_strategy(self, problem: str, persona: Persona) -> ScalingStrategy:
        self._record("scaling", problem, persona.name)
        return make_strategy()


@pytest.fixture
def fake_client() -> FakeGenerationClient:
    return FakeGenerationClient()


@pytest.fixture
def orchestrator(fake_client: FakeGenerationClient) -> StepOrchestrator:
    return StepOrchestrator(fake_client)
