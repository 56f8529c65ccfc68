"""Step metadata, the actionable checklist and the state view served to the UI."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, List

from .schemas import (
    ChecklistItem,
    GenerationKind,
    StepDefinition,
    StepStatus,
    WizardStateView,
)
from .state import WizardState, is_step_complete


# ---------------------------------------------------------------------------
# Step registry
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StepInfo:
    """Runtime definition used by the registry below."""

    kind: GenerationKind
    title: str
    description: str

    @property
    def number(self) -> int:
        return self.kind.step


STEP_REGISTRY: Dict[GenerationKind, StepInfo] = {
    GenerationKind.STRENGTHS: StepInfo(
        kind=GenerationKind.STRENGTHS,
        title="Descubre tus superpoderes",
        description="De tu perfil a problemas resueltos",
    ),
    GenerationKind.PERSONAS: StepInfo(
        kind=GenerationKind.PERSONAS,
        title="Dibuja a tu cliente ideal",
        description="Construye tus buyer personas",
    ),
    GenerationKind.LISTENING: StepInfo(
        kind=GenerationKind.LISTENING,
        title="Investiga de incógnito",
        description="Escucha y recopila pruebas",
    ),
    GenerationKind.PILOT: StepInfo(
        kind=GenerationKind.PILOT,
        title="Prepara el cebo",
        description="Lanza un servicio piloto",
    ),
    GenerationKind.SCALING: StepInfo(
        kind=GenerationKind.SCALING,
        title="Amplifica tu señal",
        description="Escala con precisión",
    ),
}


def _ordered_steps() -> List[StepInfo]:
    return sorted(STEP_REGISTRY.values(), key=lambda info: info.number)


def list_step_definitions() -> List[StepDefinition]:
    """Return UI-friendly descriptors for all steps."""

    return [
        StepDefinition(step=info.number, kind=info.kind, title=info.title, description=info.description)
        for info in _ordered_steps()
    ]


def step_statuses(state: WizardState) -> List[StepStatus]:
    return [
        StepStatus(
            step=info.number,
            kind=info.kind,
            title=info.title,
            description=info.description,
            is_open=state.open_step == info.number,
            is_complete=is_step_complete(state, info.number),
        )
        for info in _ordered_steps()
    ]


# ---------------------------------------------------------------------------
# Actionable checklist
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ChecklistEntry:
    label: str
    detail: str
    done: Callable[[WizardState], bool]


CHECKLIST: List[ChecklistEntry] = [
    ChecklistEntry(
        label="Valida fortalezas",
        detail="Confirma que los problemas generados resuenan contigo.",
        done=lambda state: bool(state.strengths),
    ),
    ChecklistEntry(
        label="Elige una persona",
        detail="Enfócate en un solo buyer persona para empezar.",
        done=lambda state: bool(state.personas),
    ),
    ChecklistEntry(
        label="Escucha activamente",
        detail="Dedica 15-30 min diarios a monitorear palabras clave en los canales de tu persona.",
        done=lambda state: bool(state.listening_guides),
    ),
    ChecklistEntry(
        label="Valida urgencia",
        detail=(
            "Contacta a 3-5 personas que coincidan con tu persona para una charla rápida "
            "usando tus preguntas de entrevista."
        ),
        done=lambda state: bool(state.listening_guides),
    ),
    ChecklistEntry(
        label="Lanza el piloto",
        detail="Presenta tu oferta piloto a las personas que entrevistaste.",
        done=lambda state: bool(state.pilot_offers),
    ),
    ChecklistEntry(
        label="Inicia el contenido",
        detail="Escribe el primer artículo de blog sugerido en tu plan de escalado.",
        done=lambda state: bool(state.scaling_strategies),
    ),
]


def build_checklist(state: WizardState) -> List[ChecklistItem]:
    """Return the checklist once strengths and personas exist, else nothing."""

    if not (state.strengths and state.personas):
        return []
    return [
        ChecklistItem(label=entry.label, detail=entry.detail, done=entry.done(state))
        for entry in CHECKLIST
    ]


def build_state_view(session_id: str, state: WizardState) -> WizardStateView:
    return WizardStateView(
        session_id=session_id,
        profile_text=state.profile_text,
        strengths=list(state.strengths),
        personas=list(state.personas),
        listening_guides=dict(state.listening_guides),
        pilot_offers={name: list(offers) for name, offers in state.pilot_offers.items()},
        scaling_strategies=dict(state.scaling_strategies),
        selected_persona=state.selected_persona,
        open_step=state.open_step,
        loading=state.loading,
        last_error=state.last_error,
        steps=step_statuses(state),
        checklist=build_checklist(state),
    )
