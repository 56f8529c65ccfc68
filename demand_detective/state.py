"""Wizard state and the pure reducers that drive the five-step flow.

``WizardState`` is an immutable value. Every change goes through
:func:`apply_event`, which looks up the reducer registered for the event's
type and returns a new state. Step 1 (strengths) is the root of the dependency
graph: regenerating it discards everything derived from it, regenerating the
personas discards the per-persona artifacts, and per-persona artifacts only
ever replace their own map entry.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from .errors import PersonaNotFoundError
from .schemas import (
    PERSONA_SCOPED_KINDS,
    GenerationKind,
    ListeningGuide,
    Persona,
    PilotOffer,
    ScalingStrategy,
    Strength,
)

CLOSED = 0
FIRST_STEP = 1
LAST_STEP = 5

_EMPTY: Mapping[str, Any] = MappingProxyType({})


@dataclass(frozen=True)
class WizardState:
    """Aggregate of everything one wizard session knows."""

    profile_text: str = ""
    strengths: Tuple[Strength, ...] = ()
    personas: Tuple[Persona, ...] = ()
    listening_guides: Mapping[str, ListeningGuide] = field(default_factory=lambda: _EMPTY)
    pilot_offers: Mapping[str, Tuple[PilotOffer, ...]] = field(default_factory=lambda: _EMPTY)
    scaling_strategies: Mapping[str, ScalingStrategy] = field(default_factory=lambda: _EMPTY)
    selected_persona: str = ""
    open_step: int = FIRST_STEP
    loading: Optional[GenerationKind] = None
    last_error: Optional[str] = None


def initial_state() -> WizardState:
    return WizardState()


def _with_entry(mapping: Mapping[str, Any], key: str, value: Any) -> Mapping[str, Any]:
    updated = dict(mapping)
    updated[key] = value
    return MappingProxyType(updated)


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ProfileEdited:
    text: str


@dataclass(frozen=True)
class GenerationStarted:
    kind: GenerationKind


@dataclass(frozen=True)
class StrengthsGenerated:
    strengths: Tuple[Strength, ...]


@dataclass(frozen=True)
class PersonasGenerated:
    personas: Tuple[Persona, ...]


@dataclass(frozen=True)
class ArtifactGenerated:
    """A listening guide, pilot-offer set or scaling strategy for one persona."""

    kind: GenerationKind
    persona: str
    result: Any


@dataclass(frozen=True)
class GenerationFailed:
    message: str


@dataclass(frozen=True)
class GenerationFinished:
    pass


@dataclass(frozen=True)
class StepToggled:
    step: int


@dataclass(frozen=True)
class PersonaSelected:
    name: str


# ---------------------------------------------------------------------------
# Reducers
# ---------------------------------------------------------------------------


def _on_profile_edited(state: WizardState, event: ProfileEdited) -> WizardState:
    return replace(state, profile_text=event.text)


def _on_generation_started(state: WizardState, event: GenerationStarted) -> WizardState:
    return replace(state, loading=event.kind, last_error=None)


def _on_strengths_generated(state: WizardState, event: StrengthsGenerated) -> WizardState:
    return replace(
        state,
        strengths=tuple(event.strengths),
        personas=(),
        listening_guides=_EMPTY,
        pilot_offers=_EMPTY,
        scaling_strategies=_EMPTY,
        selected_persona="",
        open_step=GenerationKind.PERSONAS.step,
    )


def _on_personas_generated(state: WizardState, event: PersonasGenerated) -> WizardState:
    personas = tuple(event.personas)
    return replace(
        state,
        personas=personas,
        listening_guides=_EMPTY,
        pilot_offers=_EMPTY,
        scaling_strategies=_EMPTY,
        selected_persona=personas[0].name if personas else "",
        open_step=GenerationKind.LISTENING.step,
    )


def _on_artifact_generated(state: WizardState, event: ArtifactGenerated) -> WizardState:
    if not event.kind.persona_scoped:
        raise ValueError(f"{event.kind.value} is not a persona-scoped kind")
    if event.kind is GenerationKind.LISTENING:
        return replace(
            state,
            listening_guides=_with_entry(state.listening_guides, event.persona, event.result),
            open_step=GenerationKind.PILOT.step,
        )
    if event.kind is GenerationKind.PILOT:
        return replace(
            state,
            pilot_offers=_with_entry(state.pilot_offers, event.persona, tuple(event.result)),
            open_step=GenerationKind.SCALING.step,
        )
    return replace(
        state,
        scaling_strategies=_with_entry(state.scaling_strategies, event.persona, event.result),
        open_step=GenerationKind.SCALING.step,
    )


def _on_generation_failed(state: WizardState, event: GenerationFailed) -> WizardState:
    return replace(state, last_error=event.message)


def _on_generation_finished(state: WizardState, event: GenerationFinished) -> WizardState:
    return replace(state, loading=None)


def _on_step_toggled(state: WizardState, event: StepToggled) -> WizardState:
    if not FIRST_STEP <= event.step <= LAST_STEP:
        raise ValueError(f"Step must be between {FIRST_STEP} and {LAST_STEP}, got {event.step}")
    # Navigation is never gated on earlier steps having run.
    return replace(state, open_step=CLOSED if state.open_step == event.step else event.step)


def _on_persona_selected(state: WizardState, event: PersonaSelected) -> WizardState:
    if find_persona(state, event.name) is None:
        raise PersonaNotFoundError(event.name)
    return replace(state, selected_persona=event.name)


ReducerFn = Callable[[WizardState, Any], WizardState]

REDUCERS: Dict[type, ReducerFn] = {
    ProfileEdited: _on_profile_edited,
    GenerationStarted: _on_generation_started,
    StrengthsGenerated: _on_strengths_generated,
    PersonasGenerated: _on_personas_generated,
    ArtifactGenerated: _on_artifact_generated,
    GenerationFailed: _on_generation_failed,
    GenerationFinished: _on_generation_finished,
    StepToggled: _on_step_toggled,
    PersonaSelected: _on_persona_selected,
}


def apply_event(state: WizardState, event: Any) -> WizardState:
    """Return the state that results from applying *event* to *state*."""

    try:
        reducer = REDUCERS[type(event)]
    except KeyError:
        raise TypeError(f"No reducer registered for {type(event).__name__}") from None
    return reducer(state, event)


# ---------------------------------------------------------------------------
# Selectors
# ---------------------------------------------------------------------------


def primary_problem(state: WizardState) -> Optional[str]:
    """Problem statement that scopes pilot offers and scaling strategies.

    Only the first identified strength is used; the remaining strengths feed
    persona generation but never narrow the downstream steps.
    """

    if not state.strengths:
        return None
    return state.strengths[0].problem_solved or None


def find_persona(state: WizardState, name: str) -> Optional[Persona]:
    if not name:
        return None
    return next((persona for persona in state.personas if persona.name == name), None)


def artifacts_for(state: WizardState, kind: GenerationKind) -> Mapping[str, Any]:
    """Return the per-persona map that stores results of *kind*."""

    if not kind.persona_scoped:
        raise ValueError(f"{kind.value} is not a persona-scoped kind")
    maps = {
        GenerationKind.LISTENING: state.listening_guides,
        GenerationKind.PILOT: state.pilot_offers,
        GenerationKind.SCALING: state.scaling_strategies,
    }
    return maps[kind]


def is_step_complete(state: WizardState, step: int) -> bool:
    """Checkmark indicator for *step*; used for display, never for gating."""

    if step == GenerationKind.STRENGTHS.step:
        return bool(state.strengths)
    if step == GenerationKind.PERSONAS.step:
        return bool(state.personas)
    for kind in PERSONA_SCOPED_KINDS:
        if kind.step == step:
            return state.selected_persona in artifacts_for(state, kind)
    return False


def invariant_violations(state: WizardState) -> List[str]:
    """List every dependency invariant *state* breaks (empty when consistent)."""

    problems: List[str] = []
    persona_maps = {
        "listening_guides": state.listening_guides,
        "pilot_offers": state.pilot_offers,
        "scaling_strategies": state.scaling_strategies,
    }
    if not state.strengths:
        if state.personas:
            problems.append("personas present without strengths")
        for label, mapping in persona_maps.items():
            if mapping:
                problems.append(f"{label} present without strengths")

    names = {persona.name for persona in state.personas}
    for label, mapping in persona_maps.items():
        stale = sorted(set(mapping) - names)
        if stale:
            problems.append(f"{label} keyed by unknown personas: {', '.join(stale)}")

    if state.selected_persona and state.selected_persona not in names:
        problems.append(f"selected persona '{state.selected_persona}' is not a known persona")
    if not state.selected_persona and state.personas:
        problems.append("personas present but none selected")
    if not CLOSED <= state.open_step <= LAST_STEP:
        problems.append(f"open step {state.open_step} out of range")
    return problems
