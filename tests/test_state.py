from __future__ import annotations

from dataclasses import replace
from types import MappingProxyType

import pytest

from conftest import make_guide, make_offers, make_persona, make_strategy, make_strength
from demand_detective.errors import PersonaNotFoundError
from demand_detective.schemas import PERSONA_SCOPED_KINDS, GenerationKind
from demand_detective.state import (
    CLOSED,
    ArtifactGenerated,
    GenerationFailed,
    GenerationFinished,
    GenerationStarted,
    PersonaSelected,
    PersonasGenerated,
    ProfileEdited,
    StepToggled,
    StrengthsGenerated,
    WizardState,
    apply_event,
    artifacts_for,
    initial_state,
    invariant_violations,
    is_step_complete,
    primary_problem,
)


def _fully_populated() -> WizardState:
    state = initial_state()
    state = apply_event(state, StrengthsGenerated((make_strength(),)))
    state = apply_event(state, PersonasGenerated((make_persona("Alex Rivera"), make_persona("Marta Gómez"))))
    state = apply_event(state, ArtifactGenerated(GenerationKind.LISTENING, "Alex Rivera", make_guide()))
    state = apply_event(state, ArtifactGenerated(GenerationKind.PILOT, "Alex Rivera", make_offers()))
    state = apply_event(state, ArtifactGenerated(GenerationKind.SCALING, "Alex Rivera", make_strategy()))
    return state


def test_initial_state_opens_first_step() -> None:
    state = initial_state()

    assert state.open_step == 1
    assert state.loading is None
    assert state.strengths == ()
    assert invariant_violations(state) == []


def test_profile_edit_replaces_text() -> None:
    state = apply_event(initial_state(), ProfileEdited("5 years backend engineer"))

    assert state.profile_text == "5 years backend engineer"


def test_regenerating_strengths_clears_everything_downstream() -> None:
    state = _fully_populated()

    state = apply_event(state, StrengthsGenerated((make_strength("cuts cloud costs"),)))

    assert [item.problem_solved for item in state.strengths] == ["cuts cloud costs"]
    assert state.personas == ()
    assert dict(state.listening_guides) == {}
    assert dict(state.pilot_offers) == {}
    assert dict(state.scaling_strategies) == {}
    assert state.selected_persona == ""
    assert state.open_step == 2
    assert invariant_violations(state) == []


def test_regenerating_personas_keeps_strengths_and_clears_persona_maps() -> None:
    state = _fully_populated()
    strengths_before = state.strengths

    state = apply_event(state, PersonasGenerated((make_persona("Lucía Pérez"), make_persona("Tom Hale"))))

    assert state.strengths is strengths_before
    assert dict(state.listening_guides) == {}
    assert dict(state.pilot_offers) == {}
    assert dict(state.scaling_strategies) == {}
    assert state.selected_persona == "Lucía Pérez"
    assert state.open_step == 3
    assert invariant_violations(state) == []


def test_empty_persona_sequence_leaves_selection_empty() -> None:
    state = apply_event(_fully_populated(), PersonasGenerated(()))

    assert state.personas == ()
    assert state.selected_persona == ""


@pytest.mark.parametrize(
    ("kind", "result", "expected_step"),
    [
        (GenerationKind.LISTENING, make_guide("Otra encuesta"), 4),
        (GenerationKind.PILOT, make_offers(), 5),
        (GenerationKind.SCALING, make_strategy(), 5),
    ],
)
def test_persona_artifact_only_touches_its_own_key(kind: GenerationKind, result, expected_step: int) -> None:
    state = _fully_populated()
    untouched = {other: artifacts_for(state, other)["Alex Rivera"] for other in PERSONA_SCOPED_KINDS}

    state = apply_event(state, ArtifactGenerated(kind, "Marta Gómez", result))

    assert {other: artifacts_for(state, other)["Alex Rivera"] for other in PERSONA_SCOPED_KINDS} == untouched
    assert set(artifacts_for(state, kind)) == {"Alex Rivera", "Marta Gómez"}
    assert state.open_step == expected_step
    assert invariant_violations(state) == []


@pytest.mark.parametrize(
    ("kind", "expected_step"),
    [
        (GenerationKind.LISTENING, 4),
        (GenerationKind.PILOT, 5),
        (GenerationKind.SCALING, 5),
    ],
)
def test_persona_artifacts_advance_open_step(kind: GenerationKind, expected_step: int) -> None:
    state = apply_event(initial_state(), StrengthsGenerated((make_strength(),)))
    state = apply_event(state, PersonasGenerated((make_persona(),)))
    result = {
        GenerationKind.LISTENING: make_guide(),
        GenerationKind.PILOT: make_offers(),
        GenerationKind.SCALING: make_strategy(),
    }[kind]

    state = apply_event(state, ArtifactGenerated(kind, "Alex Rivera", result))

    assert state.open_step == expected_step
    assert is_step_complete(state, kind.step)


def test_artifact_event_rejects_non_persona_kind() -> None:
    with pytest.raises(ValueError):
        apply_event(initial_state(), ArtifactGenerated(GenerationKind.PERSONAS, "Alex Rivera", []))


def test_pilot_offers_are_stored_immutably() -> None:
    state = apply_event(initial_state(), StrengthsGenerated((make_strength(),)))
    state = apply_event(state, PersonasGenerated((make_persona(),)))
    offers = make_offers()

    state = apply_event(state, ArtifactGenerated(GenerationKind.PILOT, "Alex Rivera", offers))
    offers.clear()

    assert len(state.pilot_offers["Alex Rivera"]) == 2
    with pytest.raises(TypeError):
        state.pilot_offers["Marta Gómez"] = ()  # type: ignore[index]


def test_toggle_closes_open_step_and_opens_closed_one() -> None:
    state = initial_state()

    state = apply_event(state, StepToggled(1))
    assert state.open_step == CLOSED

    state = apply_event(state, StepToggled(4))
    assert state.open_step == 4

    state = apply_event(state, StepToggled(2))
    assert state.open_step == 2


@pytest.mark.parametrize("step", [0, 6, -1])
def test_toggle_rejects_unknown_steps(step: int) -> None:
    with pytest.raises(ValueError):
        apply_event(initial_state(), StepToggled(step))


def test_loading_lifecycle_clears_error() -> None:
    state = apply_event(initial_state(), GenerationFailed("boom"))

    state = apply_event(state, GenerationStarted(GenerationKind.PERSONAS))
    assert state.loading is GenerationKind.PERSONAS
    assert state.last_error is None

    state = apply_event(state, GenerationFinished())
    assert state.loading is None


def test_select_persona_requires_known_name() -> None:
    state = _fully_populated()

    state = apply_event(state, PersonaSelected("Marta Gómez"))
    assert state.selected_persona == "Marta Gómez"

    with pytest.raises(PersonaNotFoundError):
        apply_event(state, PersonaSelected("Nobody"))


def test_unknown_event_type_is_rejected() -> None:
    with pytest.raises(TypeError):
        apply_event(initial_state(), object())


def test_primary_problem_uses_first_strength_only() -> None:
    state = apply_event(
        initial_state(),
        StrengthsGenerated((make_strength("reduces onboarding time"), make_strength("cuts cloud costs"))),
    )

    assert primary_problem(state) == "reduces onboarding time"
    assert primary_problem(initial_state()) is None


def test_step_completion_follows_selected_persona() -> None:
    state = _fully_populated()

    assert all(is_step_complete(state, step) for step in range(1, 6))

    state = apply_event(state, PersonaSelected("Marta Gómez"))
    assert is_step_complete(state, 1)
    assert is_step_complete(state, 2)
    assert not any(is_step_complete(state, step) for step in (3, 4, 5))


def test_invariant_check_flags_stale_persona_entries() -> None:
    state = _fully_populated()
    leaked = replace(state, personas=(make_persona("Marta Gómez"),), selected_persona="Marta Gómez")
    orphaned = replace(initial_state(), listening_guides=MappingProxyType({"Alex Rivera": make_guide()}))

    assert any("unknown personas" in problem for problem in invariant_violations(leaked))
    assert "listening_guides present without strengths" in invariant_violations(orphaned)
