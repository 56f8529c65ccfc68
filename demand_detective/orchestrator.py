"""Sequence generation calls for one wizard session."""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional, Protocol, Sequence

from fastapi.concurrency import run_in_threadpool

from .errors import (
    UNKNOWN_FAILURE_MESSAGE,
    GenerationError,
    InputValidationError,
    PreconditionNotMet,
)
from .schemas import (
    GenerationKind,
    ListeningGuide,
    Persona,
    PilotOffer,
    ScalingStrategy,
    Strength,
)
from .state import (
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
    find_persona,
    initial_state,
    invariant_violations,
    primary_problem,
)

logger = logging.getLogger(__name__)

Producer = Callable[[], Any]


class StepGenerator(Protocol):
    """What the orchestrator needs from a generation client."""

    def generate_strengths(self, profile_text: str) -> Sequence[Strength]: ...

    def generate_personas(self, strengths: Sequence[Strength]) -> Sequence[Persona]: ...

    def generate_listening_guide(self, persona: Persona) -> ListeningGuide: ...

    def generate_pilot_offers(self, problem: str, persona: Persona) -> Sequence[PilotOffer]: ...

    def generate_scaling_strategy(self, problem: str, persona: Persona) -> ScalingStrategy: ...


class StepOrchestrator:
    """Own a session's ``WizardState`` and run one generation at a time.

    Callers must not start a second :meth:`run` while :attr:`busy` is set; the
    HTTP layer refuses such requests instead of queueing them.
    """

    def __init__(self, client: StepGenerator, state: WizardState | None = None) -> None:
        self._client = client
        self._state = state or initial_state()

    @property
    def state(self) -> WizardState:
        return self._state

    @property
    def busy(self) -> bool:
        return self._state.loading is not None

    def dispatch(self, event: Any) -> WizardState:
        self._state = apply_event(self._state, event)
        return self._state

    # ------------------------------------------------------------------
    # Core sequencing
    # ------------------------------------------------------------------

    async def run(self, kind: GenerationKind, producer: Producer, *, persona: str | None = None) -> bool:
        """Run *producer* and merge its result; return True on success.

        Persona-scoped kinds need the *persona* name their result is stored
        under; without one the producer is never called.
        """

        if kind.persona_scoped and not persona:
            logger.debug("Skipping %s generation: no persona to store the result under", kind.value)
            return False

        self.dispatch(GenerationStarted(kind))
        try:
            result = await run_in_threadpool(producer)
        except GenerationError as exc:
            logger.warning("%s generation failed: %s", kind.value, exc)
            self.dispatch(GenerationFailed(exc.user_message))
            return False
        except Exception:
            logger.exception("Unexpected error during %s generation", kind.value)
            self.dispatch(GenerationFailed(UNKNOWN_FAILURE_MESSAGE))
            return False
        else:
            self.dispatch(self._success_event(kind, result, persona))
            violations = invariant_violations(self._state)
            if violations:
                logger.warning("State inconsistent after %s: %s", kind.value, "; ".join(violations))
            logger.info("%s generation merged", kind.value)
            return True
        finally:
            self.dispatch(GenerationFinished())

    @staticmethod
    def _success_event(kind: GenerationKind, result: Any, persona: str | None) -> Any:
        if kind.persona_scoped:
            return ArtifactGenerated(kind=kind, persona=persona, result=result)
        if kind is GenerationKind.STRENGTHS:
            return StrengthsGenerated(tuple(result))
        return PersonasGenerated(tuple(result))

    # ------------------------------------------------------------------
    # Step actions
    # ------------------------------------------------------------------

    def edit_profile(self, text: str) -> WizardState:
        return self.dispatch(ProfileEdited(text))

    def toggle_step(self, step: int) -> WizardState:
        return self.dispatch(StepToggled(step))

    def select_persona(self, name: str) -> WizardState:
        return self.dispatch(PersonaSelected(name))

    async def generate_strengths(self, profile_text: str | None = None) -> bool:
        """Analyse *profile_text*, or the stored profile when it is None.

        A new profile is only kept once strengths were generated from it.
        """

        text = self._state.profile_text if profile_text is None else profile_text
        if not text.strip():
            raise InputValidationError()
        succeeded = await self.run(
            GenerationKind.STRENGTHS,
            lambda: self._client.generate_strengths(text),
        )
        if succeeded and profile_text is not None:
            self.edit_profile(profile_text)
        return succeeded

    async def generate_personas(self) -> bool:
        strengths = self._state.strengths
        if not strengths:
            logger.debug("Skipping personas generation: no strengths yet")
            return False
        return await self.run(
            GenerationKind.PERSONAS,
            lambda: self._client.generate_personas(strengths),
        )

    def _persona_inputs(self, kind: GenerationKind, name: Optional[str]) -> tuple[Persona, Optional[str]]:
        resolved = name or self._state.selected_persona
        persona = find_persona(self._state, resolved)
        if persona is None:
            raise PreconditionNotMet(f"No persona selected for {kind.value}")
        problem = primary_problem(self._state)
        if kind is not GenerationKind.LISTENING and not problem:
            raise PreconditionNotMet(f"No problem statement available for {kind.value}")
        return persona, problem

    async def _generate_for_persona(self, kind: GenerationKind, name: Optional[str]) -> bool:
        try:
            persona, problem = self._persona_inputs(kind, name)
        except PreconditionNotMet as exc:
            logger.debug("Skipping %s generation: %s", kind.value, exc)
            return False

        if kind is GenerationKind.LISTENING:
            producer: Producer = lambda: self._client.generate_listening_guide(persona)
        elif kind is GenerationKind.PILOT:
            producer = lambda: self._client.generate_pilot_offers(problem, persona)
        else:
            producer = lambda: self._client.generate_scaling_strategy(problem, persona)
        return await self.run(kind, producer, persona=persona.name)

    async def generate_listening_guide(self, persona: str | None = None) -> bool:
        return await self._generate_for_persona(GenerationKind.LISTENING, persona)

    async def generate_pilot_offers(self, persona: str | None = None) -> bool:
        return await self._generate_for_persona(GenerationKind.PILOT, persona)

    async def generate_scaling_strategy(self, persona: str | None = None) -> bool:
        return await self._generate_for_persona(GenerationKind.SCALING, persona)

    async def generate(
        self,
        kind: GenerationKind,
        *,
        profile_text: str | None = None,
        persona: str | None = None,
    ) -> bool:
        """Dispatch to the action for *kind*."""

        if kind is GenerationKind.STRENGTHS:
            return await self.generate_strengths(profile_text)
        if kind is GenerationKind.PERSONAS:
            return await self.generate_personas()
        return await self._generate_for_persona(kind, persona)
