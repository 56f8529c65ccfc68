"""Wizard endpoints for the Detective de Demanda FastAPI backend."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Request, status

from ..errors import InputValidationError, PersonaNotFoundError
from ..memory import SessionMemory
from ..orchestrator import StepOrchestrator
from ..schemas import (
    GenerationKind,
    GenerationRequest,
    PersonaSelection,
    ProfileUpdate,
    StepDefinition,
    WizardStateView,
)
from ..wizard import build_state_view, list_step_definitions


router = APIRouter(prefix="/wizard", tags=["wizard"])


def get_sessions(request: Request) -> SessionMemory:
    return request.app.state.sessions


def _require_session(session_id: str, sessions: SessionMemory) -> StepOrchestrator:
    orchestrator = sessions.get(session_id)
    if orchestrator is None:
        raise HTTPException(status_code=404, detail=f"No wizard session found for '{session_id}'.")
    return orchestrator


def _view(session_id: str, orchestrator: StepOrchestrator) -> WizardStateView:
    return build_state_view(session_id, orchestrator.state)


@router.get("/health")
async def healthcheck() -> dict[str, str]:
    """Simple health check endpoint."""

    return {"status": "ok"}


@router.get("/steps", response_model=list[StepDefinition])
async def list_steps() -> list[StepDefinition]:
    """Expose step metadata to the UI."""

    return list_step_definitions()


@router.post("/sessions", response_model=WizardStateView, status_code=status.HTTP_201_CREATED)
async def create_session(request: Request, sessions: SessionMemory = Depends(get_sessions)) -> WizardStateView:
    """Start a fresh wizard session."""

    client = request.app.state.generation_client
    session_id, orchestrator = sessions.create(lambda: StepOrchestrator(client))
    return _view(session_id, orchestrator)


@router.get("/sessions/{session_id}", response_model=WizardStateView)
async def fetch_session(session_id: str, sessions: SessionMemory = Depends(get_sessions)) -> WizardStateView:
    return _view(session_id, _require_session(session_id, sessions))


@router.delete("/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def discard_session(session_id: str, sessions: SessionMemory = Depends(get_sessions)) -> None:
    if not sessions.discard(session_id):
        raise HTTPException(status_code=404, detail=f"No wizard session found for '{session_id}'.")


@router.put("/sessions/{session_id}/profile", response_model=WizardStateView)
async def update_profile(
    session_id: str,
    payload: ProfileUpdate,
    sessions: SessionMemory = Depends(get_sessions),
) -> WizardStateView:
    orchestrator = _require_session(session_id, sessions)
    orchestrator.edit_profile(payload.profile_text)
    return _view(session_id, orchestrator)


@router.put("/sessions/{session_id}/selected-persona", response_model=WizardStateView)
async def select_persona(
    session_id: str,
    payload: PersonaSelection,
    sessions: SessionMemory = Depends(get_sessions),
) -> WizardStateView:
    orchestrator = _require_session(session_id, sessions)
    try:
        orchestrator.select_persona(payload.name)
    except PersonaNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return _view(session_id, orchestrator)


@router.post("/sessions/{session_id}/steps/{step}/toggle", response_model=WizardStateView)
async def toggle_step(
    session_id: str,
    step: int = Path(..., ge=1, le=5),
    sessions: SessionMemory = Depends(get_sessions),
) -> WizardStateView:
    """Open *step*, or close it when it is already open."""

    orchestrator = _require_session(session_id, sessions)
    orchestrator.toggle_step(step)
    return _view(session_id, orchestrator)


@router.post("/sessions/{session_id}/{kind}", response_model=WizardStateView)
async def run_generation(
    session_id: str,
    kind: GenerationKind,
    payload: Optional[GenerationRequest] = None,
    sessions: SessionMemory = Depends(get_sessions),
) -> WizardStateView:
    """Generate the requested step's content.

    Generation failures are reported through ``lastError`` in the returned
    view; skipped persona steps return the state unchanged.
    """

    orchestrator = _require_session(session_id, sessions)
    if orchestrator.busy:
        raise HTTPException(
            status_code=409,
            detail=f"A {orchestrator.state.loading.value} generation is already running.",
        )

    payload = payload or GenerationRequest()
    try:
        await orchestrator.generate(kind, profile_text=payload.profile_text, persona=payload.persona)
    except InputValidationError as exc:
        raise HTTPException(status_code=422, detail=exc.message) from exc
    return _view(session_id, orchestrator)
