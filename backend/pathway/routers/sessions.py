"""
Sessions router for the onboarding engine.

Handles the session lifecycle, traversal, adaptation, alternatives
and completion validation.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from pathway.schemas import (
    AbandonRequest,
    AdaptationDecision,
    AlternativePath,
    CompletionValidation,
    PathSwitchRequest,
    ReportedIssue,
    SessionRecord,
    StartSessionRequest,
    StepRecord,
    UserBehavior,
)
from pathway.services import OnboardingService

from .deps import get_onboarding_service


router = APIRouter()


@router.post("/", response_model=SessionRecord, status_code=status.HTTP_201_CREATED)
def start_session(
    request: StartSessionRequest,
    service: OnboardingService = Depends(get_onboarding_service)
) -> SessionRecord:
    """
    Start onboarding on the best matching path for the user context.
    """
    return service.start_session(request.user_id, request.context)


@router.get("/users/{user_id}", response_model=List[SessionRecord])
def list_user_sessions(
    user_id: str,
    session_status: Optional[str] = Query(None, alias="status"),
    service: OnboardingService = Depends(get_onboarding_service)
) -> List[SessionRecord]:
    return service.list_user_sessions(user_id, session_status)


@router.get("/{session_id}", response_model=SessionRecord)
def get_session(
    session_id: str,
    service: OnboardingService = Depends(get_onboarding_service)
) -> SessionRecord:
    return service.get_session(session_id)


@router.post("/{session_id}/pause", response_model=SessionRecord)
def pause_session(
    session_id: str,
    service: OnboardingService = Depends(get_onboarding_service)
) -> SessionRecord:
    return service.sessions.pause_session(session_id)


@router.post("/{session_id}/resume", response_model=SessionRecord)
def resume_session(
    session_id: str,
    service: OnboardingService = Depends(get_onboarding_service)
) -> SessionRecord:
    return service.sessions.resume_session(session_id)


@router.post("/{session_id}/complete", response_model=SessionRecord)
def complete_session(
    session_id: str,
    service: OnboardingService = Depends(get_onboarding_service)
) -> SessionRecord:
    return service.sessions.complete_session(session_id)


@router.post("/{session_id}/abandon", response_model=SessionRecord)
def abandon_session(
    session_id: str,
    request: Optional[AbandonRequest] = None,
    service: OnboardingService = Depends(get_onboarding_service)
) -> SessionRecord:
    return service.sessions.abandon_session(session_id, request.reason if request else None)


@router.post("/{session_id}/switch", response_model=SessionRecord)
def switch_path(
    session_id: str,
    request: PathSwitchRequest,
    service: OnboardingService = Depends(get_onboarding_service)
) -> SessionRecord:
    """
    Move the session to another path. Invalid requests return 422 with the issues.
    """
    return service.sessions.switch_to_alternative_path(
        session_id, request.new_path_id, request.reason, request.note
    )


@router.get("/{session_id}/next-step", response_model=Optional[StepRecord])
def next_step(
    session_id: str,
    service: OnboardingService = Depends(get_onboarding_service)
) -> Optional[StepRecord]:
    """
    Get the next step whose dependencies are all completed, or null when none is left.
    """
    return service.get_next_step(session_id)


@router.post("/{session_id}/adapt", response_model=AdaptationDecision)
def adapt_path(
    session_id: str,
    behavior: UserBehavior,
    service: OnboardingService = Depends(get_onboarding_service)
) -> AdaptationDecision:
    return service.adapt_path(session_id, behavior)


@router.post("/{session_id}/alternatives", response_model=List[AlternativePath])
def suggest_alternatives(
    session_id: str,
    issues: List[ReportedIssue],
    service: OnboardingService = Depends(get_onboarding_service)
) -> List[AlternativePath]:
    return service.suggest_alternative_paths(session_id, issues)


@router.get("/{session_id}/completion", response_model=CompletionValidation)
def validate_completion(
    session_id: str,
    service: OnboardingService = Depends(get_onboarding_service)
) -> CompletionValidation:
    """
    Check completion of required steps. Always 200, even for an unknown session.
    """
    return service.validate_path_completion(session_id)
