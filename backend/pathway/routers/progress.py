"""
Progress router for the onboarding engine.

Handles per-step progress tracking, roll-ups, blockers, reports
and milestones.
"""

from typing import List

from fastapi import APIRouter, Depends, status

from pathway.schemas import (
    AchievementRecord,
    AwardMilestoneRequest,
    Blocker,
    CompleteStepRequest,
    FailStepRequest,
    OverallProgress,
    ProgressRecord,
    ProgressReport,
    SkipStepRequest,
    StepActionRequest,
    TrackProgressRequest,
)
from pathway.services import OnboardingService

from .deps import get_onboarding_service


router = APIRouter()


@router.put("/sessions/{session_id}/steps/{step_id}", response_model=ProgressRecord)
def track_step_progress(
    session_id: str,
    step_id: str,
    request: TrackProgressRequest,
    service: OnboardingService = Depends(get_onboarding_service)
) -> ProgressRecord:
    """
    Create or update progress for a step. Repeated calls update the same record.
    """
    return service.track_step_progress(session_id, step_id, request.user_id, request.delta)


@router.post("/sessions/{session_id}/steps/{step_id}/start", response_model=ProgressRecord)
def start_step(
    session_id: str,
    step_id: str,
    request: StepActionRequest,
    service: OnboardingService = Depends(get_onboarding_service)
) -> ProgressRecord:
    return service.tracker.start_step(session_id, step_id, request.user_id)


@router.post("/sessions/{session_id}/steps/{step_id}/skip", response_model=ProgressRecord)
def skip_step(
    session_id: str,
    step_id: str,
    request: SkipStepRequest,
    service: OnboardingService = Depends(get_onboarding_service)
) -> ProgressRecord:
    return service.tracker.skip_step(session_id, step_id, request.user_id, request.reason)


@router.post("/sessions/{session_id}/steps/{step_id}/fail", response_model=ProgressRecord)
def fail_step(
    session_id: str,
    step_id: str,
    request: FailStepRequest,
    service: OnboardingService = Depends(get_onboarding_service)
) -> ProgressRecord:
    return service.tracker.fail_step(session_id, step_id, request.user_id, request.errors, request.attempts)


@router.post("/sessions/{session_id}/steps/{step_id}/complete", response_model=ProgressRecord)
def complete_step(
    session_id: str,
    step_id: str,
    request: CompleteStepRequest,
    service: OnboardingService = Depends(get_onboarding_service)
) -> ProgressRecord:
    """
    Record a finished step, award milestones and refresh the session roll-up.
    """
    return service.record_step_completion(session_id, step_id, request.user_id, request.result)


@router.get("/sessions/{session_id}", response_model=OverallProgress)
def get_overall_progress(
    session_id: str,
    service: OnboardingService = Depends(get_onboarding_service)
) -> OverallProgress:
    return service.get_overall_progress(session_id)


@router.get("/sessions/{session_id}/blockers", response_model=List[Blocker])
def get_blockers(
    session_id: str,
    service: OnboardingService = Depends(get_onboarding_service)
) -> List[Blocker]:
    return service.identify_blockers(session_id)


@router.get("/sessions/{session_id}/report", response_model=ProgressReport)
def get_report(
    session_id: str,
    service: OnboardingService = Depends(get_onboarding_service)
) -> ProgressReport:
    return service.generate_progress_report(session_id)


@router.get("/sessions/{session_id}/achievements", response_model=List[AchievementRecord])
def get_achievements(
    session_id: str,
    service: OnboardingService = Depends(get_onboarding_service)
) -> List[AchievementRecord]:
    """
    Get milestones earned in a session, newest first.
    """
    return service.get_user_achievements(session_id)


@router.post(
    "/sessions/{session_id}/milestones/{milestone_id}",
    response_model=AchievementRecord,
    status_code=status.HTTP_201_CREATED
)
def award_milestone(
    session_id: str,
    milestone_id: str,
    request: AwardMilestoneRequest,
    service: OnboardingService = Depends(get_onboarding_service)
) -> AchievementRecord:
    return service.award_milestone(request.user_id, session_id, milestone_id, request.data)
