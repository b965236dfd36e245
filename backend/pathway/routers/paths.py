"""
Paths router for the onboarding engine.

Handles path import, lookup, personalization and switch validation.
"""

from fastapi import APIRouter, Depends, status

from pathway.schemas import (
    MilestoneDefinition,
    MilestoneRecord,
    PathDefinition,
    PathRecord,
    PathSwitchValidation,
    PersonalizedPathRequest,
    SwitchValidationRequest,
)
from pathway.services import OnboardingService, import_milestone

from .deps import get_onboarding_service


router = APIRouter()


@router.post("/", response_model=PathRecord, status_code=status.HTTP_201_CREATED)
def import_path(
    definition: PathDefinition,
    service: OnboardingService = Depends(get_onboarding_service)
) -> PathRecord:
    """
    Create or replace a path. The step graph must be acyclic.
    """
    return service.import_path(definition)


@router.post("/milestones", response_model=MilestoneRecord, status_code=status.HTTP_201_CREATED)
def create_milestone(
    definition: MilestoneDefinition,
    service: OnboardingService = Depends(get_onboarding_service)
) -> MilestoneRecord:
    return import_milestone(service.store, definition)


@router.post("/personalized", response_model=PathRecord)
def personalized_path(
    request: PersonalizedPathRequest,
    service: OnboardingService = Depends(get_onboarding_service)
) -> PathRecord:
    """
    Get the best matching path for a user context without starting a session.
    """
    return service.generate_personalized_path(request.user_id, request.context)


@router.post("/validate-switch", response_model=PathSwitchValidation)
def validate_switch(
    request: SwitchValidationRequest,
    service: OnboardingService = Depends(get_onboarding_service)
) -> PathSwitchValidation:
    return service.validate_path_switch(
        request.current_path_id,
        request.new_path_id,
        request.reason,
        request.user_role,
    )


@router.get("/{path_id}", response_model=PathRecord)
def get_path(
    path_id: str,
    service: OnboardingService = Depends(get_onboarding_service)
) -> PathRecord:
    return service.get_path(path_id)
