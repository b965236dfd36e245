"""
FastAPI dependencies shared by the routers.
"""

from typing import Optional

from pathway.core.database import SessionLocal, get_engine
from pathway.services import OnboardingService
from pathway.storage import build_store


_service: Optional[OnboardingService] = None


def get_onboarding_service() -> OnboardingService:
    """
    Dependency to get the process-wide onboarding service.
    
    Returns:
        OnboardingService: Service bound to the configured database
    """
    global _service
    if _service is None:
        get_engine()
        _service = OnboardingService(build_store(SessionLocal))
    return _service
