from fastapi import APIRouter

from processing_host.config import get_settings
from processing_host.core import container
from processing_host.infrastructure.common.di import Engine
from processing_host.infrastructure.processing.schemas import DashboardResponse

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("")
def get_dashboard(engine: Engine) -> DashboardResponse:
    """
    Describe the running host.

    Lists the published data sources and the command types the engine
    accepts. This is a public endpoint that doesn't require authentication.
    """
    settings = get_settings()
    return DashboardResponse(
        project_name=settings.PROJECT_NAME,
        version=settings.VERSION,
        environment=settings.ENVIRONMENT,
        rest_base_route=settings.REST_BASE_ROUTE,
        api_group=settings.API_GROUP_NAME,
        data_sources=container.data_source_registry().names(),
        command_types=engine.command_types,
    )
