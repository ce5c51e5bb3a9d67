from dependency_injector import containers, providers
from sqlalchemy.orm import Session

from processing_host import models  # noqa: F401  (registers mapped data sources)
from processing_host.application.processing import (
    AllowAllAuthorizer,
    AuthenticatedWriteAuthorizer,
    ProcessingEngine,
)
from processing_host.application.processing.protocols import CommandAuthorizer
from processing_host.config import Settings, get_settings
from processing_host.database import Base
from processing_host.infrastructure.identity.services import CookieIdentitySession
from processing_host.infrastructure.persistence import (
    SqlAlchemyDataSourceRegistry,
    SqlAlchemyUnitOfWork,
)


def build_command_authorizer(settings: Settings) -> CommandAuthorizer:
    if settings.REQUIRE_SIGN_IN_FOR_WRITES:
        return AuthenticatedWriteAuthorizer()
    return AllowAllAuthorizer()


class Container(containers.DeclarativeContainer):
    """Dependency injection container."""

    settings = providers.Singleton(get_settings)

    # Declare db as a dependency that will be provided at runtime
    db = providers.Dependency(instance_of=Session)

    # Application-scoped: no state is kept between requests
    data_source_registry = providers.Singleton(SqlAlchemyDataSourceRegistry.from_base, Base)
    command_authorizer = providers.Singleton(build_command_authorizer, settings=settings)
    processing_engine = providers.Singleton(
        ProcessingEngine,
        registry=data_source_registry,
        authorizer=command_authorizer,
    )
    identity_session = providers.Singleton(CookieIdentitySession, settings=settings)

    # Request-scoped: one unit of work per request session
    unit_of_work = providers.Factory(SqlAlchemyUnitOfWork, session=db)


# Initialize container
container = Container()
