import logging
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api import auth, health, registration
from api.errors import install_error_handlers
from config.logging import configure_logging
from config.postgres import PostgresConfig
from config.settings import AppSettings
from persistence.checkpoints import open_checkpointer
from persistence.users import UserStore
from registration.collaborators import (
    OtpProvider,
    SimulatedOtpProvider,
    SimulatedStepSubmitter,
    StepSubmitter,
)
from registration.graph import RegistrationGraphFactory
from registration.session import SessionRegistry
from registration.validator import RegistrationValidator

logger = logging.getLogger("udyam")


def create_app(
    settings: Optional[AppSettings] = None,
    user_store: Optional[UserStore] = None,
    otp_provider: Optional[OtpProvider] = None,
    submitter: Optional[StepSubmitter] = None,
    checkpointer: Any = None,
) -> FastAPI:
    settings = settings or AppSettings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings.environment, settings.log_level)
        if settings.init_db:
            app.state.user_store.setup()
            logger.info("users table ready")

        async with AsyncExitStack() as stack:
            saver = checkpointer
            if saver is None:
                saver = await stack.enter_async_context(open_checkpointer(settings))

            factory = RegistrationGraphFactory(
                RegistrationValidator(),
                otp_provider or SimulatedOtpProvider(settings.otp_delay),
                submitter or SimulatedStepSubmitter(settings.submit_delay),
                timeout=settings.collaborator_timeout,
            )
            app.state.registry = SessionRegistry(
                factory.compile(saver),
                saver,
                settings.encrypt_keys,
                ttl=settings.session_ttl or None,
            )

            logger.info(
                "Server is running in %s mode on port %s", settings.environment, settings.port
            )
            logger.info("API available at %s", settings.api_base_url)
            try:
                yield
            finally:
                logger.info("Stopping registration API...")

    app = FastAPI(title="Udyam Registration API", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.user_store = user_store or UserStore(PostgresConfig.from_env())

    install_error_handlers(app)
    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(registration.router)
    return app
