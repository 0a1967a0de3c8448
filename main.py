import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from config import Settings, load_settings
from slacktodo.data.memory import InMemoryTodoStore
from slacktodo.data.store import PostgresTodoStore, TodoStore
from slacktodo.errors import AbortedBody, AuthenticationError, ConfigurationError
from slacktodo.logic.dispatch import default_command_router
from slacktodo.router import router as todo_router
from slacktodo.security import SlackSignatureVerifier

logger = logging.getLogger(__name__)


def build_store(settings: Settings) -> TodoStore:
    if settings.store_backend == "memory":
        return InMemoryTodoStore()
    if settings.store_backend == "postgres":
        return PostgresTodoStore(settings.db_url)
    raise ValueError(f"Unknown TODO_STORE backend: {settings.store_backend!r}")


async def configuration_error_handler(request: Request, exc: ConfigurationError):
    return JSONResponse(status_code=500, content={"error": "Server configuration error"})


async def authentication_error_handler(request: Request, exc: AuthenticationError):
    # One body for every reject reason
    return JSONResponse(status_code=401, content={"error": "Unauthorized"})


async def aborted_body_handler(request: Request, exc: AbortedBody):
    logger.warning("Request body for %s was not fully received", request.url.path)
    return JSONResponse(status_code=400, content={"error": "Incomplete request body"})


def create_app(settings: Settings = None, store: TodoStore = None) -> FastAPI:
    settings = settings or load_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(title="Slack Todo")
    app.state.settings = settings
    app.state.verifier = SlackSignatureVerifier(settings.signing_secret, replay_window=settings.replay_window)
    app.state.store = store if store is not None else build_store(settings)
    app.state.commands = default_command_router()

    app.add_exception_handler(ConfigurationError, configuration_error_handler)
    app.add_exception_handler(AuthenticationError, authentication_error_handler)
    app.add_exception_handler(AbortedBody, aborted_body_handler)

    @app.on_event("startup")
    async def startup_event():
        if not app.state.verifier.configured:
            logger.error("❌ SLACK_SIGNING_SECRET is not set; every Slack request will be rejected with 500.")
        logger.info("Preparing todo store (%s)...", type(app.state.store).__name__)
        app.state.store.init_schema()
        logger.info("✅ Todo store ready.")

    app.include_router(todo_router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=app.state.settings.host, port=app.state.settings.port)
