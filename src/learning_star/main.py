from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from learning_star import __version__
from learning_star.api.resources import router as resources_router
from learning_star.logging_config import configure_logging

configure_logging()

app = FastAPI(title="Learning Star Ingestion API", version=__version__)
app.include_router(resources_router)


@app.get("/healthz", response_class=PlainTextResponse)
def healthcheck() -> str:
    """Liveness probe used by container orchestrators."""
    return "ok"
