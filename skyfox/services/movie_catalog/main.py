"""Movie catalog HTTP surface.

Routes are served both at the root and under `/movie-service`, the prefix the
production ingress forwards.
"""

from time import time

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from skyfox.common.auth import ApiKeyRejected, api_key_rejected_handler, require_api_key
from skyfox.common.config import settings
from skyfox.common.logging import configure_logging, logger
from skyfox.common.metrics import metrics_response
from skyfox.common.startup import log_startup_config
from skyfox.common.tracing import instrument_app, setup_tracing
from skyfox.services.movie_catalog.service import MovieCatalog

configure_logging()
setup_tracing(settings.service_name)
log_startup_config(settings.service_name, ["SERVICE_NAME", "API_KEY", "MOVIES_DATA_PATH"])
catalog = MovieCatalog.from_file(settings.movies_data_path)

app = FastAPI(title="SkyFox Movie Service")
instrument_app(app)
app.add_exception_handler(ApiKeyRejected, api_key_rejected_handler)


def get_catalog() -> MovieCatalog:
    return catalog


movies_router = APIRouter(dependencies=[Depends(require_api_key)])


@movies_router.get("/movies")
def list_movies(catalog: MovieCatalog = Depends(get_catalog)):
    """Return every movie in the catalog."""

    logger.info("received request for all movies")
    return catalog.all()


@movies_router.get("/movies/{imdb_id}")
def get_movie(imdb_id: str, catalog: MovieCatalog = Depends(get_catalog)):
    """Return one movie by IMDb id."""

    movie = catalog.get(imdb_id)
    if movie is None:
        logger.warning("movie not found movie_id=%s", imdb_id)
        return JSONResponse(
            status_code=404,
            content={"status": "NOT_FOUND", "error": "Movie with requested ID not found"},
        )
    return movie


app.include_router(movies_router)
app.include_router(movies_router, prefix="/movie-service")


@app.get("/mshealth")
@app.get("/movie-service/mshealth")
def health():
    """Container health probe endpoint."""

    return {"status": "healthy", "version": settings.app_version, "timestamp": int(time())}


@app.get("/metrics")
def metrics():
    """Prometheus scrape endpoint."""

    return metrics_response()


@app.exception_handler(404)
async def not_found(request: Request, exc):
    """Unknown routes get a JSON 404 instead of the framework default."""

    logger.warning("route not found method=%s path=%s", request.method, request.url.path)
    return JSONResponse(
        status_code=404,
        content={"status": "NOT_FOUND", "error": "There is nothing to do here! 404!"},
    )
