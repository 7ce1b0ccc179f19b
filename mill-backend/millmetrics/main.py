import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from .config import settings
from .db import close_pool, initialize_database, open_pool, pool, set_search_path
from .errors import AggregationFailed, InvalidRequest, ReportingError
from .models.reports import ErrorPayload
from .routers import charts, summaries

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    open_pool()  # open DB pool at startup
    try:
        initialize_database()
    except Exception as exc:  # pragma: no cover - local dev without a database
        logger.warning("Database initialization failed; reports will fail until it is reachable: %s", exc)
    try:
        yield
    finally:
        close_pool()  # close pool at shutdown


app = FastAPI(
    title="Mill Metrics Reporting API",
    version="0.1.0",
    default_response_class=ORJSONResponse,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(InvalidRequest)
async def invalid_request_handler(request: Request, exc: InvalidRequest) -> ORJSONResponse:
    logger.info("invalid request path=%s error=%s", request.url.path, exc.message)
    return ORJSONResponse(status_code=exc.status_code, content=ErrorPayload(error=exc.message).model_dump())


@app.exception_handler(AggregationFailed)
async def aggregation_failed_handler(request: Request, exc: AggregationFailed) -> ORJSONResponse:
    # already logged with its descriptors where it was raised
    return ORJSONResponse(status_code=exc.status_code, content=ErrorPayload(error=exc.message).model_dump())


@app.exception_handler(ReportingError)
async def reporting_error_handler(request: Request, exc: ReportingError) -> ORJSONResponse:
    logger.error("reporting error path=%s error=%s", request.url.path, exc.message)
    return ORJSONResponse(status_code=exc.status_code, content=ErrorPayload(error=exc.message).model_dump())


app.include_router(charts.router)
app.include_router(summaries.router)


@app.get("/api/health")
def health():
    return {"ok": True}


# DB connectivity quick-check
@app.get("/api/db/ping")
def db_ping():
    with pool.connection() as conn:
        with conn.cursor() as cur:
            set_search_path(cur)
            cur.execute("select 'ok'::text")
            (status,) = cur.fetchone()
            return {"db": status}
