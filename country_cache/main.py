from fastapi import FastAPI, HTTPException, Depends, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import FileResponse, JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from sqlalchemy.orm import Session
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from random import Random
import logging
import os
import httpx

from . import config, models
from .database import get_db, engine
from .errors import CountryExistsError, ExternalSourceError
from .reconcile import estimate_gdp
from .refresh import refresh_countries
from .schemas import CountryCreate, CountryOut, CountryUpdate, RefreshOut, StatusOut
from .store import CountryStore, VALID_SORTS

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    models.Base.metadata.create_all(bind=engine)
    yield


app = FastAPI(
    title="Country Currency Cache",
    lifespan=lifespan,
)


def get_store(db: Session = Depends(get_db)) -> CountryStore:
    return CountryStore(db)


async def get_http_client():
    async with httpx.AsyncClient(timeout=config.HTTP_TIMEOUT) as client:
        yield client


def get_rng() -> Random:
    return Random()


def get_image_path() -> str:
    return config.SUMMARY_IMAGE_PATH


# fields the synthetic GDP estimate is derived from
GDP_INPUTS = {"population", "currency_code", "exchange_rate"}


def utcnow():
    return datetime.now(timezone.utc)


def not_found():
    return HTTPException(status_code=404, detail={"error": "Country not found"})


def already_exists():
    return HTTPException(status_code=400, detail={"error": "Country already exists"})


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    body = exc.detail if isinstance(exc.detail, dict) else {"error": exc.detail}
    return JSONResponse(status_code=exc.status_code, content=body, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    details = {}
    for err in exc.errors():
        field = ".".join(str(part) for part in err["loc"] if part != "body") or "body"
        if err["type"] == "missing":
            details[field] = "is required"
        elif err["type"] == "value_error":
            details[field] = str(err.get("ctx", {}).get("error", err["msg"]))
        else:
            details[field] = err["msg"]
    return JSONResponse(status_code=400, content={"error": "Validation failed", "details": details})


@app.exception_handler(ExternalSourceError)
async def external_source_handler(request: Request, exc: ExternalSourceError):
    return JSONResponse(
        status_code=503,
        content={"error": "External data source unavailable", "details": str(exc)},
    )


@app.exception_handler(Exception)
async def internal_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


@app.post("/countries/refresh", response_model=RefreshOut)
async def refresh(
    store: CountryStore = Depends(get_store),
    client: httpx.AsyncClient = Depends(get_http_client),
    rng: Random = Depends(get_rng),
    image_path: str = Depends(get_image_path),
):
    result = await refresh_countries(store, client, rng, image_path)
    if not result.summary.rendered:
        logger.warning("Refresh succeeded without a summary image: %s", result.summary.error)
    return result.to_dict()


@app.get("/countries", response_model=list[CountryOut])
def get_countries(
    region: str | None = Query(None, description="Filter by region, e.g. Africa"),
    currency: str | None = Query(None, description="Filter by currency code, e.g. NGN"),
    sort: str | None = Query(None, description="Sort by gdp_desc, gdp_asc, population_desc, population_asc, name_asc, name_desc"),
    store: CountryStore = Depends(get_store),
):

    # Validate sort
    if sort is not None and sort.lower() not in VALID_SORTS:
        raise HTTPException(
            status_code=400,
            detail={
                "error": "Validation failed",
                "details": {"sort": f"must be one of {', '.join(sorted(VALID_SORTS))}"},
            },
        )

    return store.list(region=region, currency=currency, sort=sort.lower() if sort else None)


@app.get("/countries/status", response_model=StatusOut)
@app.get("/status", response_model=StatusOut)
def get_status(store: CountryStore = Depends(get_store)):
    total, last = store.status()
    return {"total_countries": total, "last_refreshed_at": last}


@app.get("/countries/image")
def get_summary_image(image_path: str = Depends(get_image_path)):
    if not os.path.exists(image_path):
        raise HTTPException(status_code=404, detail={"error": "Summary image not found"})
    return FileResponse(image_path, media_type="image/png")


@app.post("/countries", response_model=CountryOut, status_code=201)
def create_country(
    payload: CountryCreate,
    store: CountryStore = Depends(get_store),
    rng: Random = Depends(get_rng),
):
    data = payload.model_dump()
    if data["estimated_gdp"] is None:
        data["estimated_gdp"] = estimate_gdp(data["population"], data["currency_code"], data["exchange_rate"], rng)
    try:
        return store.create(data, utcnow())
    except CountryExistsError:
        raise already_exists()


@app.get("/countries/{name}", response_model=CountryOut)
def get_country(name: str, store: CountryStore = Depends(get_store)):
    country = store.get(name)
    if country is None:
        raise not_found()
    return country


@app.put("/countries/{name}", response_model=CountryOut)
def update_country(
    name: str,
    payload: CountryUpdate | None = None,
    store: CountryStore = Depends(get_store),
    rng: Random = Depends(get_rng),
):
    changes = payload.model_dump(exclude_unset=True) if payload is not None else {}
    # name and population are never nullable
    for field in ("name", "population"):
        if field in changes and changes[field] is None:
            del changes[field]
    if not changes:
        raise HTTPException(status_code=400, detail={"error": "No update data provided"})

    current = store.get(name)
    if current is None:
        raise not_found()
    if "estimated_gdp" not in changes and GDP_INPUTS.intersection(changes):
        merged = {field: changes.get(field, getattr(current, field)) for field in GDP_INPUTS}
        changes["estimated_gdp"] = estimate_gdp(
            merged["population"], merged["currency_code"], merged["exchange_rate"], rng
        )

    try:
        country = store.update(name, changes, utcnow())
    except CountryExistsError:
        raise already_exists()
    if country is None:
        raise not_found()
    return country


@app.delete("/countries/{name}")
def delete_country(name: str, store: CountryStore = Depends(get_store)):
    if not store.delete(name):
        raise not_found()
    return {"message": "Country deleted successfully"}
