# ratecalc/main.py
from contextlib import asynccontextmanager
from dataclasses import asdict
from typing import Any, Dict, Optional
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from ratecalc.errors import RateCalculatorError
from ratecalc.service.aggregate import RateAggregator
from ratecalc.service.cache import TTLCache
from ratecalc.settings import settings
from ratecalc.sheets import build_provider
from dotenv import load_dotenv

load_dotenv()  # loads variables from .env at repo root

log = logging.getLogger("uvicorn")
logging.basicConfig(level=settings.log_level)

def build_aggregator() -> RateAggregator:
    return RateAggregator(
        provider=build_provider(settings),
        cache=TTLCache(default_ttl=settings.cache_ttl_seconds),
        ttl_seconds=settings.cache_ttl_seconds,
        sheet_names_ttl_seconds=settings.sheet_names_ttl_seconds,
        fulfillment_fee=settings.fulfillment_fee,
    )

@asynccontextmanager
async def lifespan(app: FastAPI):
    # tests inject their own aggregator before startup
    if getattr(app.state, "rates", None) is None:
        app.state.rates = build_aggregator()
        log.info(f"Rate source: {app.state.rates.provider.source_id}")
    yield
    aclose = getattr(app.state.rates.provider, "aclose", None)
    if aclose is not None:
        await aclose()

# ========= FastAPI app =========
app = FastAPI(title="Shipping Rate Calculator", version="1.0", lifespan=lifespan)

def _rates(request: Request) -> RateAggregator:
    return request.app.state.rates

# ========= Errors =========
@app.exception_handler(RateCalculatorError)
async def rate_error_handler(request: Request, exc: RateCalculatorError):
    log.warning(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    log.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"error": "Failed to calculate costs"})

# ========= Schemas =========
class CalculateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # validated by the calculator so bad values get its error messages
    weight: Any = None
    weight_unit: Optional[str] = Field(default="kg", alias="weightUnit")
    country: Optional[str] = None
    shipping_line: Optional[str] = Field(default=None, alias="shippingLine")
    zone: Optional[str] = None

class CalculateResponse(BaseModel):
    shipping_cost: float
    fulfillment_fee: float
    total_cost: float
    delivery_days: str
    service_name: str
    matched_shipping_line: str
    matched_zone: Optional[str] = None
    weight_used: float
    weight_unit: str
    freight_per_unit: Optional[float] = None
    base_rate: float
    per_kg_rate: Optional[float] = None
    per_lb_rate: Optional[float] = None

# ========= Endpoints =========
@app.get("/health")
def health(request: Request):
    rates = _rates(request)
    return {
        "status": "ok",
        "sheets_configured": bool(rates.provider.is_configured),
        "cached_keys": rates.cache_stats()["keys"],
    }

@app.get("/countries")
async def countries(request: Request):
    return await _rates(request).list_countries()

@app.get("/countries/{shipping_channel}")
async def channel_countries(shipping_channel: str, request: Request):
    return await _rates(request).list_channel_countries(shipping_channel)

@app.get("/shipping-channels")
async def shipping_channels(request: Request) -> Dict[str, Any]:
    return await _rates(request).list_shipping_channels()

@app.post("/calculate", response_model=CalculateResponse)
async def calculate(req: CalculateRequest, request: Request):
    result = await _rates(request).calculate(
        country=req.country,
        shipping_line=req.shipping_line,
        zone=req.zone,
        weight=req.weight,
        weight_unit=req.weight_unit,
    )
    return CalculateResponse(**asdict(result))

@app.get("/cache/stats")
def cache_stats(request: Request):
    return _rates(request).cache_stats()

@app.post("/cache/clear")
def cache_clear(request: Request):
    _rates(request).clear_cache()
    log.info("Cache cleared")
    return {"status": "cleared"}
