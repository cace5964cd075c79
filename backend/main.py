import datetime
import logging
import time
from typing import Any, Dict, List, Optional, Union

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from pydantic import BaseModel

from analysis.analyzer import ElliottWaveAnalyzer
from analysis.config import AnalyzerConfig, load_settings
from ingest.adapters import INTERVALS, POPULAR_PAIRS, AdapterFactory, format_price, is_valid_symbol

# --- Configuration ---
# Load configuration from config.yaml (defaults are used when it is missing or malformed)
settings = load_settings()

# --- Logging Setup ---
logging.basicConfig(level=getattr(logging, str(settings.get("log_level", "INFO")).upper(), logging.INFO),
                    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

# --- Global Variables ---
data_source_config: Dict[str, Any] = settings.get("data_source", {})
adapter_factory = AdapterFactory(data_source_config)
analyzer = ElliottWaveAnalyzer(AnalyzerConfig.from_dict(settings.get("analyzer")))

# Latest successful analysis per symbol
latest_analysis_results: Dict[str, Dict[str, Any]] = {}

# Rate limiting store (in-memory for the backend process)
# Format: {ip_address: last_request_timestamp}
rate_limit_store: Dict[str, float] = {}
SYMBOL_RATE_LIMIT_SECONDS = settings.get("api", {}).get("symbol_rate_limit_seconds", 1)


class KlinesRequest(BaseModel):
    """Raw klines as returned by the exchange: [open_time, open, high, low, close, volume, ...]."""
    klines: List[List[Union[int, float, str]]]
    symbol: Optional[str] = None


# --- FastAPI App ---
app = FastAPI(title="Elliott Wave Analyzer API")


def get_rate_limit_seconds() -> float:
    """Returns the rate limit interval in seconds."""
    return SYMBOL_RATE_LIMIT_SECONDS


# --- Rate Limiting Dependency ---
async def rate_limit_dependency(request: Request, rate_limit_seconds: float = Depends(get_rate_limit_seconds)):
    client_ip = request.client.host if request.client else "unknown"
    current_time = time.time()

    last_request_time = rate_limit_store.get(client_ip)

    if last_request_time is not None:
        time_since_last_request = current_time - last_request_time
        if time_since_last_request < rate_limit_seconds:
            raise HTTPException(
                status_code=429,
                detail=f"Rate limit exceeded. Please try again in {rate_limit_seconds - time_since_last_request:.2f} seconds."
            )

    rate_limit_store[client_ip] = current_time
    return True


# --- API Endpoints ---
@app.get("/health")
async def health():
    return {
        "status": "ok",
        "timestamp": datetime.datetime.now(datetime.timezone.utc).isoformat(),
    }


@app.get("/symbols")
async def list_symbols():
    """Popular trading pairs and supported intervals."""
    return {"pairs": POPULAR_PAIRS, "intervals": INTERVALS}


@app.post("/analyze", status_code=200)
async def analyze_klines(body: KlinesRequest, rate_limit_ok: bool = Depends(rate_limit_dependency)):
    """
    Runs the Elliott Wave analysis on klines supplied by the caller.
    Analysis failures are reported in the `status` field, not as HTTP errors.
    """
    logger.info(f"Received {len(body.klines)} klines for analysis ({body.symbol or 'unnamed'})")
    result = analyzer.analyze(body.klines).to_dict()
    if body.symbol:
        result["symbol"] = body.symbol.upper()
    return result


@app.get("/analysis/{symbol}", status_code=200)
async def analyze_symbol(
    symbol: str,
    interval: Optional[str] = Query(None),
    limit: Optional[int] = Query(None, ge=1, le=1000),
    source: Optional[str] = Query(None),
    rate_limit_ok: bool = Depends(rate_limit_dependency),
):
    """
    Fetches the latest klines for `symbol` from the configured data source and
    analyzes them.
    """
    symbol = symbol.upper()
    if not is_valid_symbol(symbol):
        raise HTTPException(status_code=400, detail=f"Invalid symbol: {symbol}")

    interval = interval or data_source_config.get("default_interval", "1h")
    if interval not in INTERVALS:
        raise HTTPException(status_code=400, detail=f"Unsupported interval: {interval}")
    limit = limit or data_source_config.get("default_limit", 200)

    try:
        adapter = adapter_factory.get_adapter(symbol, interval=interval, source_preference=source)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    klines = await adapter.fetch_klines(limit=limit)
    if not klines:
        logger.warning(f"No market data available for {symbol} ({interval})")
        raise HTTPException(status_code=503, detail=f"No market data available for {symbol}")

    result = analyzer.analyze(klines).to_dict()
    result.update({"symbol": symbol, "interval": interval})
    if result["status"] == "success":
        latest_analysis_results[symbol] = result
    return result


@app.get("/price/{symbol}")
async def current_price(
    symbol: str,
    source: Optional[str] = Query(None),
    rate_limit_ok: bool = Depends(rate_limit_dependency),
):
    """Latest price for `symbol` from the configured data source."""
    symbol = symbol.upper()
    if not is_valid_symbol(symbol):
        raise HTTPException(status_code=400, detail=f"Invalid symbol: {symbol}")

    try:
        adapter = adapter_factory.get_adapter(symbol, source_preference=source)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    price = await adapter.get_current_price()
    if price is None:
        raise HTTPException(status_code=503, detail=f"No price available for {symbol}")
    return {"symbol": symbol, "price": price, "formatted": format_price(price)}


@app.get("/analysis/{symbol}/latest")
async def latest_analysis(symbol: str):
    """The last successful analysis for `symbol`, if any."""
    result = latest_analysis_results.get(symbol.upper())
    if result is None:
        raise HTTPException(status_code=404, detail=f"No analysis available for {symbol.upper()}")
    return result


# --- Startup and Shutdown Events ---
@app.on_event("startup")
async def startup_event():
    logger.info(f"Starting application (rate limit {SYMBOL_RATE_LIMIT_SECONDS}s, "
                f"default {data_source_config.get('default_symbol')} {data_source_config.get('default_interval')})")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Application shutdown complete.")


# --- Main Execution (for running the app) ---
if __name__ == "__main__":
    import uvicorn

    logger.info("Starting FastAPI server...")
    uvicorn.run(app, host="0.0.0.0", port=8003)
