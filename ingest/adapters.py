import asyncio
import logging
import re
import time
import typing
from abc import ABC, abstractmethod
from urllib.parse import quote, urlencode

import aiohttp
import pandas as pd

logger = logging.getLogger(__name__)

# Default configuration values (can be overridden by config.yaml)
DEFAULT_BASE_URL = "https://api.binance.com"
DEFAULT_POLL_INTERVAL_SECONDS = 30
DEFAULT_REQUEST_INTERVAL_MS = 50
DEFAULT_REQUESTS_PER_MINUTE = 1200
DEFAULT_CSV_PATH = "data/sample_klines.csv"
MAX_KLINES_PER_REQUEST = 1000
REQUEST_TIMEOUT_SECONDS = 15

POPULAR_PAIRS = [
    'BTCUSDT', 'ETHUSDT', 'BNBUSDT', 'ADAUSDT', 'XRPUSDT',
    'SOLUSDT', 'DOTUSDT', 'DOGEUSDT', 'AVAXUSDT', 'MATICUSDT',
    'LINKUSDT', 'LTCUSDT', 'UNIUSDT', 'ATOMUSDT', 'SHIBUSDT',
    'ETCUSDT', 'XLMUSDT', 'BCHUSDT', 'FILUSDT', 'TRXUSDT',
    'VETUSDT', 'FTMUSDT', 'MANAUSDT', 'SANDUSDT', 'AXSUSDT',
]

# Binance interval code -> label
INTERVALS = {
    '1m': '1 minute', '3m': '3 minutes', '5m': '5 minutes', '15m': '15 minutes', '30m': '30 minutes',
    '1h': '1 hour', '2h': '2 hours', '4h': '4 hours', '6h': '6 hours', '8h': '8 hours', '12h': '12 hours',
    '1d': '1 day', '3d': '3 days', '1w': '1 week', '1M': '1 month',
}

_SYMBOL_PATTERN = re.compile(r'^[A-Z]{2,10}USDT?$')


def is_valid_symbol(symbol: str) -> bool:
    """Basic check for a USD(T)-quoted Binance symbol such as BTCUSDT."""
    return bool(symbol) and bool(_SYMBOL_PATTERN.match(symbol.upper()))


def format_price(price: typing.Union[float, str]) -> str:
    """Formats a price with 2, 4 or 8 decimals depending on its magnitude."""
    value = float(price)
    if value >= 1000:
        return f"{value:.2f}"
    if value >= 1:
        return f"{value:.4f}"
    return f"{value:.8f}"


class RequestRateLimiter:
    """
    Client-side request budget: at most `requests_per_minute` requests in a
    rolling one-minute window and at least `min_interval_ms` between requests.
    """
    def __init__(self, requests_per_minute: int = DEFAULT_REQUESTS_PER_MINUTE,
                 min_interval_ms: int = DEFAULT_REQUEST_INTERVAL_MS):
        self.requests_per_minute = requests_per_minute
        self.min_interval = min_interval_ms / 1000.0
        self.request_count = 0
        self.window_reset = time.monotonic() + 60
        self.last_request = 0.0
        self._lock = asyncio.Lock()

    async def acquire(self):
        async with self._lock:
            now = time.monotonic()
            if now > self.window_reset:
                self.request_count = 0
                self.window_reset = now + 60

            if self.request_count >= self.requests_per_minute:
                wait = self.window_reset - now
                logger.warning(f"Request budget reached. Waiting {wait:.2f}s")
                await asyncio.sleep(wait)
                self.request_count = 0
                self.window_reset = time.monotonic() + 60

            since_last = time.monotonic() - self.last_request
            if since_last < self.min_interval:
                await asyncio.sleep(self.min_interval - since_last)

            self.last_request = time.monotonic()
            self.request_count += 1


class DataAdapter(ABC):
    """
    Abstract base class for data adapters.
    Responsible for fetching kline (candlestick) rows for one symbol/interval.
    """
    def __init__(self, symbol: str, interval: str, poll_interval_seconds: int = DEFAULT_POLL_INTERVAL_SECONDS):
        self.symbol = symbol.upper()
        self.interval = interval
        self.poll_interval_seconds = poll_interval_seconds
        logger.info(f"Initialized {self.__class__.__name__} for symbol {self.symbol} with interval {self.interval}")

    @abstractmethod
    async def fetch_klines(self, limit: int = 500, start_time: typing.Optional[int] = None,
                           end_time: typing.Optional[int] = None) -> typing.List[list]:
        """
        Fetches up to `limit` klines, oldest first.
        Each row starts with [open_time_ms, open, high, low, close, volume].
        Returns an empty list when no data is available.
        """

    async def fetch_latest_klines(self, limit: int = 200) -> typing.List[list]:
        """The most recent `limit` klines."""
        return await self.fetch_klines(limit=limit)

    async def get_current_price(self) -> typing.Optional[float]:
        """Close of the latest kline, or None when there is no data."""
        klines = await self.fetch_latest_klines(limit=1)
        if not klines:
            return None
        return float(klines[-1][4])


class SampleCSVAdapter(DataAdapter):
    """
    Adapter for sample CSV files.
    Used for testing and demonstration without live API calls.
    Expects columns: timestamp, open, high, low, close, volume.
    """
    def __init__(self, symbol: str, interval: str, csv_path: str = DEFAULT_CSV_PATH,
                 poll_interval_seconds: int = 300):
        super().__init__(symbol, interval, poll_interval_seconds=poll_interval_seconds)
        self.csv_path = csv_path
        self.data: typing.Optional[pd.DataFrame] = None

    def load_data_from_csv(self) -> pd.DataFrame:
        if self.data is None:
            try:
                df = pd.read_csv(self.csv_path, parse_dates=['timestamp'])
                df['timestamp'] = pd.to_datetime(df['timestamp'], utc=True)
                df.sort_values('timestamp', inplace=True)
                self.data = df[['timestamp', 'open', 'high', 'low', 'close', 'volume']].reset_index(drop=True)
                logger.info(f"Successfully loaded data from {self.csv_path}. Found {len(self.data)} rows.")
            except FileNotFoundError:
                logger.error(f"Sample CSV file not found at {self.csv_path}")
                self.data = pd.DataFrame(columns=['timestamp', 'open', 'high', 'low', 'close', 'volume'])
            except (KeyError, ValueError, pd.errors.ParserError) as e:
                logger.error(f"Error loading CSV file {self.csv_path}: {e}")
                self.data = pd.DataFrame(columns=['timestamp', 'open', 'high', 'low', 'close', 'volume'])
        return self.data

    async def fetch_klines(self, limit: int = 500, start_time: typing.Optional[int] = None,
                           end_time: typing.Optional[int] = None) -> typing.List[list]:
        df = self.load_data_from_csv()
        if df.empty:
            return []

        epoch = pd.Timestamp(0, tz='UTC')
        open_times = (df['timestamp'] - epoch) // pd.Timedelta(milliseconds=1)
        mask = pd.Series(True, index=df.index)
        if start_time is not None:
            mask &= open_times >= start_time
        if end_time is not None:
            mask &= open_times <= end_time

        selected = df.loc[mask].assign(open_time=open_times[mask]).tail(limit)
        return [
            [int(row.open_time), float(row.open), float(row.high), float(row.low), float(row.close), float(row.volume)]
            for row in selected.itertuples(index=False)
        ]


class BinanceAdapter(DataAdapter):
    """
    Adapter for the Binance public REST API.
    Fetches crypto currency klines; no API key is needed.
    """
    def __init__(self, symbol: str, interval: str = '1h', poll_interval_seconds: int = DEFAULT_POLL_INTERVAL_SECONDS,
                 base_url: str = DEFAULT_BASE_URL, proxy_url: typing.Optional[str] = None,
                 rate_limiter: typing.Optional[RequestRateLimiter] = None):
        super().__init__(symbol, interval, poll_interval_seconds=poll_interval_seconds)
        if not is_valid_symbol(self.symbol):
            logger.warning(f"Symbol '{symbol}' may not be a standard Binance crypto pair. Expected format like BTCUSDT.")
        self.base_url = base_url.rstrip('/')
        self.proxy_url = proxy_url
        self.use_proxy = False
        self.rate_limiter = rate_limiter or RequestRateLimiter()

    @staticmethod
    def map_interval_to_binance(interval: str) -> typing.Optional[str]:
        """Maps internal interval string to Binance API interval string."""
        if interval in INTERVALS:
            return interval
        # '1M' (month) is the only case-sensitive code
        lowered = interval.lower()
        return lowered if lowered in INTERVALS else None

    def build_url(self, endpoint: str, params: typing.Dict[str, typing.Any]) -> str:
        query = urlencode(params)
        return f"{self.base_url}{endpoint}{'?' + query if query else ''}"

    def build_proxy_url(self, url: str) -> str:
        return f"{self.proxy_url}{quote(url, safe='')}"

    async def _get_json(self, url: str) -> typing.Any:
        timeout = aiohttp.ClientTimeout(total=REQUEST_TIMEOUT_SECONDS)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.get(url) as response:
                response.raise_for_status()
                return await response.json(content_type=None)

    async def make_public_request(self, endpoint: str, params: typing.Optional[typing.Dict[str, typing.Any]] = None) -> typing.Any:
        """
        GETs a public endpoint. When the direct request fails and a proxy is
        configured, retries through the proxy and keeps using it afterwards.
        """
        await self.rate_limiter.acquire()
        url = self.build_url(endpoint, params or {})

        if self.use_proxy and self.proxy_url:
            return await self._get_json(self.build_proxy_url(url))

        try:
            return await self._get_json(url)
        except aiohttp.ClientError as e:
            if not self.proxy_url:
                raise
            logger.warning(f"Direct request to {endpoint} failed ({e}), retrying through proxy")
            self.use_proxy = True
            return await self._get_json(self.build_proxy_url(url))

    async def fetch_klines(self, limit: int = 500, start_time: typing.Optional[int] = None,
                           end_time: typing.Optional[int] = None) -> typing.List[list]:
        binance_interval = self.map_interval_to_binance(self.interval)
        if not binance_interval:
            logger.error(f"Unsupported interval for Binance: {self.interval}")
            return []

        params = {
            "symbol": self.symbol,
            "interval": binance_interval,
            "limit": max(1, min(limit, MAX_KLINES_PER_REQUEST)),
        }
        if start_time is not None:
            params["startTime"] = start_time
        if end_time is not None:
            params["endTime"] = end_time

        try:
            klines = await self.make_public_request("/api/v3/klines", params)
        except aiohttp.ClientError as e:
            logger.error(f"Binance API request failed for {self.symbol}: {e}")
            return []
        except asyncio.TimeoutError:
            logger.error(f"Binance API request timed out for {self.symbol}")
            return []

        if not isinstance(klines, list):
            logger.error(f"Unexpected Binance response for {self.symbol}: {klines!r}")
            return []
        logger.info(f"Fetched {len(klines)} klines for {self.symbol} from Binance.")
        return klines

    async def get_current_price(self) -> typing.Optional[float]:
        try:
            data = await self.make_public_request("/api/v3/ticker/price", {"symbol": self.symbol})
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Binance price request failed for {self.symbol}: {e}")
            return None
        try:
            return float(data["price"])
        except (KeyError, TypeError, ValueError):
            logger.error(f"Unexpected Binance price response for {self.symbol}: {data!r}")
            return None


# --- Adapter Factory ---

class AdapterFactory:
    """Factory to create appropriate data adapters."""
    def __init__(self, config: typing.Optional[dict] = None):
        self.config = config or {}
        self.default_interval = self.config.get('default_interval', '1h')

    def get_adapter(self, symbol: str, interval: typing.Optional[str] = None,
                    source_preference: typing.Optional[str] = None) -> DataAdapter:
        """
        Returns an adapter for `symbol`. Source preference can be 'binance'
        (default) or 'csv'.
        """
        interval = interval or self.default_interval
        poll_interval = self.config.get('poll_interval_seconds', DEFAULT_POLL_INTERVAL_SECONDS)

        if source_preference == 'csv':
            logger.info(f"Using SampleCSVAdapter for {symbol.upper()}")
            return SampleCSVAdapter(
                symbol=symbol,
                interval=interval,
                csv_path=self.config.get('csv_path', DEFAULT_CSV_PATH),
                poll_interval_seconds=poll_interval,
            )
        if source_preference not in (None, 'binance'):
            raise ValueError(f"Unknown data source: {source_preference}")

        return BinanceAdapter(
            symbol=symbol,
            interval=interval,
            poll_interval_seconds=poll_interval,
            base_url=self.config.get('base_url', DEFAULT_BASE_URL),
            proxy_url=self.config.get('proxy_url'),
            rate_limiter=RequestRateLimiter(
                requests_per_minute=self.config.get('requests_per_minute', DEFAULT_REQUESTS_PER_MINUTE),
                min_interval_ms=self.config.get('request_interval_ms', DEFAULT_REQUEST_INTERVAL_MS),
            ),
        )


def get_data_adapter(symbol: str, interval: typing.Optional[str] = None, source_preference: typing.Optional[str] = None,
                     config: typing.Optional[dict] = None) -> DataAdapter:
    """
    Convenience function to get a data adapter instance.
    `config` is the `data_source` section of the settings.
    """
    return AdapterFactory(config).get_adapter(symbol, interval, source_preference)
