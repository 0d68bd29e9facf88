import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi import _rate_limit_exceeded_handler
import sentry_sdk

from offline_gateway import __version__
from offline_gateway.api.v1.health import router as health_router
from offline_gateway.api.v1.worker import router as worker_router
from offline_gateway.api.proxy import router as proxy_router
from offline_gateway.core.cors import cors_allow_origin_regex, cors_allowed_origins
from offline_gateway.core.rate_limit import limiter
from offline_gateway.core.config import settings
from dotenv import load_dotenv
from offline_gateway.core.lifespan import lifespan

load_dotenv()
logging.basicConfig(level=settings.log_level, format="%(message)s")
if settings.sentry_dsn:
    sentry_sdk.init(dsn=settings.sentry_dsn)

app = FastAPI(title="Zewed Offline Gateway", version=__version__, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_allowed_origins(),
    allow_origin_regex=cors_allow_origin_regex(),
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

app.include_router(health_router, prefix="/v1", tags=["Health"])
app.include_router(worker_router, prefix="/v1", tags=["Worker"])
# Must stay last: it claims every path the routers above do not.
app.include_router(proxy_router, tags=["Proxy"])
