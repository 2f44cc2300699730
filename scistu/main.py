import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi import _rate_limit_exceeded_handler
import sentry_sdk

from scistu.api.v1.health import router as health_router
from scistu.api.v1.chat import router as chat_router
from scistu.api.v1.humanize import router as humanize_router
from scistu.api.v1.documents import router as documents_router
from scistu.api.v1.resume import router as resume_router
from scistu.api.v1.reader import router as reader_router
from scistu.api.v1.blog import router as blog_router
from scistu.core.cors import cors_options
from scistu.core.rate_limit import limiter
from scistu.core.config import settings
from dotenv import load_dotenv
from scistu.core.lifespan import lifespan

load_dotenv()
logging.basicConfig(level=settings.log_level, format="%(message)s")
if settings.sentry_dsn:
    sentry_sdk.init(dsn=settings.sentry_dsn)

app = FastAPI(title="SciStu AI API", version="0.1.0", lifespan=lifespan)

app.add_middleware(CORSMiddleware, **cors_options())
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

app.include_router(health_router, prefix="/v1", tags=["Health"])
app.include_router(chat_router, prefix="/v1", tags=["Chat"])
app.include_router(humanize_router, prefix="/v1", tags=["Humanize"])
app.include_router(documents_router, prefix="/v1", tags=["Documents"])
app.include_router(resume_router, prefix="/v1", tags=["Resume"])
app.include_router(reader_router, prefix="/v1", tags=["Reader"])
app.include_router(blog_router, prefix="/v1", tags=["Blog"])
