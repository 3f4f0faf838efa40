import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from slogengine.routers import blog, images
from slogengine.settings import settings

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper()),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings.BLOGS_PATH.mkdir(parents=True, exist_ok=True)
    logger.info(f"Serving blogs from {settings.BLOGS_PATH.resolve()}")
    yield
    logger.info("SlogEngine API stopped")


app = FastAPI(
    title="SlogEngine API",
    description="File-backed personal blog engine",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOW_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(blog.router)
app.include_router(images.router)


@app.get("/")
async def root():
    return {"message": "SlogEngine API is running"}


@app.get("/ping")
async def ping():
    return "Pong"
