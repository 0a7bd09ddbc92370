import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from app.core.database import engine
from app.api.router import api_router

# Paths of the interactive docs, not worth a log line
QUIET_PREFIXES = ("/docs", "/redoc", "/openapi.json", "/favicon.ico")


# Migrations run before the server starts (see app/__main__.py),
# here we only close the engine once everything is done
@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await engine.dispose()


app = FastAPI(title="File & URL Hosting API", lifespan=lifespan)

# Include the master router containing all our endpoints
app.include_router(api_router)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    if not request.url.path.startswith(QUIET_PREFIXES):
        logging.getLogger("url").info(request.url.path)
    return await call_next(request)


@app.get("/")
async def root():
    return {"message": "Welcome to the File & URL Hosting API"}
