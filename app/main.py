from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from app.core.config import settings
from fastapi.middleware.cors import CORSMiddleware
from app.api.v1.api import api_router
from app.core.exceptions import FtthDashError
from app.core.logging_config import setup_logging
from app.db.session import init_db

setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create missing tables on startup
    init_db()
    yield


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    lifespan=lifespan,
)

# Set up CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(FtthDashError)
async def ftth_dash_error_handler(request: Request, exc: FtthDashError):
    # details are flattened so import errors read {message, code, errors, error_count}
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.message, "code": exc.code, **exc.details},
    )


app.include_router(api_router, prefix=settings.API_V1_STR)
