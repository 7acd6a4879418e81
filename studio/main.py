from __future__ import annotations

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from studio.api.routes import catalog, screens
from studio.config import get_settings
from studio.core.exceptions import generation_exception_handler, global_exception_handler, http_exception_handler, request_validation_exception_handler, scheduler_exception_handler, settings_exception_handler
from studio.core.lifespan import lifespan
from studio.core.middleware import RequestLoggingMiddleware
from studio.generation.errors import GenerationError, SchedulerClientError, SettingsError

settings = get_settings()

app = FastAPI(title="Timetable Studio", lifespan=lifespan, docs_url=None, redoc_url=None, openapi_url="/openapi.json" if settings.debug else None)

app.add_middleware(CORSMiddleware, allow_origins=list(settings.allowed_origins), allow_credentials=True, allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"], allow_headers=["content-type", "authorization"], expose_headers=["content-length", "x-request-id"])


# Add exception handlers
app.add_exception_handler(Exception, global_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(GenerationError, generation_exception_handler)
app.add_exception_handler(SettingsError, settings_exception_handler)
app.add_exception_handler(SchedulerClientError, scheduler_exception_handler)
app.add_exception_handler(RequestValidationError, request_validation_exception_handler)

# Add middleware
app.add_middleware(RequestLoggingMiddleware)


@app.get("/health", include_in_schema=False)
async def health_check() -> dict[str, str]:
  """Return a simple health status."""
  return {"status": "ok", "version": "0.1.0"}


app.include_router(screens.router, prefix="/v1/screens", tags=["screens"])
app.include_router(catalog.router, prefix="/v1/catalog", tags=["catalog"])
