"""Shared FastAPI dependencies for screen lookup."""

from __future__ import annotations

import logging

from fastapi import Depends, HTTPException, Request, status

from studio.services.screens import GenerationScreen, ScreenNotFoundError, ScreenRegistry

logger = logging.getLogger(__name__)


def get_screen_registry(request: Request) -> ScreenRegistry:
  """Return the registry created at startup."""
  registry = getattr(request.app.state, "screens", None)
  if registry is None:
    logger.error("Screen registry requested before startup completed.")
    raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Service is starting up")
  return registry


def get_screen(screen_id: str, registry: ScreenRegistry = Depends(get_screen_registry)) -> GenerationScreen:  # noqa: B008
  """Resolve a screen id from the path or fail with 404."""
  try:
    return registry.get(screen_id)
  except ScreenNotFoundError as exc:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Generation screen not found") from exc
