import logging

from fastapi import APIRouter, Depends, status

from studio.api.deps import get_screen, get_screen_registry
from studio.api.models import GenerationModel, GoalToggleResponse, ScreenCreateRequest, ScreenResponse, SettingsUpdateRequest, TimetableDetailsModel, ValidationModel
from studio.generation.payload import TimetableDetails
from studio.services.screens import GenerationScreen, ScreenRegistry

router = APIRouter()
logger = logging.getLogger("studio.api.routes.screens")


def _generation(screen: GenerationScreen) -> GenerationModel:
  return GenerationModel.from_view(screen.orchestrator.view(), ready=screen.validation.ready)


@router.post("", response_model=ScreenResponse, status_code=status.HTTP_201_CREATED)
async def open_screen(  # noqa: B008
  payload: ScreenCreateRequest | None = None,
  registry: ScreenRegistry = Depends(get_screen_registry),  # noqa: B008
) -> ScreenResponse:
  """Open a generation screen with catalog, goals, and readiness loaded."""
  details = None
  if payload is not None and payload.details is not None:
    details = TimetableDetails()
    details.update(payload.details.model_dump(exclude_none=True))
  screen = await registry.open(details=details)
  return ScreenResponse.from_screen(screen)


@router.get("/{screen_id}", response_model=ScreenResponse)
async def get_screen_state(screen: GenerationScreen = Depends(get_screen)) -> ScreenResponse:  # noqa: B008
  """Return the full render state of a screen."""
  return ScreenResponse.from_screen(screen)


@router.get("/{screen_id}/generation", response_model=GenerationModel)
async def get_generation(screen: GenerationScreen = Depends(get_screen)) -> GenerationModel:  # noqa: B008
  """Return only the generation state; cheap enough for UI polling."""
  return _generation(screen)


@router.patch("/{screen_id}/details", response_model=ScreenResponse)
async def update_details(  # noqa: B008
  payload: TimetableDetailsModel,
  screen: GenerationScreen = Depends(get_screen),  # noqa: B008
) -> ScreenResponse:
  screen.details.update(payload.model_dump(exclude_none=True))
  return ScreenResponse.from_screen(screen)


@router.patch("/{screen_id}/settings", response_model=ScreenResponse)
async def update_settings(  # noqa: B008
  payload: SettingsUpdateRequest,
  screen: GenerationScreen = Depends(get_screen),  # noqa: B008
) -> ScreenResponse:
  """Apply a partial settings edit; the whole edit is rejected if any field is invalid."""
  screen.settings.update(payload.model_dump(exclude_none=True))
  return ScreenResponse.from_screen(screen)


@router.post("/{screen_id}/goals/{goal_id}/toggle", response_model=GoalToggleResponse)
async def toggle_goal(  # noqa: B008
  goal_id: str,
  screen: GenerationScreen = Depends(get_screen),  # noqa: B008
) -> GoalToggleResponse:
  selected = screen.settings.toggle_goal(goal_id)
  return GoalToggleResponse(goal_id=goal_id, selected=selected, optimization_goals=list(screen.settings.optimization_goals))


@router.post("/{screen_id}/validation/refresh", response_model=ValidationModel)
async def refresh_validation(screen: GenerationScreen = Depends(get_screen)) -> ValidationModel:  # noqa: B008
  """Re-read data readiness from the scheduling service."""
  snapshot = await screen.refresh_validation()
  return ValidationModel.from_snapshot(snapshot)


@router.post("/{screen_id}/generate", response_model=GenerationModel, status_code=status.HTTP_202_ACCEPTED)
async def generate(screen: GenerationScreen = Depends(get_screen)) -> GenerationModel:  # noqa: B008
  """Submit a generation job with the current settings and start polling it."""
  job_id = await screen.generate()
  logger.info("Screen %s submitted generation job_id=%s", screen.screen_id, job_id)
  return _generation(screen)


@router.post("/{screen_id}/regenerate", response_model=GenerationModel, status_code=status.HTTP_202_ACCEPTED)
async def regenerate(screen: GenerationScreen = Depends(get_screen)) -> GenerationModel:  # noqa: B008
  """Repeat the last submission as a new job."""
  job_id = await screen.regenerate()
  logger.info("Screen %s resubmitted generation job_id=%s", screen.screen_id, job_id)
  return _generation(screen)


@router.post("/{screen_id}/cancel", response_model=GenerationModel)
async def cancel(screen: GenerationScreen = Depends(get_screen)) -> GenerationModel:  # noqa: B008
  """Stop polling; the remote job keeps running."""
  screen.cancel()
  return _generation(screen)


@router.delete("/{screen_id}", status_code=status.HTTP_204_NO_CONTENT)
async def close_screen(  # noqa: B008
  screen: GenerationScreen = Depends(get_screen),  # noqa: B008
  registry: ScreenRegistry = Depends(get_screen_registry),  # noqa: B008
) -> None:
  """Close the screen and stop its polling task."""
  await registry.close(screen.screen_id)
