from fastapi import APIRouter, Depends, HTTPException, status

from studio.api.deps import get_screen_registry
from studio.api.models import DataSizeRequest, ParameterValidationRequest, ParameterValidationResponse, RecommendationModel
from studio.generation.catalog import AlgorithmCatalog, recommend_algorithms
from studio.services.screens import ScreenNotFoundError, ScreenRegistry

router = APIRouter()


@router.post("/validate-parameters", response_model=ParameterValidationResponse)
async def validate_parameters(payload: ParameterValidationRequest, registry: ScreenRegistry = Depends(get_screen_registry)) -> ParameterValidationResponse:  # noqa: B008
  """Check hyperparameters against a screen's loaded catalog, or the built-in one."""
  catalog = AlgorithmCatalog()
  if payload.screen_id is not None:
    try:
      catalog = registry.get(payload.screen_id).catalog
    except ScreenNotFoundError as exc:
      raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Generation screen not found") from exc
  report = catalog.validate_parameters(payload.algorithm, payload.parameters)
  return ParameterValidationResponse.from_report(report)


@router.post("/recommend", response_model=list[RecommendationModel])
async def recommend(payload: DataSizeRequest) -> list[RecommendationModel]:
  """Suggest algorithms for the size of the institution's data."""
  recommendations = recommend_algorithms(courses=payload.courses, teachers=payload.teachers, classrooms=payload.classrooms)
  return [RecommendationModel.from_recommendation(item) for item in recommendations]
