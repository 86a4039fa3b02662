"""Presets API: aggregated texts people are sending."""

from fastapi import APIRouter, Depends
from fastapi_pagination import Page, Params
from fastapi_pagination.ext.sqlalchemy import paginate
from sqlalchemy.orm import Session

from app.db import get_db
from app.schemas.preset import PresetAggregateRead
from app.services.preset_aggregate_service import PresetAggregateService

router = APIRouter(
    prefix="/presets",
    tags=["presets"],
    responses={404: {"description": "Not found"}},
)


@router.get("", response_model=Page[PresetAggregateRead])
def list_presets(
    params: Params = Depends(),
    db: Session = Depends(get_db),
) -> Page[PresetAggregateRead]:
    """List preset aggregates, most recently sent first."""
    query = PresetAggregateService(db).get_presets_query()
    return paginate(query, params=params)
