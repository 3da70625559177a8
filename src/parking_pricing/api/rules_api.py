"""
Price Rules API - FastAPI router for rule management and price calculation.
"""
import logging
from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from ..engine.errors import (
    InvalidIntervalError,
    NegativeBasePriceError,
    RuleStoreUnavailableError,
    RuleValidationError,
)
from ..engine.models import PriceCalculation
from .state import AppState, get_state

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/price-rules", tags=["price-rules"])
pricing_router = APIRouter(prefix="/pricing", tags=["pricing"])


# Pydantic models for API (field names follow the marketplace's JSON contract)
class TimeConditionModel(BaseModel):
    startTime: str
    endTime: str


class DayConditionModel(BaseModel):
    daysOfWeek: list[int]


class DateConditionModel(BaseModel):
    startDate: str
    endDate: str


class DurationConditionModel(BaseModel):
    minHours: float = 0
    maxHours: Optional[float] = None


class ConditionsModel(BaseModel):
    time: Optional[TimeConditionModel] = None
    day: Optional[DayConditionModel] = None
    date: Optional[DateConditionModel] = None
    duration: Optional[DurationConditionModel] = None


RuleTypeName = Literal['TIME_BASED', 'DAY_BASED', 'DATE_BASED', 'DURATION_BASED', 'DISCOUNT']
AdjustmentTypeName = Literal['PERCENTAGE', 'FIXED']


class PriceRuleCreate(BaseModel):
    """Request model for creating a rule."""
    id: Optional[str] = None
    parkingId: str
    name: str
    description: Optional[str] = None
    type: RuleTypeName = 'DISCOUNT'
    adjustmentType: AdjustmentTypeName
    adjustmentValue: float
    conditions: ConditionsModel = ConditionsModel()
    priority: int = 0
    isActive: bool = True


class PriceRuleUpdate(BaseModel):
    """Request model for updating a rule; only sent fields change."""
    parkingId: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    type: Optional[RuleTypeName] = None
    adjustmentType: Optional[AdjustmentTypeName] = None
    adjustmentValue: Optional[float] = None
    conditions: Optional[ConditionsModel] = None
    priority: Optional[int] = None
    isActive: Optional[bool] = None


class PriceRuleResponse(BaseModel):
    """Response model for a rule."""
    id: str
    parkingId: str
    name: str
    description: Optional[str]
    type: str
    adjustmentType: str
    adjustmentValue: float
    conditions: ConditionsModel
    priority: int
    isActive: bool
    createdAt: Optional[str]
    updatedAt: Optional[str]


class AppliedRuleResponse(BaseModel):
    ruleId: str
    name: str
    type: str
    adjustment: float
    amount: float


class PriceCalculationResponse(BaseModel):
    """Response model for a price calculation."""
    basePrice: float
    appliedRules: list[AppliedRuleResponse]
    subtotal: float
    taxes: float
    total: float
    currency: str
    durationHours: int


def _calculate(state: AppState, parking_id: str, start: datetime, end: datetime) -> PriceCalculation:
    """Price a booking, mapping engine errors to HTTP errors."""
    parking = state.catalog.get(parking_id)
    if parking is None:
        raise HTTPException(status_code=404, detail=f"Parking '{parking_id}' not found")

    try:
        return state.engine.calculate(
            parking_id=parking.parking_id,
            base_price=parking.base_price,
            start_time=start,
            end_time=end,
            currency=parking.currency,
        )
    except (InvalidIntervalError, NegativeBasePriceError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except RuleStoreUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))


# Endpoints

@router.get("", response_model=list[PriceRuleResponse])
async def list_rules(
    parking_id: Optional[str] = Query(None, alias="parkingId"),
    include_inactive: bool = Query(True, alias="includeInactive"),
    state: AppState = Depends(get_state),
):
    """List compiled price rules in priority order, optionally for one parking."""
    try:
        rules = state.rule_store.all_rules(parking_id=parking_id, include_inactive=include_inactive)
    except RuleStoreUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return [rule.to_dict() for rule in rules]


@router.get("/stats")
async def get_stats(state: AppState = Depends(get_state)):
    """Get rule statistics."""
    try:
        return state.rules_service.get_stats()
    except RuleStoreUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))


@router.get("/calculate-price/{parking_id}", response_model=PriceCalculationResponse)
async def calculate_price(
    parking_id: str,
    start_date: datetime = Query(..., alias="startDate"),
    end_date: datetime = Query(..., alias="endDate"),
    state: AppState = Depends(get_state),
):
    """Calculate the price of booking a parking between two instants."""
    return _calculate(state, parking_id, start_date, end_date).to_dict()


@router.get("/{rule_id}", response_model=PriceRuleResponse)
async def get_rule(rule_id: str, state: AppState = Depends(get_state)):
    """Get a single compiled rule by ID."""
    try:
        rule = state.rule_store.get_rule(rule_id)
    except RuleStoreUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))
    if not rule:
        raise HTTPException(status_code=404, detail=f"Rule '{rule_id}' not found")
    return rule.to_dict()


@router.post("", response_model=PriceRuleResponse, status_code=201)
async def create_rule(rule_data: PriceRuleCreate, state: AppState = Depends(get_state)):
    """Create a new price rule."""
    try:
        created = state.rules_service.create_rule(rule_data.model_dump(exclude_none=True))
    except RuleValidationError as e:
        raise HTTPException(status_code=400, detail={"errors": e.errors})
    except RuleStoreUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return created.to_dict()


@router.patch("/{rule_id}", response_model=PriceRuleResponse)
async def update_rule(rule_id: str, updates: PriceRuleUpdate, state: AppState = Depends(get_state)):
    """Update an existing rule."""
    # exclude_unset keeps explicit nulls (e.g. clearing conditions) but drops omitted fields
    update_dict = updates.model_dump(exclude_unset=True)
    if update_dict.get('conditions'):
        update_dict['conditions'] = updates.conditions.model_dump(exclude_none=True)

    try:
        updated = state.rules_service.update_rule(rule_id, update_dict)
    except RuleValidationError as e:
        raise HTTPException(status_code=400, detail={"errors": e.errors})
    except RuleStoreUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return updated.to_dict()


@router.delete("/{rule_id}")
async def delete_rule(rule_id: str, state: AppState = Depends(get_state)):
    """Delete a rule."""
    try:
        state.rules_service.delete_rule(rule_id)
    except RuleValidationError as e:
        raise HTTPException(status_code=400, detail={"errors": e.errors})
    except RuleStoreUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"success": True, "message": f"Rule '{rule_id}' deleted"}


@pricing_router.get("/price-for-range")
async def price_for_range(
    parking_id: str = Query(..., alias="parkingId"),
    start_date: datetime = Query(..., alias="startDate"),
    end_date: datetime = Query(..., alias="endDate"),
    state: AppState = Depends(get_state),
) -> float:
    """Total price of a booking, taxes included."""
    return float(_calculate(state, parking_id, start_date, end_date).total)
