"""Order configurator endpoints.

Stateless: the client sends its current selection with every change and gets
back the decision plus the selection it should hold afterwards.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from src.api.dependencies import get_catalog_service
from src.schemas.configurator import (
    DecisionResponse,
    DenialResponse,
    IngredientChangeRequest,
    SelectionPayload,
    SizeChangeRequest,
)
from src.services.catalog import CatalogService
from src.services.constraints import (
    Catalog,
    Decision,
    Selection,
    can_add,
    can_remove,
    change_size,
    compute_total,
)

router = APIRouter(prefix="/api/v1/configurator", tags=["configurator"])


def to_selection(payload: SelectionPayload, catalog: Catalog) -> Selection:
    """Convert a client selection, rejecting ids that are not in the catalog."""
    unknown = [i for i in payload.ingredient_ids if catalog.get(i) is None]
    if unknown:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Ingredient {unknown[0]} not found",
        )
    return Selection(
        size=payload.size,
        ingredient_ids=tuple(dict.fromkeys(payload.ingredient_ids)),
        dish_id=payload.dish_id,
    )


def build_response(catalog: Catalog, decision: Decision, selection: Selection) -> DecisionResponse:
    return DecisionResponse(
        allowed=decision.allowed,
        changed_ids=list(decision.changed_ids),
        selection=SelectionPayload(
            dish_id=selection.dish_id,
            size=selection.size,
            ingredient_ids=list(selection.ingredient_ids),
        ),
        total=compute_total(catalog, selection.size, selection.ingredient_ids),
        reason=DenialResponse(**decision.reason.to_dict()) if decision.reason else None,
    )


@router.post("/add", response_model=DecisionResponse)
def add_ingredient(
    request: IngredientChangeRequest,
    catalog_service: Annotated[CatalogService, Depends(get_catalog_service)],
):
    """Add an ingredient along with everything it requires."""
    catalog = catalog_service.snapshot()
    selection = to_selection(request.selection, catalog)

    decision = can_add(catalog, selection, request.ingredient_id)
    if decision:
        selection = selection.with_added(decision.changed_ids)
    return build_response(catalog, decision, selection)


@router.post("/remove", response_model=DecisionResponse)
def remove_ingredient(
    request: IngredientChangeRequest,
    catalog_service: Annotated[CatalogService, Depends(get_catalog_service)],
):
    """Remove a single ingredient; its requirements stay selected."""
    catalog = catalog_service.snapshot()
    selection = to_selection(request.selection, catalog)

    decision = can_remove(catalog, selection, request.ingredient_id)
    if decision:
        selection = selection.with_removed(request.ingredient_id)
    return build_response(catalog, decision, selection)


@router.post("/size", response_model=DecisionResponse)
def switch_size(
    request: SizeChangeRequest,
    catalog_service: Annotated[CatalogService, Depends(get_catalog_service)],
):
    """Switch to another size if the current ingredients fit."""
    catalog = catalog_service.snapshot()
    selection = to_selection(request.selection, catalog)

    decision = change_size(catalog, selection, request.size)
    if decision:
        selection = selection.with_size(request.size)
    return build_response(catalog, decision, selection)
