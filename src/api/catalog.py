"""Catalog API endpoints: dishes, ingredients and sizes."""

from typing import Annotated

from fastapi import APIRouter, Depends

from src.api.dependencies import get_catalog_service
from src.schemas.catalog import DishResponse, IngredientResponse, SizeResponse
from src.services.catalog import CatalogService
from src.services.constraints import Limited

router = APIRouter(prefix="/api/v1", tags=["catalog"])


@router.get("/dishes", response_model=list[DishResponse])
def list_dishes(
    catalog_service: Annotated[CatalogService, Depends(get_catalog_service)],
):
    """List the base dishes."""
    return catalog_service.list_dishes()


@router.get("/ingredients", response_model=list[IngredientResponse])
def list_ingredients(
    catalog_service: Annotated[CatalogService, Depends(get_catalog_service)],
):
    """List ingredients with current stock and their constraints.

    Requirements and incompatibilities are reported by ingredient name,
    sorted alphabetically.
    """
    catalog = catalog_service.snapshot()

    result = []
    for ingredient in catalog.ingredients.values():
        limited = isinstance(ingredient.stock, Limited)
        result.append(
            IngredientResponse(
                id=ingredient.id,
                name=ingredient.name,
                price=ingredient.price,
                stock=ingredient.stock.count if limited else None,
                unlimited=not limited,
                requires=sorted(catalog.name_of(i) for i in ingredient.requires),
                incompatible_with=sorted(catalog.name_of(i) for i in ingredient.incompatible_with),
            )
        )
    return result


@router.get("/sizes", response_model=list[SizeResponse])
def list_sizes(
    catalog_service: Annotated[CatalogService, Depends(get_catalog_service)],
):
    """List sizes with base price and ingredient cap."""
    return [
        SizeResponse(size=size, price=limits.price, max_ingredients=limits.max_ingredients)
        for size, limits in catalog_service.size_config().items()
    ]
