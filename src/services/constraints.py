"""Order configuration constraint engine.

Pure decision logic over a catalog snapshot and an in-progress selection.
Nothing here touches the database: the catalog service builds a ``Catalog``
once per request and the functions below only read it.

Rules for adding an ingredient, checked in this order:

1. the ingredient is not already selected;
2. every ingredient that would be added (the ingredient plus everything it
   transitively requires) is in stock;
3. the resulting selection fits the size's ingredient cap;
4. nothing that would be added is incompatible with the selection or with
   another ingredient being added.

Removal never cascades: an ingredient is removable unless another selected
ingredient requires it, and its own requirements stay selected.
"""

from collections.abc import Iterable, Mapping
from dataclasses import asdict, dataclass, field, replace
from decimal import Decimal
from typing import Any, ClassVar

from src.models.enums import OrderSize


@dataclass(frozen=True)
class Unlimited:
    """Stock that never runs out."""

    def has_available(self, quantity: int = 1) -> bool:
        return True


@dataclass(frozen=True)
class Limited:
    """Stock with a finite remaining count."""

    count: int

    def has_available(self, quantity: int = 1) -> bool:
        return self.count >= quantity


Stock = Unlimited | Limited


def stock_from_column(value: int | None) -> Stock:
    """Convert the nullable ``ingredients.stock`` column into a stock variant."""
    if value is None:
        return Unlimited()
    return Limited(value)


@dataclass(frozen=True)
class SizeSpec:
    """Base price and ingredient cap of a size."""

    price: Decimal
    max_ingredients: int


@dataclass(frozen=True)
class IngredientSpec:
    """Immutable view of an ingredient used for decisions."""

    id: int
    name: str
    price: Decimal
    stock: Stock = field(default_factory=Unlimited)
    requires: tuple[int, ...] = ()
    incompatible_with: frozenset[int] = frozenset()


@dataclass(frozen=True)
class Catalog:
    """Point-in-time snapshot of ingredients, their constraints and sizes."""

    ingredients: Mapping[int, IngredientSpec]
    sizes: Mapping[OrderSize, SizeSpec]

    @classmethod
    def build(
        cls,
        ingredients: Iterable[IngredientSpec],
        incompatibilities: Iterable[tuple[int, int]] = (),
        sizes: Mapping[OrderSize, SizeSpec] | None = None,
    ) -> "Catalog":
        """Build a catalog, treating every incompatibility pair as symmetric.

        Pairs may be given in either direction or both; the result is the same.
        """
        by_id = {ing.id: ing for ing in ingredients}
        conflicts: dict[int, set[int]] = {
            ing_id: set(ing.incompatible_with) for ing_id, ing in by_id.items()
        }
        for first, second in incompatibilities:
            if first not in by_id or second not in by_id or first == second:
                continue
            conflicts[first].add(second)
            conflicts[second].add(first)

        specs = {
            ing_id: replace(ing, incompatible_with=frozenset(conflicts[ing_id]))
            for ing_id, ing in by_id.items()
        }
        return cls(ingredients=specs, sizes=dict(sizes or {}))

    def get(self, ingredient_id: int) -> IngredientSpec | None:
        return self.ingredients.get(ingredient_id)

    def name_of(self, ingredient_id: int) -> str:
        ingredient = self.ingredients.get(ingredient_id)
        return ingredient.name if ingredient else str(ingredient_id)

    def max_ingredients(self, size: OrderSize) -> int:
        return self.sizes[OrderSize(size)].max_ingredients

    def are_incompatible(self, first_id: int, second_id: int) -> bool:
        first = self.ingredients.get(first_id)
        return first is not None and second_id in first.incompatible_with


@dataclass(frozen=True)
class Selection:
    """Ephemeral, client-held order configuration."""

    size: OrderSize
    ingredient_ids: tuple[int, ...] = ()
    dish_id: int | None = None

    def with_added(self, ingredient_ids: Iterable[int]) -> "Selection":
        current = list(self.ingredient_ids)
        current.extend(i for i in ingredient_ids if i not in current)
        return replace(self, ingredient_ids=tuple(current))

    def with_removed(self, ingredient_id: int) -> "Selection":
        return replace(
            self, ingredient_ids=tuple(i for i in self.ingredient_ids if i != ingredient_id)
        )

    def with_size(self, size: OrderSize) -> "Selection":
        return replace(self, size=size)


@dataclass(frozen=True)
class Denial:
    """Base class for business-rule denials. Returned, never raised."""

    code: ClassVar[str] = "denied"

    @property
    def message(self) -> str:
        return "Request denied"

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": asdict(self)}


@dataclass(frozen=True)
class OutOfStock(Denial):
    ingredient: str

    code: ClassVar[str] = "out_of_stock"

    @property
    def message(self) -> str:
        return f"{self.ingredient} is out of stock"


@dataclass(frozen=True)
class SizeLimitExceeded(Denial):
    max_ingredients: int
    needed: int

    code: ClassVar[str] = "size_limit_exceeded"

    @property
    def message(self) -> str:
        return (
            f"This size allows at most {self.max_ingredients} ingredients, "
            f"but {self.needed} would be selected"
        )


@dataclass(frozen=True)
class Incompatible(Denial):
    ingredient: str
    conflicts_with: str

    code: ClassVar[str] = "incompatible"

    @property
    def message(self) -> str:
        return f"{self.ingredient} is incompatible with {self.conflicts_with}"


@dataclass(frozen=True)
class RequiredByOthers(Denial):
    ingredient: str
    required_by: str

    code: ClassVar[str] = "required_by_others"

    @property
    def message(self) -> str:
        return f"Cannot remove {self.ingredient}: it is required by {self.required_by}"


@dataclass(frozen=True)
class MissingDependency(Denial):
    ingredient: str
    requires: str

    code: ClassVar[str] = "missing_dependency"

    @property
    def message(self) -> str:
        return f"{self.ingredient} requires {self.requires}"


@dataclass(frozen=True)
class AlreadySelected(Denial):
    ingredient: str

    code: ClassVar[str] = "already_selected"

    @property
    def message(self) -> str:
        return f"{self.ingredient} is already selected"


@dataclass(frozen=True)
class NotSelected(Denial):
    ingredient: str

    code: ClassVar[str] = "not_selected"

    @property
    def message(self) -> str:
        return f"{self.ingredient} is not selected"


@dataclass(frozen=True)
class NotFound(Denial):
    kind: str
    identifier: int

    code: ClassVar[str] = "not_found"

    @property
    def message(self) -> str:
        return f"{self.kind.capitalize()} {self.identifier} not found"


@dataclass(frozen=True)
class Forbidden(Denial):
    reason: str

    code: ClassVar[str] = "forbidden"

    @property
    def message(self) -> str:
        return self.reason


@dataclass(frozen=True)
class AlreadyCancelled(Denial):
    order_id: int

    code: ClassVar[str] = "already_cancelled"

    @property
    def message(self) -> str:
        return f"Order {self.order_id} is already cancelled"


@dataclass(frozen=True)
class Decision:
    """Outcome of a configuration change.

    ``changed_ids`` holds the ingredients to add (or the one to remove) when
    the change is allowed, in the order they were discovered.
    """

    allowed: bool
    changed_ids: tuple[int, ...] = ()
    reason: Denial | None = None

    @classmethod
    def allow(cls, changed_ids: Iterable[int] = ()) -> "Decision":
        return cls(allowed=True, changed_ids=tuple(changed_ids))

    @classmethod
    def deny(cls, reason: Denial) -> "Decision":
        return cls(allowed=False, reason=reason)

    def __bool__(self) -> bool:
        return self.allowed


def dependency_closure(catalog: Catalog, ingredient_id: int) -> tuple[int, ...]:
    """Return the ingredient plus everything it transitively requires.

    Depth-first, in discovery order, starting with ``ingredient_id``. A visited
    set stops the walk on cyclic requirement data.
    """
    closure: list[int] = []
    visited: set[int] = set()
    stack = [ingredient_id]

    while stack:
        current = stack.pop()
        if current in visited:
            continue
        visited.add(current)

        ingredient = catalog.get(current)
        if ingredient is None:
            continue
        closure.append(current)
        # Reversed so requirements are visited in their listed order
        stack.extend(reversed(ingredient.requires))

    return tuple(closure)


def _first_conflict(
    catalog: Catalog, closure: tuple[int, ...], selected: Iterable[int]
) -> Incompatible | None:
    selected = [i for i in selected if i not in closure]
    for ing_id in closure:
        for other_id in selected:
            if catalog.are_incompatible(ing_id, other_id):
                return Incompatible(catalog.name_of(ing_id), catalog.name_of(other_id))

    for index, ing_id in enumerate(closure):
        for other_id in closure[index + 1 :]:
            if catalog.are_incompatible(ing_id, other_id):
                return Incompatible(catalog.name_of(ing_id), catalog.name_of(other_id))
    return None


def can_add(catalog: Catalog, selection: Selection, ingredient_id: int) -> Decision:
    """Decide whether an ingredient (and its requirements) may be added."""
    candidate = catalog.get(ingredient_id)
    if candidate is None:
        return Decision.deny(NotFound("ingredient", ingredient_id))

    selected = set(selection.ingredient_ids)
    if ingredient_id in selected:
        return Decision.deny(AlreadySelected(candidate.name))

    closure = dependency_closure(catalog, ingredient_id)
    to_add = tuple(i for i in closure if i not in selected)

    for ing_id in to_add:
        ingredient = catalog.ingredients[ing_id]
        if not ingredient.stock.has_available():
            return Decision.deny(OutOfStock(ingredient.name))

    limit = catalog.max_ingredients(selection.size)
    needed = len(selected) + len(to_add)
    if needed > limit:
        return Decision.deny(SizeLimitExceeded(limit, needed))

    conflict = _first_conflict(catalog, closure, selection.ingredient_ids)
    if conflict is not None:
        return Decision.deny(conflict)

    return Decision.allow(to_add)


def can_remove(catalog: Catalog, selection: Selection, ingredient_id: int) -> Decision:
    """Decide whether an ingredient may be removed. Removal never cascades."""
    candidate = catalog.get(ingredient_id)
    if candidate is None:
        return Decision.deny(NotFound("ingredient", ingredient_id))
    if ingredient_id not in selection.ingredient_ids:
        return Decision.deny(NotSelected(candidate.name))

    for other_id in selection.ingredient_ids:
        if other_id == ingredient_id:
            continue
        other = catalog.get(other_id)
        if other is not None and ingredient_id in other.requires:
            return Decision.deny(RequiredByOthers(candidate.name, other.name))

    return Decision.allow((ingredient_id,))


def change_size(catalog: Catalog, selection: Selection, new_size: OrderSize) -> Decision:
    """Decide whether the selection fits a different size."""
    limit = catalog.max_ingredients(new_size)
    count = len(set(selection.ingredient_ids))
    if count > limit:
        return Decision.deny(SizeLimitExceeded(limit, count))
    return Decision.allow()


def compute_total(catalog: Catalog, size: OrderSize, ingredient_ids: Iterable[int]) -> Decimal:
    """Base price of the size plus the unit price of each distinct ingredient.

    Kept at full ``Decimal`` precision; round only for display.
    """
    total = catalog.sizes[OrderSize(size)].price
    for ing_id in dict.fromkeys(ingredient_ids):
        total += catalog.ingredients[ing_id].price
    return total


def validate_selection(
    catalog: Catalog, size: OrderSize, ingredient_ids: Iterable[int]
) -> list[Denial]:
    """Re-validate a complete selection and report every violation.

    Used at submission time against a fresh catalog. An empty list means the
    selection may be confirmed.
    """
    unique_ids = list(dict.fromkeys(ingredient_ids))
    denials: list[Denial] = []

    known = []
    for ing_id in unique_ids:
        if catalog.get(ing_id) is None:
            denials.append(NotFound("ingredient", ing_id))
        else:
            known.append(catalog.ingredients[ing_id])

    for ingredient in known:
        if not ingredient.stock.has_available():
            denials.append(OutOfStock(ingredient.name))

    limit = catalog.max_ingredients(size)
    if len(unique_ids) > limit:
        denials.append(SizeLimitExceeded(limit, len(unique_ids)))

    selected = set(unique_ids)
    for ingredient in known:
        for required_id in ingredient.requires:
            if required_id not in selected:
                denials.append(MissingDependency(ingredient.name, catalog.name_of(required_id)))

    for index, ingredient in enumerate(known):
        for other in known[index + 1 :]:
            if catalog.are_incompatible(ingredient.id, other.id):
                denials.append(Incompatible(ingredient.name, other.name))

    return denials
