"""
Catalog -- Components, assemblies and the links between them.

Responsibility:
    Defines the purchasable Component, the Assembly that groups component
    references with quantities, and the ComponentLink variant that lets an
    assembly outlive the deletion of a component it refers to.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Consumed by cpq_engines.assembly (roll-up) and cpq_engines.quotation
    (item construction).

Invariants enforced:
    - A component's original currency and cost are its authoritative price.
      They change only through Component.with_original_price, never as a
      side effect of exchange-rate changes or recomputation.
    - Assembly component quantities are strictly positive.
    - Assembly.is_complete is derived from its links, so it cannot disagree
      with them.
    - Every mutation returns a new object; inputs are never modified.

Failure modes:
    - InvalidAmountError for negative or non-finite costs.
    - InvalidQuantityError for a component reference with quantity <= 0.
    - ValidationError for labor subtypes on non-labor components and for
      reorderings that are not a permutation of the assembly's refs.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, replace
from decimal import Decimal
from enum import Enum
from uuid import uuid4

from cpq_kernel.domain.values import HUNDRED, ZERO, Currency, to_decimal
from cpq_kernel.exceptions import (
    InvalidAmountError,
    InvalidQuantityError,
    ValidationError,
)


class ItemType(str, Enum):
    """Pricing category of a component or quotation item."""

    HARDWARE = "hardware"
    SOFTWARE = "software"
    LABOR = "labor"


class LaborSubtype(str, Enum):
    """Kind of labor, tracked separately within the labor subtotal."""

    ENGINEERING = "engineering"
    COMMISSIONING = "commissioning"
    INSTALLATION = "installation"
    PROGRAMMING = "programming"


def non_negative(value: Decimal | str | int | float, field_name: str) -> Decimal:
    """Coerce to Decimal and reject negatives."""
    amount = to_decimal(value, field_name)
    if amount < ZERO:
        raise InvalidAmountError(value, field_name)
    return amount


def positive_quantity(value: Decimal | str | int | float, subject: str) -> Decimal:
    """Coerce to Decimal and reject zero or negative quantities."""
    try:
        quantity = to_decimal(value, subject)
    except InvalidAmountError as e:
        raise InvalidQuantityError(value, subject) from e
    if quantity <= ZERO:
        raise InvalidQuantityError(value, subject)
    return quantity


def discount_percent(value: Decimal | str | int | float, field_name: str) -> Decimal:
    """Coerce a percentage that must lie in [0, 100]."""
    percent = non_negative(value, field_name)
    if percent > HUNDRED:
        raise InvalidAmountError(value, field_name)
    return percent


def check_labor_subtype(item_type: ItemType, labor_subtype: LaborSubtype | None) -> None:
    if labor_subtype is not None and item_type != ItemType.LABOR:
        raise ValidationError(
            f"labor_subtype {labor_subtype.value} is only valid on labor items, "
            f"not {item_type.value}"
        )


@dataclass(frozen=True, slots=True)
class Component:
    """
    A purchasable part, software license or labor unit in the library.

    Contract:
        (original_currency, original_cost) is the authoritative unit price.
        Equivalents in the other currencies are derived on demand by
        cpq_engines.conversion.price_component and are never stored here.

    Guarantees:
        - original_cost is a finite Decimal >= 0
        - msrp_currency is set whenever msrp_price is set
        - partner_discount_percent lies in [0, 100]
    """

    id: str
    name: str
    original_currency: Currency
    original_cost: Decimal
    manufacturer: str = ""
    part_number: str = ""
    category: str = ""
    item_type: ItemType = ItemType.HARDWARE
    labor_subtype: LaborSubtype | None = None
    msrp_price: Decimal | None = None
    msrp_currency: Currency | None = None
    partner_discount_percent: Decimal | None = None
    is_internal_labor: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "original_currency", Currency.parse(self.original_currency))
        object.__setattr__(self, "original_cost", non_negative(self.original_cost, "original_cost"))
        object.__setattr__(self, "item_type", ItemType(self.item_type))
        if self.labor_subtype is not None:
            object.__setattr__(self, "labor_subtype", LaborSubtype(self.labor_subtype))
        check_labor_subtype(self.item_type, self.labor_subtype)
        if self.is_internal_labor and self.item_type != ItemType.LABOR:
            raise ValidationError("Only labor components can be internal labor")

        if self.msrp_price is not None:
            object.__setattr__(self, "msrp_price", non_negative(self.msrp_price, "msrp_price"))
            # MSRP defaults to the component's own currency
            msrp_currency = self.msrp_currency or self.original_currency
            object.__setattr__(self, "msrp_currency", Currency.parse(msrp_currency))
        elif self.msrp_currency is not None:
            object.__setattr__(self, "msrp_currency", Currency.parse(self.msrp_currency))

        if self.partner_discount_percent is not None:
            object.__setattr__(
                self,
                "partner_discount_percent",
                discount_percent(self.partner_discount_percent, "partner_discount_percent"),
            )

    @property
    def has_msrp(self) -> bool:
        """True when the component carries a usable list price."""
        return self.msrp_price is not None and self.msrp_price > ZERO

    def with_original_price(
        self,
        original_cost: Decimal | str | int,
        original_currency: Currency | str | None = None,
    ) -> Component:
        """Explicit user edit of the authoritative price."""
        return replace(
            self,
            original_cost=original_cost,
            original_currency=original_currency or self.original_currency,
        )


@dataclass(frozen=True, slots=True)
class ComponentSnapshot:
    """Identifying fields copied onto an assembly link when it is made."""

    name: str
    manufacturer: str = ""
    part_number: str = ""

    @classmethod
    def of(cls, component: Component) -> ComponentSnapshot:
        return cls(
            name=component.name,
            manufacturer=component.manufacturer,
            part_number=component.part_number,
        )

    def __str__(self) -> str:
        parts = [self.name]
        if self.manufacturer:
            parts.append(self.manufacturer)
        if self.part_number:
            parts.append(self.part_number)
        return " / ".join(parts)


@dataclass(frozen=True, slots=True)
class ResolvedComponent:
    """Link to a component that still exists in the library."""

    component: Component
    snapshot: ComponentSnapshot | None = None

    def __post_init__(self) -> None:
        if self.snapshot is None:
            object.__setattr__(self, "snapshot", ComponentSnapshot.of(self.component))


@dataclass(frozen=True, slots=True)
class MissingComponent:
    """Link whose component was deleted; only the snapshot survives."""

    snapshot: ComponentSnapshot
    former_component_id: str | None = None


ComponentLink = ResolvedComponent | MissingComponent


@dataclass(frozen=True, slots=True)
class AssemblyComponentRef:
    """
    One line of an assembly: a component link and how many of it.

    Guarantees:
        - quantity is a Decimal > 0 (fractional and very large accepted)
    """

    link: ComponentLink
    quantity: Decimal
    sort_order: int = 0
    id: str = field(default_factory=lambda: str(uuid4()))

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "quantity", positive_quantity(self.quantity, "component quantity")
        )

    @property
    def is_missing(self) -> bool:
        return isinstance(self.link, MissingComponent)

    @property
    def component(self) -> Component | None:
        """The linked component, or None when it was deleted."""
        match self.link:
            case ResolvedComponent(component=component):
                return component
            case _:
                return None

    @property
    def component_id(self) -> str | None:
        match self.link:
            case ResolvedComponent(component=component):
                return component.id
            case MissingComponent(former_component_id=former_id):
                return former_id

    @property
    def snapshot(self) -> ComponentSnapshot:
        return self.link.snapshot


@dataclass(frozen=True, slots=True)
class Assembly:
    """
    A named group of component references priced as one unit.

    Contract:
        Holds references, not copies: prices always come from the linked
        components at roll-up time. Assemblies never contain assemblies.

    Guarantees:
        - components is an immutable tuple
        - is_complete is True iff no reference is a MissingComponent
        - with_component / without_component / reordered / detach_component
          return new assemblies and leave this one untouched

    Non-goals:
        - Does NOT validate itself on construction; drafts may be empty.
          See cpq_engines.assembly.validate_assembly for the save check.
    """

    id: str
    name: str
    components: tuple[AssemblyComponentRef, ...] = ()
    description: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "components", tuple(self.components))

    @property
    def is_complete(self) -> bool:
        return not any(ref.is_missing for ref in self.components)

    @property
    def missing_refs(self) -> tuple[AssemblyComponentRef, ...]:
        return tuple(ref for ref in self.components if ref.is_missing)

    @property
    def ordered_components(self) -> tuple[AssemblyComponentRef, ...]:
        """References in display order (stable for equal sort_order)."""
        return tuple(sorted(self.components, key=lambda ref: ref.sort_order))

    def with_component(
        self,
        component: Component,
        quantity: Decimal | str | int = Decimal("1"),
        sort_order: int | None = None,
    ) -> Assembly:
        """Append a reference to ``component``."""
        ref = AssemblyComponentRef(
            link=ResolvedComponent(component),
            quantity=quantity,
            sort_order=len(self.components) if sort_order is None else sort_order,
        )
        return replace(self, components=self.components + (ref,))

    def without_component(self, ref_id: str) -> Assembly:
        """Remove the reference with id ``ref_id``."""
        remaining = tuple(ref for ref in self.components if ref.id != ref_id)
        if len(remaining) == len(self.components):
            raise ValidationError(f"Assembly {self.id} has no component reference {ref_id}")
        return replace(self, components=remaining)

    def reordered(self, ref_ids: Sequence[str]) -> Assembly:
        """Rearrange references; ``ref_ids`` must name each one exactly once."""
        by_id = {ref.id: ref for ref in self.components}
        if sorted(ref_ids) != sorted(by_id):
            raise ValidationError(
                f"Reorder of assembly {self.id} must list every component reference once"
            )
        return replace(
            self,
            components=tuple(
                replace(by_id[ref_id], sort_order=index)
                for index, ref_id in enumerate(ref_ids)
            ),
        )

    def detach_component(self, component_id: str) -> Assembly:
        """
        Mark references to a deleted component as missing.

        The snapshot stays so the assembly can still show what used to be
        there. The assembly becomes incomplete when any reference matched.
        """
        updated: list[AssemblyComponentRef] = []
        for ref in self.components:
            match ref.link:
                case ResolvedComponent(component=component, snapshot=snapshot) if component.id == component_id:
                    updated.append(
                        replace(
                            ref,
                            link=MissingComponent(snapshot=snapshot, former_component_id=component_id),
                        )
                    )
                case _:
                    updated.append(ref)
        return replace(self, components=tuple(updated))


def resolve_assembly_links(
    assembly: Assembly,
    catalog: Mapping[str, Component],
) -> Assembly:
    """
    Rebuild every link of ``assembly`` against the current component library.

    References whose component id is in ``catalog`` point at the catalog's
    current version (so edited prices are picked up); all others become
    MissingComponent with their last known snapshot.
    """
    refs: list[AssemblyComponentRef] = []
    for ref in assembly.components:
        component_id = ref.component_id
        current = catalog.get(component_id) if component_id is not None else None
        if current is not None:
            link: ComponentLink = ResolvedComponent(current, ref.snapshot)
        else:
            link = MissingComponent(snapshot=ref.snapshot, former_component_id=component_id)
        refs.append(replace(ref, link=link))
    return replace(assembly, components=tuple(refs))
