"""
Allocation arithmetic
=====================

Pure functions over one location's inventory total and its variant rows.
No I/O happens here; services load the rows and pass them in.
"""

from typing import Iterable, List, Optional, Protocol, Sequence, Tuple

from ..core.setting import get_settings
from ..models.variant import VariantKind
from ..schemas.allocation import AllocationState, PendingDelta


class _StockRow(Protocol):
    quantity: int


class _VariantRow(Protocol):
    kind: VariantKind
    name: str
    quantity: int


def _placeholder_name(placeholder_name: Optional[str]) -> str:
    return placeholder_name or get_settings().PLACEHOLDER_VARIANT_NAME


def compute_state(
    inventory: Optional[_StockRow],
    variants: Iterable[_VariantRow],
    kind: VariantKind = VariantKind.COLOR,
    placeholder_name: Optional[str] = None,
) -> AllocationState:
    """Derive specified / placeholder / unassigned quantities for one location.

    Only rows of ``kind`` count. A missing inventory row means zero stock.
    """
    placeholder = _placeholder_name(placeholder_name)
    total_quantity = inventory.quantity if inventory is not None else 0
    min_stock = getattr(inventory, "min_stock", 0) or 0

    specified_quantity = 0
    placeholder_quantity = 0
    for variant in variants:
        if variant.kind != kind:
            continue
        if variant.name == placeholder:
            placeholder_quantity += variant.quantity
        else:
            specified_quantity += variant.quantity

    unassigned_quantity = max(
        0, total_quantity - specified_quantity - placeholder_quantity
    )

    return AllocationState(
        kind=kind,
        total_quantity=total_quantity,
        min_stock=min_stock,
        specified_quantity=specified_quantity,
        placeholder_quantity=placeholder_quantity,
        unassigned_quantity=unassigned_quantity,
        total_unspecified=placeholder_quantity + unassigned_quantity,
    )


def total_pending(pending_deltas: Iterable[PendingDelta]) -> int:
    return sum(delta.quantity for delta in pending_deltas)


def max_quantity_for(
    state: AllocationState, pending_deltas: Iterable[PendingDelta], name: str
) -> int:
    """Upper bound for one variant's input: what is left plus its own pending delta"""
    others = sum(delta.quantity for delta in pending_deltas if delta.name != name)
    return max(0, state.total_unspecified - others)


def commit_rejections(
    pending_deltas: Sequence[PendingDelta],
    state: AllocationState,
    missing_images: Sequence[str] = (),
    known_names: Optional[Iterable[str]] = None,
    placeholder_name: Optional[str] = None,
) -> List[str]:
    """Reasons a commit must be refused; empty when it may proceed"""
    placeholder = _placeholder_name(placeholder_name)
    reasons: List[str] = []

    total = total_pending(pending_deltas)
    if total <= 0:
        reasons.append("Nothing to assign")
    elif total > state.total_unspecified:
        reasons.append(
            f"Assigned total {total} exceeds the {state.total_unspecified} units left to assign"
        )

    active = [delta for delta in pending_deltas if delta.quantity > 0]

    wrong_kind = sorted({d.name for d in active if d.kind != state.kind})
    if wrong_kind:
        reasons.append(
            f"Variants {', '.join(wrong_kind)} are not of kind {state.kind.value}"
        )

    if any(delta.name == placeholder for delta in active):
        reasons.append(f"Stock cannot be assigned to the placeholder variant {placeholder}")

    if known_names is not None:
        known = set(known_names)
        unknown = [d.name for d in active if d.name not in known and d.name != placeholder]
        if unknown:
            reasons.append(f"Unknown variants: {', '.join(unknown)}")

    if missing_images:
        reasons.append(f"Images required for: {', '.join(missing_images)}")

    return reasons


def can_commit(
    pending_deltas: Sequence[PendingDelta],
    state: AllocationState,
    missing_images: Sequence[str] = (),
) -> bool:
    """True when something is assigned, it fits what is left, and no image is missing"""
    total = total_pending(pending_deltas)
    return 0 < total <= state.total_unspecified and not missing_images


def placeholder_draws(
    variants: Iterable[_VariantRow],
    needed: int,
    kind: VariantKind = VariantKind.COLOR,
    placeholder_name: Optional[str] = None,
) -> List[Tuple[_VariantRow, int]]:
    """Placeholder rows to draw ``needed`` units from, oldest first"""
    placeholder = _placeholder_name(placeholder_name)
    draws: List[Tuple[_VariantRow, int]] = []
    for variant in variants:
        if needed <= 0:
            break
        if variant.kind != kind or variant.name != placeholder or variant.quantity <= 0:
            continue
        amount = min(needed, variant.quantity)
        draws.append((variant, amount))
        needed -= amount
    return draws
