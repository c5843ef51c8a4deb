"""Variant record repository for database operations"""

from typing import List, Optional, Sequence, Tuple

from sqlalchemy import and_, case, delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.variant import ProductVariant, VariantKind
from ..schemas.variant import VariantAllocationWrite


class VariantRepository:
    """Repository for per-location variant rows"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_variants(
        self,
        product_id: int,
        location_id: int,
        kind: Optional[VariantKind] = None,
        name: Optional[str] = None,
    ) -> List[ProductVariant]:
        """Variant rows of one location, oldest first"""
        conditions = [
            ProductVariant.product_id == product_id,
            ProductVariant.location_id == location_id,
        ]
        if kind is not None:
            conditions.append(ProductVariant.kind == kind)
        if name is not None:
            conditions.append(ProductVariant.name == name)

        query = select(ProductVariant).where(and_(*conditions)).order_by(ProductVariant.id)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def list_for_product(
        self, product_id: int, kind: Optional[VariantKind] = None
    ) -> List[ProductVariant]:
        query = select(ProductVariant).where(ProductVariant.product_id == product_id)
        if kind is not None:
            query = query.where(ProductVariant.kind == kind)
        query = query.order_by(ProductVariant.location_id, ProductVariant.id)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def merge_duplicates(
        self,
        primary_id: int,
        total_quantity: int,
        duplicate_ids: Sequence[int],
    ) -> None:
        """Set the primary row's quantity and delete the duplicates in one transaction"""
        try:
            await self.db.execute(
                update(ProductVariant)
                .where(ProductVariant.id == primary_id)
                .values(quantity=total_quantity)
            )
            await self.db.execute(
                delete(ProductVariant).where(ProductVariant.id.in_(list(duplicate_ids)))
            )
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise

    async def allocate(
        self,
        target: Optional[ProductVariant],
        write: VariantAllocationWrite,
        placeholder_draws: Sequence[Tuple[ProductVariant, int]] = (),
    ) -> ProductVariant:
        """Add ``write.quantity`` to ``target`` (or insert it) and draw down placeholders.

        Increments run in SQL against the stored quantity, and the increment and
        the placeholder draw-down commit together.
        """
        try:
            if target is None:
                target = ProductVariant(
                    product_id=write.product_id,
                    location_id=write.location_id,
                    kind=write.kind,
                    name=write.name,
                    quantity=write.quantity,
                    value=write.value,
                    color_hex=write.color_hex,
                )
                self.db.add(target)
            else:
                values = {"quantity": ProductVariant.quantity + write.quantity}
                if write.value is not None:
                    values["value"] = write.value
                await self.db.execute(
                    update(ProductVariant)
                    .where(ProductVariant.id == target.id)
                    .values(**values)
                    .execution_options(synchronize_session=False)
                )

            for placeholder, amount in placeholder_draws:
                await self.db.execute(
                    update(ProductVariant)
                    .where(ProductVariant.id == placeholder.id)
                    .values(
                        quantity=case(
                            (ProductVariant.quantity > amount, ProductVariant.quantity - amount),
                            else_=0,
                        )
                    )
                    .execution_options(synchronize_session=False)
                )

            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise

        await self.db.refresh(target)
        for placeholder, _ in placeholder_draws:
            await self.db.refresh(placeholder)
        return target

    async def delete_variants(self, variant_ids: Sequence[int]) -> int:
        if not variant_ids:
            return 0
        result = await self.db.execute(
            delete(ProductVariant).where(ProductVariant.id.in_(list(variant_ids)))
        )
        await self.db.commit()
        return result.rowcount or 0
