# storefront/repos/inventory_repo.py
from typing import Dict, Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from storefront.data.models.inventory import InventoryModel


class InventoryRepo:
    def __init__(self, db: Session):
        self.db = db

    def get(self, product_id: str) -> InventoryModel | None:
        return self.db.get(InventoryModel, product_id)

    def get_many(self, product_ids: Iterable[str]) -> Dict[str, InventoryModel]:
        ids = list(set(product_ids))
        if not ids:
            return {}
        rows = self.db.execute(
            select(InventoryModel).where(InventoryModel.product_id.in_(ids))
        ).scalars().all()
        return {r.product_id: r for r in rows}
