# storefront/services/inventory_service.py
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from storefront.data.models.inventory import InventoryModel
from storefront.domain.schemas import InventoryItemIn
from storefront.repos.inventory_repo import InventoryRepo
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

UNTRACKED = -1


def _untracked(product_id: str, quantity: int) -> Dict[str, Any]:
    # products never provisioned in inventory are treated as unlimited
    return {
        "product_id": product_id,
        "requested_quantity": quantity,
        "available_quantity": UNTRACKED,
        "is_available": True,
        "is_tracked": False,
    }


def _tracked(record: InventoryModel, quantity: int) -> Dict[str, Any]:
    available = record.available_quantity
    return {
        "product_id": record.product_id,
        "requested_quantity": quantity,
        "available_quantity": available,
        "is_available": available >= quantity,
        "is_tracked": True,
    }


class InventoryService:
    """Tylko odczyt stanow magazynowych."""

    def __init__(self, db: Session):
        self.repo = InventoryRepo(db)

    def check_product(self, product_id: str | None, quantity: int = 1) -> Dict[str, Any]:
        if not product_id:
            raise ValueError("Missing productId parameter")
        if quantity < 1:
            raise ValueError("quantity must be >= 1")

        record = self.repo.get(product_id)
        if not record:
            result = _untracked(product_id, quantity)
            result["message"] = "Product not in inventory system"
            return result

        result = _tracked(record, quantity)
        result.update(
            {
                "product_name": record.product_name,
                "is_low_stock": record.available_quantity <= record.low_stock_threshold,
                "low_stock_threshold": record.low_stock_threshold,
            }
        )
        return result

    def check_cart(self, items: List[InventoryItemIn]) -> Dict[str, Any]:
        if not items:
            raise ValueError("Missing or invalid items array")

        records = self.repo.get_many(i.product_id for i in items)
        results = [
            _tracked(records[i.product_id], i.quantity) if i.product_id in records
            else _untracked(i.product_id, i.quantity)
            for i in items
        ]
        unavailable = [r for r in results if not r["is_available"]]

        if unavailable:
            logger.info(f"Cart check: {len(unavailable)} of {len(results)} item(s) short on stock")

        return {
            "all_available": not unavailable,
            "results": results,
            "unavailable_items": unavailable,
            "message": (
                "All items are available" if not unavailable
                else f"{len(unavailable)} item(s) have insufficient stock"
            ),
        }
