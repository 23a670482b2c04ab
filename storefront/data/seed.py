# storefront/data/seed.py
from storefront.data.database import SessionLocal
from storefront.data.models import InventoryModel
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_INVENTORY = [
    {"product_id": "velvet-armchair", "product_name": "Velvet Armchair", "stock_quantity": 12, "reserved_quantity": 0, "low_stock_threshold": 3},
    {"product_id": "marble-side-table", "product_name": "Marble Side Table", "stock_quantity": 4, "reserved_quantity": 1, "low_stock_threshold": 2},
    {"product_id": "linen-throw", "product_name": "Linen Throw", "stock_quantity": 40, "reserved_quantity": 5, "low_stock_threshold": 10},
]


def seed(db=None, records=None) -> int:
    owns_session = db is None
    db = db or SessionLocal()
    try:
        # not forcing: only seed if empty
        if db.query(InventoryModel).first():
            return 0
        rows = [InventoryModel(**r) for r in (records or DEFAULT_INVENTORY)]
        db.add_all(rows)
        db.commit()
        logger.info(f"Seeded {len(rows)} inventory records")
        return len(rows)
    finally:
        if owns_session:
            db.close()


if __name__ == "__main__":
    seed()
