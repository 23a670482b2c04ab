# storefront/api/routers/inventory.py
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from storefront.data.database import get_db
from storefront.domain.schemas import InventoryCheckIn, InventoryCheckOut, InventoryResult
from storefront.services.inventory_service import InventoryService

router = APIRouter(prefix="/inventory", tags=["inventory"])


def get_service(db: Session = Depends(get_db)):
    return InventoryService(db)


@router.get("", response_model=InventoryResult, response_model_exclude_none=True)
def check_product(
    product_id: str | None = Query(None, alias="productId"),
    quantity: int = Query(1),
    svc: InventoryService = Depends(get_service),
):
    try:
        return svc.check_product(product_id, quantity)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("", response_model=InventoryCheckOut, response_model_exclude_none=True)
def check_cart(payload: InventoryCheckIn, svc: InventoryService = Depends(get_service)):
    try:
        return svc.check_cart(payload.items)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
