# storefront/repos/order_repo.py
from typing import Any, Dict, List, Tuple

from sqlalchemy import select, func, or_
from sqlalchemy.orm import Session, selectinload

from storefront.data.models.order import OrderModel
from storefront.data.models.order_item import OrderItemModel

SORTABLE_COLUMNS = {
    "created_at": OrderModel.created_at,
    "updated_at": OrderModel.updated_at,
    "order_number": OrderModel.order_number,
    "total": OrderModel.total,
    "status": OrderModel.status,
    "customer_name": OrderModel.customer_name,
    "customer_email": OrderModel.customer_email,
}


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    def create_order(self, order: OrderModel) -> OrderModel:
        # IntegrityError (duplicate session / order number) propagates to the caller
        self.db.add(order)
        self.db.commit()
        self.db.refresh(order)
        return order

    def add_items(self, order: OrderModel, items: List[OrderItemModel]) -> None:
        order.items.extend(items)
        self.db.commit()

    def get_order_with_items(self, order_id: int) -> OrderModel | None:
        return self.db.execute(
            select(OrderModel)
            .options(selectinload(OrderModel.items))
            .where(OrderModel.id == order_id)
        ).scalar_one_or_none()

    def get_by_session_id(self, session_id: str) -> OrderModel | None:
        return self.db.execute(
            select(OrderModel)
            .options(selectinload(OrderModel.items))
            .where(OrderModel.stripe_session_id == session_id)
        ).scalar_one_or_none()

    def list_orders(
        self,
        page: int,
        limit: int,
        status: str | None = None,
        search: str | None = None,
        sort_by: str = "created_at",
        ascending: bool = False,
    ) -> Tuple[List[OrderModel], int]:
        # sort_by is checked against SORTABLE_COLUMNS before it gets here
        column = SORTABLE_COLUMNS[sort_by]

        conditions = []
        if status:
            conditions.append(OrderModel.status == status)
        if search:
            escaped = search.lower().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
            pattern = f"%{escaped}%"
            conditions.append(
                or_(
                    func.lower(OrderModel.order_number).like(pattern, escape="\\"),
                    func.lower(OrderModel.customer_email).like(pattern, escape="\\"),
                    func.lower(OrderModel.customer_name).like(pattern, escape="\\"),
                )
            )

        total = self.db.execute(
            select(func.count()).select_from(OrderModel).where(*conditions)
        ).scalar_one()

        rows = self.db.execute(
            select(OrderModel)
            .where(*conditions)
            .order_by(column.asc() if ascending else column.desc(), OrderModel.id)
            .offset((page - 1) * limit)
            .limit(limit)
        ).scalars().all()

        return list(rows), total

    def update_order(self, order: OrderModel, changes: Dict[str, Any]) -> OrderModel:
        for field, value in changes.items():
            setattr(order, field, value)
        self.db.commit()
        self.db.refresh(order)
        return order

    def rollback(self):
        self.db.rollback()
