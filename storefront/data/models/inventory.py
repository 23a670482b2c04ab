from sqlalchemy import Column, Integer, String

from storefront.data.database import Base


class InventoryModel(Base):
    """Stock levels, owned by the warehouse side. Read only here."""

    __tablename__ = "inventory"

    product_id = Column(String(255), primary_key=True)
    product_name = Column(String(255), nullable=True)
    stock_quantity = Column(Integer, nullable=False, default=0)
    reserved_quantity = Column(Integer, nullable=True, default=0)
    low_stock_threshold = Column(Integer, nullable=False, default=5)

    @property
    def available_quantity(self) -> int:
        return self.stock_quantity - (self.reserved_quantity or 0)
