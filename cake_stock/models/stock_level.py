# cake_stock/models/stock_level.py
from sqlalchemy import Column, Integer, String
from cake_stock.database import Base


class StockLevel(Base):
    """
    Derived per-product stock counters, one row per catalog product.

    No foreign key to products: rows are created lazily by the reconciler and
    only removed together with their product.
    """
    __tablename__ = "stock_levels"

    product_id = Column(String, primary_key=True)
    product_name = Column(String, nullable=False, default="")

    in_warehouse = Column(Integer, nullable=False, default=0)
    boutique_stock = Column(Integer, nullable=False, default=0)
    marche_stock = Column(Integer, nullable=False, default=0)
    saleya_stock = Column(Integer, nullable=False, default=0)
    b2b_delivered = Column(Integer, nullable=False, default=0)

    # Optimistic concurrency: UPDATEs carry "WHERE version = <read version>"
    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self):
        return (f"<StockLevel(product_id='{self.product_id}', warehouse={self.in_warehouse}, "
                f"boutique={self.boutique_stock}, marche={self.marche_stock}, "
                f"saleya={self.saleya_stock}, b2b={self.b2b_delivered})>")
