# cake_stock/models/weekly_report.py
from sqlalchemy import Column, Integer, String, DateTime
from cake_stock.database import Base


class WeeklyReportLine(Base):
    """
    One product line of the most recent weekly sales report.
    The whole table is replaced every time a report is generated.
    """
    __tablename__ = "weekly_report"

    id = Column(Integer, primary_key=True)
    product_id = Column(String, nullable=False, index=True)
    product_name = Column(String, nullable=False, default="")

    sale_boutique = Column(Integer, nullable=False, default=0)
    sale_marche = Column(Integer, nullable=False, default=0)
    sale_saleya = Column(Integer, nullable=False, default=0)
    delivery_b2b = Column(Integer, nullable=False, default=0)
    total = Column(Integer, nullable=False, default=0)

    period_start = Column(DateTime(timezone=False), nullable=False)
    period_end = Column(DateTime(timezone=False), nullable=False)
    generated_at = Column(DateTime(timezone=False), nullable=False)

    def __repr__(self):
        return f"<WeeklyReportLine {self.product_id} total={self.total}>"
