from goodcall.sales.api import router
from goodcall.sales.models import Sale
from goodcall.sales.service import SaleService, sale_service

__all__ = ["router", "Sale", "SaleService", "sale_service"]
