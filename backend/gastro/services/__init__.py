# Services module

from gastro.services.stock_service import StockService
from gastro.services.order_service import OrderService
from gastro.services.export_service import ExportService, rows_to_csv
from gastro.services.realtime import ws_manager, publish_item_changes

__all__ = [
    "StockService",
    "OrderService",
    "ExportService",
    "rows_to_csv",
    "ws_manager",
    "publish_item_changes",
]
