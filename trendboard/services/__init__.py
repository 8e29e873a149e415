from .dashboard_service import (
    AdsTrendReport,
    DashboardService,
    RecapReport,
    SalesPaceReport,
)

__all__ = ["AdsTrendReport", "DashboardService", "RecapReport", "SalesPaceReport"]
