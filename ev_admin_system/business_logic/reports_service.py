# ev_admin_system/business_logic/reports_service.py

import logging
from typing import Any, Dict

from sqlalchemy.orm import Session

from ev_admin_system.business_logic.errors import store_errors
from ev_admin_system.data.repositories import ReportsRepository

logger = logging.getLogger(__name__)


class ReportsService:
    def __init__(self, db_session: Session):
        self.db_session = db_session
        self.reports_repo = ReportsRepository(db_session)

    async def get_dashboard_data(self) -> Dict[str, Any]:
        """
        Network-wide totals for the admin dashboard.

        Returns:
            total_cpos plus the rfid, evse, location and topup aggregates,
            each count paired with the date it was last affected.
        """
        with store_errors():
            return {
                "total_cpos": self.reports_repo.get_total_cpos(),
                "rfid_info": self.reports_repo.get_rfid_info(),
                "evse_info": self.reports_repo.get_evse_info(),
                "location_info": self.reports_repo.get_location_info(),
                "topup_info": self.reports_repo.get_topup_info(),
            }
