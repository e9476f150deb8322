# ev_admin_system/api/dependencies.py

from fastapi import Depends
from sqlalchemy.orm import Session

from ev_admin_system.business_logic.evse_service import EVSEService
from ev_admin_system.business_logic.location_service import LocationService
from ev_admin_system.business_logic.merchant_service import MerchantService
from ev_admin_system.business_logic.reports_service import ReportsService
from ev_admin_system.business_logic.user_management_service import UserManagementService
from ev_admin_system.core.config import get_settings
from ev_admin_system.core.geocoding import GeocodingGateway
from ev_admin_system.core.mailer import Mailer
from ev_admin_system.core.security import require_roles
from ev_admin_system.data.database import get_db

# Roles admitted by most back-office endpoints.
ADMIN_ROLES = ("ADMIN", "ADMIN_NOC", "ADMIN_MARKETING")

admin_access = require_roles(*ADMIN_ROLES)


def get_geocoder() -> GeocodingGateway:
    settings = get_settings()
    return GeocodingGateway(settings.google_geo_api_key, settings.geocoding_url, settings.geocoding_timeout)


def get_mailer() -> Mailer:
    settings = get_settings()
    return Mailer(settings.smtp_host, settings.smtp_port, settings.smtp_user, settings.smtp_password,
                  settings.mail_sender, settings.smtp_timeout)


def get_evse_service(db: Session = Depends(get_db)) -> EVSEService:
    return EVSEService(db)


def get_location_service(db: Session = Depends(get_db),
                         geocoder: GeocodingGateway = Depends(get_geocoder)) -> LocationService:
    return LocationService(db, geocoder)


def get_merchant_service(db: Session = Depends(get_db), geocoder: GeocodingGateway = Depends(get_geocoder),
                         mailer: Mailer = Depends(get_mailer)) -> MerchantService:
    return MerchantService(db, geocoder, mailer)


def get_reports_service(db: Session = Depends(get_db)) -> ReportsService:
    return ReportsService(db)


def get_user_management_service(db: Session = Depends(get_db)) -> UserManagementService:
    return UserManagementService(db)
