from realestate_api.models.user import User, UserRole
from realestate_api.models.location import City, FinalCity, Neighborhood
from realestate_api.models.category import FinalType, MainType, SubType
from realestate_api.models.building import Building, BuildingItem, BuildingItemType, BuildingStatus
from realestate_api.models.real_estate import File, RealEstate
from realestate_api.models.property import Property, PropertyDataType, PropertyValue
from realestate_api.models.reservation import Reservation, ReservationStatus
from realestate_api.models.offer import Offer, OfferStatus
from realestate_api.models.audit import AuditLog

__all__ = [
    "User",
    "UserRole",
    "City",
    "Neighborhood",
    "FinalCity",
    "MainType",
    "SubType",
    "FinalType",
    "Building",
    "BuildingItem",
    "BuildingItemType",
    "BuildingStatus",
    "RealEstate",
    "File",
    "Property",
    "PropertyDataType",
    "PropertyValue",
    "Reservation",
    "ReservationStatus",
    "Offer",
    "OfferStatus",
    "AuditLog",
]
