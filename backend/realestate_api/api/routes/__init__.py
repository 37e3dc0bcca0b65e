from realestate_api.api.routes import (
    audit,
    auth,
    buildings,
    cities,
    dashboard,
    files,
    final_cities,
    final_types,
    main_types,
    neighborhoods,
    offers,
    properties,
    property_files,
    real_estate,
    reservations,
    sub_types,
    uploads,
)

__all__ = [
    "auth",
    "cities",
    "neighborhoods",
    "final_cities",
    "main_types",
    "sub_types",
    "final_types",
    "properties",
    "property_files",
    "real_estate",
    "files",
    "buildings",
    "reservations",
    "offers",
    "dashboard",
    "uploads",
    "audit",
]
