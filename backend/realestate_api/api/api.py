from fastapi import APIRouter

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

api_router = APIRouter()
api_router.include_router(auth.router)
api_router.include_router(cities.router)
api_router.include_router(neighborhoods.router)
api_router.include_router(final_cities.router)
api_router.include_router(main_types.router)
api_router.include_router(sub_types.router)
api_router.include_router(final_types.router)
api_router.include_router(property_files.router)
api_router.include_router(properties.router)
api_router.include_router(real_estate.router)
api_router.include_router(files.router)
api_router.include_router(buildings.router)
api_router.include_router(reservations.router)
api_router.include_router(offers.router)
api_router.include_router(dashboard.router)
api_router.include_router(uploads.router)
api_router.include_router(audit.router)
