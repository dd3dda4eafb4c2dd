from fastapi import APIRouter

from catalogue.api import admin, books, catalogue, taxonomies

router = APIRouter()

router.include_router(catalogue.router, prefix="/catalogue", tags=["catalogue"])
router.include_router(books.router, prefix="/books", tags=["books"])
router.include_router(taxonomies.router, prefix="/taxonomies", tags=["taxonomies"])
router.include_router(admin.router, prefix="/admin", tags=["admin"])
