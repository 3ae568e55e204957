from fastapi import APIRouter

from cento_dashboard.web.routes import pages, session

ui_router = APIRouter(prefix="/ui", include_in_schema=False)
ui_router.include_router(session.router)
ui_router.include_router(pages.router)
