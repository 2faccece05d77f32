import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cemse_backend.api.audit_logs import audit_log_router
from cemse_backend.api.auth import auth_router
from cemse_backend.api.cases import cases_router
from cemse_backend.api.exceptions import register_exception_handlers
from cemse_backend.api.files import files_router
from cemse_backend.api.library import library_router
from cemse_backend.api.profile import profile_router
from cemse_backend.api.schools import schools_router
from cemse_backend.api.users import users_router
from cemse_backend.database import SessionLocal, init_db
from cemse_backend.middleware.route_guard import RouteGuardMiddleware
from cemse_backend.services.accounts import ensure_super_admin
from cemse_backend.settings import settings

logger = logging.getLogger(__name__)


def init_super_admin():

    if not settings.SEED_SUPER_ADMIN_PASSWORD:
        logger.info("No seed super admin password configured, skipping")
        return

    db = SessionLocal()
    try:
        ensure_super_admin(
            db,
            email=settings.SEED_SUPER_ADMIN_EMAIL,
            password=settings.SEED_SUPER_ADMIN_PASSWORD,
            name=settings.SEED_SUPER_ADMIN_NAME
        )
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):

    if settings.DEBUG_MODE != "production":
        init_db()

    init_super_admin()

    yield

app = FastAPI(title="CEMSE-IA", lifespan=lifespan)

origins = [
    settings.SITE_URL
]

app.add_middleware(RouteGuardMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(auth_router, prefix="/api")
app.include_router(profile_router, prefix="/api")
app.include_router(files_router, prefix="/api")
app.include_router(users_router, prefix="/api")
app.include_router(schools_router, prefix="/api")
app.include_router(cases_router, prefix="/api")
app.include_router(audit_log_router, prefix="/api")
app.include_router(library_router, prefix="/api")

@app.head("/", status_code=204)
def get_status_head():
    return
