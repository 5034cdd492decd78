import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from community.api.admin import router as admin_router
from community.api.follow import router as follow_router
from community.api.user import router as identity_router
from community.core.config import settings
from community.relationship.errors import RelationshipError

from .api import health_router

log = logging.getLogger("community")
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)

app = FastAPI(title="community")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RelationshipError)
async def relationship_error_handler(request: Request, exc: RelationshipError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


app.include_router(follow_router)
app.include_router(identity_router)
app.include_router(admin_router)
app.include_router(health_router.router)
