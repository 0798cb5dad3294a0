import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from matrimony.api import auth, block, connections, interests, notifications, profile
from matrimony.config import settings
from matrimony.db import DatabaseManager
from matrimony.schemas.responses import HealthCheckResponseSchema
from matrimony.services.neo4j_store import Neo4jRelationshipStore

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    this_db = DatabaseManager()
    store = Neo4jRelationshipStore(this_db)
    store.ensure_schema()
    app.state.store = store
    yield
    store.close()


app = FastAPI(lifespan=lifespan)

app.include_router(auth.router, prefix="/api")
app.include_router(profile.router, prefix="/api")
app.include_router(interests.router, prefix="/api")
app.include_router(connections.router, prefix="/api")
app.include_router(block.router, prefix="/api")
app.include_router(notifications.router, prefix="/api")


@app.get("/api/health", response_model=HealthCheckResponseSchema)
async def health_check() -> HealthCheckResponseSchema:
    return HealthCheckResponseSchema(success=True)
