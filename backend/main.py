# ---------------------------------------------------------
# backend/main.py
# Project Dashboard - API
#
# Run: uvicorn backend.main:app --reload (from repo root)
#
# - FastAPI + key-value store (memory / SQLite / Postgres)
# - Auth delegated to a GoTrue-compatible identity service
# - /health               : liveness
# - /signup               : create an account (anon key)
# - /projects             : list / create projects
# - /projects/{id}        : update / delete a project
# - /user/preferences     : get / save the preferences document
# ---------------------------------------------------------

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import Body, Depends, FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from backend import config
from backend.auth_context import ApiError, AuthContext, internal_errors, require_auth_context
from backend.dependencies import build_identity, build_kv_store, get_identity, get_kv_store
from backend.identity import IdentityError, IdentityService, LocalIdentityService, ensure_demo_user
from backend.identity_routes import router as identity_router
from backend.kv_store import KVStore
from domains.projects.models.project import (
    Project,
    ProjectCreate,
    ProjectUpdate,
    apply_update,
    assignee_for,
    build_project,
    new_project_id,
    now_iso,
)

logger = logging.getLogger(__name__)

DEFAULT_PREFERENCES: Dict[str, Any] = {"theme": "system"}


# ---------------------------------------------------------
# Request models
# ---------------------------------------------------------
class SignupRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None
    name: Optional[str] = None


# ============================================================================
# API ENDPOINT CLASSIFICATION
# ============================================================================
#
# [PUBLIC]
#   • /health
#   • /signup (called with the anon key; the key is not a user token)
#
# [OWNER_SCOPED] - bearer token required, every key under user:<actor_id>:
#   • GET/POST /projects
#   • PUT/DELETE /projects/{id}
#   • GET/POST /user/preferences
#
# RULES:
# 1. The owner comes from AuthContext only, never from the body.
# 2. One KV operation per handler (reads before a write excepted).
# 3. Unexpected failures -> 500 {"error": "Internal server error while ..."}.
#
# ============================================================================


def register_routes(app: FastAPI) -> None:
    @app.get("/health")
    def health() -> Dict[str, str]:
        return {"status": "healthy", "timestamp": now_iso()}

    @app.post("/signup")
    def signup(req: SignupRequest, identity: IdentityService = Depends(get_identity)):
        with internal_errors("signing up", "Internal server error during signup"):
            if not req.email or not req.password or not req.name:
                raise ApiError(400, "Email, password, and name are required")
            try:
                user = identity.create_user(req.email, req.password, {"name": req.name})
            except IdentityError as e:
                logger.info("[SIGNUP] Rejected by identity service: %s", e.message)
                raise ApiError(400, e.message)
            logger.info("[SIGNUP] User created: id=%s", user.id)
            return {"user": user.to_dict()}

    @app.get("/projects")
    def list_projects(
        ctx: AuthContext = Depends(require_auth_context),
        kv: KVStore = Depends(get_kv_store),
    ):
        with internal_errors("fetching projects"):
            projects = kv.get_by_prefix(ctx.projects_prefix())
            return {"projects": projects}

    @app.post("/projects")
    def create_project(
        req: ProjectCreate,
        ctx: AuthContext = Depends(require_auth_context),
        kv: KVStore = Depends(get_kv_store),
    ):
        with internal_errors("creating project"):
            project_id = new_project_id()
            while kv.get(ctx.project_key(project_id)) is not None:
                project_id = new_project_id()
            project = build_project(req, ctx.user_id, assignee_for(ctx.name, ctx.email), project_id=project_id)
            kv.set(ctx.project_key(project.id), project.to_json())
            logger.info("[PROJECTS] Created: user_id=%s project_id=%s", ctx.user_id, project.id)
            return {"project": project.to_json()}

    @app.put("/projects/{project_id}")
    def update_project(
        project_id: str,
        req: ProjectUpdate,
        ctx: AuthContext = Depends(require_auth_context),
        kv: KVStore = Depends(get_kv_store),
    ):
        with internal_errors("updating project"):
            existing = kv.get(ctx.project_key(project_id))
            if existing is None:
                raise ApiError(404, "Project not found")
            project = apply_update(Project.model_validate(existing), req)
            kv.set(ctx.project_key(project_id), project.to_json())
            logger.info("[PROJECTS] Updated: user_id=%s project_id=%s", ctx.user_id, project_id)
            return {"project": project.to_json()}

    @app.delete("/projects/{project_id}")
    def delete_project(
        project_id: str,
        ctx: AuthContext = Depends(require_auth_context),
        kv: KVStore = Depends(get_kv_store),
    ):
        with internal_errors("deleting project"):
            kv.delete(ctx.project_key(project_id))
            logger.info("[PROJECTS] Deleted: user_id=%s project_id=%s", ctx.user_id, project_id)
            return {"success": True}

    @app.get("/user/preferences")
    def get_preferences(
        ctx: AuthContext = Depends(require_auth_context),
        kv: KVStore = Depends(get_kv_store),
    ):
        with internal_errors("fetching preferences"):
            preferences = kv.get(ctx.preferences_key()) or dict(DEFAULT_PREFERENCES)
            return {"preferences": preferences}

    @app.post("/user/preferences")
    def save_preferences(
        preferences: Dict[str, Any] = Body(...),
        ctx: AuthContext = Depends(require_auth_context),
        kv: KVStore = Depends(get_kv_store),
    ):
        with internal_errors("saving preferences"):
            kv.set(ctx.preferences_key(), preferences)
            return {"preferences": preferences}


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ApiError)
    async def api_error_handler(request, exc: ApiError):
        return JSONResponse({"error": exc.message}, status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {}
        field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg", "Invalid request"))
        return JSONResponse({"error": message}, status_code=400)


def create_app(
    kv_store: Optional[KVStore] = None,
    identity: Optional[IdentityService] = None,
    seed_demo_user: Optional[bool] = None,
) -> FastAPI:
    """
    Build the API. Backends default to what backend.config describes;
    tests pass their own.
    """
    kv = kv_store if kv_store is not None else build_kv_store()
    ident = identity if identity is not None else build_identity(kv)
    seed = config.SEED_DEMO_USER if seed_demo_user is None else seed_demo_user

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if seed:
            ensure_demo_user(ident, config.DEMO_EMAIL, config.DEMO_PASSWORD, config.DEMO_NAME)
        yield

    app = FastAPI(title="Project Dashboard API", version="1.0.0", lifespan=lifespan)
    app.state.kv_store = kv
    app.state.identity = ident

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials="*" not in config.CORS_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)
    register_routes(app)
    if isinstance(ident, LocalIdentityService):
        app.include_router(identity_router)
    return app


config.configure_logging()
config.log_config()

app = create_app()
