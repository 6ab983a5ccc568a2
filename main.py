import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List
from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from config import DEFAULT_PAGE_SIZE, DISCOVER_PAGE_SIZE, LOG_LEVEL
from database import Store
from errors import DevMatchError, NotFoundError, ValidationError
from matcher import get_discoverable_profiles, get_user_matches, record_interaction
from messaging import list_match_messages, send_message
from models import (InteractionPayload, InteractionResult, Match, Message, MessagePayload,
                    Profile, ProfilePayload)

logger = logging.getLogger(__name__)

store = Store()


def get_store() -> Store:
    return store


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(level=LOG_LEVEL)
    store.init_db()
    logger.info("Database ready at %s", store.db_file)
    yield


app = FastAPI(title="DevMatch Server", lifespan=lifespan)


# ----------------------
# Error mapping
# ----------------------
@app.exception_handler(DevMatchError)
async def devmatch_error_handler(request: Request, exc: DevMatchError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


# Malformed payloads and query params are ValidationErrors too, with the same body shape.
@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    problems = []
    for err in exc.errors():
        field = ".".join(str(part) for part in err["loc"] if part not in ("body", "query", "path"))
        problems.append(f"{field}: {err['msg']}" if field else err["msg"])
    logger.warning("Rejected %s %s: %s", request.method, request.url.path, problems)
    return JSONResponse(status_code=ValidationError.status_code, content={"detail": "; ".join(problems)})


# ----------------------
# Health
# ----------------------
@app.get("/")
def root():
    return {
        "status": "ok",
        "service": "DevMatch server",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


# ----------------------
# Profile directory
# ----------------------
@app.post("/profiles", response_model=Profile)
def upsert_profile(payload: ProfilePayload, store: Store = Depends(get_store)):
    return store.upsert_profile(payload.id, payload.username, payload.status)


@app.get("/profiles/{profile_id}", response_model=Profile)
def get_profile(profile_id: int, store: Store = Depends(get_store)):
    profile = store.get_profile(profile_id)
    if profile is None:
        raise NotFoundError(f"profile {profile_id} not found")
    return profile


# ----------------------
# Interactions and matches
# ----------------------
@app.post("/interactions", response_model=InteractionResult)
def create_interaction(payload: InteractionPayload, store: Store = Depends(get_store)):
    return record_interaction(store, payload.actor_id, payload.target_id, payload.kind)


@app.get("/users/{user_id}/discover", response_model=List[Profile])
def discover(user_id: int, limit: int = Query(DISCOVER_PAGE_SIZE), offset: int = Query(0),
             store: Store = Depends(get_store)):
    return get_discoverable_profiles(store, user_id, limit, offset)


@app.get("/users/{user_id}/matches", response_model=List[Match])
def user_matches(user_id: int, store: Store = Depends(get_store)):
    return get_user_matches(store, user_id)


@app.post("/matches/{match_id}/archive", response_model=Match)
def archive_match(match_id: int, store: Store = Depends(get_store)):
    return store.archive_match(match_id)


# ----------------------
# Messaging
# ----------------------
@app.post("/messages", response_model=Message)
def post_message(payload: MessagePayload, store: Store = Depends(get_store)):
    return send_message(store, payload.match_id, payload.sender_id, payload.content)


# Range checks live in list_match_messages so every transport reports them the same way.
@app.get("/matches/{match_id}/messages", response_model=List[Message])
def match_messages(match_id: int, limit: int = Query(DEFAULT_PAGE_SIZE), offset: int = Query(0),
                   store: Store = Depends(get_store)):
    return list_match_messages(store, match_id, limit, offset)


if __name__ == "__main__":
    import uvicorn
    from config import API_HOST, API_PORT

    uvicorn.run(app, host=API_HOST, port=API_PORT, log_level=LOG_LEVEL.lower())
