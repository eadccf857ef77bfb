"""HTTP handlers for room discovery, creation and pre-join user registration.

Lookup misses are reported in the response body with status 200, the way
existing clients expect. Only malformed bodies (422) and store outages
(503, via the app's exception handler) use error statuses.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from pydantic import BaseModel, ValidationError
from starlette.responses import JSONResponse

from lobby.games.types import CreateRoomRequest, RegisterUserRequest
from shared.exceptions import MalformedPayloadError, RoomNotFoundError

if TYPE_CHECKING:
    from starlette.requests import Request

    from lobby.games.service import GamesService

GAME_NOT_FOUND = "Game Number Not Found"
CREATE_FAILED = "Failed To Create New Game"

_MAX_REQUEST_BODY_SIZE = 64 * 1024


async def _parse_body[M: BaseModel](request: Request, model: type[M]) -> M | JSONResponse:
    raw_body = await request.body()
    if len(raw_body) > _MAX_REQUEST_BODY_SIZE:
        return JSONResponse({"error": "Request body too large"}, status_code=413)
    try:
        return model.model_validate(json.loads(raw_body))
    except (ValueError, TypeError, UnicodeDecodeError, ValidationError) as e:  # fmt: skip
        return JSONResponse({"error": "Invalid request body", "detail": str(e)}, status_code=422)


def _games_service(request: Request) -> GamesService:
    return request.app.state.games_service


async def root(_request: Request) -> JSONResponse:
    return JSONResponse({"Hello": "Why are you here?"})


async def list_games(request: Request) -> JSONResponse:
    """GET /games - every known room number."""
    return JSONResponse({"games": await _games_service(request).list_room_numbers()})


async def get_game(request: Request) -> JSONResponse:
    """GET /games/{game_number} - full room state, or a not-found marker."""
    record = await _games_service(request).get_room(request.path_params["game_number"])
    if record is None:
        return JSONResponse({"data": GAME_NOT_FOUND})
    return JSONResponse({"data": record.snapshot()})


async def new_game(request: Request) -> JSONResponse:
    """POST /newGame - create a room with an empty roster and a seeded log."""
    body = await _parse_body(request, CreateRoomRequest)
    if isinstance(body, JSONResponse):
        return body
    record = await _games_service(request).create_room(body)
    if record is None:
        return JSONResponse({"record": CREATE_FAILED})
    return JSONResponse({"record": record.room_number})


async def new_user(request: Request) -> JSONResponse:
    """POST /newUser - add or replace a user in a room's roster before they connect."""
    body = await _parse_body(request, RegisterUserRequest)
    if isinstance(body, JSONResponse):
        return body
    try:
        await _games_service(request).register_user(body)
    except RoomNotFoundError:
        return JSONResponse({"data": GAME_NOT_FOUND})
    except MalformedPayloadError as e:
        return JSONResponse({"error": "Invalid request body", "detail": str(e)}, status_code=422)
    return JSONResponse({"status": "ok"})
