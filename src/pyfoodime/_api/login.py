"""Partner login endpoint."""

from __future__ import annotations

from pyfoodime._api._common import raise_for_status
from pyfoodime._constants import LOGIN_ENDPOINT
from pyfoodime._transport import Transport
from pyfoodime.exceptions import FoodimeAuthError, FoodimeValidationError
from pyfoodime.models.token import LoginResponse
from pyfoodime.session import Session


def build_login_request(username: str, password: str) -> dict[str, str]:
    """Validate credentials locally and build the request body."""
    if not username.strip() or not password.strip():
        raise FoodimeValidationError("Username and password are required.")
    return {"username": username.strip(), "password": password}


def parse_login_response(response: LoginResponse) -> Session:
    """Turn a login reply into a :class:`Session`, or raise."""
    if not response.ok:
        raise FoodimeAuthError(
            response.message or "Login failed. Please check your credentials.",
            endpoint=LOGIN_ENDPOINT,
        )
    assert response.token is not None  # noqa: S101
    return Session(
        token=response.token,
        user_id=response.user_id,
        username=response.username,
        full_name=response.full_name,
    )


async def login(transport: Transport, username: str, password: str) -> Session:
    """Authenticate the partner and return the new session."""
    body = build_login_request(username, password)
    response = await transport.request("POST", LOGIN_ENDPOINT, payload=body)
    if 400 <= response.status < 500:
        # Wrong credentials and unapproved accounts come back as 4xx.
        raise FoodimeAuthError(
            response.message or "Login failed. Please check your credentials.",
            status_code=response.status,
            endpoint=LOGIN_ENDPOINT,
        )
    raise_for_status(LOGIN_ENDPOINT, response, default_message="Login failed. Server responded with an error.")
    return parse_login_response(LoginResponse.model_validate(response.body))
