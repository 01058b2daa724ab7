"""Login response model."""

from __future__ import annotations

from typing import Any

from pydantic import field_validator

from pyfoodime.models._base import FoodimeBaseModel


class LoginResponse(FoodimeBaseModel):
    """Body returned by ``/delivery-login``.

    Parameters
    ----------
    status : str
        ``"success"`` when the partner was authenticated.
    token : str or None
        Nonce sent as ``X-WP-Nonce`` on every later request.
    user_id : int or None
        Partner account id.
    username : str
        Login name.
    full_name : str or None
        Display name, when the account has one.
    message : str or None
        Server explanation on failure (wrong credentials, not approved).
    """

    status: str = ""
    token: str | None = None
    user_id: int | None = None
    username: str = ""
    full_name: str | None = None
    message: str | None = None
    redirect_to: str | None = None

    @field_validator("username", mode="before")
    @classmethod
    def _coerce_username(cls, value: Any) -> Any:
        return str(value) if isinstance(value, int) else value

    @property
    def ok(self) -> bool:
        return self.status == "success" and bool(self.token)
