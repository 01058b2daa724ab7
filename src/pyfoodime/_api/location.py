"""Partner location endpoint."""

from __future__ import annotations

from pyfoodime._api._common import raise_for_status
from pyfoodime._constants import LOCATION_ENDPOINT
from pyfoodime._transport import Transport
from pyfoodime.models.location import LocationSample


async def post_delivery_location(transport: Transport, token: str, sample: LocationSample) -> None:
    """Report one location sample. Any 2xx counts as accepted."""
    response = await transport.request(
        "POST",
        LOCATION_ENDPOINT,
        token=token,
        payload=sample.to_request_body(),
    )
    raise_for_status(LOCATION_ENDPOINT, response, default_message="Failed to send location.")
