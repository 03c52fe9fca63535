"""Salesforce identity client.

Salesforce token responses carry an identity URL (``id``) of the form
``https://login.salesforce.com/id/{organizationId}/{userId}``, the time it was
issued (``issued_at``) and an HMAC-SHA256 ``signature`` of ``id + issued_at``
keyed with the client secret. On top of the OpenID steps, token responses run:

3. ``verify_signature_step``: check the signature, mark ``userInfo.validated``
4. ``parse_user_info_step``: derive ``userInfo`` from the identity URL

Introspection responses run ``parse_user_info_step`` only.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
from typing import Any

from ..errors import InvalidSignatureError, MissingParameterError
from ..logging_config import get_logger
from .base import AuthClient
from .models import UserInfo
from .openid import OPENID

logger = get_logger("client.salesforce")

SALESFORCE_ID_LENGTHS = (15, 18)


def _is_salesforce_id(value: str | None) -> bool:
    return bool(value) and len(value) in SALESFORCE_ID_LENGTHS  # type: ignore[arg-type]


def parse_user_info(response: dict[str, Any]) -> None:
    """Add ``userInfo`` (user ID, organization ID, URL) from the identity URL.

    The identity URL is read from ``id``, or ``sub`` for responses that carry
    it there. Fields already present in ``userInfo`` are kept.
    """
    identity_url = response.get("id") or response.get("sub")
    if not identity_url:
        raise MissingParameterError("identityUrl")

    segments = identity_url.split("/")
    user_id = segments.pop() if segments else None
    organization_id = segments.pop() if segments else None

    if not _is_salesforce_id(user_id):
        raise MissingParameterError("id")
    if not _is_salesforce_id(organization_id):
        raise MissingParameterError("organizationId")

    user_info: UserInfo = {
        "id": user_id,  # type: ignore[typeddict-item]
        "organizationId": organization_id,  # type: ignore[typeddict-item]
        "url": identity_url,
        "validated": False,
    }
    user_info.update(response.get("userInfo") or {})
    response["userInfo"] = user_info


def verify_signature(client_secret: str, response: dict[str, Any]) -> None:
    """Verify the access token response signature and mark it validated."""
    signature = response.get("signature")
    if not signature:
        raise InvalidSignatureError("No signature present")

    digest = hmac.new(
        client_secret.encode(),
        f"{response.get('id')}{response.get('issued_at')}".encode(),
        hashlib.sha256,
    ).digest()
    expected = base64.b64encode(digest)
    actual = signature.encode()

    if len(expected) != len(actual) or not hmac.compare_digest(expected, actual):
        raise InvalidSignatureError("Invalid signature")

    response["userInfo"] = {"url": response.get("id"), "validated": True}


async def verify_signature_step(
    client: AuthClient, response: dict[str, Any], opts: Any
) -> dict[str, Any]:
    if not opts.verify_signature:
        return response
    if not opts.client_secret:
        raise MissingParameterError("clientSecret")

    verify_signature(opts.client_secret, response)
    logger.debug("Access token response signature verified")
    return response


async def parse_user_info_step(
    client: AuthClient, response: dict[str, Any], opts: Any
) -> dict[str, Any]:
    if not opts.parse_user_info:
        return response
    # Inactive introspection responses carry no identity
    if response.get("active") is False:
        return response

    parse_user_info(response)
    return response


SALESFORCE = OPENID.extend(
    "Salesforce",
    access_token_steps=(verify_signature_step, parse_user_info_step),
    introspection_steps=(parse_user_info_step,),
)


class SalesforceClient(AuthClient):
    """OpenID client with Salesforce signature and identity URL handling."""

    profile = SALESFORCE


def is_salesforce_access_token_response(response: Any) -> bool:
    """Return True if a token response has any Salesforce specific field."""
    return isinstance(response, dict) and any(
        key in response for key in ("id", "instance_url", "issued_at", "signature")
    )
