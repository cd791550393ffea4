# Overview: Credential and item stores backed by the remote inventory HTTP API.

"""
Remote Store Variant

Talks to the inventory JSON API:

    POST   /api/register          {email, name, password, role}
    POST   /api/login             {email, password} -> {token}
    GET    /api/items             -> [item]   (404 "No items found" when empty)
    POST   /api/items             {code, name, quantity}
    GET    /api/items/<code>
    PUT    /api/items/<code>      {code, name, quantity}
    DELETE /api/items/<code>

Items are addressed by code on the wire; the stores still accept and return
the same dicts as the local variant so the list controller does not care
which backend it is reading.

Error mapping:
- transport failure, timeout, 5xx -> BackendUnavailableError
- 400 -> ValidationError
- 401 / 403 -> PermissionDeniedError (InvalidCredentialsError on login)
- 404 -> NotFoundError
- 409 -> ConflictError

No retries are performed here; callers decide whether to try again.
"""

from __future__ import annotations

import logging
from urllib.parse import quote

import httpx

from ..permissions import Role, normalize_role
from ..validation import (
    BackendUnavailableError,
    ConflictError,
    DuplicateUserError,
    InvalidCredentialsError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
    coerce_int,
)
from .auth_service import normalize_username
from .session_service import role_from_token

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        return str(body.get("message") or body.get("error") or f"HTTP {response.status_code}")
    return f"HTTP {response.status_code}"


def raise_for_status(response: httpx.Response) -> None:
    """Translate an error response into the inventory error hierarchy."""
    status = response.status_code
    if status < 400:
        return
    message = _error_message(response)
    if status >= 500:
        raise BackendUnavailableError(message)
    if status == 400:
        raise ValidationError(message)
    if status in (401, 403):
        raise PermissionDeniedError(message)
    if status == 404:
        raise NotFoundError(message)
    if status == 409:
        raise ConflictError(message)
    raise ValidationError(message)


def normalize_remote_item(raw: dict) -> dict:
    """Map an API document onto the {id, code, name, quantity} shape."""
    if not isinstance(raw, dict):
        raise BackendUnavailableError("Unexpected item payload from inventory API")
    item_id = raw.get("id", raw.get("_id"))
    quantity = raw.get("quantity", 0)
    try:
        quantity = coerce_int(quantity, "quantity")
    except ValidationError as exc:
        raise BackendUnavailableError("Unexpected item quantity from inventory API") from exc
    return {
        "id": item_id,
        "code": raw.get("code") or None,
        "name": raw.get("name") or "",
        "quantity": quantity,
        "created_at": raw.get("created_at", raw.get("createdAt")),
        "updated_at": raw.get("updated_at", raw.get("updatedAt")),
    }


class RemoteClient:
    """
    Thin httpx wrapper with bearer auth.

    transport is injectable so tests can swap in httpx.MockTransport.
    """

    def __init__(
        self,
        base_url: str,
        *,
        token: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ):
        self.token = token
        self.client = httpx.Client(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            transport=transport,
        )

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def request(self, method: str, path: str, json: dict | None = None) -> httpx.Response:
        try:
            return self.client.request(method, path, headers=self._headers(), json=json)
        except httpx.HTTPError as exc:
            logger.warning("Inventory API %s %s failed: %s", method, path, type(exc).__name__)
            raise BackendUnavailableError("Inventory API unavailable") from exc

    def close(self) -> None:
        self.client.close()


class RemoteItemStore:
    """Item store over the inventory API. Same contract as ItemStore."""

    def __init__(self, client: RemoteClient):
        self.client = client

    @staticmethod
    def _path(code: str) -> str:
        return f"/api/items/{quote(str(code), safe='')}"

    @staticmethod
    def _payload(name, quantity, code) -> dict:
        if name is None or not str(name).strip():
            raise ValidationError("name cannot be blank")
        quantity = coerce_int(quantity, "quantity")
        if quantity < 0:
            raise ValidationError("quantity must be >= 0")
        return {"code": code, "name": str(name).strip(), "quantity": quantity}

    @staticmethod
    def _code_of(item) -> str:
        code = item.get("code") if isinstance(item, dict) else item
        if code is None or not str(code).strip():
            raise ValidationError("Item code is required for the inventory API")
        return str(code).strip()

    def list(self) -> list[dict]:
        response = self.client.request("GET", "/api/items")
        if response.status_code == 404:
            return []
        raise_for_status(response)
        body = response.json()
        if not isinstance(body, list):
            raise BackendUnavailableError("Unexpected item list payload from inventory API")
        return [normalize_remote_item(raw) for raw in body]

    def find_by_code(self, code: str) -> dict | None:
        if code is None or not str(code).strip():
            return None
        response = self.client.request("GET", self._path(str(code).strip()))
        if response.status_code == 404:
            return None
        raise_for_status(response)
        return normalize_remote_item(response.json())

    def get(self, item_id) -> dict | None:
        """The API has no lookup by id; scan the list."""
        for item in self.list():
            if str(item["id"]) == str(item_id):
                return item
        return None

    def create(self, name: str, quantity: int, code: str | None = None) -> dict:
        payload = self._payload(name, quantity, self._code_of(code))
        response = self.client.request("POST", "/api/items", json=payload)
        raise_for_status(response)
        created = normalize_remote_item(response.json())
        logger.info("Created remote item code=%s quantity=%s", created["code"], created["quantity"])
        return created

    def update(self, item: dict) -> dict:
        if not isinstance(item, dict):
            raise ValidationError("item must be an object")
        code = self._code_of(item)
        payload = self._payload(item.get("name"), item.get("quantity"), code)
        response = self.client.request("PUT", self._path(code), json=payload)
        raise_for_status(response)
        saved = normalize_remote_item(response.json())
        logger.info("Updated remote item code=%s quantity=%s", saved["code"], saved["quantity"])
        return saved

    def delete(self, item) -> None:
        code = self._code_of(item)
        response = self.client.request("DELETE", self._path(code))
        raise_for_status(response)
        logger.info("Deleted remote item code=%s", code)


class RemoteCredentialStore:
    """Credential store over the inventory API. Same contract as CredentialStore."""

    def __init__(self, client: RemoteClient):
        self.client = client

    def register(self, username: str, password: str, role: str = Role.USER) -> dict:
        normalized = normalize_username(username)
        if not normalized:
            raise ValidationError("Username is required")
        if not password:
            raise ValidationError("Password is required")

        response = self.client.request("POST", "/api/register", json={
            "email": normalized,
            "name": normalized,
            "password": password,
            "role": Role.USER,
        })
        if response.status_code in (400, 409) and "duplicate" in response.text.lower():
            raise DuplicateUserError("User already exists")
        if response.status_code == 409:
            raise DuplicateUserError("User already exists")
        raise_for_status(response)
        return {"id": None, "username": normalized, "role": Role.USER}

    def authenticate(self, username: str, password: str) -> dict:
        """
        Log in against the API.

        Returns {username, role, token}. The token is attached to the shared
        client so later item calls are authorized.
        """
        normalized = normalize_username(username)
        if not normalized or not password:
            raise InvalidCredentialsError()

        response = self.client.request("POST", "/api/login", json={
            "email": normalized,
            "password": password,
        })
        if response.status_code in (400, 401, 404):
            logger.info("Failed login attempt")
            raise InvalidCredentialsError()
        raise_for_status(response)

        body = response.json()
        token = body.get("token") if isinstance(body, dict) else None
        if not token:
            raise BackendUnavailableError("Inventory API returned no token")
        role = body.get("role")
        role = normalize_role(role) if role else role_from_token(token)

        self.client.token = token
        return {"id": None, "username": normalized, "role": role, "token": token}


def build_remote_stores(
    config,
    token: str | None = None,
    transport: httpx.BaseTransport | None = None,
) -> tuple[RemoteCredentialStore, RemoteItemStore]:
    """
    Credential and item stores for the remote variant, sharing one client.

    Reads INVENTORY_API_URL and INVENTORY_API_TIMEOUT from an app config
    mapping. Logging in through the credential store sets the token the item
    store sends.
    """
    client = RemoteClient(
        config["INVENTORY_API_URL"],
        token=token,
        timeout=float(config.get("INVENTORY_API_TIMEOUT", DEFAULT_TIMEOUT)),
        transport=transport,
    )
    return RemoteCredentialStore(client), RemoteItemStore(client)
