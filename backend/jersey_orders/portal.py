"""Customer-side portal client.

Jerseys typed by the customer are buffered in a :class:`DraftStore` so a
crash or reload loses nothing; :meth:`PortalSession.submit` flushes the
whole buffer in one request and clears it only once the server confirmed.
The server recounts after the flush, so the buffer length is never sent as
the quantity.
"""

import hashlib
import json
import logging
import os
from pathlib import Path
from typing import List, Optional

import httpx

from .config import get_settings
from .errors import InvalidLink, JerseyOrdersError, NotFound, OrderLocked, ValidationFailed
from .schemas import (
    JerseyIn,
    JerseyOut,
    PortalDeleteOut,
    PortalOrderView,
    SubmissionOut,
    parse_model,
)

log = logging.getLogger("jersey_orders.portal")


class DraftStore:
    """Durable per-link buffer of unsubmitted jerseys, one JSON file per link."""

    def __init__(self, directory: Path = None):
        self.directory = Path(directory or get_settings().draft_store_dir)

    @staticmethod
    def key(order_id: str, token: str) -> str:
        return f"jersey_data_{order_id}_{token}"

    def path(self, order_id: str, token: str) -> Path:
        # hashed so the token never appears in a file name
        digest = hashlib.sha256(self.key(order_id, token).encode("utf-8")).hexdigest()
        return self.directory / f"{digest}.json"

    def load(self, order_id: str, token: str) -> List[dict]:
        path = self.path(order_id, token)
        if not path.exists():
            return []
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            log.warning("Discarding unreadable draft buffer %s", path.name)
            return []
        return data if isinstance(data, list) else []

    def save(self, order_id: str, token: str, entries: List[dict]) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.path(order_id, token)
        tmp_path = path.with_suffix(".tmp")
        tmp_path.write_text(json.dumps(entries, ensure_ascii=False), encoding="utf-8")
        os.replace(tmp_path, path)

    def clear(self, order_id: str, token: str) -> None:
        self.path(order_id, token).unlink(missing_ok=True)


def _raise_for_portal_error(response: httpx.Response) -> None:
    if response.is_success:
        return
    try:
        body = response.json()
    except ValueError:
        body = None
    detail = body.get("detail") if isinstance(body, dict) else None
    if not isinstance(detail, str):
        detail = response.text or response.reason_phrase

    if response.status_code == 403 or detail == InvalidLink().message:
        raise InvalidLink(detail, status_code=response.status_code)
    if response.status_code == 404:
        raise NotFound(detail)
    if response.status_code == 409:
        raise OrderLocked(detail)
    if response.status_code == 400:
        raise ValidationFailed(detail)
    error = JerseyOrdersError(detail)
    error.status_code = response.status_code
    raise error


class PortalSession:
    """One customer's session on one order link."""

    def __init__(self, client: httpx.Client, order_id: str, token: str, store: DraftStore = None):
        self.client = client
        self.order_id = order_id
        self.token = token
        self.store = store or DraftStore()
        self.view: Optional[PortalOrderView] = None
        self._pending: List[JerseyIn] = []
        self._entry_form_forced = False

    @classmethod
    def open(cls, client: httpx.Client, order_id: str, token: str, store: DraftStore = None) -> "PortalSession":
        if not order_id or not token:
            raise InvalidLink(status_code=400)
        session = cls(client, order_id, token, store)
        session.refresh()
        session._pending = [JerseyIn.model_validate(entry) for entry in session.store.load(order_id, token)]
        if session._pending:
            log.info("Restored %d buffered jerseys for order %s", len(session._pending), order_id)
        return session

    # -------------- server state --------------

    def _url(self, suffix: str = "") -> str:
        return f"/portal/orders/{self.order_id}{suffix}"

    def _request(self, method: str, suffix: str = "", **kwargs) -> httpx.Response:
        params = dict(kwargs.pop("params", {}), token=self.token)
        response = self.client.request(method, self._url(suffix), params=params, **kwargs)
        _raise_for_portal_error(response)
        return response

    def refresh(self) -> PortalOrderView:
        self.view = PortalOrderView.model_validate(self._request("GET").json())
        self._entry_form_forced = False
        return self.view

    @property
    def saved(self) -> List[JerseyOut]:
        return list(self.view.jerseys) if self.view else []

    @property
    def can_edit(self) -> bool:
        return bool(self.view and self.view.can_edit)

    @property
    def needs_entry_form(self) -> bool:
        return self._entry_form_forced or bool(self.view and self.view.show_entry_form)

    # -------------- local buffer --------------

    @property
    def pending(self) -> List[JerseyIn]:
        return list(self._pending)

    def _persist(self) -> None:
        entries = [jersey.model_dump(by_alias=True) for jersey in self._pending]
        self.store.save(self.order_id, self.token, entries)

    def _require_editable(self) -> None:
        if not self.can_edit:
            raise OrderLocked("Order already submitted.")

    def add(self, data: dict) -> JerseyIn:
        self._require_editable()
        jersey = parse_model(JerseyIn, data)
        self._pending.append(jersey)
        self._persist()
        return jersey

    def edit(self, index: int, data: dict) -> JerseyIn:
        self._require_editable()
        if not 0 <= index < len(self._pending):
            raise NotFound("Jersey not found")
        jersey = parse_model(JerseyIn, data)
        self._pending[index] = jersey
        self._persist()
        return jersey

    def remove(self, index: int) -> None:
        if not 0 <= index < len(self._pending):
            raise NotFound("Jersey not found")
        del self._pending[index]
        self._persist()

    def submit(self) -> SubmissionOut:
        self._require_editable()
        if not self._pending and not self.saved:
            raise ValidationFailed("Please add at least one jersey before submitting.")

        payload = {"jerseys": [jersey.model_dump(by_alias=True) for jersey in self._pending]}
        result = SubmissionOut.model_validate(self._request("POST", "/submit", json=payload).json())
        # the buffer goes only after the server accepted the batch
        self._pending = []
        self.store.clear(self.order_id, self.token)
        self.refresh()
        return result

    # -------------- saved jerseys --------------

    def edit_saved(self, jersey_id: str, data: dict) -> JerseyOut:
        self._require_editable()
        jersey = parse_model(JerseyIn, data)
        response = self._request("PUT", f"/jerseys/{jersey_id}", json=jersey.model_dump(by_alias=True))
        self.refresh()
        return JerseyOut.model_validate(response.json())

    def delete_saved(self, jersey_id: str) -> PortalDeleteOut:
        self._require_editable()
        result = PortalDeleteOut.model_validate(self._request("DELETE", f"/jerseys/{jersey_id}").json())
        self.refresh()
        self._entry_form_forced = result.show_entry_form
        return result
