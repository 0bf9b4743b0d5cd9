from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import requests

REST_PATH = "/rest/v1"
REQUEST_TIMEOUT = 30
CHANGE_EVENTS = {"INSERT", "UPDATE", "DELETE"}


class BackendError(RuntimeError):
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class ChangeNotification:
    table: str
    event: str
    write_id: str | None = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> ChangeNotification:
        table = payload.get("table")
        if not isinstance(table, str) or not table:
            raise BackendError("Change notification is missing its table.")
        event = str(payload.get("eventType") or payload.get("type") or "").upper()
        if event not in CHANGE_EVENTS:
            raise BackendError(f"Unsupported change event: {event or '<empty>'}")
        write_id = None
        for key in ("new", "old"):
            row = payload.get(key)
            if isinstance(row, dict) and row.get("write_id"):
                write_id = str(row["write_id"])
                break
        return cls(table=table, event=event, write_id=write_id)


class SupabaseClient:
    """Collection-level access to a PostgREST backend.

    Every collection table stores rows shaped ``{id, data, write_id}`` where
    ``data`` is the record's wire form. The config table stores
    ``{key, value}`` rows.
    """

    def __init__(self, url: str, api_key: str, config_table: str = "app_config") -> None:
        self.base_url = url.rstrip("/") + REST_PATH
        self.config_table = config_table
        self.session = requests.Session()
        self.session.headers.update(
            {
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            }
        )

    def select_all(self, table: str) -> list[dict[str, Any]]:
        rows = self._request("GET", f"/{table}", params={"select": "id,data"}) or []
        records: list[dict[str, Any]] = []
        for row in rows:
            data = row.get("data")
            if isinstance(data, dict):
                records.append({**data, "id": data.get("id") or row.get("id")})
        return records

    def replace_all(self, table: str, records: list[dict[str, Any]], write_id: str) -> None:
        if records:
            rows = [{"id": record["id"], "data": record, "write_id": write_id} for record in records]
            self._request(
                "POST",
                f"/{table}",
                json=rows,
                headers={"Prefer": "resolution=merge-duplicates,return=minimal"},
            )
            keep = ",".join(_quote(record["id"]) for record in records)
            params = {"id": f"not.in.({keep})"}
        else:
            params = {"id": "not.is.null"}
        self._request("DELETE", f"/{table}", params=params, headers={"Prefer": "return=minimal"})

    def get_config(self, key: str) -> Any | None:
        rows = self._request(
            "GET", f"/{self.config_table}", params={"select": "value", "key": f"eq.{key}"}
        ) or []
        if not rows:
            return None
        return rows[0].get("value")

    def set_config(self, key: str, value: Any, write_id: str | None = None) -> None:
        row: dict[str, Any] = {"key": key, "value": value}
        if write_id:
            row["write_id"] = write_id
        self._request(
            "POST",
            f"/{self.config_table}",
            json=[row],
            headers={"Prefer": "resolution=merge-duplicates,return=minimal"},
        )

    def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: Any | None = None,
        headers: dict[str, str] | None = None,
    ):
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(
                method, url, params=params, json=json, headers=headers, timeout=REQUEST_TIMEOUT
            )
        except requests.RequestException as exc:
            raise BackendError(f"Backend request failed: {exc}") from exc
        if response.status_code >= 400:
            raise BackendError(
                f"Backend error {response.status_code}: {response.text}",
                status_code=response.status_code,
            )
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise BackendError(f"Backend returned invalid JSON: {exc}") from exc


def _quote(value: str) -> str:
    escaped = str(value).replace('"', '\\"')
    return f'"{escaped}"'
