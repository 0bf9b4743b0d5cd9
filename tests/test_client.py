import pytest
import requests

from opsdash.adapters.supabase.client import BackendError, ChangeNotification, SupabaseClient


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text="") -> None:
        self.status_code = status_code
        self._payload = payload
        self.text = text
        self.content = b"" if payload is None else b"x"

    def json(self):
        return self._payload


class FakeSession:
    def __init__(self, responses=None, error=None) -> None:
        self.headers = {}
        self.calls = []
        self.responses = list(responses or [])
        self.error = error

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        if self.error is not None:
            raise self.error
        return self.responses.pop(0) if self.responses else FakeResponse()


def _client(session: FakeSession) -> SupabaseClient:
    client = SupabaseClient("https://demo.supabase.co/", "key")
    client.session = session
    return client


def test_headers_carry_api_key() -> None:
    client = SupabaseClient("https://demo.supabase.co", "secret")
    assert client.session.headers["apikey"] == "secret"
    assert client.session.headers["Authorization"] == "Bearer secret"
    assert client.base_url == "https://demo.supabase.co/rest/v1"


def test_select_all_unwraps_data_column() -> None:
    session = FakeSession([FakeResponse(payload=[{"id": "s1", "data": {"amount": 5}}, {"id": "s2", "data": None}])])
    records = _client(session).select_all("sales")
    assert records == [{"amount": 5, "id": "s1"}]
    method, url, kwargs = session.calls[0]
    assert method == "GET"
    assert url.endswith("/rest/v1/sales")


def test_replace_all_upserts_then_deletes_the_rest() -> None:
    session = FakeSession()
    _client(session).replace_all("sales", [{"id": "s1"}, {"id": "s2"}], write_id="w1")
    (post, _, post_kwargs), (delete, _, delete_kwargs) = session.calls
    assert post == "POST"
    assert post_kwargs["json"][0] == {"id": "s1", "data": {"id": "s1"}, "write_id": "w1"}
    assert "merge-duplicates" in post_kwargs["headers"]["Prefer"]
    assert delete == "DELETE"
    assert delete_kwargs["params"] == {"id": 'not.in.("s1","s2")'}


def test_replace_all_with_nothing_clears_table() -> None:
    session = FakeSession()
    _client(session).replace_all("sales", [], write_id="w1")
    assert len(session.calls) == 1
    assert session.calls[0][2]["params"] == {"id": "not.is.null"}


def test_config_round_trip() -> None:
    session = FakeSession([FakeResponse(payload=[{"value": 650000}]), FakeResponse(payload=[])])
    client = _client(session)
    assert client.get_config("monthly_target") == 650000
    assert client.get_config("monthly_target") is None


def test_errors_become_backend_errors() -> None:
    with pytest.raises(BackendError) as excinfo:
        _client(FakeSession([FakeResponse(status_code=401, payload={}, text="denied")])).select_all("sales")
    assert excinfo.value.status_code == 401

    with pytest.raises(BackendError):
        _client(FakeSession(error=requests.ConnectionError("down"))).select_all("sales")


def test_change_notification_parsing() -> None:
    note = ChangeNotification.from_payload(
        {"table": "sales", "eventType": "update", "new": {"id": "s1", "write_id": "w9"}}
    )
    assert note == ChangeNotification(table="sales", event="UPDATE", write_id="w9")

    with pytest.raises(BackendError):
        ChangeNotification.from_payload({"table": "sales", "eventType": "TRUNCATE"})
