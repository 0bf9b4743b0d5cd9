from opsdash.domain.codec import decode, decode_all, encode, fingerprint
from opsdash.domain.models import BatchProject, Comment, Sale, Student, Task


def test_encode_uses_camel_case_and_drops_unset_optionals() -> None:
    payload = encode(Sale(id="s1", amount=100, ad_cost=20, created_at="2026-10-01T12:00:00Z"))
    assert payload == {
        "id": "s1",
        "type": "call",
        "amount": 100,
        "adCost": 20,
        "createdAt": "2026-10-01T12:00:00Z",
    }


def test_decode_tolerates_missing_and_stringly_fields() -> None:
    sale = decode(Sale, {"id": 7, "amount": "1500", "adCost": None, "agentId": "afrin"})
    assert sale.id == "7"
    assert sale.amount == 1500
    assert sale.ad_cost == 0
    assert sale.type == "call"
    assert sale.agent_id == "afrin"


def test_nested_records_decode_to_tuples() -> None:
    batch = decode(
        BatchProject,
        {
            "id": "b1",
            "courseName": "Excel",
            "students": [{"id": "st1", "paid": "2000", "access": 1}, "junk"],
            "adCosts": None,
        },
    )
    assert batch.students == (Student(id="st1", paid=2000, access=True),)
    assert batch.ad_costs == ()

    task = decode(Task, {"id": "t1", "comments": [{"id": "c1", "text": "hi"}]})
    assert task.comments == (Comment(id="c1", text="hi"),)
    assert encode(task)["comments"] == [{"id": "c1", "text": "hi", "timestamp": "", "author": ""}]


def test_decode_all_skips_non_mappings() -> None:
    assert decode_all(Sale, None) == []
    assert [sale.id for sale in decode_all(Sale, [{"id": "a"}, None, 3])] == ["a"]


def test_fingerprint_ignores_key_order() -> None:
    assert fingerprint([{"a": 1, "b": 2}]) == fingerprint([{"b": 2, "a": 1}])
    assert fingerprint([{"a": 1}]) != fingerprint([{"a": 2}])
