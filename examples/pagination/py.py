import sys
from datetime import UTC, datetime
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "py" / "src"))

from daxtheory import UnsupportedOperationError, create_test_env, with_max_retries  # noqa: E402


def main() -> None:
    env = create_test_env(now=datetime(2026, 1, 1, tzinfo=UTC))
    env.transport.push(
        "query",
        {"Items": [{"pk": {"S": "a"}}], "LastEvaluatedKey": {"pk": {"S": "a"}}},
        {"Items": [{"pk": {"S": "b"}}]},
    )

    client = env.client()
    items = []
    client.query_pages(
        {"TableName": "orders", "Limit": 1},
        lambda page: items.extend(page["Items"]) is None,
        with_max_retries(0),
    )

    assert items == [{"pk": {"S": "a"}}, {"pk": {"S": "b"}}]
    requests = env.transport.requests("query")
    assert "ExclusiveStartKey" not in requests[0]
    assert requests[1]["ExclusiveStartKey"] == {"pk": {"S": "a"}}
    assert all(call.options.max_retries == 0 for call in env.transport.calls)

    try:
        client.create_table({"TableName": "orders"})
    except UnsupportedOperationError as exc:
        assert exc.code == "NotImplementedException"
    else:
        raise AssertionError("create_table should not be supported")

    client.close()
    assert env.transport.closed

    print("examples/pagination/py.py: PASS")


if __name__ == "__main__":
    main()
