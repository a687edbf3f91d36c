from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import MagicMock

import pytest

from bucketfs.errors import AccessDenied, MalformedAddress, ObjectNotFound, TransportFailure
from bucketfs.io.uri import PathIdentifier
from bucketfs.models import MatchResult, MatchStatus, ObjectMatch
from bucketfs.store.matching import MatchOrchestrator
from bucketfs.testing import (
    InMemoryS3Client,
    head_request_matches,
    list_request_matches,
    make_client_error,
)


@pytest.fixture()
def executor():
    with ThreadPoolExecutor(max_workers=4) as pool:
        yield pool


def _orchestrator(client, executor) -> MatchOrchestrator:
    return MatchOrchestrator(client, executor)


def _head_by_key(responses: dict[str, object]):
    def _head(**kwargs):
        value = responses[kwargs["Key"]]
        if isinstance(value, Exception):
            raise value
        return value

    return _head


def test_match_non_glob_existing_object(executor) -> None:
    path = PathIdentifier.from_uri("s3://testbucket/testdirectory/filethatexists")
    client = MagicMock(name="S3Client")
    client.head_object.return_value = {
        "ContentLength": 100,
        "ContentEncoding": "read-seek-efficient",
    }

    result = _orchestrator(client, executor).match_non_glob(path)

    assert result == MatchResult.ok([ObjectMatch(path, 100, True)])
    assert head_request_matches(client.head_object.call_args, path)


@pytest.mark.parametrize(
    ("encoding", "efficient"),
    [
        ("read-seek-efficient", True),
        (None, True),
        ("", True),
        ("not-gzip", True),
        ("gzip", False),
        ("GZIP", False),
        ("br", False),
    ],
)
def test_match_non_glob_read_seek_efficiency(executor, encoding, efficient) -> None:
    path = PathIdentifier.from_uri("s3://testbucket/testdirectory/filethatexists")
    client = MagicMock(name="S3Client")
    response = {"ContentLength": 100}
    if encoding is not None:
        response["ContentEncoding"] = encoding
    client.head_object.return_value = response

    result = _orchestrator(client, executor).match_non_glob(path)

    assert result.metadata()[0].read_seek_efficient is efficient


def test_match_non_glob_not_found(executor) -> None:
    client = MagicMock(name="S3Client")
    client.head_object.side_effect = make_client_error("404", "Not Found")
    path = PathIdentifier.from_uri("s3://testbucket/testdirectory/nonexistentfile")

    result = _orchestrator(client, executor).match_non_glob(path)

    assert result.status is MatchStatus.NOT_FOUND
    assert isinstance(result.error, ObjectNotFound)
    assert isinstance(result.error, FileNotFoundError)
    with pytest.raises(FileNotFoundError):
        result.metadata()


def test_match_non_glob_forbidden(executor) -> None:
    client = MagicMock(name="S3Client")
    client.head_object.side_effect = make_client_error("403", "Forbidden")
    path = PathIdentifier.from_uri("s3://testbucket/testdirectory/keyname")

    result = _orchestrator(client, executor).match_non_glob(path)

    assert result.status is MatchStatus.ERROR
    assert isinstance(result.error, AccessDenied)
    assert result.error.__cause__ is client.head_object.side_effect


def test_match_non_glob_other_error(executor) -> None:
    client = MagicMock(name="S3Client")
    client.head_object.side_effect = make_client_error("SlowDown", "Please reduce rate")

    result = _orchestrator(client, executor).match_non_glob(
        PathIdentifier.from_uri("s3://testbucket/key")
    )

    assert result.status is MatchStatus.ERROR
    assert isinstance(result.error, TransportFailure)


def test_match_glob_across_pages(executor) -> None:
    path = PathIdentifier.from_uri("s3://testbucket/foo/bar*baz")
    client = MagicMock(name="S3Client")
    pages = {
        None: {
            "Contents": [
                {"Key": "foo/bar0baz", "Size": 100},
                {"Key": "foo/bar1qux", "Size": 200},
            ],
            "NextContinuationToken": "token",
        },
        "token": {"Contents": [{"Key": "foo/bar2baz", "Size": 300}]},
    }
    client.list_objects_v2.side_effect = lambda **kw: pages[kw.get("ContinuationToken")]
    client.head_object.return_value = {"ContentEncoding": ""}

    result = _orchestrator(client, executor).match_glob(path)

    assert result == MatchResult.ok(
        [
            ObjectMatch(PathIdentifier.from_components("testbucket", "foo/bar0baz"), 100, True),
            ObjectMatch(PathIdentifier.from_components("testbucket", "foo/bar2baz"), 300, True),
        ]
    )
    first, second = client.list_objects_v2.call_args_list
    assert list_request_matches(first, bucket="testbucket", prefix="foo/bar")
    assert list_request_matches(
        second, bucket="testbucket", prefix="foo/bar", continuation_token="token"
    )
    assert client.head_object.call_count == 2


def test_match_glob_with_backslash(executor) -> None:
    path = PathIdentifier.from_uri("s3://testbucket/foo/bar\\baz*")
    client = MagicMock(name="S3Client")
    client.list_objects_v2.return_value = {
        "Contents": [
            {"Key": "foo/bar\\baz0", "Size": 100},
            {"Key": "foo/bar/baz1", "Size": 200},
        ]
    }
    client.head_object.return_value = {"ContentEncoding": ""}

    result = _orchestrator(client, executor).match_glob(path)

    assert [m.identifier.key for m in result.metadata()] == ["foo/bar\\baz0"]
    client.list_objects_v2.assert_called_once_with(Bucket="testbucket", Prefix="foo/bar\\baz")


def test_match_glob_without_survivors_is_ok_and_empty(executor) -> None:
    client = InMemoryS3Client()
    client.put("bucket", "logs/a.txt", size=1)

    result = _orchestrator(client, executor).match_glob(
        PathIdentifier.from_uri("s3://bucket/logs/*.csv")
    )

    assert result.status is MatchStatus.OK
    assert result.matches == ()
    assert client.calls_named("head_object") == []


def test_match_glob_reads_encoding_per_key(executor) -> None:
    client = InMemoryS3Client(page_size=1)
    client.put("bucket", "data/part-0", size=10, content_encoding="gzip")
    client.put("bucket", "data/part-1", size=20)
    client.put("bucket", "data/nested/part-2", size=30)

    result = _orchestrator(client, executor).match_glob(
        PathIdentifier.from_uri("s3://bucket/data/part-*")
    )

    assert [(str(m.identifier), m.size_bytes, m.read_seek_efficient) for m in result.matches] == [
        ("s3://bucket/data/part-0", 10, False),
        ("s3://bucket/data/part-1", 20, True),
    ]


def test_match_glob_listing_failure_is_error(executor) -> None:
    client = MagicMock(name="S3Client")
    client.list_objects_v2.side_effect = make_client_error("NoSuchBucket", "missing")

    result = _orchestrator(client, executor).match_glob(PathIdentifier.from_uri("s3://b/x*"))

    assert result.status is MatchStatus.ERROR


def test_match_glob_negated_class(executor) -> None:
    client = InMemoryS3Client()
    for key in ("foo-1", "foo-x", "foo-^"):
        client.put("b", key, size=1)

    results = _orchestrator(client, executor).match(["s3://b/foo-[^0-9]"])

    assert [m.identifier.key for m in results[0].metadata()] == ["foo-^", "foo-x"]


def test_match_glob_invalid_class_fails_without_store_calls(executor) -> None:
    client = InMemoryS3Client()

    results = _orchestrator(client, executor).match(["s3://b/part-[z-a]"])

    assert results[0].status is MatchStatus.ERROR
    assert isinstance(results[0].error, MalformedAddress)
    assert client.calls == []


def test_match_various_entries_keeps_input_order(executor) -> None:
    not_found = make_client_error("404", "Not Found")
    forbidden = make_client_error("403", "Forbidden")
    client = MagicMock(name="S3Client")
    client.head_object.side_effect = _head_by_key(
        {
            "testdirectory/nonexistentfile": not_found,
            "testdirectory/forbiddenfile": forbidden,
            "testdirectory/filethatexists": {"ContentLength": 100, "ContentEncoding": "not-gzip"},
            "path/part-0": {"ContentEncoding": ""},
        }
    )
    client.list_objects_v2.return_value = {"Contents": [{"Key": "path/part-0", "Size": 200}]}

    results = _orchestrator(client, executor).match(
        [
            "s3://testbucket/testdirectory/nonexistentfile",
            "s3://testbucket/testdirectory/forbiddenfile",
            "s3://testbucket/testdirectory/filethatexists",
            "s3://testbucket/path/part*",
        ]
    )

    assert [r.status for r in results] == [
        MatchStatus.NOT_FOUND,
        MatchStatus.ERROR,
        MatchStatus.OK,
        MatchStatus.OK,
    ]
    assert isinstance(results[1].error, AccessDenied)
    assert results[2].matches == (
        ObjectMatch(PathIdentifier.from_uri("s3://testbucket/testdirectory/filethatexists"), 100),
    )
    assert results[3].matches == (
        ObjectMatch(PathIdentifier.from_components("testbucket", "path/part-0"), 200),
    )


def test_match_orders_results_regardless_of_completion_order(executor) -> None:
    client = MagicMock(name="S3Client")

    def _head(**kwargs):
        index = int(kwargs["Key"])
        time.sleep(0.01 * (8 - index))
        return {"ContentLength": index}

    client.head_object.side_effect = _head
    specs = [f"s3://bucket/{i}" for i in range(8)]

    results = _orchestrator(client, executor).match(specs)

    assert [r.matches[0].size_bytes for r in results] == list(range(8))


def test_malformed_spec_is_isolated(executor) -> None:
    client = MagicMock(name="S3Client")
    client.head_object.return_value = {"ContentLength": 1}

    results = _orchestrator(client, executor).match(["not-an-address", "s3://bucket/key"])

    assert results[0].status is MatchStatus.ERROR
    assert isinstance(results[0].error, MalformedAddress)
    assert results[1].status is MatchStatus.OK
    client.head_object.assert_called_once_with(Bucket="bucket", Key="key")


def test_match_returns_full_list_when_everything_fails(executor) -> None:
    client = MagicMock(name="S3Client")
    client.head_object.side_effect = make_client_error("InternalError", "boom")
    client.list_objects_v2.side_effect = make_client_error("InternalError", "boom")

    results = _orchestrator(client, executor).match(["s3://b/a", "s3://b/b*", "s3://b/c"])

    assert len(results) == 3
    assert all(r.status is MatchStatus.ERROR for r in results)


def test_match_empty_input(executor) -> None:
    assert _orchestrator(MagicMock(), executor).match([]) == []
