from bucketfs.testing.in_memory_client import ClientCall, InMemoryS3Client, make_client_error
from bucketfs.testing.requests import (
    copy_request_matches,
    delete_request_matches,
    head_request_matches,
    list_request_matches,
)

__all__ = [
    "ClientCall",
    "InMemoryS3Client",
    "copy_request_matches",
    "delete_request_matches",
    "head_request_matches",
    "list_request_matches",
    "make_client_error",
]
