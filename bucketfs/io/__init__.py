from bucketfs.io.glob import compile_glob, glob_matches, is_glob, translate
from bucketfs.io.uri import DEFAULT_SCHEME, PathIdentifier, parse_address

__all__ = [
    "DEFAULT_SCHEME",
    "PathIdentifier",
    "compile_glob",
    "glob_matches",
    "is_glob",
    "parse_address",
    "translate",
]
