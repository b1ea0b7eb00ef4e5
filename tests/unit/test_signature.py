from __future__ import annotations

import itertools

import pytest

from mediafire.signature import (
    LCG_MODULUS,
    api_uri,
    build_signed_request,
    canonicalize,
    login_signature,
    normalize_endpoint,
    request_signature,
    rotate_secret,
)


def test_rotate_secret_golden_values():
    assert rotate_secret(1) == 16807
    assert rotate_secret(16807) == 282475249
    assert rotate_secret(282475249) == 1622650073


def test_rotate_secret_is_deterministic_from_fixed_seed():
    def run(seed: int, n: int) -> list[int]:
        out = []
        for _ in range(n):
            seed = rotate_secret(seed)
            out.append(seed)
        return out

    assert run(1, 5) == run(1, 5)
    assert run(1, 3) == [16807, 282475249, 1622650073]


def test_rotate_secret_top_of_range_does_not_lose_precision():
    # (2^31 - 2) * 16807 is about 2^45; exact modular result
    assert rotate_secret(LCG_MODULUS - 1) == 2147466840
    assert rotate_secret(0) == 0


def test_rotate_secret_rejects_negative():
    with pytest.raises(ValueError):
        rotate_secret(-1)


def test_login_signature_is_sha1_of_concatenation():
    assert login_signature("user@example.com", "hunter2", "42511") == "e56fe4ae29303b607d8a4dc06e3356c9431f65df"


def test_request_signature_golden_vector():
    sig = request_signature(
        "1234567890",
        "1700000000.1234",
        "/api/1.3/user/get_info.php",
        "response_format=json&session_token=abc123",
    )
    # secret % 256 == 210
    assert sig == "e96a05dcc94025d3593175874bccb9fb"
    assert request_signature(1234567890, "1700000000.1234", "/api/1.3/user/get_info.php",
                             "response_format=json&session_token=abc123") == sig


def test_canonicalize_independent_of_insertion_order():
    params = {"zeta": "1", "alpha": "2", "mid": "3", "response_format": "json"}
    expected = "alpha=2&mid=3&response_format=json&zeta=1"
    for perm in itertools.permutations(params.items()):
        assert canonicalize(list(perm)) == expected


def test_canonicalize_is_bytewise_not_locale_aware():
    # Uppercase sorts before lowercase by byte value; non-ASCII after ASCII
    assert canonicalize({"a": 1, "B": 2, "é": 3, "z": 4}) == "B=2&a=1&z=4&%C3%A9=3"


def test_canonicalize_keeps_duplicate_key_order():
    assert canonicalize([("b", "1"), ("a", "2"), ("b", "0")]) == "a=2&b=1&b=0"
    assert canonicalize([("b", "0"), ("a", "2"), ("b", "1")]) == "a=2&b=0&b=1"


def test_canonicalize_encoding_and_scalars():
    assert canonicalize({"q": "a b&c", "flag": True, "off": False, "n": 5, "skip": None}) == (
        "flag=true&n=5&off=false&q=a+b%26c"
    )


def test_endpoint_normalization():
    assert normalize_endpoint("user/get_info.php") == "user/get_info"
    assert normalize_endpoint("/file/get_info") == "file/get_info"
    assert api_uri("1.3", "folder/get_content.php") == "/api/1.3/folder/get_content.php"


def test_build_signed_request_appends_signature():
    req = build_signed_request(
        "user/get_info",
        {"session_token": "abc123", "response_format": "json"},
        secret="1234567890",
        server_time="1700000000.1234",
        api_version="1.3",
    )
    assert req.canonical_query == "response_format=json&session_token=abc123"
    assert req.signature == "e96a05dcc94025d3593175874bccb9fb"
    assert req.query == "response_format=json&session_token=abc123&signature=e96a05dcc94025d3593175874bccb9fb"
