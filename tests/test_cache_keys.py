from __future__ import annotations

import itertools
import re

from consumer_insights.services.cache_keys import generate_cache_key, string_hash


def test_key_is_invariant_under_permutation():
    ids = ["c3f1", "a9b2", "7d44"]
    keys = {generate_cache_key(p) for p in itertools.permutations(ids)}
    assert len(keys) == 1


def test_key_changes_with_the_id_set():
    assert generate_cache_key(["a", "b", "c"]) != generate_cache_key(["a", "b"])
    assert generate_cache_key(["a", "b", "c"]) != generate_cache_key(["a", "b", "d"])


def test_key_format():
    key = generate_cache_key(["0b8e0c2e-7a4e-4c61-9f5e-2f7c8f0e1a11", "5d1f3a52-0000-4000-8000-000000000000"])
    assert re.fullmatch(r"cache_[0-9a-z]+", key)


def test_known_values():
    assert string_hash("a") == 97
    assert string_hash("ab") == 97 * 31 + 98
    assert generate_cache_key(["a"]) == "cache_2p"


def test_hash_wraps_to_signed_32_bit():
    value = string_hash("x" * 500)
    assert -(2**31) <= value < 2**31
