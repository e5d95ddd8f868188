"""
Reference conformance tests for any DataCache implementation.

Usage from a test module::

    def test_my_cache_conforms():
        DataCacheReferenceTest("MyCache").run_all_tests(MyCache())

Each check raises :class:`AssertionError` on failure, so the suite
works under pytest or any other runner.  The expiration test sleeps for
two seconds.
"""

import os
import random
import time
from typing import Dict, List

from datacache.cache.base import (
    REFERENCE_MAX_KEY_LENGTH,
    REFERENCE_MAX_VALUE_LENGTH,
    TTL_UNSUPPORTED,
    DataCache,
)
from datacache.exceptions import ItemNotInCacheError

TestCase = Dict[str, bytes]

MAX_VALUE_LENGTH_FOR_TESTING = 64 * 1024


def _check(condition: bool, message: str) -> None:
    if not condition:
        raise AssertionError(message)


def build_test_set(
    key_prefix: str, value_prefix: str, num_keys: int
) -> List[TestCase]:
    """Build *num_keys* random ``{"key": ..., "value": ...}`` pairs."""
    return [
        {
            "key": f"{key_prefix}_{i}_{random.randint(1, 10000)}".encode(),
            "value": f"{value_prefix}_{random.randint(1, 100000000)}".encode(),
        }
        for i in range(num_keys)
    ]


class DataCacheReferenceTest:
    """Backend-agnostic behaviour checks.

    Args:
        name: Label used in failure messages.
        num_keys: Keys per generated test set.
        num_read_iterations: Random reads per verification step.
        max_value_length: Size of the value used by :meth:`big_value_test`.
    """

    __test__ = False  # not a pytest class

    def __init__(
        self,
        name: str,
        num_keys: int = 50,
        num_read_iterations: int = 5,
        max_value_length: int = REFERENCE_MAX_VALUE_LENGTH,
    ) -> None:
        self.name = name
        self.num_keys = num_keys
        self.num_read_iterations = num_read_iterations
        self.max_value_length = max_value_length
        self.cache: DataCache = None  # type: ignore[assignment]
        self.key_prefix = ""

    def run_all_tests(self, cache: DataCache) -> None:
        self.set_data_cache(cache)
        self.basic_test()
        self.delete_test()
        self.extreme_keys_test()
        self.big_value_test()
        self.expiration_test()

    def set_data_cache(self, cache: DataCache) -> None:
        self.cache = cache
        self.key_prefix = (
            f"DataCacheTest:{self.name}:{int(time.time())}:{random.randint(1, 1000)}:"
        )

    def _set(self, prefix: str, value_prefix: str) -> List[TestCase]:
        return build_test_set(self.key_prefix + prefix, value_prefix, self.num_keys)

    def random_read(self, test_set: List[TestCase], should_be_in_cache: bool) -> None:
        for i in range(self.num_read_iterations):
            case = random.choice(test_set)
            try:
                value = self.cache.get(case["key"])
            except ItemNotInCacheError:
                _check(
                    not should_be_in_cache,
                    f"{self.name}: item missing on read, iteration {i}",
                )
                continue
            _check(
                should_be_in_cache,
                f"{self.name}: unexpected item found on read, iteration {i}",
            )
            _check(
                value == case["value"],
                f"{self.name}: wrong value on read, iteration {i}",
            )

    def random_test_in_cache(self, test_set: List[TestCase], expected: bool) -> None:
        for i in range(self.num_read_iterations):
            case = random.choice(test_set)
            _check(
                self.cache.is_in_cache(case["key"]) == expected,
                f"{self.name}: is_in_cache should be {expected}, iteration {i}",
            )

    def basic_test(self) -> None:
        self.cache.set_default_ttl(0)

        missing = self.key_prefix + "someKey"
        try:
            self.cache.get(missing)
        except ItemNotInCacheError:
            pass
        else:
            raise AssertionError(f"{self.name}: get on missing key did not raise")

        # deleting a missing key is a no-op
        self.cache.delete(missing)

        set1 = self._set("set1", "value")
        set2 = self._set("set2", "newValue")
        complete = set1 + set2

        for case in set1:
            self.cache.set(case["key"], case["value"])
        self.random_read(set1, True)
        self.random_read(set2, False)
        self.random_test_in_cache(set1, True)
        self.random_test_in_cache(set2, False)

        for case in set2:
            self.cache.set(case["key"], case["value"])
        self.random_read(complete, True)
        self.random_test_in_cache(complete, True)

        # nothing expires, so clean must keep everything
        self.cache.clean()
        self.random_read(complete, True)
        self.random_test_in_cache(complete, True)

        for i, case in enumerate(complete):
            try:
                remaining = self.cache.get_remaining_ttl(case["key"])
            except ItemNotInCacheError:
                raise AssertionError(f"{self.name}: item {i} not in cache") from None
            if remaining != TTL_UNSUPPORTED:
                _check(remaining == 0, f"{self.name}: remaining ttl {remaining} != 0")

        self.cache.flush()
        self.random_read(complete, False)
        self.random_test_in_cache(complete, False)

    def delete_test(self) -> None:
        self.cache.flush()
        self.cache.set_default_ttl(0)

        test_set = self._set("delete", "valueToDelete")
        for case in test_set:
            self.cache.set(case["key"], case["value"])
        for _ in range(self.num_read_iterations):
            case = random.choice(test_set)
            self.cache.delete(case["key"])
            _check(
                not self.cache.is_in_cache(case["key"]),
                f"{self.name}: item still in cache after delete",
            )

    def extreme_keys_test(self) -> None:
        test_set = [
            {
                "key": os.urandom(random.randint(256, REFERENCE_MAX_KEY_LENGTH)),
                "value": os.urandom(random.randint(256, MAX_VALUE_LENGTH_FOR_TESTING)),
            }
            for _ in range(self.num_keys)
        ]
        for case in test_set:
            self.cache.set(case["key"], case["value"])
        self.random_read(test_set, True)

    def big_value_test(self) -> None:
        key = f"{self.key_prefix}BigItem{random.randint(0, 1000000000)}"
        value = os.urandom(self.max_value_length)
        self.cache.set(key, value)
        try:
            _check(self.cache.get(key) == value, f"{self.name}: big item corrupted")
        except ItemNotInCacheError:
            raise AssertionError(f"{self.name}: big item not in cache") from None
        self.cache.delete(key)
        _check(not self.cache.is_in_cache(key), f"{self.name}: big item not deleted")

    def expiration_test(self) -> None:
        self.cache.flush()

        short_ttl = 1
        long_ttl = 200
        wait_time = 2

        self.cache.set_default_ttl(long_ttl)
        long_cases = self._set("longTtl", "value")
        for case in long_cases:
            self.cache.set(case["key"], case["value"])

        self.cache.set_default_ttl(short_ttl)
        short_cases = self._set("shortTtl", "value")
        for case in short_cases:
            self.cache.set(case["key"], case["value"])

        time.sleep(wait_time)

        self.random_read(short_cases, False)
        self.random_read(long_cases, True)

        self.cache.clean()
        self.random_read(short_cases, False)
        self.random_read(long_cases, True)

        for i, case in enumerate(long_cases):
            try:
                remaining = self.cache.get_remaining_ttl(case["key"])
            except ItemNotInCacheError:
                raise AssertionError(
                    f"{self.name}: item {i} gone while reading remaining ttl"
                ) from None
            if remaining != TTL_UNSUPPORTED:
                _check(
                    0 < remaining < long_ttl,
                    f"{self.name}: remaining ttl {remaining} out of range, item {i}",
                )
