"""
Shared fixtures for adversarial tests.

Provides a repository whose username lookup parks every caller on a
barrier, so concurrent creates are guaranteed to pass the pre-check
before any of them writes.
"""

import threading

import pytest

from adminvault.domain.ports import Account


@pytest.fixture
def racing_repository(repository):
    """
    In-memory repository with a barrier in front of find_by_username.

    ``racing_repository.arm(n)`` makes the next ``n`` lookups wait for each
    other and all report the username as free; ``arm(0)`` restores normal
    lookups.
    """
    real_find = repository.find_by_username
    state: dict[str, threading.Barrier | None] = {"barrier": None}

    def find_by_username(username: str) -> Account | None:
        barrier = state["barrier"]
        if barrier is None:
            return real_find(username)
        barrier.wait(timeout=10)
        return None

    def arm(parties: int) -> None:
        state["barrier"] = threading.Barrier(parties) if parties else None

    repository.find_by_username = find_by_username
    repository.arm = arm
    return repository
