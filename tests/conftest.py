"""Pytest configuration and fixtures for jobengine tests."""

import os

import pytest

import jobengine.passes  # noqa: F401 - register all passes
from jobengine import logging
from jobengine.core.registry import clear_registry
from jobengine.session import Session
from tests.helpers.factories import mock_colony, mock_worker, standard_tasks


@pytest.fixture
def clean_registry():
    """
    Save registry state, clear it for the test, then restore it.

    Request explicitly in tests that register throwaway passes. DO NOT use
    autouse=True: integration tests rely on the built-in passes.
    """
    # noinspection PyProtectedMember
    from jobengine.core.registry import _PASS_REGISTRY

    saved = dict(_PASS_REGISTRY)
    clear_registry()

    yield

    _PASS_REGISTRY.clear()
    _PASS_REGISTRY.update(saved)


@pytest.fixture
def small_colony():
    """Four workers with distinct strengths over the standard task list."""
    workers = [
        mock_worker("ana", Cooking=12, Plants=4, Medicine=2),
        mock_worker("bo", Mining=10, Construction=8),
        mock_worker("cy", Medicine=11, Intellectual=9),
        mock_worker("dee", Shooting=9, Crafting=7, Plants=6),
    ]
    return mock_colony(workers, standard_tasks())


@pytest.fixture
def session(small_colony):
    """Session over ``small_colony`` with periodic recomputes disabled."""
    s = Session.init(small_colony, auto_assign_enabled=False)
    yield s
    s.close()


@pytest.fixture(autouse=True)
def mute_jobengine_logs(caplog):
    # COVERAGE_RUN=true executes every log statement for accurate coverage
    if os.environ.get("COVERAGE_RUN") == "true":
        level = logging.DEBUG
    else:
        level = logging.ERROR

    caplog.set_level(level, logger="jobengine")
    logging.getLogger("jobengine").setLevel(level)
