from datetime import datetime

import pytest

from config import config
from tests.helpers.time_utils import DEFAULT_TIME_GEN, START


@pytest.fixture(autouse=True)
def _reset_default_time_gen() -> None:
    DEFAULT_TIME_GEN.reset()


@pytest.fixture(autouse=True)
def _clear_config_cache() -> None:
    config.cache_clear()


@pytest.fixture(scope="function")
def t0() -> datetime:
    return START
