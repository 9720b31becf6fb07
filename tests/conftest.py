"""Pytest configuration and fixtures."""

import pytest

from quoter.models.token import Token
from quoter.simulation import SimulatedBatchExecutor, SimulatedPools
from tests.helpers import (
    AAVE,
    FUN,
    REP,
    UNI,
    WETH,
    FakeChainProvider,
    FakeClock,
    aave_uni_pools,
    fun_rep_pools,
    make_token,
)


@pytest.fixture
def fun() -> Token:
    return make_token(FUN)


@pytest.fixture
def rep() -> Token:
    return make_token(REP)


@pytest.fixture
def aave() -> Token:
    return make_token(AAVE)


@pytest.fixture
def uni() -> Token:
    return make_token(UNI)


@pytest.fixture
def weth() -> Token:
    return make_token(WETH)


@pytest.fixture
def provider() -> FakeChainProvider:
    """Chain provider double; call emit_block() to simulate a new block."""
    return FakeChainProvider()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fun_rep_executor() -> SimulatedBatchExecutor:
    """Executor over v2 FUN/WETH and WETH/REP pools only."""
    return SimulatedBatchExecutor(fun_rep_pools())


@pytest.fixture
def aave_uni_executor() -> SimulatedBatchExecutor:
    """Executor over v3 pools where the direct AAVE/UNI pool is best."""
    return SimulatedBatchExecutor(aave_uni_pools())


@pytest.fixture
def empty_pools() -> SimulatedPools:
    return SimulatedPools()
